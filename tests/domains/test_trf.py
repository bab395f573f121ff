# tests/domains/test_trf.py

"""
'trf' 도메인 (창고 간 이동) API 엔드포인트와 이동 워크플로우의 재고 영향을 테스트합니다.
"""

import pytest
from typing import Callable
from httpx import AsyncClient
from sqlmodel.ext.asyncio.session import AsyncSession

from app.core.exceptions import HasActiveStockError
from app.domains.inv import crud as inv_crud
from app.domains.inv import models as inv_models
from app.domains.inv.ledger import stock_ledger, stock_movement
from app.domains.loc import models as loc_models


BASE_URL = "/api/v1/trf/transfer-orders"


@pytest.fixture
def transfer_payload(warehouse_a: loc_models.Warehouse, warehouse_b: loc_models.Warehouse, product: inv_models.Product) -> dict:
    return {
        "source_warehouse_id": warehouse_a.id,
        "destination_warehouse_id": warehouse_b.id,
        "items": [{"product_id": product.id, "requested_qty": 50}],
    }


async def create_transfer(client: AsyncClient, payload: dict) -> dict:
    response = await client.post(BASE_URL, json=payload)
    assert response.status_code == 201, response.text
    return response.json()


async def run_actions(client: AsyncClient, order_id: int, *actions: str) -> dict:
    for action in actions:
        response = await client.post(f"{BASE_URL}/{order_id}/{action}")
        assert response.status_code == 200, response.text
    return response.json()


async def stock_of(db: AsyncSession, product_id: int, warehouse_id: int, batch_id=None):
    return await stock_ledger.lock(db, product_id, warehouse_id, batch_id)


# =================================================================================
# 1. 생성 / 검증
# =================================================================================
@pytest.mark.asyncio
async def test_create_transfer_order(manager_client: AsyncClient, transfer_payload: dict, test_manager_user):
    """(성공) 이동 요청 생성 (DRAFT, TO 번호 발급)"""
    order = await create_transfer(manager_client, transfer_payload)
    assert order["status"] == "DRAFT"
    assert order["transfer_number"].startswith("TO-")
    assert order["requested_by"] == test_manager_user.id
    assert order["items"][0]["requested_qty"] == 50
    assert order["items"][0]["approved_qty"] is None


@pytest.mark.asyncio
async def test_create_same_warehouse(manager_client: AsyncClient, transfer_payload: dict, warehouse_a: loc_models.Warehouse):
    """(실패) 출고/입고 창고가 같음"""
    transfer_payload["destination_warehouse_id"] = warehouse_a.id
    response = await manager_client.post(BASE_URL, json=transfer_payload)
    assert response.status_code == 409
    assert response.json()["error"] == "SameWarehouseError"


@pytest.mark.asyncio
async def test_submit_without_items(manager_client: AsyncClient, transfer_payload: dict):
    """(실패) 품목 없는 이동 요청 제출"""
    transfer_payload["items"] = []
    order = await create_transfer(manager_client, transfer_payload)
    response = await manager_client.post(f"{BASE_URL}/{order['id']}/submit")
    assert response.status_code == 400
    assert (await manager_client.get(f"{BASE_URL}/{order['id']}")).json()["status"] == "DRAFT"


@pytest.mark.asyncio
async def test_create_as_regular_user(authorized_client: AsyncClient, transfer_payload: dict):
    """(실패) 일반 사용자 권한 없음"""
    response = await authorized_client.post(BASE_URL, json=transfer_payload)
    assert response.status_code == 403


# =================================================================================
# 2. 전체 흐름
# =================================================================================
@pytest.mark.asyncio
async def test_full_transfer_flow(
    manager_client: AsyncClient,
    db_session: AsyncSession,
    transfer_payload: dict,
    product: inv_models.Product,
    warehouse_a: loc_models.Warehouse,
    warehouse_b: loc_models.Warehouse,
    receive_stock: Callable,
):
    """(성공) A 창고 200 중 50 이동: 승인(예약) -> 출고(TRANSFER_OUT) -> 입고(TRANSFER_IN)"""
    await receive_stock(product.id, warehouse_a.id, 200)
    order = await create_transfer(manager_client, transfer_payload)
    order_id = order["id"]

    approved = await run_actions(manager_client, order_id, "submit", "approve")
    assert approved["status"] == "APPROVED"
    assert approved["items"][0]["approved_qty"] == 50
    assert approved["approved_date"] is not None
    source = await stock_of(db_session, product.id, warehouse_a.id)
    assert (source.quantity, source.reserved_qty, source.available_qty) == (200, 50, 150)

    shipped = await run_actions(manager_client, order_id, "ship")
    assert shipped["status"] == "IN_TRANSIT"
    assert shipped["shipped_date"] is not None
    source = await stock_of(db_session, product.id, warehouse_a.id)
    assert (source.quantity, source.reserved_qty, source.available_qty) == (150, 0, 150)

    received = await run_actions(manager_client, order_id, "receive")
    assert received["status"] == "RECEIVED"
    assert received["items"][0]["received_qty"] == 50
    destination = await stock_of(db_session, product.id, warehouse_b.id)
    assert destination.quantity == 50

    movements = await stock_movement.get_by_reference(db_session, reference_type="TRANSFER_ORDER", reference_id=order_id)
    assert [(m.movement_type, m.warehouse_id, m.quantity) for m in movements] == [
        (inv_models.MovementType.TRANSFER_OUT, warehouse_a.id, -50),
        (inv_models.MovementType.TRANSFER_IN, warehouse_b.id, 50),
    ]


@pytest.mark.asyncio
async def test_ship_from_pending_is_rejected(
    manager_client: AsyncClient, db_session: AsyncSession, transfer_payload: dict, product: inv_models.Product,
    warehouse_a: loc_models.Warehouse, receive_stock: Callable,
):
    """(실패) PENDING 상태에서 출고 시 409, 재고 변화 없음"""
    await receive_stock(product.id, warehouse_a.id, 100)
    order = await create_transfer(manager_client, transfer_payload)
    await run_actions(manager_client, order["id"], "submit")

    response = await manager_client.post(f"{BASE_URL}/{order['id']}/ship")
    assert response.status_code == 409
    assert response.json()["error"] == "InvalidTransitionError"
    source = await stock_of(db_session, product.id, warehouse_a.id)
    assert (source.quantity, source.reserved_qty) == (100, 0)


@pytest.mark.asyncio
async def test_approve_with_insufficient_stock(
    manager_client: AsyncClient, db_session: AsyncSession, transfer_payload: dict, product: inv_models.Product,
    warehouse_a: loc_models.Warehouse, receive_stock: Callable,
):
    """(실패) 가용 재고 부족 시 승인 거부, 품목 코드 포함, 예약 없음"""
    await receive_stock(product.id, warehouse_a.id, 30)
    order = await create_transfer(manager_client, transfer_payload)
    await run_actions(manager_client, order["id"], "submit")

    response = await manager_client.post(f"{BASE_URL}/{order['id']}/approve")
    assert response.status_code == 409
    body = response.json()
    assert body["error"] == "InsufficientAvailableError"
    assert product.code in body["detail"]

    source = await stock_of(db_session, product.id, warehouse_a.id)
    assert source.reserved_qty == 0
    current = (await manager_client.get(f"{BASE_URL}/{order['id']}")).json()
    assert current["status"] == "PENDING"
    assert current["items"][0]["approved_qty"] is None


@pytest.mark.asyncio
async def test_approve_without_source_stock(manager_client: AsyncClient, transfer_payload: dict):
    """(실패) 출고 창고에 원장 행이 없음"""
    order = await create_transfer(manager_client, transfer_payload)
    await run_actions(manager_client, order["id"], "submit")
    response = await manager_client.post(f"{BASE_URL}/{order['id']}/approve")
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_approve_recalled_batch(
    manager_client: AsyncClient, db_session: AsyncSession, transfer_payload: dict, batch: inv_models.Batch,
    warehouse_a: loc_models.Warehouse, receive_stock: Callable,
):
    """(실패) 회수된 배치는 이동 승인 불가"""
    await receive_stock(batch.product_id, warehouse_a.id, 100, batch.id)
    transfer_payload["items"][0]["batch_id"] = batch.id
    order = await create_transfer(manager_client, transfer_payload)
    await run_actions(manager_client, order["id"], "submit")

    batch.is_recalled = True
    batch.recall_reason = "오염"
    db_session.add(batch)
    await db_session.commit()

    response = await manager_client.post(f"{BASE_URL}/{order['id']}/approve")
    assert response.status_code == 409
    assert response.json()["error"] == "BatchUnavailableError"


# =================================================================================
# 3. 반려 / 취소 / 부분 입고
# =================================================================================
@pytest.mark.asyncio
async def test_reject_requires_reason(manager_client: AsyncClient, transfer_payload: dict):
    """(실패 -> 성공) 반려 사유 공백은 400, 사유가 있으면 REJECTED"""
    order = await create_transfer(manager_client, transfer_payload)
    await run_actions(manager_client, order["id"], "submit")

    response = await manager_client.post(f"{BASE_URL}/{order['id']}/reject", json={"reason": "  "})
    assert response.status_code == 400

    response = await manager_client.post(f"{BASE_URL}/{order['id']}/reject", json={"reason": "재고 불필요"})
    assert response.status_code == 200
    rejected = response.json()
    assert rejected["status"] == "REJECTED"
    assert rejected["rejection_reason"] == "재고 불필요"

    response = await manager_client.post(f"{BASE_URL}/{order['id']}/cancel")
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_cancel_approved_releases_reservation(
    manager_client: AsyncClient, db_session: AsyncSession, transfer_payload: dict, product: inv_models.Product,
    warehouse_a: loc_models.Warehouse, receive_stock: Callable,
):
    """(성공) APPROVED 취소 시 예약 해제"""
    await receive_stock(product.id, warehouse_a.id, 80)
    order = await create_transfer(manager_client, transfer_payload)
    await run_actions(manager_client, order["id"], "submit", "approve")

    response = await manager_client.post(f"{BASE_URL}/{order['id']}/cancel", json={"reason": "계획 변경"})
    assert response.status_code == 200
    cancelled = response.json()
    assert cancelled["status"] == "CANCELLED"
    assert "Cancelled: 계획 변경" in cancelled["notes"]

    source = await stock_of(db_session, product.id, warehouse_a.id)
    assert (source.quantity, source.reserved_qty, source.available_qty) == (80, 0, 80)


@pytest.mark.asyncio
async def test_cancel_in_transit_returns_stock(
    manager_client: AsyncClient, db_session: AsyncSession, transfer_payload: dict, product: inv_models.Product,
    warehouse_a: loc_models.Warehouse, warehouse_b: loc_models.Warehouse, receive_stock: Callable,
):
    """(성공) IN_TRANSIT 취소 시 출고 창고로 TRANSFER_IN 반환"""
    await receive_stock(product.id, warehouse_a.id, 80)
    order = await create_transfer(manager_client, transfer_payload)
    await run_actions(manager_client, order["id"], "submit", "approve", "ship")
    assert (await stock_of(db_session, product.id, warehouse_a.id)).quantity == 30

    await run_actions(manager_client, order["id"], "cancel")
    source = await stock_of(db_session, product.id, warehouse_a.id)
    assert (source.quantity, source.reserved_qty) == (80, 0)
    assert await stock_ledger.find(db_session, product.id, warehouse_b.id) is None

    movements = await stock_movement.get_by_reference(db_session, reference_type="TRANSFER_ORDER", reference_id=order["id"])
    assert [(m.movement_type, m.warehouse_id) for m in movements] == [
        (inv_models.MovementType.TRANSFER_OUT, warehouse_a.id),
        (inv_models.MovementType.TRANSFER_IN, warehouse_a.id),
    ]


@pytest.mark.asyncio
async def test_partial_receive(
    manager_client: AsyncClient, db_session: AsyncSession, transfer_payload: dict, product: inv_models.Product,
    warehouse_a: loc_models.Warehouse, warehouse_b: loc_models.Warehouse, receive_stock: Callable,
):
    """(성공) 품목별 입고 수량 지정 (부족분은 기록만 하고 원장에 반영하지 않음)"""
    await receive_stock(product.id, warehouse_a.id, 100)
    order = await create_transfer(manager_client, transfer_payload)
    shipped = await run_actions(manager_client, order["id"], "submit", "approve", "ship")
    item_id = shipped["items"][0]["id"]

    response = await manager_client.post(
        f"{BASE_URL}/{order['id']}/receive", json={"received_quantities": {str(item_id): 45}}
    )
    assert response.status_code == 200, response.text
    received = response.json()
    assert received["status"] == "RECEIVED"
    assert received["items"][0]["received_qty"] == 45

    assert (await stock_of(db_session, product.id, warehouse_b.id)).quantity == 45
    assert (await stock_of(db_session, product.id, warehouse_a.id)).quantity == 50


@pytest.mark.asyncio
async def test_receive_more_than_approved(
    manager_client: AsyncClient, transfer_payload: dict, product: inv_models.Product,
    warehouse_a: loc_models.Warehouse, receive_stock: Callable,
):
    """(실패) 승인 수량 초과 입고"""
    await receive_stock(product.id, warehouse_a.id, 100)
    order = await create_transfer(manager_client, transfer_payload)
    shipped = await run_actions(manager_client, order["id"], "submit", "approve", "ship")
    item_id = shipped["items"][0]["id"]

    response = await manager_client.post(
        f"{BASE_URL}/{order['id']}/receive", json={"received_quantities": {str(item_id): 51}}
    )
    assert response.status_code == 400
    assert (await manager_client.get(f"{BASE_URL}/{order['id']}")).json()["status"] == "IN_TRANSIT"


@pytest.mark.asyncio
async def test_transfer_statistics(
    manager_client: AsyncClient, transfer_payload: dict, product: inv_models.Product,
    warehouse_a: loc_models.Warehouse, receive_stock: Callable,
):
    """(성공) 상태별 통계"""
    await receive_stock(product.id, warehouse_a.id, 100)
    first = await create_transfer(manager_client, transfer_payload)
    second = await create_transfer(manager_client, transfer_payload)
    await run_actions(manager_client, first["id"], "submit", "approve", "ship")
    await run_actions(manager_client, second["id"], "submit")

    response = await manager_client.get(f"{BASE_URL}/statistics")
    assert response.status_code == 200
    stats = response.json()
    assert stats["total_orders"] == 2
    assert stats["in_transit"] == 1
    assert stats["pending_approval"] == 1


# =================================================================================
# 4. 이동 중 배치 보호
# =================================================================================
@pytest.mark.asyncio
async def test_delete_batch_while_in_transit(
    manager_client: AsyncClient, db_session: AsyncSession, transfer_payload: dict, batch: inv_models.Batch,
    warehouse_a: loc_models.Warehouse, warehouse_b: loc_models.Warehouse, receive_stock: Callable,
):
    """(실패 -> 성공) 운송 중인 배치는 삭제되지 않고 입고까지 정상 처리"""
    await receive_stock(batch.product_id, warehouse_a.id, 50, batch.id)
    transfer_payload["items"][0]["batch_id"] = batch.id
    order = await create_transfer(manager_client, transfer_payload)

    await run_actions(manager_client, order["id"], "submit", "approve")
    with pytest.raises(HasActiveStockError):
        await inv_crud.batch.remove(db_session, id=batch.id)

    await run_actions(manager_client, order["id"], "ship")
    assert (await stock_of(db_session, batch.product_id, warehouse_a.id, batch.id)).quantity == 0
    with pytest.raises(HasActiveStockError, match="in-transit"):
        await inv_crud.batch.remove(db_session, id=batch.id)

    stored = await db_session.get(inv_models.Batch, batch.id)
    await db_session.refresh(stored)
    assert stored.deleted_at is None

    received = await run_actions(manager_client, order["id"], "receive")
    assert received["status"] == "RECEIVED"
    destination = await stock_of(db_session, batch.product_id, warehouse_b.id, batch.id)
    assert destination.quantity == 50
