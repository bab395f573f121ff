# tests/domains/test_cnt.py

"""
'cnt' 도메인 (재고 실사) API 엔드포인트와 실사 승인에 따른 원장 보정을 테스트합니다.
"""

import pytest
from datetime import date, timedelta
from decimal import Decimal
from typing import Callable
from httpx import AsyncClient
from sqlmodel.ext.asyncio.session import AsyncSession

from app.core.database import atomic
from app.domains.inv import models as inv_models
from app.domains.inv.ledger import stock_ledger, stock_movement
from app.domains.loc import models as loc_models


BASE_URL = "/api/v1/cnt/stock-counts"


async def create_count(client: AsyncClient, warehouse_id: int, scheduled_date: date = None) -> dict:
    response = await client.post(
        BASE_URL,
        json={"warehouse_id": warehouse_id, "scheduled_date": (scheduled_date or date.today()).isoformat()},
    )
    assert response.status_code == 201, response.text
    return response.json()


async def post_action(client: AsyncClient, count_id: int, action: str, **kwargs) -> dict:
    response = await client.post(f"{BASE_URL}/{count_id}/{action}", **kwargs)
    assert response.status_code == 200, response.text
    return response.json()


# =================================================================================
# 1. 생성 / 수정 / 삭제
# =================================================================================
@pytest.mark.asyncio
async def test_create_stock_count(manager_client: AsyncClient, warehouse_a: loc_models.Warehouse):
    """(성공) 실사 계획 생성 (PLANNED, SC 번호 발급)"""
    count = await create_count(manager_client, warehouse_a.id, date.today() + timedelta(days=3))
    assert count["status"] == "PLANNED"
    assert count["count_number"].startswith("SC-")
    assert count["items"] == []


@pytest.mark.asyncio
async def test_create_with_past_date(manager_client: AsyncClient, warehouse_a: loc_models.Warehouse):
    """(실패) 예정일이 과거"""
    response = await manager_client.post(
        BASE_URL,
        json={"warehouse_id": warehouse_a.id, "scheduled_date": (date.today() - timedelta(days=1)).isoformat()},
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_create_as_regular_user(authorized_client: AsyncClient, warehouse_a: loc_models.Warehouse):
    """(실패) 일반 사용자 권한 없음"""
    response = await authorized_client.post(
        BASE_URL, json={"warehouse_id": warehouse_a.id, "scheduled_date": date.today().isoformat()}
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_update_and_delete_planned(manager_client: AsyncClient, warehouse_a: loc_models.Warehouse):
    """(성공) PLANNED 실사 수정 후 삭제"""
    count = await create_count(manager_client, warehouse_a.id)
    new_date = (date.today() + timedelta(days=10)).isoformat()
    response = await manager_client.put(f"{BASE_URL}/{count['id']}", json={"scheduled_date": new_date, "notes": "분기 실사"})
    assert response.status_code == 200
    assert response.json()["scheduled_date"] == new_date

    response = await manager_client.delete(f"{BASE_URL}/{count['id']}")
    assert response.status_code == 204
    assert (await manager_client.get(f"{BASE_URL}/{count['id']}")).status_code == 404


@pytest.mark.asyncio
async def test_delete_in_progress(manager_client: AsyncClient, warehouse_a: loc_models.Warehouse):
    """(실패) 진행 중인 실사 삭제"""
    count = await create_count(manager_client, warehouse_a.id)
    await post_action(manager_client, count["id"], "start")
    response = await manager_client.delete(f"{BASE_URL}/{count['id']}")
    assert response.status_code == 409


# =================================================================================
# 2. 워크플로우
# =================================================================================
@pytest.mark.asyncio
async def test_full_count_flow_adjusts_ledger(
    manager_client: AsyncClient,
    db_session: AsyncSession,
    product: inv_models.Product,
    warehouse_a: loc_models.Warehouse,
    receive_stock: Callable,
):
    """(성공) 시스템 100, 실사 90 -> 승인 시 STOCK_COUNT -10, 원장 90"""
    await receive_stock(product.id, warehouse_a.id, 100)
    count = await create_count(manager_client, warehouse_a.id)

    started = await post_action(manager_client, count["id"], "start")
    assert started["status"] == "IN_PROGRESS"
    assert started["started_at"] is not None
    assert len(started["items"]) == 1
    assert started["items"][0]["system_qty"] == 100

    recorded = await post_action(
        manager_client, count["id"], "counts",
        json={"items": [{"product_id": product.id, "counted_qty": 90}]},
    )
    assert recorded["items"][0]["counted_qty"] == 90
    assert recorded["items"][0]["variance"] == -10

    completed = await post_action(manager_client, count["id"], "complete")
    assert completed["status"] == "COMPLETED"

    approved = await post_action(manager_client, count["id"], "approve")
    assert approved["status"] == "APPROVED"
    assert approved["approved_at"] is not None

    row = await stock_ledger.lock(db_session, product.id, warehouse_a.id)
    assert (row.quantity, row.available_qty) == (90, 90)

    movements = await stock_movement.get_by_reference(db_session, reference_type="STOCK_COUNT", reference_id=count["id"])
    assert len(movements) == 1
    assert movements[0].movement_type == inv_models.MovementType.STOCK_COUNT
    assert movements[0].quantity == -10
    assert movements[0].total_value == Decimal("100.00")


@pytest.mark.asyncio
async def test_approve_keeps_reservations_and_uses_actual_delta(
    manager_client: AsyncClient,
    db_session: AsyncSession,
    product: inv_models.Product,
    warehouse_a: loc_models.Warehouse,
    receive_stock: Callable,
):
    """(성공) 실사 도중 수량이 바뀌어도 승인은 실사 수량으로 설정하고 실제 변화량을 기록"""
    await receive_stock(product.id, warehouse_a.id, 100)
    count = await create_count(manager_client, warehouse_a.id)
    await post_action(manager_client, count["id"], "start")

    async with atomic(db_session):
        row = await stock_ledger.get_or_create(db_session, product.id, warehouse_a.id, create=False)
        await stock_ledger.reserve(db_session, row, 20)
    await receive_stock(product.id, warehouse_a.id, 5)

    await post_action(
        manager_client, count["id"], "counts",
        json={"items": [{"product_id": product.id, "counted_qty": 98}]},
    )
    await post_action(manager_client, count["id"], "complete")
    await post_action(manager_client, count["id"], "approve")

    row = await stock_ledger.lock(db_session, product.id, warehouse_a.id)
    assert (row.quantity, row.reserved_qty, row.available_qty) == (98, 20, 78)
    movements = await stock_movement.get_by_reference(db_session, reference_type="STOCK_COUNT", reference_id=count["id"])
    assert movements[0].quantity == -7


@pytest.mark.asyncio
async def test_complete_with_uncounted_items(
    manager_client: AsyncClient, product: inv_models.Product, warehouse_a: loc_models.Warehouse,
    warehouse_b: loc_models.Warehouse, batch: inv_models.Batch, receive_stock: Callable,
):
    """(실패) 실사되지 않은 품목이 있으면 완료 불가"""
    await receive_stock(product.id, warehouse_a.id, 10)
    await receive_stock(product.id, warehouse_a.id, 20, batch.id)
    await receive_stock(product.id, warehouse_b.id, 30)

    count = await create_count(manager_client, warehouse_a.id)
    started = await post_action(manager_client, count["id"], "start")
    assert len(started["items"]) == 2

    await post_action(
        manager_client, count["id"], "counts",
        json={"items": [{"product_id": product.id, "counted_qty": 10}]},
    )
    response = await manager_client.post(f"{BASE_URL}/{count['id']}/complete")
    assert response.status_code == 400
    assert (await manager_client.get(f"{BASE_URL}/{count['id']}")).json()["status"] == "IN_PROGRESS"


@pytest.mark.asyncio
async def test_record_counts_when_not_in_progress(
    manager_client: AsyncClient, product: inv_models.Product, warehouse_a: loc_models.Warehouse
):
    """(실패) PLANNED 상태에서 실사 수량 기록"""
    count = await create_count(manager_client, warehouse_a.id)
    response = await manager_client.post(
        f"{BASE_URL}/{count['id']}/counts",
        json={"items": [{"product_id": product.id, "counted_qty": 1}]},
    )
    assert response.status_code == 409
    assert response.json()["error"] == "InvalidTransitionError"


@pytest.mark.asyncio
async def test_record_counts_unknown_item(
    manager_client: AsyncClient, product: inv_models.Product, warehouse_a: loc_models.Warehouse, receive_stock: Callable
):
    """(실패) 실사 품목에 없는 (품목, 배치)"""
    await receive_stock(product.id, warehouse_a.id, 10)
    count = await create_count(manager_client, warehouse_a.id)
    await post_action(manager_client, count["id"], "start")
    response = await manager_client.post(
        f"{BASE_URL}/{count['id']}/counts",
        json={"items": [{"product_id": product.id, "batch_id": 999999, "counted_qty": 1}]},
    )
    assert response.status_code == 404
    assert response.json()["error"] == "ItemNotFoundError"


@pytest.mark.asyncio
async def test_variance_report(
    manager_client: AsyncClient, product: inv_models.Product, warehouse_a: loc_models.Warehouse,
    batch: inv_models.Batch, receive_stock: Callable,
):
    """(성공) 차이 보고서: 품목별 차이와 금액 영향 집계"""
    await receive_stock(product.id, warehouse_a.id, 100)
    await receive_stock(product.id, warehouse_a.id, 50, batch.id)
    count = await create_count(manager_client, warehouse_a.id)
    await post_action(manager_client, count["id"], "start")
    await post_action(
        manager_client, count["id"], "counts",
        json={"items": [
            {"product_id": product.id, "counted_qty": 90},
            {"product_id": product.id, "batch_id": batch.id, "counted_qty": 53},
        ]},
    )

    response = await manager_client.get(f"{BASE_URL}/{count['id']}/variance-report")
    assert response.status_code == 200
    report = response.json()
    assert report["total_items"] == 2
    assert report["counted_items"] == 2
    assert report["items_with_variance"] == 2
    assert report["total_variance"] == -7
    assert report["positive_variance"] == 3
    assert report["negative_variance"] == -10
    assert Decimal(report["value_impact"]) == Decimal("-70.00")
    assert {line["product_code"] for line in report["lines"]} == {product.code}


@pytest.mark.asyncio
async def test_cancel_completed_count_leaves_ledger(
    manager_client: AsyncClient, db_session: AsyncSession, product: inv_models.Product,
    warehouse_a: loc_models.Warehouse, receive_stock: Callable,
):
    """(성공) 완료된 실사 취소 시 원장은 그대로"""
    await receive_stock(product.id, warehouse_a.id, 40)
    count = await create_count(manager_client, warehouse_a.id)
    await post_action(manager_client, count["id"], "start")
    await post_action(
        manager_client, count["id"], "counts",
        json={"items": [{"product_id": product.id, "counted_qty": 35}]},
    )
    await post_action(manager_client, count["id"], "complete")

    cancelled = await post_action(manager_client, count["id"], "cancel", json={"reason": "재실사 필요"})
    assert cancelled["status"] == "CANCELLED"
    assert "Cancelled: 재실사 필요" in cancelled["notes"]
    assert (await stock_ledger.lock(db_session, product.id, warehouse_a.id)).quantity == 40

    response = await manager_client.post(f"{BASE_URL}/{count['id']}/approve")
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_stock_count_statistics(
    manager_client: AsyncClient, warehouse_a: loc_models.Warehouse, warehouse_b: loc_models.Warehouse
):
    """(성공) 상태별 실사 건수와 예정일 기간 필터"""
    started = await create_count(manager_client, warehouse_a.id)
    await post_action(manager_client, started["id"], "start")
    await create_count(manager_client, warehouse_b.id)
    await create_count(manager_client, warehouse_b.id, date.today() + timedelta(days=10))

    response = await manager_client.get(f"{BASE_URL}/statistics")
    assert response.status_code == 200
    assert response.json() == {"total": 3, "by_status": {"IN_PROGRESS": 1, "PLANNED": 2}}

    response = await manager_client.get(
        f"{BASE_URL}/statistics", params={"end_date": (date.today() + timedelta(days=1)).isoformat()}
    )
    assert response.json() == {"total": 2, "by_status": {"IN_PROGRESS": 1, "PLANNED": 1}}
