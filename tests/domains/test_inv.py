# tests/domains/test_inv.py

"""
'inv' 도메인 (품목, 배치, 재고 원장, 재고 이동) API 엔드포인트 통합 테스트 모듈입니다.
"""

import pytest
from datetime import date, timedelta
from decimal import Decimal
from typing import Callable

from httpx import AsyncClient
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from app.domains.inv import models as inv_models
from app.domains.inv.ledger import stock_ledger
from app.domains.loc import models as loc_models
from app.domains.ntf import models as ntf_models
from app.domains.ven import models as ven_models


@pytest.fixture
async def expired_batch(db_session: AsyncSession, product: inv_models.Product) -> inv_models.Batch:
    """유효기간이 이미 지났지만 아직 만료 처리되지 않은 배치"""
    batch = inv_models.Batch(
        batch_number="LOT-OLD",
        product_id=product.id,
        expiry_date=date.today() - timedelta(days=1),
        initial_quantity=50,
        current_quantity=0,
    )
    db_session.add(batch)
    await db_session.commit()
    await db_session.refresh(batch)
    return batch


# =================================================================================
# 1. 품목 분류 / 품목
# =================================================================================
@pytest.mark.asyncio
async def test_create_category(admin_client: AsyncClient):
    """(성공) 관리자: 품목 분류 생성"""
    response = await admin_client.post("/api/v1/inv/categories", json={"code": "CAT-VAC", "name": "백신"})
    assert response.status_code == 201
    assert response.json()["code"] == "CAT-VAC"


@pytest.mark.asyncio
async def test_create_category_forbidden_for_manager(manager_client: AsyncClient):
    """(실패) 권한: 창고 관리자는 분류를 만들 수 없음"""
    response = await manager_client.post("/api/v1/inv/categories", json={"code": "CAT-X", "name": "x"})
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_delete_category_with_products(admin_client: AsyncClient, product: inv_models.Product):
    """(실패) 품목이 남아 있는 분류는 삭제 불가 (409)"""
    response = await admin_client.delete(f"/api/v1/inv/categories/{product.category_id}")
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_create_product(admin_client: AsyncClient, category: inv_models.ProductCategory):
    """(성공) 관리자: 품목 생성, 기본 상태는 ACTIVE"""
    payload = {
        "code": "PARA-500",
        "barcode": "8800000000017",
        "name": "Paracetamol 500mg",
        "generic_name": "acetaminophen",
        "category_id": category.id,
        "min_stock_level": 50,
        "unit_price": "2.50",
        "requires_prescription": False,
    }
    response = await admin_client.post("/api/v1/inv/products", json=payload)
    assert response.status_code == 201
    body = response.json()
    assert body["status"] == "ACTIVE"
    assert Decimal(body["unit_price"]) == Decimal("2.50")


@pytest.mark.asyncio
async def test_create_product_duplicate_code(admin_client: AsyncClient, product: inv_models.Product):
    """(실패) 중복 품목 코드는 400"""
    response = await admin_client.post("/api/v1/inv/products", json={"code": product.code, "name": "dup"})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_create_product_invalid_levels(admin_client: AsyncClient):
    """(실패) 최대 재고가 최소 재고보다 작으면 400"""
    payload = {"code": "BAD-LVL", "name": "bad", "min_stock_level": 100, "max_stock_level": 10}
    response = await admin_client.post("/api/v1/inv/products", json=payload)
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_search_products(authorized_client: AsyncClient, product: inv_models.Product):
    """(성공) 이름 일부로 품목 검색"""
    response = await authorized_client.get("/api/v1/inv/products", params={"search": "amoxi"})
    assert response.status_code == 200
    assert [p["code"] for p in response.json()] == [product.code]


@pytest.mark.asyncio
async def test_discontinue_product_with_stock_conflicts(
    admin_client: AsyncClient, product: inv_models.Product, warehouse_a: loc_models.Warehouse, receive_stock: Callable
):
    """(실패) 재고가 남은 품목은 단종 불가 (409)"""
    await receive_stock(product.id, warehouse_a.id, 5)
    response = await admin_client.post(f"/api/v1/inv/products/{product.id}/discontinue")
    assert response.status_code == 409
    assert response.json()["error"] == "HasActiveStockError"


@pytest.mark.asyncio
async def test_delete_product_marks_discontinued(admin_client: AsyncClient, product: inv_models.Product):
    """(성공) 재고가 없는 품목 삭제는 단종 처리"""
    response = await admin_client.delete(f"/api/v1/inv/products/{product.id}")
    assert response.status_code == 204

    follow = await admin_client.get(f"/api/v1/inv/products/{product.id}")
    assert follow.status_code == 200
    assert follow.json()["status"] == "DISCONTINUED"


# =================================================================================
# 2. 배치
# =================================================================================
@pytest.mark.asyncio
async def test_create_batch(manager_client: AsyncClient, product: inv_models.Product, supplier: ven_models.Supplier):
    """(성공) 창고 관리자: 배치 등록, 현재 수량은 0에서 시작"""
    payload = {
        "batch_number": "LOT-NEW",
        "product_id": product.id,
        "supplier_id": supplier.id,
        "manufacturing_date": str(date.today() - timedelta(days=30)),
        "expiry_date": str(date.today() + timedelta(days=400)),
        "initial_quantity": 500,
    }
    response = await manager_client.post("/api/v1/inv/batches", json=payload)
    assert response.status_code == 201
    body = response.json()
    assert body["current_quantity"] == 0
    assert body["is_expired"] is False
    assert body["is_recalled"] is False


@pytest.mark.asyncio
async def test_create_batch_past_expiry(manager_client: AsyncClient, product: inv_models.Product):
    """(실패) 유효기간이 지난 배치는 등록 불가"""
    payload = {
        "batch_number": "LOT-PAST",
        "product_id": product.id,
        "expiry_date": str(date.today() - timedelta(days=1)),
        "initial_quantity": 10,
    }
    response = await manager_client.post("/api/v1/inv/batches", json=payload)
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_create_batch_duplicate_number(manager_client: AsyncClient, batch: inv_models.Batch):
    """(실패) 중복 배치 번호는 400"""
    payload = {
        "batch_number": batch.batch_number,
        "product_id": batch.product_id,
        "expiry_date": str(date.today() + timedelta(days=100)),
        "initial_quantity": 10,
    }
    response = await manager_client.post("/api/v1/inv/batches", json=payload)
    assert response.status_code == 400
    assert response.json()["error"] == "DuplicateError"


@pytest.mark.asyncio
async def test_create_batch_manufacturing_after_expiry(manager_client: AsyncClient, product: inv_models.Product):
    """(실패) 제조일이 유효기간보다 늦으면 400"""
    payload = {
        "batch_number": "LOT-MFG",
        "product_id": product.id,
        "manufacturing_date": str(date.today() + timedelta(days=50)),
        "expiry_date": str(date.today() + timedelta(days=10)),
        "initial_quantity": 10,
    }
    response = await manager_client.post("/api/v1/inv/batches", json=payload)
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_recall_batch_notifies_holding_warehouses(
    admin_client: AsyncClient,
    db_session: AsyncSession,
    batch: inv_models.Batch,
    warehouse_a: loc_models.Warehouse,
    warehouse_b: loc_models.Warehouse,
    receive_stock: Callable,
):
    """(성공) 회수 처리 시 재고를 가진 창고마다 RECALL 알림 1건"""
    await receive_stock(batch.product_id, warehouse_a.id, 10, batch.id)
    await receive_stock(batch.product_id, warehouse_b.id, 20, batch.id)

    response = await admin_client.post(f"/api/v1/inv/batches/{batch.id}/recall", json={"reason": "오염 의심"})
    assert response.status_code == 200
    body = response.json()
    assert body["is_recalled"] is True
    assert body["recall_reason"] == "오염 의심"

    result = await db_session.execute(
        select(ntf_models.Notification).where(
            ntf_models.Notification.notification_type == ntf_models.NotificationType.RECALL,
            ntf_models.Notification.reference_id == batch.id,
        )
    )
    notified = sorted(n.warehouse_id for n in result.scalars().all())
    assert notified == sorted([warehouse_a.id, warehouse_b.id])


@pytest.mark.asyncio
async def test_recall_batch_twice_conflicts(admin_client: AsyncClient, batch: inv_models.Batch):
    """(실패) 이미 회수된 배치를 다시 회수하면 409"""
    first = await admin_client.post(f"/api/v1/inv/batches/{batch.id}/recall", json={"reason": "품질 이상"})
    assert first.status_code == 200
    second = await admin_client.post(f"/api/v1/inv/batches/{batch.id}/recall", json={"reason": "품질 이상"})
    assert second.status_code == 409


@pytest.mark.asyncio
async def test_recall_batch_requires_reason(admin_client: AsyncClient, batch: inv_models.Batch):
    """(실패) 회수 사유가 비어 있으면 400"""
    response = await admin_client.post(f"/api/v1/inv/batches/{batch.id}/recall", json={"reason": "   "})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_recall_batch_forbidden_for_manager(manager_client: AsyncClient, batch: inv_models.Batch):
    """(실패) 권한: 회수는 관리자 전용"""
    response = await manager_client.post(f"/api/v1/inv/batches/{batch.id}/recall", json={"reason": "x"})
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_mark_expired_is_idempotent(manager_client: AsyncClient, expired_batch: inv_models.Batch):
    """(성공) 만료 처리는 첫 호출에만 배치를 처리하고 두 번째 호출은 0건"""
    first = await manager_client.post("/api/v1/inv/batches/mark-expired")
    assert first.status_code == 200
    assert first.json() == {"expired_count": 1}

    second = await manager_client.post("/api/v1/inv/batches/mark-expired")
    assert second.json() == {"expired_count": 0}

    expired = await manager_client.get("/api/v1/inv/batches/expired")
    assert [b["batch_number"] for b in expired.json()] == [expired_batch.batch_number]


@pytest.mark.asyncio
async def test_expiring_batches(authorized_client: AsyncClient, batch: inv_models.Batch, db_session: AsyncSession):
    """(성공) 기준 일수 안에 만료되는 배치만 조회"""
    soon = inv_models.Batch(
        batch_number="LOT-SOON",
        product_id=batch.product_id,
        expiry_date=date.today() + timedelta(days=10),
        initial_quantity=5,
        current_quantity=0,
    )
    db_session.add(soon)
    await db_session.commit()

    response = await authorized_client.get("/api/v1/inv/batches/expiring", params={"days": 30})
    assert response.status_code == 200
    assert [b["batch_number"] for b in response.json()] == ["LOT-SOON"]


@pytest.mark.asyncio
async def test_delete_batch_with_stock_conflicts(
    admin_client: AsyncClient, batch: inv_models.Batch, warehouse_a: loc_models.Warehouse, receive_stock: Callable
):
    """(실패) 재고가 남은 배치는 삭제 불가 (409)"""
    await receive_stock(batch.product_id, warehouse_a.id, 10, batch.id)
    response = await admin_client.delete(f"/api/v1/inv/batches/{batch.id}")
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_delete_empty_batch_is_soft(admin_client: AsyncClient, batch: inv_models.Batch, db_session: AsyncSession):
    """(성공) 재고가 없는 배치는 소프트 삭제되고 조회되지 않음"""
    response = await admin_client.delete(f"/api/v1/inv/batches/{batch.id}")
    assert response.status_code == 204

    follow = await admin_client.get(f"/api/v1/inv/batches/{batch.id}")
    assert follow.status_code == 404
    stored = await db_session.get(inv_models.Batch, batch.id)
    assert stored is not None and stored.deleted_at is not None


@pytest.mark.asyncio
async def test_batch_statistics_expired_and_recalled(
    authorized_client: AsyncClient, batch: inv_models.Batch, db_session: AsyncSession
):
    """(성공) 만료와 회수가 겹친 배치도 사용 가능 수에서 한 번만 빠짐"""
    past = date.today() - timedelta(days=3)
    for number, is_expired, is_recalled in [
        ("LOT-EXP", True, False),
        ("LOT-RCL", False, True),
        ("LOT-BOTH", True, True),
    ]:
        db_session.add(inv_models.Batch(
            batch_number=number,
            product_id=batch.product_id,
            expiry_date=past if is_expired else date.today() + timedelta(days=200),
            initial_quantity=10,
            current_quantity=0,
            is_expired=is_expired,
            is_recalled=is_recalled,
            recall_reason="오염" if is_recalled else None,
        ))
    await db_session.commit()

    response = await authorized_client.get("/api/v1/inv/batches/statistics")
    assert response.status_code == 200
    stats = response.json()
    assert (stats["total"], stats["expired"], stats["recalled"], stats["active"]) == (4, 2, 2, 1)


# =================================================================================
# 3. 재고 원장 API
# =================================================================================
@pytest.mark.asyncio
async def test_reserve_and_release_via_api(
    manager_client: AsyncClient, product: inv_models.Product, warehouse_a: loc_models.Warehouse, receive_stock: Callable
):
    """(성공) 예약 후 해제하면 가용 수량이 원래대로 돌아옴"""
    await receive_stock(product.id, warehouse_a.id, 1000)
    key = {"product_id": product.id, "warehouse_id": warehouse_a.id}

    reserved = await manager_client.post("/api/v1/inv/stocks/reserve", json={**key, "quantity": 300})
    assert reserved.status_code == 200
    assert (reserved.json()["quantity"], reserved.json()["reserved_qty"], reserved.json()["available_qty"]) == (1000, 300, 700)

    released = await manager_client.post("/api/v1/inv/stocks/release", json={**key, "quantity": 300})
    assert released.status_code == 200
    assert (released.json()["reserved_qty"], released.json()["available_qty"]) == (0, 1000)


@pytest.mark.asyncio
async def test_reserve_more_than_available(
    manager_client: AsyncClient, product: inv_models.Product, warehouse_a: loc_models.Warehouse, receive_stock: Callable
):
    """(실패) 가용 수량보다 많이 예약하면 409"""
    await receive_stock(product.id, warehouse_a.id, 10)
    response = await manager_client.post(
        "/api/v1/inv/stocks/reserve", json={"product_id": product.id, "warehouse_id": warehouse_a.id, "quantity": 11}
    )
    assert response.status_code == 409
    assert response.json()["error"] == "InsufficientAvailableError"


@pytest.mark.asyncio
async def test_reserve_without_stock_row(manager_client: AsyncClient, product: inv_models.Product, warehouse_a: loc_models.Warehouse):
    """(실패) 원장 행이 없으면 404"""
    response = await manager_client.post(
        "/api/v1/inv/stocks/reserve", json={"product_id": product.id, "warehouse_id": warehouse_a.id, "quantity": 1}
    )
    assert response.status_code == 404
    assert response.json()["error"] == "StockNotFoundError"


@pytest.mark.asyncio
async def test_reserve_forbidden_for_regular_user(
    authorized_client: AsyncClient, product: inv_models.Product, warehouse_a: loc_models.Warehouse
):
    """(실패) 권한: 일반 사용자는 예약 불가"""
    response = await authorized_client.post(
        "/api/v1/inv/stocks/reserve", json={"product_id": product.id, "warehouse_id": warehouse_a.id, "quantity": 1}
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_adjust_stock(
    manager_client: AsyncClient, product: inv_models.Product, warehouse_a: loc_models.Warehouse, receive_stock: Callable
):
    """(성공) 사유와 함께 재고 조정, ADJUSTMENT 이동이 남음"""
    await receive_stock(product.id, warehouse_a.id, 10)
    response = await manager_client.post(
        "/api/v1/inv/stocks/adjust",
        json={"product_id": product.id, "warehouse_id": warehouse_a.id, "quantity_change": -4, "reason": "파손"},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["stock"]["quantity"] == 6
    assert body["movement"]["movement_type"] == "ADJUSTMENT"
    assert body["movement"]["quantity"] == -4


@pytest.mark.asyncio
async def test_adjust_below_zero_leaves_stock_unchanged(
    manager_client: AsyncClient,
    db_session: AsyncSession,
    product: inv_models.Product,
    warehouse_a: loc_models.Warehouse,
    receive_stock: Callable,
):
    """(실패) 수량 3에서 -5 조정은 409, 원장과 이력은 그대로"""
    await receive_stock(product.id, warehouse_a.id, 3)
    response = await manager_client.post(
        "/api/v1/inv/stocks/adjust",
        json={"product_id": product.id, "warehouse_id": warehouse_a.id, "quantity_change": -5, "reason": "분실"},
    )
    assert response.status_code == 409
    assert response.json()["error"] == "NegativeStockError"

    row = await stock_ledger.find(db_session, product.id, warehouse_a.id)
    await db_session.refresh(row)
    assert row.quantity == 3

    movements = await manager_client.get(
        "/api/v1/inv/stock-movements", params={"product_id": product.id, "movement_type": "ADJUSTMENT"}
    )
    assert movements.json() == []


@pytest.mark.asyncio
async def test_adjust_requires_reason(manager_client: AsyncClient, product: inv_models.Product, warehouse_a: loc_models.Warehouse):
    """(실패) 조정 사유가 비어 있으면 400"""
    response = await manager_client.post(
        "/api/v1/inv/stocks/adjust",
        json={"product_id": product.id, "warehouse_id": warehouse_a.id, "quantity_change": 5, "reason": " "},
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_stock_summaries(
    authorized_client: AsyncClient,
    product: inv_models.Product,
    warehouse_a: loc_models.Warehouse,
    warehouse_b: loc_models.Warehouse,
    receive_stock: Callable,
):
    """(성공) 품목별/창고별 요약과 재고 부족 목록"""
    await receive_stock(product.id, warehouse_a.id, 60)
    await receive_stock(product.id, warehouse_b.id, 30)

    summary = await authorized_client.get(f"/api/v1/inv/stocks/products/{product.id}/summary")
    assert summary.status_code == 200
    body = summary.json()
    assert body["total_quantity"] == 90
    assert body["warehouse_count"] == 2

    warehouse_summary = await authorized_client.get(f"/api/v1/inv/stocks/warehouses/{warehouse_a.id}/summary")
    assert warehouse_summary.status_code == 200
    assert warehouse_summary.json()["total_quantity"] == 60
    assert Decimal(warehouse_summary.json()["total_value"]) == Decimal("600.00")

    low = await authorized_client.get("/api/v1/inv/stocks/low")
    assert product.id in [item["product_id"] for item in low.json()]


# =================================================================================
# 4. 재고 이동 API
# =================================================================================
@pytest.mark.asyncio
async def test_manual_receipt_and_issue(
    manager_client: AsyncClient, product: inv_models.Product, warehouse_a: loc_models.Warehouse
):
    """(성공) 수동 입고 후 출고, 이동 번호는 SM-YYYYMMDD-NNNN 형식"""
    receipt = await manager_client.post(
        "/api/v1/inv/stock-movements",
        json={"movement_type": "RECEIPT", "product_id": product.id, "warehouse_id": warehouse_a.id, "quantity": 20, "unit_price": "10.00"},
    )
    assert receipt.status_code == 201
    body = receipt.json()
    assert body["movement_number"] == f"SM-{date.today():%Y%m%d}-0001"
    assert Decimal(body["total_value"]) == Decimal("200.00")

    issue = await manager_client.post(
        "/api/v1/inv/stock-movements",
        json={"movement_type": "ISSUE", "product_id": product.id, "warehouse_id": warehouse_a.id, "quantity": 5},
    )
    assert issue.status_code == 201
    assert issue.json()["quantity"] == -5
    assert issue.json()["movement_number"] == f"SM-{date.today():%Y%m%d}-0002"

    stocks = await manager_client.get("/api/v1/inv/stocks", params={"product_id": product.id})
    assert stocks.json()[0]["quantity"] == 15


@pytest.mark.asyncio
async def test_manual_workflow_only_type_rejected(
    manager_client: AsyncClient, product: inv_models.Product, warehouse_a: loc_models.Warehouse
):
    """(실패) TRANSFER_IN 은 수동으로 기록할 수 없음"""
    response = await manager_client.post(
        "/api/v1/inv/stock-movements",
        json={"movement_type": "TRANSFER_IN", "product_id": product.id, "warehouse_id": warehouse_a.id, "quantity": 5},
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_issue_from_expired_batch_rejected(
    manager_client: AsyncClient,
    db_session: AsyncSession,
    batch: inv_models.Batch,
    warehouse_a: loc_models.Warehouse,
    receive_stock: Callable,
):
    """(실패) 만료 처리된 배치에서 출고하면 409"""
    await receive_stock(batch.product_id, warehouse_a.id, 10, batch.id)
    batch.is_expired = True
    db_session.add(batch)
    await db_session.commit()

    response = await manager_client.post(
        "/api/v1/inv/stock-movements",
        json={"movement_type": "ISSUE", "product_id": batch.product_id, "warehouse_id": warehouse_a.id, "batch_id": batch.id, "quantity": 1},
    )
    assert response.status_code == 409
    assert response.json()["error"] == "BatchUnavailableError"


@pytest.mark.asyncio
async def test_movement_statistics(
    authorized_client: AsyncClient, product: inv_models.Product, warehouse_a: loc_models.Warehouse, receive_stock: Callable
):
    """(성공) 유형별 이동 통계"""
    await receive_stock(product.id, warehouse_a.id, 10)
    await receive_stock(product.id, warehouse_a.id, 15)

    response = await authorized_client.get("/api/v1/inv/stock-movements/statistics", params={"warehouse_id": warehouse_a.id})
    assert response.status_code == 200
    body = response.json()
    assert body["total_movements"] == 2
    receipt = next(item for item in body["by_type"] if item["movement_type"] == "RECEIPT")
    assert receipt["total_quantity"] == 25
