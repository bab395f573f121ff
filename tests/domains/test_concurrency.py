# tests/domains/test_concurrency.py

"""
동시에 실행되는 트랜잭션이 같은 재고 행과 문서 번호를 다룰 때의 동작을 테스트합니다.

각 작업은 실제로 커밋하는 독립 세션에서 실행되며, 행 잠금(SELECT ... FOR UPDATE)으로
과다 예약이나 번호 중복이 생기지 않는지 확인합니다.
"""

import asyncio
import pytest
from decimal import Decimal
from typing import Callable

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from app.core.database import atomic
from app.core.exceptions import InsufficientAvailableError, InvalidTransitionError
from app.core.security import get_password_hash
from app.domains.inv import models as inv_models
from app.domains.inv.ledger import stock_ledger, stock_movement
from app.domains.loc import models as loc_models
from app.domains.pur import crud as pur_crud
from app.domains.pur import schemas as pur_schemas
from app.domains.shared.crud import MOVEMENT_PREFIX, document_sequence
from app.domains.trf import crud as trf_crud
from app.domains.trf import schemas as trf_schemas
from app.domains.usr import models as usr_models
from app.domains.ven import models as ven_models


async def seed(session_factory: Callable[[], AsyncSession], on_hand: int) -> dict:
    """커밋된 창고 두 곳, 품목, 승인자, 출고 창고 재고를 만듭니다."""
    async with session_factory() as db:
        source = loc_models.Warehouse(code="WH-C1", name="동시성 출고 창고")
        destination = loc_models.Warehouse(code="WH-C2", name="동시성 입고 창고")
        product = inv_models.Product(code="PARA-500", name="Paracetamol 500mg", unit_price=Decimal("1.00"))
        approver = usr_models.User(
            username="approver",
            email="approver@example.com",
            password_hash=get_password_hash("approverpass123"),
            role=usr_models.UserRole.WAREHOUSE_MANAGER,
        )
        db.add_all([source, destination, product, approver])
        await db.commit()

        async with atomic(db):
            await stock_movement.record(
                db,
                movement_type=inv_models.MovementType.RECEIPT,
                product_id=product.id,
                warehouse_id=source.id,
                quantity=on_hand,
            )
        return {
            "source_id": source.id,
            "destination_id": destination.id,
            "product_id": product.id,
            "approver_id": approver.id,
        }


async def read_stock(session_factory: Callable[[], AsyncSession], product_id: int, warehouse_id: int):
    async with session_factory() as db:
        return await stock_ledger.find(db, product_id, warehouse_id)


@pytest.mark.asyncio
async def test_concurrent_reservations_never_exceed_stock(committed_session_factory):
    """(성공) 15씩 10건 동시 예약 시 보유 100 중 6건만 성공하고 예약 합계는 90"""
    ids = await seed(committed_session_factory, on_hand=100)

    async def reserve(quantity: int):
        async with committed_session_factory() as db:
            async with atomic(db):
                row = await stock_ledger.get_or_create(
                    db, ids["product_id"], ids["source_id"], create=False
                )
                await stock_ledger.reserve(db, row, quantity)

    results = await asyncio.gather(*(reserve(15) for _ in range(10)), return_exceptions=True)

    failures = [result for result in results if isinstance(result, Exception)]
    assert len(failures) == 4
    assert all(isinstance(failure, InsufficientAvailableError) for failure in failures)

    row = await read_stock(committed_session_factory, ids["product_id"], ids["source_id"])
    assert (row.quantity, row.reserved_qty, row.available_qty) == (100, 90, 10)


@pytest.mark.asyncio
async def test_concurrent_transfer_approvals(committed_session_factory):
    """(성공) 보유 100에 대해 70씩 요청한 두 이동 요청을 동시에 승인하면 정확히 하나만 성공"""
    ids = await seed(committed_session_factory, on_hand=100)

    order_ids = []
    for _ in range(2):
        async with committed_session_factory() as db:
            order = await trf_crud.transfer_order.create(
                db,
                obj_in=trf_schemas.TransferOrderCreate(
                    source_warehouse_id=ids["source_id"],
                    destination_warehouse_id=ids["destination_id"],
                    items=[trf_schemas.TransferOrderItemCreate(product_id=ids["product_id"], requested_qty=70)],
                ),
            )
            await trf_crud.transfer_order.submit(db, id=order.id)
            order_ids.append(order.id)

    async def approve(order_id: int):
        async with committed_session_factory() as db:
            order = await trf_crud.transfer_order.approve(db, id=order_id, approver_id=ids["approver_id"])
            return order.status

    results = await asyncio.gather(*(approve(order_id) for order_id in order_ids), return_exceptions=True)

    approved = [result for result in results if result == trf_crud.Status.APPROVED]
    failures = [result for result in results if isinstance(result, InsufficientAvailableError)]
    assert len(approved) == 1
    assert len(failures) == 1

    row = await read_stock(committed_session_factory, ids["product_id"], ids["source_id"])
    assert (row.quantity, row.reserved_qty) == (100, 70)

    async with committed_session_factory() as db:
        result = await db.execute(
            select(trf_crud.transfer_order.model.status).where(trf_crud.transfer_order.model.id.in_(order_ids))
        )
        assert sorted(status.value for status in result.scalars().all()) == ["APPROVED", "PENDING"]


@pytest.mark.asyncio
async def test_concurrent_issues_never_go_negative(committed_session_factory):
    """(성공) 보유 50에 대해 20씩 5건 동시 출고 시 2건만 성공하고 원장은 이동 합계와 일치"""
    ids = await seed(committed_session_factory, on_hand=50)

    async def issue():
        async with committed_session_factory() as db:
            async with atomic(db):
                await stock_movement.record(
                    db,
                    movement_type=inv_models.MovementType.ISSUE,
                    product_id=ids["product_id"],
                    warehouse_id=ids["source_id"],
                    quantity=20,
                )

    results = await asyncio.gather(*(issue() for _ in range(5)), return_exceptions=True)
    assert sum(1 for result in results if result is None) == 2

    row = await read_stock(committed_session_factory, ids["product_id"], ids["source_id"])
    assert row.quantity == 10

    async with committed_session_factory() as db:
        movements = (await db.execute(select(inv_models.StockMovement))).scalars().all()
    assert sum(movement.quantity for movement in movements) == row.quantity


@pytest.mark.asyncio
async def test_concurrent_document_numbers_are_distinct(committed_session_factory):
    """(성공) 동시에 발급한 문서 번호는 모두 다르고 1부터 연속"""

    async def issue_number() -> str:
        async with committed_session_factory() as db:
            number = await document_sequence.next_number(db, MOVEMENT_PREFIX)
            await db.commit()
            return number

    numbers = await asyncio.gather(*(issue_number() for _ in range(10)))

    assert len(set(numbers)) == 10
    assert sorted(int(number.rsplit("-", 1)[1]) for number in numbers) == list(range(1, 11))


@pytest.mark.asyncio
async def test_concurrent_purchase_order_approvals(committed_session_factory):
    """(실패) 같은 발주서를 동시에 두 번 승인하면 하나는 상태 전이 오류"""
    ids = await seed(committed_session_factory, on_hand=1)

    async with committed_session_factory() as db:
        supplier = ven_models.Supplier(code="SUP-C1", name="동시성 공급업체")
        db.add(supplier)
        await db.commit()
        order = await pur_crud.purchase_order.create(
            db,
            obj_in=pur_schemas.PurchaseOrderCreate(
                supplier_id=supplier.id,
                warehouse_id=ids["source_id"],
                items=[pur_schemas.PurchaseOrderItemCreate(
                    product_id=ids["product_id"], ordered_qty=10, unit_price=Decimal("1.00")
                )],
            ),
        )
        await pur_crud.purchase_order.submit(db, id=order.id)
        order_id = order.id

    async def approve():
        async with committed_session_factory() as db:
            approved = await pur_crud.purchase_order.approve(db, id=order_id, approver_id=ids["approver_id"])
            return approved.status

    results = await asyncio.gather(approve(), approve(), return_exceptions=True)

    assert sum(1 for result in results if result == pur_crud.Status.APPROVED) == 1
    assert sum(1 for result in results if isinstance(result, InvalidTransitionError)) == 1
