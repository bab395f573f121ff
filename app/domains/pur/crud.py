# app/domains/pur/crud.py

"""
'pur' 도메인 (발주서)의 CRUD 및 발주 워크플로우 로직을 담당하는 모듈입니다.

상태 전이:
    DRAFT -submit-> SUBMITTED -approve-> APPROVED -place_order-> ORDERED
    ORDERED | PARTIALLY_RECEIVED -receive-> PARTIALLY_RECEIVED | RECEIVED
    cancel: RECEIVED, CANCELLED 를 제외한 모든 상태에서 가능

모든 전이는 발주서 행을 SELECT ... FOR UPDATE 로 잠그고 전이 테이블을 확인한 뒤,
상태 변경과 부수 효과(배치 생성, 입고 이동)를 하나의 SAVEPOINT 안에서 처리합니다.
"""

import logging
from datetime import datetime, date, UTC
from decimal import Decimal
from typing import Any, Dict, List, Optional, Set, Tuple

from sqlalchemy import func
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from app.core.config import settings
from app.core.crud_base import CRUDBase
from app.core.database import atomic
from app.core.exceptions import (
    BatchUnavailableError,
    InvalidTransitionError,
    ItemNotFoundError,
    NotFoundError,
    ValidationError,
)
from app.core.state_machine import StateMachine
from app.domains.inv import crud as inv_crud
from app.domains.inv import models as inv_models
from app.domains.inv import schemas as inv_schemas
from app.domains.inv.ledger import lock_key, stock_movement
from app.domains.loc.models import Warehouse
from app.domains.ntf import crud as ntf_crud
from app.domains.shared.crud import PURCHASE_ORDER_PREFIX, document_sequence
from app.domains.ven.models import Supplier
from . import models as pur_models
from . import schemas as pur_schemas


logger = logging.getLogger(__name__)

REFERENCE_TYPE = "PURCHASE_ORDER"

Status = pur_models.PurchaseOrderStatus

TRANSITIONS = {
    (Status.DRAFT, "submit"): Status.SUBMITTED,
    (Status.SUBMITTED, "approve"): Status.APPROVED,
    (Status.APPROVED, "place_order"): Status.ORDERED,
    (Status.ORDERED, "receive_partial"): Status.PARTIALLY_RECEIVED,
    (Status.ORDERED, "receive_all"): Status.RECEIVED,
    (Status.PARTIALLY_RECEIVED, "receive_partial"): Status.PARTIALLY_RECEIVED,
    (Status.PARTIALLY_RECEIVED, "receive_all"): Status.RECEIVED,
    (Status.DRAFT, "cancel"): Status.CANCELLED,
    (Status.SUBMITTED, "cancel"): Status.CANCELLED,
    (Status.APPROVED, "cancel"): Status.CANCELLED,
    (Status.ORDERED, "cancel"): Status.CANCELLED,
    (Status.PARTIALLY_RECEIVED, "cancel"): Status.CANCELLED,
}

purchase_order_machine = StateMachine("purchase order", TRANSITIONS)


def calculate_totals(items: List[pur_models.PurchaseOrderItem]) -> Tuple[Decimal, Decimal, Decimal]:
    """(소계, 세액, 합계). 세액은 소계 x TAX_RATE, 소수 둘째 자리 반올림"""
    subtotal = sum((item.total_price for item in items), Decimal("0"))
    tax = (subtotal * settings.TAX_RATE).quantize(Decimal("0.01"))
    return subtotal, tax, subtotal + tax


# =============================================================================
# 1. 발주서 (PurchaseOrder) CRUD + 워크플로우
# =============================================================================
class CRUDPurchaseOrder(
    CRUDBase[pur_models.PurchaseOrder, pur_schemas.PurchaseOrderCreate, pur_schemas.PurchaseOrderUpdate]
):
    def __init__(self):
        super().__init__(model=pur_models.PurchaseOrder)
        self.machine = purchase_order_machine

    # -------------------------------------------------------------------------
    # 조회
    # -------------------------------------------------------------------------
    async def get_with_items(self, db: AsyncSession, id: int) -> pur_models.PurchaseOrder:
        """품목 라인을 포함해 최신 값으로 다시 읽습니다."""
        result = await db.execute(
            select(self.model).where(self.model.id == id).execution_options(populate_existing=True)
        )
        order = result.scalar_one_or_none()
        if order is None:
            raise NotFoundError(f"Purchase order {id} not found")
        return order

    async def _lock(self, db: AsyncSession, id: int) -> pur_models.PurchaseOrder:
        result = await db.execute(
            select(self.model)
            .where(self.model.id == id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        order = result.scalar_one_or_none()
        if order is None:
            raise NotFoundError(f"Purchase order {id} not found")
        return order

    async def list_orders(
        self,
        db: AsyncSession,
        *,
        status: Optional[pur_models.PurchaseOrderStatus] = None,
        supplier_id: Optional[int] = None,
        warehouse_id: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[pur_models.PurchaseOrder]:
        return await self.get_filtered(
            db,
            filters={"status": status, "supplier_id": supplier_id, "warehouse_id": warehouse_id},
            date_range_field="order_date",
            start_date=start_date,
            end_date=end_date,
            order_by_field="id",
            order_desc=True,
            skip=skip,
            limit=limit,
        )

    async def statistics(self, db: AsyncSession) -> Dict[str, Any]:
        result = await db.execute(
            select(self.model.status, func.count(self.model.id)).group_by(self.model.status)
        )
        by_status = {status.value: count for status, count in result.all()}
        value_result = await db.execute(
            select(func.coalesce(func.sum(self.model.grand_total), 0))
            .where(self.model.status != Status.CANCELLED)
        )
        return {
            "total_orders": sum(by_status.values()),
            "by_status": by_status,
            "total_value": Decimal(value_result.scalar_one()),
            "pending_receipt": by_status.get(Status.ORDERED.value, 0)
            + by_status.get(Status.PARTIALLY_RECEIVED.value, 0),
        }

    # -------------------------------------------------------------------------
    # 생성/수정 (DRAFT)
    # -------------------------------------------------------------------------
    async def _validate_header(self, db: AsyncSession, supplier_id: int, warehouse_id: int) -> None:
        if await db.get(Supplier, supplier_id) is None:
            raise NotFoundError(f"Supplier {supplier_id} not found")
        if await db.get(Warehouse, warehouse_id) is None:
            raise NotFoundError(f"Warehouse {warehouse_id} not found")

    async def _build_items(
        self, db: AsyncSession, items_in: List[pur_schemas.PurchaseOrderItemCreate]
    ) -> List[pur_models.PurchaseOrderItem]:
        if not items_in:
            raise ValidationError("Purchase order must have at least one item")
        items = []
        for item_in in items_in:
            product = await db.get(inv_models.Product, item_in.product_id)
            if product is None:
                raise NotFoundError(f"Product {item_in.product_id} not found")
            if product.status == inv_models.ProductStatus.DISCONTINUED:
                raise ValidationError(f"Product {product.code} is discontinued")
            if item_in.ordered_qty <= 0:
                raise ValidationError(f"Ordered quantity for {product.code} must be greater than 0")
            if item_in.unit_price < 0:
                raise ValidationError(f"Unit price for {product.code} must not be negative")
            items.append(pur_models.PurchaseOrderItem(
                product_id=item_in.product_id,
                ordered_qty=item_in.ordered_qty,
                unit_price=item_in.unit_price,
                total_price=item_in.unit_price * item_in.ordered_qty,
                notes=item_in.notes,
            ))
        return items

    def _apply_totals(self, order: pur_models.PurchaseOrder) -> None:
        order.subtotal, order.tax_amount, order.grand_total = calculate_totals(order.items)

    async def create(
        self, db: AsyncSession, *, obj_in: pur_schemas.PurchaseOrderCreate, created_by: Optional[int] = None
    ) -> pur_models.PurchaseOrder:
        """
        DRAFT 상태의 발주서를 생성합니다.
        공급업체, 창고, 모든 품목이 존재해야 하며 품목 라인은 한 개 이상이어야 합니다.
        """
        await self._validate_header(db, obj_in.supplier_id, obj_in.warehouse_id)
        items = await self._build_items(db, obj_in.items)

        async with atomic(db):
            order = pur_models.PurchaseOrder(
                order_number=await document_sequence.next_number(db, PURCHASE_ORDER_PREFIX),
                supplier_id=obj_in.supplier_id,
                warehouse_id=obj_in.warehouse_id,
                order_date=obj_in.order_date or date.today(),
                expected_delivery_date=obj_in.expected_delivery_date,
                notes=obj_in.notes,
                created_by=created_by,
            )
            order.items = items
            self._apply_totals(order)
            db.add(order)
            await db.flush()
        logger.info("Purchase order %s created (grand total %s)", order.order_number, order.grand_total)
        return await self.get_with_items(db, order.id)

    async def update(
        self, db: AsyncSession, *, id: int, obj_in: pur_schemas.PurchaseOrderUpdate
    ) -> pur_models.PurchaseOrder:
        """DRAFT 상태에서만 헤더와 품목 라인을 수정합니다. 품목을 바꾸면 합계를 다시 계산합니다."""
        async with atomic(db):
            order = await self._lock(db, id)
            if order.status != Status.DRAFT:
                raise InvalidTransitionError(self.machine.entity, order.status, "update")

            update_data = obj_in.model_dump(exclude_unset=True, exclude={"items"})
            await self._validate_header(
                db,
                update_data.get("supplier_id") or order.supplier_id,
                update_data.get("warehouse_id") or order.warehouse_id,
            )
            for key, value in update_data.items():
                if value is None and key in ("supplier_id", "warehouse_id"):
                    continue
                setattr(order, key, value)

            if obj_in.items is not None:
                order.items = await self._build_items(db, obj_in.items)
                self._apply_totals(order)
            db.add(order)
            await db.flush()
        return await self.get_with_items(db, id)

    async def remove(self, db: AsyncSession, *, id: int) -> pur_models.PurchaseOrder:
        """DRAFT 발주서만 삭제할 수 있습니다."""
        async with atomic(db):
            order = await self._lock(db, id)
            if order.status != Status.DRAFT:
                raise InvalidTransitionError(self.machine.entity, order.status, "delete")
            await db.delete(order)
        return order

    # -------------------------------------------------------------------------
    # 워크플로우 전이
    # -------------------------------------------------------------------------
    async def submit(self, db: AsyncSession, *, id: int) -> pur_models.PurchaseOrder:
        async with atomic(db):
            order = await self._lock(db, id)
            new_status = self.machine.next_state(order.status, "submit")
            if not order.items:
                raise ValidationError("Purchase order must have at least one item")
            order.status = new_status
            db.add(order)
        logger.info("Purchase order %s submitted", order.order_number)
        return await self.get_with_items(db, id)

    async def approve(self, db: AsyncSession, *, id: int, approver_id: int) -> pur_models.PurchaseOrder:
        async with atomic(db):
            order = await self._lock(db, id)
            order.status = self.machine.next_state(order.status, "approve")
            order.approved_by = approver_id
            order.approved_at = datetime.now(UTC)
            db.add(order)
        logger.info("Purchase order %s approved by user %s", order.order_number, approver_id)
        return await self.get_with_items(db, id)

    async def place_order(self, db: AsyncSession, *, id: int) -> pur_models.PurchaseOrder:
        async with atomic(db):
            order = await self._lock(db, id)
            order.status = self.machine.next_state(order.status, "place_order")
            db.add(order)
            await ntf_crud.notification.notify_order_status(
                db,
                title=f"Purchase order placed: {order.order_number}",
                message=f"Purchase order {order.order_number} has been sent to the supplier.",
                warehouse_id=order.warehouse_id,
                reference_type=REFERENCE_TYPE,
                reference_id=order.id,
            )
        logger.info("Purchase order %s placed", order.order_number)
        return await self.get_with_items(db, id)

    async def _validate_receipt(
        self, db: AsyncSession, order: pur_models.PurchaseOrder, lines: List[pur_schemas.ReceiveLine]
    ) -> List[Tuple[pur_schemas.ReceiveLine, pur_models.PurchaseOrderItem, Optional[int]]]:
        """
        모든 라인을 쓰기 전에 검증합니다.
        (라인, 발주 품목, 기존 배치 ID 또는 None) 목록을 반환하며,
        새 배치를 만들어야 하는 라인은 배치 ID가 None 이고 batch_number 가 채워져 있습니다.
        """
        items_by_id = {item.id: item for item in order.items}
        pending: Dict[int, int] = {}
        new_batch_numbers: Set[str] = set()
        validated = []

        for line in lines:
            item = items_by_id.get(line.item_id)
            if item is None:
                raise ItemNotFoundError(
                    f"Item {line.item_id} does not belong to purchase order {order.order_number}"
                )
            if line.received_qty <= 0:
                raise ValidationError(f"Received quantity for item {item.id} must be greater than 0")
            remaining = item.ordered_qty - item.received_qty - pending.get(item.id, 0)
            if line.received_qty > remaining:
                raise ValidationError(
                    f"Received quantity {line.received_qty} for item {item.id} exceeds the "
                    f"remaining quantity {remaining}",
                    {"item_id": item.id, "remaining": remaining, "requested": line.received_qty},
                )
            pending[item.id] = pending.get(item.id, 0) + line.received_qty

            batch = None
            if line.batch_id is not None:
                batch = await db.get(inv_models.Batch, line.batch_id)
                if batch is None or batch.deleted_at is not None:
                    raise NotFoundError(f"Batch {line.batch_id} not found")
            elif line.batch_number:
                batch = await inv_crud.batch.get_by_batch_number(db, batch_number=line.batch_number)
                if batch is None:
                    if line.expiry_date is None:
                        raise ValidationError(f"Expiry date is required for new batch {line.batch_number}")
                    if line.expiry_date < date.today():
                        raise ValidationError(f"Expiry date of new batch {line.batch_number} is in the past")
                    if line.batch_number in new_batch_numbers:
                        raise ValidationError(f"Batch number {line.batch_number} is repeated in the receipt")
                    new_batch_numbers.add(line.batch_number)

            if batch is not None:
                if batch.product_id != item.product_id:
                    raise ValidationError(
                        f"Batch {batch.batch_number} does not belong to product {item.product_id}"
                    )
                if batch.is_recalled:
                    raise BatchUnavailableError(f"Batch {batch.batch_number} is recalled and cannot receive stock")
            validated.append((line, item, batch.id if batch is not None else None))
        return validated

    async def receive(
        self,
        db: AsyncSession,
        *,
        id: int,
        obj_in: pur_schemas.PurchaseOrderReceive,
        actor_id: Optional[int] = None,
    ) -> pur_models.PurchaseOrder:
        """
        입고 처리. 모든 라인을 먼저 검증하고, 통과하면 라인마다
        (필요 시 배치 생성) -> RECEIPT 이동 -> 누적 입고 수량 증가 순으로 반영합니다.
        모든 라인이 발주 수량만큼 입고되면 RECEIVED, 아니면 PARTIALLY_RECEIVED.
        """
        async with atomic(db):
            order = await self._lock(db, id)
            self.machine.ensure(order.status, "receive_partial", "receive_all", label="receive")
            validated = await self._validate_receipt(db, order, obj_in.items)
            validated.sort(key=lambda entry: lock_key(entry[1].product_id, entry[2]))

            for line, item, batch_id in validated:
                if batch_id is None and line.batch_number:
                    batch = await inv_crud.batch.add_batch(
                        db,
                        obj_in=inv_schemas.BatchCreate(
                            batch_number=line.batch_number,
                            product_id=item.product_id,
                            supplier_id=order.supplier_id,
                            manufacturing_date=line.manufacturing_date,
                            expiry_date=line.expiry_date,
                            received_date=date.today(),
                            initial_quantity=line.received_qty,
                        ),
                    )
                    batch_id = batch.id
                await stock_movement.record(
                    db,
                    movement_type=inv_models.MovementType.RECEIPT,
                    product_id=item.product_id,
                    warehouse_id=order.warehouse_id,
                    quantity=line.received_qty,
                    batch_id=batch_id,
                    unit_price=item.unit_price,
                    reference_type=REFERENCE_TYPE,
                    reference_id=order.id,
                    reason=f"Receipt for {order.order_number}",
                    performed_by=actor_id,
                )
                item.received_qty += line.received_qty
                db.add(item)

            fully_received = all(item.received_qty >= item.ordered_qty for item in order.items)
            order.status = self.machine.next_state(
                order.status, "receive_all" if fully_received else "receive_partial"
            )
            order.received_date = date.today()
            db.add(order)
            await ntf_crud.notification.notify_order_status(
                db,
                title=f"Purchase order {order.status.value.lower().replace('_', ' ')}: {order.order_number}",
                message=f"{len(validated)} line(s) received into warehouse {order.warehouse_id}.",
                warehouse_id=order.warehouse_id,
                reference_type=REFERENCE_TYPE,
                reference_id=order.id,
            )
        logger.info("Purchase order %s received (%s)", order.order_number, order.status.value)
        return await self.get_with_items(db, id)

    async def cancel(self, db: AsyncSession, *, id: int, reason: Optional[str] = None) -> pur_models.PurchaseOrder:
        """발주서를 취소하고 사유를 비고에 'Cancelled: <사유>' 로 덧붙입니다."""
        async with atomic(db):
            order = await self._lock(db, id)
            order.status = self.machine.next_state(order.status, "cancel")
            if reason:
                note = f"Cancelled: {reason}"
                order.notes = f"{order.notes}\n{note}" if order.notes else note
            db.add(order)
        logger.info("Purchase order %s cancelled", order.order_number)
        return await self.get_with_items(db, id)


purchase_order = CRUDPurchaseOrder()
