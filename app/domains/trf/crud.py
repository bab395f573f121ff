# app/domains/trf/crud.py

"""
'trf' 도메인 (창고 간 이동)의 CRUD 및 이동 워크플로우 로직을 담당하는 모듈입니다.

상태 전이:
    DRAFT -submit-> PENDING -approve-> APPROVED -ship-> IN_TRANSIT -receive-> RECEIVED
    PENDING -reject-> REJECTED
    cancel: DRAFT, PENDING, APPROVED, IN_TRANSIT 에서 가능

재고 영향:
    approve  출고 창고 재고 예약 (reserved_qty 증가)
    ship     예약 소진 + TRANSFER_OUT (quantity, reserved_qty 동시 감소)
    receive  입고 창고 TRANSFER_IN
    cancel   APPROVED: 예약 해제 / IN_TRANSIT: 출고 창고로 TRANSFER_IN 반환
"""

import logging
from datetime import datetime, date, UTC
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from app.core.crud_base import CRUDBase
from app.core.database import atomic
from app.core.exceptions import (
    InsufficientAvailableError,
    InvalidTransitionError,
    ItemNotFoundError,
    NotFoundError,
    SameWarehouseError,
    ValidationError,
)
from app.core.state_machine import StateMachine
from app.domains.inv import models as inv_models
from app.domains.inv.ledger import lock_key, stock_ledger, stock_movement
from app.domains.loc.models import Warehouse
from app.domains.ntf import crud as ntf_crud
from app.domains.shared.crud import TRANSFER_ORDER_PREFIX, document_sequence
from . import models as trf_models
from . import schemas as trf_schemas


logger = logging.getLogger(__name__)

REFERENCE_TYPE = "TRANSFER_ORDER"

Status = trf_models.TransferOrderStatus

TRANSITIONS = {
    (Status.DRAFT, "submit"): Status.PENDING,
    (Status.PENDING, "approve"): Status.APPROVED,
    (Status.PENDING, "reject"): Status.REJECTED,
    (Status.APPROVED, "ship"): Status.IN_TRANSIT,
    (Status.IN_TRANSIT, "receive"): Status.RECEIVED,
    (Status.DRAFT, "cancel"): Status.CANCELLED,
    (Status.PENDING, "cancel"): Status.CANCELLED,
    (Status.APPROVED, "cancel"): Status.CANCELLED,
    (Status.IN_TRANSIT, "cancel"): Status.CANCELLED,
}

transfer_order_machine = StateMachine("transfer order", TRANSITIONS)


def _lock_order(item: trf_models.TransferOrderItem) -> Tuple[int, int]:
    return lock_key(item.product_id, item.batch_id)


# =============================================================================
# 1. 이동 요청 (TransferOrder) CRUD + 워크플로우
# =============================================================================
class CRUDTransferOrder(
    CRUDBase[trf_models.TransferOrder, trf_schemas.TransferOrderCreate, trf_schemas.TransferOrderUpdate]
):
    def __init__(self):
        super().__init__(model=trf_models.TransferOrder)
        self.machine = transfer_order_machine

    # -------------------------------------------------------------------------
    # 조회
    # -------------------------------------------------------------------------
    async def get_with_items(self, db: AsyncSession, id: int) -> trf_models.TransferOrder:
        result = await db.execute(
            select(self.model).where(self.model.id == id).execution_options(populate_existing=True)
        )
        order = result.scalar_one_or_none()
        if order is None:
            raise NotFoundError(f"Transfer order {id} not found")
        return order

    async def _lock(self, db: AsyncSession, id: int) -> trf_models.TransferOrder:
        result = await db.execute(
            select(self.model)
            .where(self.model.id == id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        order = result.scalar_one_or_none()
        if order is None:
            raise NotFoundError(f"Transfer order {id} not found")
        return order

    async def list_orders(
        self,
        db: AsyncSession,
        *,
        status: Optional[trf_models.TransferOrderStatus] = None,
        source_warehouse_id: Optional[int] = None,
        destination_warehouse_id: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[trf_models.TransferOrder]:
        return await self.get_filtered(
            db,
            filters={
                "status": status,
                "source_warehouse_id": source_warehouse_id,
                "destination_warehouse_id": destination_warehouse_id,
            },
            date_range_field="requested_date",
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
        return {
            "total_orders": sum(by_status.values()),
            "by_status": by_status,
            "in_transit": by_status.get(Status.IN_TRANSIT.value, 0),
            "pending_approval": by_status.get(Status.PENDING.value, 0),
        }

    # -------------------------------------------------------------------------
    # 생성/수정 (DRAFT)
    # -------------------------------------------------------------------------
    async def _validate_warehouses(self, db: AsyncSession, source_id: int, destination_id: int) -> None:
        if source_id == destination_id:
            raise SameWarehouseError("Source and destination warehouses must be different")
        for warehouse_id in (source_id, destination_id):
            if await db.get(Warehouse, warehouse_id) is None:
                raise NotFoundError(f"Warehouse {warehouse_id} not found")

    async def _build_items(
        self, db: AsyncSession, items_in: List[trf_schemas.TransferOrderItemCreate]
    ) -> List[trf_models.TransferOrderItem]:
        items = []
        for item_in in items_in:
            if await db.get(inv_models.Product, item_in.product_id) is None:
                raise NotFoundError(f"Product {item_in.product_id} not found")
            if item_in.batch_id is not None:
                batch = await db.get(inv_models.Batch, item_in.batch_id)
                if batch is None or batch.deleted_at is not None:
                    raise NotFoundError(f"Batch {item_in.batch_id} not found")
                if batch.product_id != item_in.product_id:
                    raise ValidationError(
                        f"Batch {batch.batch_number} does not belong to product {item_in.product_id}"
                    )
            if item_in.requested_qty <= 0:
                raise ValidationError("Requested quantity must be greater than 0")
            items.append(trf_models.TransferOrderItem(
                product_id=item_in.product_id,
                batch_id=item_in.batch_id,
                requested_qty=item_in.requested_qty,
                notes=item_in.notes,
            ))
        return items

    async def create(
        self, db: AsyncSession, *, obj_in: trf_schemas.TransferOrderCreate, requested_by: Optional[int] = None
    ) -> trf_models.TransferOrder:
        await self._validate_warehouses(db, obj_in.source_warehouse_id, obj_in.destination_warehouse_id)
        items = await self._build_items(db, obj_in.items)

        async with atomic(db):
            order = trf_models.TransferOrder(
                transfer_number=await document_sequence.next_number(db, TRANSFER_ORDER_PREFIX),
                source_warehouse_id=obj_in.source_warehouse_id,
                destination_warehouse_id=obj_in.destination_warehouse_id,
                requested_date=obj_in.requested_date or date.today(),
                notes=obj_in.notes,
                requested_by=requested_by,
            )
            order.items = items
            db.add(order)
            await db.flush()
        logger.info("Transfer order %s created", order.transfer_number)
        return await self.get_with_items(db, order.id)

    async def update(
        self, db: AsyncSession, *, id: int, obj_in: trf_schemas.TransferOrderUpdate
    ) -> trf_models.TransferOrder:
        async with atomic(db):
            order = await self._lock(db, id)
            if order.status != Status.DRAFT:
                raise InvalidTransitionError(self.machine.entity, order.status, "update")

            update_data = obj_in.model_dump(exclude_unset=True, exclude={"items"})
            source_id = update_data.get("source_warehouse_id") or order.source_warehouse_id
            destination_id = update_data.get("destination_warehouse_id") or order.destination_warehouse_id
            await self._validate_warehouses(db, source_id, destination_id)
            order.source_warehouse_id = source_id
            order.destination_warehouse_id = destination_id
            if "notes" in update_data:
                order.notes = update_data["notes"]
            if obj_in.items is not None:
                order.items = await self._build_items(db, obj_in.items)
            db.add(order)
            await db.flush()
        return await self.get_with_items(db, id)

    async def remove(self, db: AsyncSession, *, id: int) -> trf_models.TransferOrder:
        """DRAFT 이동 요청만 삭제할 수 있습니다."""
        async with atomic(db):
            order = await self._lock(db, id)
            if order.status != Status.DRAFT:
                raise InvalidTransitionError(self.machine.entity, order.status, "delete")
            await db.delete(order)
        return order

    # -------------------------------------------------------------------------
    # 워크플로우 전이
    # -------------------------------------------------------------------------
    async def submit(self, db: AsyncSession, *, id: int) -> trf_models.TransferOrder:
        async with atomic(db):
            order = await self._lock(db, id)
            new_status = self.machine.next_state(order.status, "submit")
            if not order.items:
                raise ValidationError("Transfer order must have at least one item")
            order.status = new_status
            db.add(order)
        logger.info("Transfer order %s submitted", order.transfer_number)
        return await self.get_with_items(db, id)

    async def approve(self, db: AsyncSession, *, id: int, approver_id: int) -> trf_models.TransferOrder:
        """
        출고 창고의 모든 원장 행을 먼저 잠그고 가용 수량을 확인한 뒤(하나라도 부족하면 즉시 실패),
        품목마다 요청 수량을 예약하고 approved_qty = requested_qty 로 기록합니다.
        """
        async with atomic(db):
            order = await self._lock(db, id)
            new_status = self.machine.next_state(order.status, "approve")
            items = sorted(order.items, key=_lock_order)

            requested: Dict[Tuple[int, Optional[int]], int] = {}
            for item in items:
                key = (item.product_id, item.batch_id)
                requested[key] = requested.get(key, 0) + item.requested_qty
                product = await db.get(inv_models.Product, item.product_id)
                await stock_ledger.ensure_batch_available(db, item.batch_id)
                row = await stock_ledger.lock(db, item.product_id, order.source_warehouse_id, item.batch_id)
                available = row.available_qty if row is not None else 0
                if requested[key] > available:
                    raise InsufficientAvailableError(
                        f"Insufficient stock for product {product.code}: "
                        f"requested {requested[key]}, available {available}",
                        {"product_code": product.code, "requested": requested[key], "available": available},
                    )

            for item in items:
                row = await stock_ledger.get_or_create(
                    db, item.product_id, order.source_warehouse_id, item.batch_id, create=False
                )
                await stock_ledger.reserve(db, row, item.requested_qty)
                item.approved_qty = item.requested_qty
                db.add(item)

            order.status = new_status
            order.approved_by = approver_id
            order.approved_date = datetime.now(UTC)
            db.add(order)
        logger.info("Transfer order %s approved by user %s", order.transfer_number, approver_id)
        return await self.get_with_items(db, id)

    async def reject(self, db: AsyncSession, *, id: int, reason: str, approver_id: Optional[int] = None) -> trf_models.TransferOrder:
        if not reason or not reason.strip():
            raise ValidationError("Rejection reason is required")
        async with atomic(db):
            order = await self._lock(db, id)
            order.status = self.machine.next_state(order.status, "reject")
            order.rejection_reason = reason.strip()
            order.approved_by = approver_id
            db.add(order)
        logger.info("Transfer order %s rejected: %s", order.transfer_number, order.rejection_reason)
        return await self.get_with_items(db, id)

    async def ship(self, db: AsyncSession, *, id: int, actor_id: Optional[int] = None) -> trf_models.TransferOrder:
        """예약 수량을 출고로 전환하고 품목마다 TRANSFER_OUT 이동을 기록합니다."""
        async with atomic(db):
            order = await self._lock(db, id)
            order.status = self.machine.next_state(order.status, "ship")

            for item in sorted(order.items, key=_lock_order):
                await stock_ledger.ensure_batch_available(db, item.batch_id)
                movement_number = await stock_movement.next_number(db)
                row = await stock_ledger.get_or_create(
                    db, item.product_id, order.source_warehouse_id, item.batch_id, create=False
                )
                await stock_ledger.consume_reservation(db, row, item.approved_qty)
                await stock_movement.write(
                    db,
                    movement_number=movement_number,
                    movement_type=inv_models.MovementType.TRANSFER_OUT,
                    product_id=item.product_id,
                    warehouse_id=order.source_warehouse_id,
                    quantity=-item.approved_qty,
                    batch_id=item.batch_id,
                    reference_type=REFERENCE_TYPE,
                    reference_id=order.id,
                    reason=f"Shipped to warehouse {order.destination_warehouse_id}",
                    performed_by=actor_id,
                )

            order.shipped_date = datetime.now(UTC)
            db.add(order)
            await ntf_crud.notification.notify_order_status(
                db,
                title=f"Transfer in transit: {order.transfer_number}",
                message=(
                    f"Transfer {order.transfer_number} from warehouse {order.source_warehouse_id} "
                    f"has been shipped."
                ),
                warehouse_id=order.destination_warehouse_id,
                reference_type=REFERENCE_TYPE,
                reference_id=order.id,
            )
        logger.info("Transfer order %s shipped", order.transfer_number)
        return await self.get_with_items(db, id)

    async def receive(
        self,
        db: AsyncSession,
        *,
        id: int,
        received_quantities: Optional[Dict[int, int]] = None,
        actor_id: Optional[int] = None,
    ) -> trf_models.TransferOrder:
        """
        입고 창고에 TRANSFER_IN 으로 반영합니다.
        품목별 입고 수량은 기본값이 승인 수량이며 [0, 승인 수량] 범위여야 합니다.
        """
        received_quantities = received_quantities or {}
        async with atomic(db):
            order = await self._lock(db, id)
            new_status = self.machine.next_state(order.status, "receive")

            items_by_id = {item.id: item for item in order.items}
            for item_id in received_quantities:
                if item_id not in items_by_id:
                    raise ItemNotFoundError(
                        f"Item {item_id} does not belong to transfer order {order.transfer_number}"
                    )
            plan = []
            for item in sorted(order.items, key=_lock_order):
                quantity = received_quantities.get(item.id, item.approved_qty)
                if quantity < 0 or quantity > item.approved_qty:
                    raise ValidationError(
                        f"Received quantity for item {item.id} must be between 0 and {item.approved_qty}"
                    )
                plan.append((item, quantity))

            for item, quantity in plan:
                if quantity > 0:
                    await stock_movement.record(
                        db,
                        movement_type=inv_models.MovementType.TRANSFER_IN,
                        product_id=item.product_id,
                        warehouse_id=order.destination_warehouse_id,
                        quantity=quantity,
                        batch_id=item.batch_id,
                        reference_type=REFERENCE_TYPE,
                        reference_id=order.id,
                        reason=f"Received from warehouse {order.source_warehouse_id}",
                        performed_by=actor_id,
                    )
                if quantity < item.approved_qty:
                    logger.warning(
                        "Transfer %s item %s short by %d",
                        order.transfer_number, item.id, item.approved_qty - quantity,
                    )
                item.received_qty = quantity
                db.add(item)

            order.status = new_status
            order.received_date = datetime.now(UTC)
            db.add(order)
        logger.info("Transfer order %s received", order.transfer_number)
        return await self.get_with_items(db, id)

    async def cancel(
        self, db: AsyncSession, *, id: int, reason: Optional[str] = None, actor_id: Optional[int] = None
    ) -> trf_models.TransferOrder:
        """
        이동 요청을 취소합니다.
        APPROVED 에서는 예약을 해제하고, IN_TRANSIT 에서는 출고분을 출고 창고로 되돌립니다.
        """
        async with atomic(db):
            order = await self._lock(db, id)
            previous = order.status
            order.status = self.machine.next_state(order.status, "cancel")

            if previous == Status.APPROVED:
                for item in sorted(order.items, key=_lock_order):
                    row = await stock_ledger.get_or_create(
                        db, item.product_id, order.source_warehouse_id, item.batch_id, create=False
                    )
                    await stock_ledger.release(db, row, item.approved_qty)
            elif previous == Status.IN_TRANSIT:
                for item in sorted(order.items, key=_lock_order):
                    await stock_movement.record(
                        db,
                        movement_type=inv_models.MovementType.TRANSFER_IN,
                        product_id=item.product_id,
                        warehouse_id=order.source_warehouse_id,
                        quantity=item.approved_qty,
                        batch_id=item.batch_id,
                        reference_type=REFERENCE_TYPE,
                        reference_id=order.id,
                        reason=f"Returned on cancellation of {order.transfer_number}",
                        performed_by=actor_id,
                    )

            if reason:
                note = f"Cancelled: {reason}"
                order.notes = f"{order.notes}\n{note}" if order.notes else note
            db.add(order)
        logger.info("Transfer order %s cancelled from %s", order.transfer_number, previous.value)
        return await self.get_with_items(db, id)


transfer_order = CRUDTransferOrder()
