# app/domains/cnt/crud.py

"""
'cnt' 도메인 (재고 실사)의 CRUD 및 실사 워크플로우 로직을 담당하는 모듈입니다.

상태 전이:
    PLANNED -start-> IN_PROGRESS -complete-> COMPLETED -approve-> APPROVED
    cancel: PLANNED, IN_PROGRESS, COMPLETED 에서 가능

승인 시 차이가 있는 품목마다 원장 수량을 실사 수량으로 덮어쓰고
실제 반영된 변화량으로 STOCK_COUNT 이동을 기록합니다. 예약 수량은 유지됩니다.
"""

import logging
from datetime import datetime, date, UTC
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from app.core.crud_base import CRUDBase
from app.core.database import atomic
from app.core.exceptions import InvalidTransitionError, ItemNotFoundError, NotFoundError, ValidationError
from app.core.state_machine import StateMachine
from app.domains.inv import models as inv_models
from app.domains.inv.ledger import lock_key, stock_ledger, stock_movement
from app.domains.loc.models import Warehouse
from app.domains.shared.crud import STOCK_COUNT_PREFIX, document_sequence
from . import models as cnt_models
from . import schemas as cnt_schemas


logger = logging.getLogger(__name__)

REFERENCE_TYPE = "STOCK_COUNT"

Status = cnt_models.StockCountStatus

TRANSITIONS = {
    (Status.PLANNED, "start"): Status.IN_PROGRESS,
    (Status.IN_PROGRESS, "complete"): Status.COMPLETED,
    (Status.COMPLETED, "approve"): Status.APPROVED,
    (Status.PLANNED, "cancel"): Status.CANCELLED,
    (Status.IN_PROGRESS, "cancel"): Status.CANCELLED,
    (Status.COMPLETED, "cancel"): Status.CANCELLED,
}

stock_count_machine = StateMachine("stock count", TRANSITIONS)


# =============================================================================
# 1. 재고 실사 (StockCount) CRUD + 워크플로우
# =============================================================================
class CRUDStockCount(CRUDBase[cnt_models.StockCount, cnt_schemas.StockCountCreate, cnt_schemas.StockCountUpdate]):
    def __init__(self):
        super().__init__(model=cnt_models.StockCount)
        self.machine = stock_count_machine

    async def get_with_items(self, db: AsyncSession, id: int) -> cnt_models.StockCount:
        result = await db.execute(
            select(self.model).where(self.model.id == id).execution_options(populate_existing=True)
        )
        count = result.scalar_one_or_none()
        if count is None:
            raise NotFoundError(f"Stock count {id} not found")
        return count

    async def _lock(self, db: AsyncSession, id: int) -> cnt_models.StockCount:
        result = await db.execute(
            select(self.model)
            .where(self.model.id == id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        count = result.scalar_one_or_none()
        if count is None:
            raise NotFoundError(f"Stock count {id} not found")
        return count

    async def list_counts(
        self,
        db: AsyncSession,
        *,
        status: Optional[cnt_models.StockCountStatus] = None,
        warehouse_id: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[cnt_models.StockCount]:
        return await self.get_filtered(
            db,
            filters={"status": status, "warehouse_id": warehouse_id},
            date_range_field="scheduled_date",
            start_date=start_date,
            end_date=end_date,
            order_by_field="scheduled_date",
            order_desc=True,
            skip=skip,
            limit=limit,
        )

    async def statistics(
        self, db: AsyncSession, *, start_date: Optional[date] = None, end_date: Optional[date] = None
    ) -> Dict[str, Any]:
        """예정일 기간(선택) 안의 실사 건수와 상태별 건수"""
        query = select(self.model.status, func.count(self.model.id)).group_by(self.model.status)
        if start_date is not None:
            query = query.where(self.model.scheduled_date >= start_date)
        if end_date is not None:
            query = query.where(self.model.scheduled_date <= end_date)
        by_status = {status.value: count for status, count in (await db.execute(query)).all()}
        return {"total": sum(by_status.values()), "by_status": by_status}

    def _validate_schedule(self, scheduled_date: date) -> None:
        if scheduled_date < date.today():
            raise ValidationError("Scheduled date must not be in the past")

    async def create(
        self, db: AsyncSession, *, obj_in: cnt_schemas.StockCountCreate, created_by: Optional[int] = None
    ) -> cnt_models.StockCount:
        if await db.get(Warehouse, obj_in.warehouse_id) is None:
            raise NotFoundError(f"Warehouse {obj_in.warehouse_id} not found")
        self._validate_schedule(obj_in.scheduled_date)

        async with atomic(db):
            count = cnt_models.StockCount(
                count_number=await document_sequence.next_number(db, STOCK_COUNT_PREFIX),
                warehouse_id=obj_in.warehouse_id,
                scheduled_date=obj_in.scheduled_date,
                notes=obj_in.notes,
                created_by=created_by,
            )
            db.add(count)
            await db.flush()
        logger.info("Stock count %s planned for %s", count.count_number, count.scheduled_date)
        return await self.get_with_items(db, count.id)

    async def update(
        self, db: AsyncSession, *, id: int, obj_in: cnt_schemas.StockCountUpdate
    ) -> cnt_models.StockCount:
        async with atomic(db):
            count = await self._lock(db, id)
            if count.status != Status.PLANNED:
                raise InvalidTransitionError(self.machine.entity, count.status, "update")
            update_data = obj_in.model_dump(exclude_unset=True)
            if update_data.get("scheduled_date") is not None:
                self._validate_schedule(update_data["scheduled_date"])
                count.scheduled_date = update_data["scheduled_date"]
            if "notes" in update_data:
                count.notes = update_data["notes"]
            db.add(count)
        return await self.get_with_items(db, id)

    async def remove(self, db: AsyncSession, *, id: int) -> cnt_models.StockCount:
        """PLANNED 또는 CANCELLED 실사만 삭제할 수 있습니다."""
        async with atomic(db):
            count = await self._lock(db, id)
            if count.status not in (Status.PLANNED, Status.CANCELLED):
                raise InvalidTransitionError(self.machine.entity, count.status, "delete")
            await db.delete(count)
        return count

    # -------------------------------------------------------------------------
    # 워크플로우 전이
    # -------------------------------------------------------------------------
    async def start(self, db: AsyncSession, *, id: int) -> cnt_models.StockCount:
        """창고의 수량이 양수인 원장 행을 모두 스냅샷하여 실사 품목을 만듭니다."""
        async with atomic(db):
            count = await self._lock(db, id)
            count.status = self.machine.next_state(count.status, "start")

            result = await db.execute(
                select(inv_models.Stock)
                .where(inv_models.Stock.warehouse_id == count.warehouse_id, inv_models.Stock.quantity > 0)
                .order_by(inv_models.Stock.product_id, inv_models.Stock.batch_id)
            )
            count.items = [
                cnt_models.StockCountItem(product_id=row.product_id, batch_id=row.batch_id, system_qty=row.quantity)
                for row in result.scalars().all()
            ]
            count.started_at = datetime.now(UTC)
            db.add(count)
        logger.info("Stock count %s started with %d item(s)", count.count_number, len(count.items))
        return await self.get_with_items(db, id)

    async def record_counts(
        self,
        db: AsyncSession,
        *,
        id: int,
        obj_in: cnt_schemas.StockCountRecord,
        counted_by: Optional[int] = None,
    ) -> cnt_models.StockCount:
        """
        실사 수량을 기록합니다 (IN_PROGRESS 에서만). 다시 기록하면 덮어씁니다.
        (품목, 배치) 쌍이 실사 품목에 없으면 ItemNotFoundError.
        """
        async with atomic(db):
            count = await self._lock(db, id)
            if count.status != Status.IN_PROGRESS:
                raise InvalidTransitionError(self.machine.entity, count.status, "record counts for")

            items_by_key = {(item.product_id, item.batch_id): item for item in count.items}
            now = datetime.now(UTC)
            for counted in obj_in.items:
                item = items_by_key.get((counted.product_id, counted.batch_id))
                if item is None:
                    raise ItemNotFoundError(
                        f"Product {counted.product_id} (batch {counted.batch_id}) is not part of "
                        f"stock count {count.count_number}"
                    )
                if counted.counted_qty < 0:
                    raise ValidationError("Counted quantity must not be negative")
                item.counted_qty = counted.counted_qty
                item.variance = counted.counted_qty - item.system_qty
                item.counted_by = counted_by
                item.counted_at = now
                if counted.notes is not None:
                    item.notes = counted.notes
                db.add(item)
        return await self.get_with_items(db, id)

    async def complete(self, db: AsyncSession, *, id: int) -> cnt_models.StockCount:
        async with atomic(db):
            count = await self._lock(db, id)
            new_status = self.machine.next_state(count.status, "complete")
            uncounted = [item for item in count.items if item.counted_qty is None]
            if uncounted:
                raise ValidationError(
                    f"{len(uncounted)} item(s) have not been counted",
                    {"uncounted_item_ids": [item.id for item in uncounted]},
                )
            count.status = new_status
            count.completed_at = datetime.now(UTC)
            db.add(count)
        logger.info("Stock count %s completed", count.count_number)
        return await self.get_with_items(db, id)

    async def approve(self, db: AsyncSession, *, id: int, approver_id: int) -> cnt_models.StockCount:
        """
        차이가 있는 품목마다 원장 수량을 실사 수량으로 설정하고 STOCK_COUNT 이동을 기록합니다.
        이동 수량은 원장에 실제 반영된 변화량입니다.
        """
        async with atomic(db):
            count = await self._lock(db, id)
            count.status = self.machine.next_state(count.status, "approve")

            adjusted = 0
            for item in sorted(count.items, key=lambda item: lock_key(item.product_id, item.batch_id)):
                if not item.variance:
                    continue
                movement_number = await stock_movement.next_number(db)
                row = await stock_ledger.get_or_create(db, item.product_id, count.warehouse_id, item.batch_id)
                delta = await stock_ledger.set_counted_quantity(db, row, item.counted_qty)
                if delta == 0:
                    continue
                product = await db.get(inv_models.Product, item.product_id)
                await stock_movement.write(
                    db,
                    movement_number=movement_number,
                    movement_type=inv_models.MovementType.STOCK_COUNT,
                    product_id=item.product_id,
                    warehouse_id=count.warehouse_id,
                    quantity=delta,
                    batch_id=item.batch_id,
                    unit_price=product.unit_price,
                    reference_type=REFERENCE_TYPE,
                    reference_id=count.id,
                    reason=f"Stock count {count.count_number}",
                    notes=f"system {item.system_qty}, counted {item.counted_qty}",
                    performed_by=approver_id,
                )
                adjusted += 1

            count.approved_by = approver_id
            count.approved_at = datetime.now(UTC)
            db.add(count)
        logger.info("Stock count %s approved, %d ledger row(s) adjusted", count.count_number, adjusted)
        return await self.get_with_items(db, id)

    async def cancel(self, db: AsyncSession, *, id: int, reason: Optional[str] = None) -> cnt_models.StockCount:
        async with atomic(db):
            count = await self._lock(db, id)
            count.status = self.machine.next_state(count.status, "cancel")
            if reason:
                note = f"Cancelled: {reason}"
                count.notes = f"{count.notes}\n{note}" if count.notes else note
            db.add(count)
        logger.info("Stock count %s cancelled", count.count_number)
        return await self.get_with_items(db, id)

    # -------------------------------------------------------------------------
    # 차이 보고서
    # -------------------------------------------------------------------------
    async def variance_report(self, db: AsyncSession, *, id: int) -> Dict[str, Any]:
        """품목별 차이와 금액 영향(차이 x 기준 단가)을 집계합니다."""
        count = await self.get_with_items(db, id)
        product_ids = {item.product_id for item in count.items}
        products = {}
        if product_ids:
            result = await db.execute(select(inv_models.Product).where(inv_models.Product.id.in_(product_ids)))
            products = {product.id: product for product in result.scalars().all()}

        lines = []
        for item in count.items:
            product = products[item.product_id]
            value_impact = Decimal("0")
            if item.variance and product.unit_price is not None:
                value_impact = product.unit_price * item.variance
            lines.append({
                "item_id": item.id,
                "product_id": product.id,
                "product_code": product.code,
                "product_name": product.name,
                "batch_id": item.batch_id,
                "system_qty": item.system_qty,
                "counted_qty": item.counted_qty,
                "variance": item.variance,
                "unit_price": product.unit_price,
                "value_impact": value_impact,
            })

        variances = [item.variance for item in count.items if item.variance is not None]
        return {
            "stock_count_id": count.id,
            "count_number": count.count_number,
            "warehouse_id": count.warehouse_id,
            "status": count.status,
            "total_items": len(count.items),
            "counted_items": sum(1 for item in count.items if item.counted_qty is not None),
            "items_with_variance": sum(1 for variance in variances if variance != 0),
            "total_variance": sum(variances),
            "positive_variance": sum(variance for variance in variances if variance > 0),
            "negative_variance": sum(variance for variance in variances if variance < 0),
            "value_impact": sum((line["value_impact"] for line in lines), Decimal("0")),
            "lines": lines,
        }


stock_count = CRUDStockCount()
