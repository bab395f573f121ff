# app/domains/inv/ledger.py

"""
재고 원장(inv.stocks)과 재고 이동 이력(inv.stock_movements)을 다루는 모듈입니다.

- StockLedger: (품목, 창고, 배치) 행을 SELECT ... FOR UPDATE 로 잠그고
  수량/예약 수량을 변경하는 유일한 진입점입니다. 모든 변경은 불변식
  `0 <= reserved_qty <= quantity`, `available_qty = quantity - reserved_qty` 를 유지하고,
  배치의 current_quantity 를 원장 합계와 맞춥니다.
- StockMovementLog: 이동 번호를 발급하고 이동 이력을 기록한 뒤,
  부호 있는 수량으로 원장을 한 번 변경합니다.

이 모듈의 함수는 커밋하지 않습니다. 호출자가 `app.core.database.atomic` 블록 안에서
호출하여 워크플로우 단위로 한 번에 커밋하거나 되돌립니다.

잠금 순서: 문서 번호(shared.document_sequences) -> 재고 행 -> 배치 행.
"""

import logging
from datetime import datetime, date, timedelta, UTC
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import and_, case, func, text
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from app.core.crud_base import CRUDBase
from app.core.exceptions import (
    BatchUnavailableError,
    InsufficientAvailableError,
    NegativeStockError,
    NotFoundError,
    OverReleaseError,
    StockNotFoundError,
    ValidationError,
)
from app.domains.loc.models import Warehouse
from app.domains.shared.crud import MOVEMENT_PREFIX, document_sequence
from . import models as inv_models
from . import schemas as inv_schemas


logger = logging.getLogger(__name__)

CREDIT_TYPES = {
    inv_models.MovementType.RECEIPT,
    inv_models.MovementType.TRANSFER_IN,
    inv_models.MovementType.RETURN,
    inv_models.MovementType.FOUND,
}
DEBIT_TYPES = {
    inv_models.MovementType.ISSUE,
    inv_models.MovementType.TRANSFER_OUT,
    inv_models.MovementType.EXPIRED,
    inv_models.MovementType.DAMAGED,
    inv_models.MovementType.LOST,
}
SIGNED_TYPES = {
    inv_models.MovementType.ADJUSTMENT,
    inv_models.MovementType.STOCK_COUNT,
}
# 회수/만료 배치에서 허용되지 않는 할당성 출고
ALLOCATING_TYPES = {
    inv_models.MovementType.ISSUE,
    inv_models.MovementType.TRANSFER_OUT,
}
# 워크플로우(이동/실사)만 기록할 수 있는 유형
WORKFLOW_ONLY_TYPES = {
    inv_models.MovementType.TRANSFER_IN,
    inv_models.MovementType.TRANSFER_OUT,
    inv_models.MovementType.STOCK_COUNT,
}


def signed_quantity(movement_type: inv_models.MovementType, quantity: int) -> int:
    """
    이동 유형에 따라 원장에 반영할 부호 있는 수량을 반환합니다.
    입고/출고 유형은 양수 수량만 받고, ADJUSTMENT/STOCK_COUNT 는 0이 아닌 부호 있는 값을 받습니다.
    """
    if movement_type in SIGNED_TYPES:
        if quantity == 0:
            raise ValidationError(f"{movement_type.value} quantity must not be zero")
        return quantity
    if quantity <= 0:
        raise ValidationError("Quantity must be greater than 0")
    if movement_type in CREDIT_TYPES:
        return quantity
    return -quantity


def is_batch_unavailable(batch: inv_models.Batch, today: Optional[date] = None) -> bool:
    """회수되었거나 유효기간이 지난 배치인지 여부"""
    return batch.is_recalled or batch.is_expired or batch.expiry_date < (today or date.today())


def lock_key(product_id: int, batch_id: Optional[int]) -> Tuple[int, int]:
    """여러 원장 행을 한 트랜잭션에서 잠글 때 항상 같은 순서를 쓰기 위한 정렬 키"""
    return product_id, batch_id or 0


# =============================================================================
# 1. 재고 원장 (Stock Ledger)
# =============================================================================
class StockLedger(CRUDBase[inv_models.Stock, inv_schemas.StockReservation, inv_schemas.StockReservation]):
    def __init__(self):
        super().__init__(model=inv_models.Stock)

    # -------------------------------------------------------------------------
    # 행 조회/생성
    # -------------------------------------------------------------------------
    def _key_statement(self, product_id: int, warehouse_id: int, batch_id: Optional[int]):
        batch_condition = (
            self.model.batch_id.is_(None) if batch_id is None else self.model.batch_id == batch_id
        )
        return select(self.model).where(
            self.model.product_id == product_id,
            self.model.warehouse_id == warehouse_id,
            batch_condition,
        )

    async def find(
        self, db: AsyncSession, product_id: int, warehouse_id: int, batch_id: Optional[int] = None
    ) -> Optional[inv_models.Stock]:
        """잠그지 않고 원장 행을 조회합니다."""
        result = await db.execute(self._key_statement(product_id, warehouse_id, batch_id))
        return result.scalar_one_or_none()

    async def lock(
        self, db: AsyncSession, product_id: int, warehouse_id: int, batch_id: Optional[int] = None
    ) -> Optional[inv_models.Stock]:
        """원장 행을 SELECT ... FOR UPDATE 로 잠그고 최신 값으로 갱신해 반환합니다."""
        statement = (
            self._key_statement(product_id, warehouse_id, batch_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await db.execute(statement)
        return result.scalar_one_or_none()

    async def get_or_create(
        self,
        db: AsyncSession,
        product_id: int,
        warehouse_id: int,
        batch_id: Optional[int] = None,
        *,
        create: bool = True,
    ) -> inv_models.Stock:
        """
        잠긴 원장 행을 반환합니다. 행이 없고 create=True 이면 0 수량으로 생성합니다.
        동시에 두 트랜잭션이 같은 키를 만들지 않도록 (품목, 창고) 단위의
        트랜잭션 advisory lock 을 잡은 뒤 다시 확인합니다.
        """
        row = await self.lock(db, product_id, warehouse_id, batch_id)
        if row is not None:
            return row
        if not create:
            raise StockNotFoundError(
                f"No stock for product {product_id} in warehouse {warehouse_id}"
                + (f" (batch {batch_id})" if batch_id is not None else "")
            )

        await db.execute(
            text("SELECT pg_advisory_xact_lock(:product_id, :warehouse_id)"),
            {"product_id": product_id, "warehouse_id": warehouse_id},
        )
        row = await self.lock(db, product_id, warehouse_id, batch_id)
        if row is not None:
            return row

        row = inv_models.Stock(
            product_id=product_id,
            warehouse_id=warehouse_id,
            batch_id=batch_id,
            quantity=0,
            reserved_qty=0,
            available_qty=0,
            last_movement_date=datetime.now(UTC),
        )
        db.add(row)
        await db.flush()
        return row

    # -------------------------------------------------------------------------
    # 배치 동기화/검사
    # -------------------------------------------------------------------------
    async def ensure_batch_available(self, db: AsyncSession, batch_id: Optional[int]) -> None:
        """회수/만료 배치에 대한 할당(예약, 출고, 이동 출고)을 거부합니다."""
        if batch_id is None:
            return
        batch = await db.get(inv_models.Batch, batch_id)
        if batch is None:
            raise NotFoundError(f"Batch {batch_id} not found")
        if is_batch_unavailable(batch):
            state = "recalled" if batch.is_recalled else "expired"
            raise BatchUnavailableError(f"Batch {batch.batch_number} is {state} and cannot be allocated")

    async def _sync_batch(self, db: AsyncSession, batch_id: Optional[int], delta: int) -> None:
        if batch_id is None or delta == 0:
            return
        result = await db.execute(
            select(inv_models.Batch)
            .where(inv_models.Batch.id == batch_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        batch = result.scalar_one()
        if batch.deleted_at is not None:
            raise BatchUnavailableError(f"Batch {batch.batch_number} is deleted and cannot hold stock")
        new_quantity = batch.current_quantity + delta
        if new_quantity < 0:
            raise NegativeStockError(f"Batch {batch.batch_number} quantity would become negative")
        if new_quantity > batch.initial_quantity:
            raise ValidationError(
                f"Batch {batch.batch_number} quantity {new_quantity} would exceed "
                f"its initial quantity {batch.initial_quantity}"
            )
        batch.current_quantity = new_quantity
        db.add(batch)

    def _touch(self, db: AsyncSession, row: inv_models.Stock) -> None:
        row.available_qty = row.quantity - row.reserved_qty
        row.last_movement_date = datetime.now(UTC)
        db.add(row)

    # -------------------------------------------------------------------------
    # 원장 변경 (모든 수량 변경은 아래 메서드를 거칩니다)
    # -------------------------------------------------------------------------
    async def apply_delta(self, db: AsyncSession, row: inv_models.Stock, delta: int) -> inv_models.Stock:
        new_quantity = row.quantity + delta
        if new_quantity < 0:
            logger.warning(
                "Negative stock refused: stock=%s quantity=%s delta=%s", row.id, row.quantity, delta
            )
            raise NegativeStockError(
                f"Insufficient stock: quantity {row.quantity}, requested change {delta}",
                {"quantity": row.quantity, "delta": delta},
            )
        if delta < 0 and new_quantity < row.reserved_qty:
            logger.warning(
                "Debit into reserved stock refused: stock=%s available=%s delta=%s",
                row.id, row.available_qty, delta,
            )
            raise InsufficientAvailableError(
                f"Insufficient available stock: available {row.quantity - row.reserved_qty}, requested {-delta}",
                {"available": row.quantity - row.reserved_qty, "requested": -delta},
            )
        row.quantity = new_quantity
        self._touch(db, row)
        await self._sync_batch(db, row.batch_id, delta)
        await db.flush()
        return row

    async def reserve(self, db: AsyncSession, row: inv_models.Stock, quantity: int) -> inv_models.Stock:
        if quantity <= 0:
            raise ValidationError("Quantity must be greater than 0")
        await self.ensure_batch_available(db, row.batch_id)
        available = row.quantity - row.reserved_qty
        if quantity > available:
            raise InsufficientAvailableError(
                f"Insufficient available stock. Available: {available}, Requested: {quantity}",
                {"available": available, "requested": quantity},
            )
        row.reserved_qty += quantity
        self._touch(db, row)
        await db.flush()
        return row

    async def release(self, db: AsyncSession, row: inv_models.Stock, quantity: int) -> inv_models.Stock:
        if quantity <= 0:
            raise ValidationError("Quantity must be greater than 0")
        if quantity > row.reserved_qty:
            raise OverReleaseError(
                f"Cannot release more than reserved. Reserved: {row.reserved_qty}, Requested: {quantity}",
                {"reserved": row.reserved_qty, "requested": quantity},
            )
        row.reserved_qty -= quantity
        self._touch(db, row)
        await db.flush()
        return row

    async def consume_reservation(self, db: AsyncSession, row: inv_models.Stock, quantity: int) -> inv_models.Stock:
        """예약된 수량을 실제 출고로 전환합니다 (예약 수량과 보유 수량이 함께 감소)."""
        if quantity <= 0:
            raise ValidationError("Quantity must be greater than 0")
        if quantity > row.reserved_qty:
            raise OverReleaseError(
                f"Cannot consume more than reserved. Reserved: {row.reserved_qty}, Requested: {quantity}",
                {"reserved": row.reserved_qty, "requested": quantity},
            )
        row.reserved_qty -= quantity
        row.quantity -= quantity
        self._touch(db, row)
        await self._sync_batch(db, row.batch_id, -quantity)
        await db.flush()
        return row

    async def set_counted_quantity(self, db: AsyncSession, row: inv_models.Stock, counted: int) -> int:
        """
        실사 수량으로 보유 수량을 덮어쓰고, 실제 반영된 변화량을 반환합니다.
        예약 수량은 건드리지 않습니다.
        """
        if counted < 0:
            raise ValidationError("Counted quantity must not be negative")
        if counted < row.reserved_qty:
            raise InsufficientAvailableError(
                f"Counted quantity {counted} is below reserved quantity {row.reserved_qty}",
                {"counted": counted, "reserved": row.reserved_qty},
            )
        delta = counted - row.quantity
        row.quantity = counted
        self._touch(db, row)
        await self._sync_batch(db, row.batch_id, delta)
        await db.flush()
        return delta

    # -------------------------------------------------------------------------
    # 조회
    # -------------------------------------------------------------------------
    def _product_totals(self, warehouse_id: Optional[int] = None):
        """(품목, 창고)별 보유 수량 합계 서브쿼리"""
        statement = select(
            self.model.product_id,
            self.model.warehouse_id,
            func.sum(self.model.quantity).label("quantity"),
        ).group_by(self.model.product_id, self.model.warehouse_id)
        if warehouse_id is not None:
            statement = statement.where(self.model.warehouse_id == warehouse_id)
        return statement.subquery()

    async def list_stocks(
        self,
        db: AsyncSession,
        *,
        product_id: Optional[int] = None,
        warehouse_id: Optional[int] = None,
        batch_id: Optional[int] = None,
        low_stock: bool = False,
        out_of_stock: bool = False,
        skip: int = 0,
        limit: int = 100,
    ) -> List[inv_models.Stock]:
        extra_conditions = []
        if low_stock:
            extra_conditions.append(
                self.model.product_id.in_(
                    select(inv_models.Product.id).where(
                        inv_models.Product.min_stock_level > 0,
                        self.model.quantity <= inv_models.Product.min_stock_level,
                    )
                )
            )
        if out_of_stock:
            extra_conditions.append(self.model.quantity == 0)
        return await self.get_filtered(
            db,
            filters={"product_id": product_id, "warehouse_id": warehouse_id, "batch_id": batch_id},
            extra_conditions=extra_conditions,
            skip=skip,
            limit=limit,
        )

    async def product_summary(self, db: AsyncSession, *, product_id: int) -> Dict[str, Any]:
        product = await db.get(inv_models.Product, product_id)
        if product is None:
            raise NotFoundError(f"Product {product_id} not found")

        rows = (await db.execute(select(self.model).where(self.model.product_id == product_id))).scalars().all()
        total = sum(row.quantity for row in rows)
        reserved = sum(row.reserved_qty for row in rows)

        by_warehouse: Dict[int, Dict[str, int]] = {}
        for row in rows:
            entry = by_warehouse.setdefault(
                row.warehouse_id,
                {"warehouse_id": row.warehouse_id, "quantity": 0, "reserved_qty": 0, "available_qty": 0},
            )
            entry["quantity"] += row.quantity
            entry["reserved_qty"] += row.reserved_qty
            entry["available_qty"] += row.available_qty

        return {
            "product_id": product.id,
            "product_code": product.code,
            "product_name": product.name,
            "total_quantity": total,
            "reserved_quantity": reserved,
            "available_quantity": total - reserved,
            "warehouse_count": len([w for w in by_warehouse.values() if w["quantity"] > 0]),
            "batch_count": len({row.batch_id for row in rows if row.batch_id is not None and row.quantity > 0}),
            "min_stock_level": product.min_stock_level,
            "stock_status": inv_models.stock_status(total, product.min_stock_level),
            "by_warehouse": list(by_warehouse.values()),
        }

    async def warehouse_summary(self, db: AsyncSession, *, warehouse_id: int) -> Dict[str, Any]:
        warehouse = await db.get(Warehouse, warehouse_id)
        if warehouse is None:
            raise NotFoundError(f"Warehouse {warehouse_id} not found")

        statement = (
            select(
                func.count(func.distinct(case((self.model.quantity > 0, self.model.product_id)))),
                func.coalesce(func.sum(self.model.quantity), 0),
                func.coalesce(func.sum(self.model.reserved_qty), 0),
                func.coalesce(
                    func.sum(self.model.quantity * func.coalesce(inv_models.Product.unit_price, 0)), 0
                ),
            )
            .select_from(self.model)
            .join(inv_models.Product, inv_models.Product.id == self.model.product_id)
            .where(self.model.warehouse_id == warehouse_id)
        )
        product_count, total, reserved, value = (await db.execute(statement)).one()
        return {
            "warehouse_id": warehouse.id,
            "warehouse_code": warehouse.code,
            "warehouse_name": warehouse.name,
            "product_count": product_count,
            "total_quantity": total,
            "reserved_quantity": reserved,
            "available_quantity": total - reserved,
            "total_value": Decimal(value),
        }

    async def low_stock(self, db: AsyncSession, *, warehouse_id: Optional[int] = None) -> List[Dict[str, Any]]:
        """창고별 합계가 최소 재고 수준 이하인 (품목, 창고) 목록"""
        totals = self._product_totals(warehouse_id)
        statement = (
            select(inv_models.Product, totals.c.warehouse_id, totals.c.quantity)
            .join(totals, totals.c.product_id == inv_models.Product.id)
            .where(
                inv_models.Product.status == inv_models.ProductStatus.ACTIVE,
                inv_models.Product.min_stock_level > 0,
                totals.c.quantity <= inv_models.Product.min_stock_level,
            )
            .order_by(inv_models.Product.code, totals.c.warehouse_id)
        )
        items = []
        for product, row_warehouse_id, quantity in (await db.execute(statement)).all():
            items.append({
                "product_id": product.id,
                "product_code": product.code,
                "product_name": product.name,
                "warehouse_id": row_warehouse_id,
                "quantity": quantity,
                "min_stock_level": product.min_stock_level,
                "stock_status": inv_models.stock_status(quantity, product.min_stock_level),
            })
        return items

    async def out_of_stock(self, db: AsyncSession, *, warehouse_id: Optional[int] = None) -> List[Dict[str, Any]]:
        """보유 수량 합계가 0인 활성 품목 목록 (창고 지정 시 해당 창고 기준)"""
        quantity_condition = self.model.product_id == inv_models.Product.id
        if warehouse_id is not None:
            quantity_condition = and_(quantity_condition, self.model.warehouse_id == warehouse_id)
        total_quantity = (
            select(func.coalesce(func.sum(self.model.quantity), 0))
            .where(quantity_condition)
            .scalar_subquery()
        )
        statement = (
            select(inv_models.Product)
            .where(
                inv_models.Product.status == inv_models.ProductStatus.ACTIVE,
                total_quantity == 0,
            )
            .order_by(inv_models.Product.code)
        )
        products = (await db.execute(statement)).scalars().all()
        return [
            {
                "product_id": product.id,
                "product_code": product.code,
                "product_name": product.name,
                "warehouse_id": warehouse_id,
                "quantity": 0,
                "min_stock_level": product.min_stock_level,
                "stock_status": inv_models.StockStatus.OUT_OF_STOCK,
            }
            for product in products
        ]

    async def statistics(self, db: AsyncSession) -> Dict[str, Any]:
        totals = (await db.execute(
            select(
                func.coalesce(func.sum(self.model.quantity), 0),
                func.coalesce(func.sum(self.model.reserved_qty), 0),
                func.coalesce(func.sum(self.model.available_qty), 0),
                func.count(case((self.model.reserved_qty > 0, 1))),
                func.count(func.distinct(case((self.model.quantity > 0, self.model.warehouse_id)))),
            )
        )).one()
        return {
            "total_quantity": totals[0],
            "total_reserved": totals[1],
            "total_available": totals[2],
            "low_stock_items": len(await self.low_stock(db)),
            "out_of_stock_items": len(await self.out_of_stock(db)),
            "items_with_reservations": totals[3],
            "warehouses_with_stock": totals[4],
        }


# =============================================================================
# 2. 재고 이동 이력 (Stock Movement Log)
# =============================================================================
class StockMovementLog(CRUDBase[inv_models.StockMovement, inv_schemas.StockMovementCreate, inv_schemas.StockMovementCreate]):
    def __init__(self, ledger: StockLedger):
        super().__init__(model=inv_models.StockMovement)
        self.ledger = ledger

    async def next_number(self, db: AsyncSession) -> str:
        return await document_sequence.next_number(db, MOVEMENT_PREFIX)

    async def write(
        self,
        db: AsyncSession,
        *,
        movement_number: str,
        movement_type: inv_models.MovementType,
        product_id: int,
        warehouse_id: int,
        quantity: int,
        batch_id: Optional[int] = None,
        unit_price: Optional[Decimal] = None,
        reference_type: Optional[str] = None,
        reference_id: Optional[int] = None,
        reason: Optional[str] = None,
        notes: Optional[str] = None,
        performed_by: Optional[int] = None,
    ) -> inv_models.StockMovement:
        """원장을 건드리지 않고 이동 이력 한 건을 기록합니다."""
        total_value = None
        if unit_price is not None:
            total_value = Decimal(unit_price) * abs(quantity)
        movement = inv_models.StockMovement(
            movement_number=movement_number,
            movement_type=movement_type,
            product_id=product_id,
            batch_id=batch_id,
            warehouse_id=warehouse_id,
            quantity=quantity,
            unit_price=unit_price,
            total_value=total_value,
            reference_type=reference_type,
            reference_id=reference_id,
            reason=reason,
            notes=notes,
            performed_by=performed_by,
            movement_date=datetime.now(UTC),
        )
        db.add(movement)
        await db.flush()
        return movement

    async def record(
        self,
        db: AsyncSession,
        *,
        movement_type: inv_models.MovementType,
        product_id: int,
        warehouse_id: int,
        quantity: int,
        batch_id: Optional[int] = None,
        unit_price: Optional[Decimal] = None,
        reference_type: Optional[str] = None,
        reference_id: Optional[int] = None,
        reason: Optional[str] = None,
        notes: Optional[str] = None,
        performed_by: Optional[int] = None,
        apply_to_ledger: bool = True,
    ) -> inv_models.StockMovement:
        """
        이동 번호를 발급하고 원장에 부호 있는 수량을 한 번 반영한 뒤 이력을 기록합니다.

        - 입고성 유형(RECEIPT, TRANSFER_IN, RETURN, FOUND)은 행이 없으면 새로 만듭니다.
        - 출고성 유형은 기존 행이 있어야 하며, ISSUE/TRANSFER_OUT 은 회수/만료 배치에서 거부됩니다.
        - STOCK_COUNT 는 이력만 기록합니다 (원장은 실사 승인에서 직접 설정).
        - apply_to_ledger=False 는 호출자가 이미 원장을 변경한 경우(이동 출고 시 예약 소진)에 사용합니다.
        """
        delta = signed_quantity(movement_type, quantity)
        movement_number = await self.next_number(db)

        if apply_to_ledger and movement_type != inv_models.MovementType.STOCK_COUNT:
            if movement_type in ALLOCATING_TYPES:
                await self.ledger.ensure_batch_available(db, batch_id)
            row = await self.ledger.get_or_create(
                db, product_id, warehouse_id, batch_id, create=delta > 0
            )
            await self.ledger.apply_delta(db, row, delta)

        movement = await self.write(
            db,
            movement_number=movement_number,
            movement_type=movement_type,
            product_id=product_id,
            warehouse_id=warehouse_id,
            quantity=delta,
            batch_id=batch_id,
            unit_price=unit_price,
            reference_type=reference_type,
            reference_id=reference_id,
            reason=reason,
            notes=notes,
            performed_by=performed_by,
        )
        logger.info(
            "Stock movement %s: %s product=%s warehouse=%s batch=%s qty=%s",
            movement_number, movement_type.value, product_id, warehouse_id, batch_id, delta,
        )
        return movement

    async def _validate_references(
        self, db: AsyncSession, product_id: int, warehouse_id: int, batch_id: Optional[int]
    ) -> None:
        if await db.get(inv_models.Product, product_id) is None:
            raise NotFoundError(f"Product {product_id} not found")
        if await db.get(Warehouse, warehouse_id) is None:
            raise NotFoundError(f"Warehouse {warehouse_id} not found")
        if batch_id is not None:
            batch = await db.get(inv_models.Batch, batch_id)
            if batch is None or batch.deleted_at is not None:
                raise NotFoundError(f"Batch {batch_id} not found")
            if batch.product_id != product_id:
                raise ValidationError(f"Batch {batch.batch_number} does not belong to product {product_id}")

    async def create_manual(
        self, db: AsyncSession, *, obj_in: inv_schemas.StockMovementCreate, performed_by: Optional[int] = None
    ) -> inv_models.StockMovement:
        """
        수동 이동 등록. 이동/실사 워크플로우 전용 유형은 거부합니다.
        """
        if obj_in.movement_type in WORKFLOW_ONLY_TYPES:
            raise ValidationError(
                f"Movement type {obj_in.movement_type.value} is recorded by its workflow only"
            )
        await self._validate_references(db, obj_in.product_id, obj_in.warehouse_id, obj_in.batch_id)
        return await self.record(
            db,
            movement_type=obj_in.movement_type,
            product_id=obj_in.product_id,
            warehouse_id=obj_in.warehouse_id,
            quantity=obj_in.quantity,
            batch_id=obj_in.batch_id,
            unit_price=obj_in.unit_price,
            reference_type=obj_in.reference_type,
            reference_id=obj_in.reference_id,
            reason=obj_in.reason,
            notes=obj_in.notes,
            performed_by=performed_by,
        )

    async def adjust_stock(
        self, db: AsyncSession, *, obj_in: inv_schemas.StockAdjustment, performed_by: Optional[int] = None
    ):
        """재고 조정 (ADJUSTMENT). 사유는 필수입니다. (원장 행, 이동 이력)을 반환합니다."""
        if not obj_in.reason or not obj_in.reason.strip():
            raise ValidationError("Adjustment reason is required")
        await self._validate_references(db, obj_in.product_id, obj_in.warehouse_id, obj_in.batch_id)
        movement = await self.record(
            db,
            movement_type=inv_models.MovementType.ADJUSTMENT,
            product_id=obj_in.product_id,
            warehouse_id=obj_in.warehouse_id,
            quantity=obj_in.quantity_change,
            batch_id=obj_in.batch_id,
            reason=obj_in.reason.strip(),
            notes=obj_in.notes,
            performed_by=performed_by,
        )
        stock = await self.ledger.find(db, obj_in.product_id, obj_in.warehouse_id, obj_in.batch_id)
        return stock, movement

    async def list_movements(
        self,
        db: AsyncSession,
        *,
        movement_type: Optional[inv_models.MovementType] = None,
        product_id: Optional[int] = None,
        warehouse_id: Optional[int] = None,
        batch_id: Optional[int] = None,
        performed_by: Optional[int] = None,
        reference_type: Optional[str] = None,
        reference_id: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[inv_models.StockMovement]:
        return await self.get_filtered(
            db,
            filters={
                "movement_type": movement_type,
                "product_id": product_id,
                "warehouse_id": warehouse_id,
                "batch_id": batch_id,
                "performed_by": performed_by,
                "reference_type": reference_type,
                "reference_id": reference_id,
            },
            date_range_field="movement_date",
            start_date=start_date,
            end_date=end_date,
            order_by_field="id",
            order_desc=True,
            skip=skip,
            limit=limit,
        )

    async def get_by_reference(
        self, db: AsyncSession, *, reference_type: str, reference_id: int
    ) -> List[inv_models.StockMovement]:
        statement = (
            select(self.model)
            .where(self.model.reference_type == reference_type, self.model.reference_id == reference_id)
            .order_by(self.model.id)
        )
        return (await db.execute(statement)).scalars().all()

    async def statistics(
        self,
        db: AsyncSession,
        *,
        warehouse_id: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> Dict[str, Any]:
        statement = select(
            self.model.movement_type,
            func.count(self.model.id),
            func.coalesce(func.sum(self.model.quantity), 0),
            func.coalesce(func.sum(self.model.total_value), 0),
        ).group_by(self.model.movement_type)
        if warehouse_id is not None:
            statement = statement.where(self.model.warehouse_id == warehouse_id)
        if start_date is not None:
            statement = statement.where(self.model.movement_date >= start_date)
        if end_date is not None:
            statement = statement.where(self.model.movement_date < end_date + timedelta(days=1))

        by_type = [
            {
                "movement_type": movement_type,
                "count": count,
                "total_quantity": total_quantity,
                "total_value": Decimal(total_value),
            }
            for movement_type, count, total_quantity, total_value in (await db.execute(statement)).all()
        ]
        return {"total_movements": sum(item["count"] for item in by_type), "by_type": by_type}


stock_ledger = StockLedger()
stock_movement = StockMovementLog(stock_ledger)
