# app/domains/inv/crud.py

"""
'inv' 도메인의 품목 분류, 품목, 배치(Batch Lifecycle) CRUD 로직을 담당하는 모듈입니다.
재고 원장과 이동 이력은 `ledger.py` 에서 다룹니다.
"""

import logging
from datetime import datetime, date, timedelta, UTC
from typing import Any, Dict, List, Optional

from sqlalchemy import func, or_
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from app.core.config import settings
from app.core.crud_base import CRUDBase
from app.core.database import atomic
from app.core.exceptions import (
    DuplicateError,
    HasActiveStockError,
    NotFoundError,
    StateConflictError,
    ValidationError,
)
from app.domains.ntf import crud as ntf_crud
from app.domains.trf.models import TransferOrder, TransferOrderItem, TransferOrderStatus
from app.domains.ven.models import Supplier
from . import models as inv_models
from . import schemas as inv_schemas


logger = logging.getLogger(__name__)

# 출고 창고에 예약되었거나 운송 중인 이동 요청 상태
IN_FLIGHT_TRANSFER_STATUSES = (TransferOrderStatus.APPROVED, TransferOrderStatus.IN_TRANSIT)


# =============================================================================
# 1. 품목 분류 (ProductCategory) CRUD
# =============================================================================
class CRUDProductCategory(
    CRUDBase[
        inv_models.ProductCategory,
        inv_schemas.ProductCategoryCreate,
        inv_schemas.ProductCategoryUpdate,
    ]
):
    def __init__(self):
        super().__init__(model=inv_models.ProductCategory)

    async def get_by_code(self, db: AsyncSession, *, code: str) -> Optional[inv_models.ProductCategory]:
        return await self.get_by_attribute(db, attribute="code", value=code)

    async def create(self, db: AsyncSession, *, obj_in: inv_schemas.ProductCategoryCreate) -> inv_models.ProductCategory:
        if await self.get_by_code(db, code=obj_in.code):
            raise DuplicateError(f"Category with code '{obj_in.code}' already exists.")
        return await super().create(db, obj_in=obj_in)

    async def remove(self, db: AsyncSession, *, id: int) -> inv_models.ProductCategory:
        """소속 품목이 있는 분류는 삭제하지 않습니다."""
        db_obj = await self.get_or_404(db, id)
        result = await db.execute(
            select(func.count()).select_from(inv_models.Product).where(inv_models.Product.category_id == id)
        )
        if result.scalar_one() > 0:
            raise StateConflictError(f"Category '{db_obj.code}' still has products.")
        return await super().delete(db, id=id)


# =============================================================================
# 2. 품목 (Product) CRUD
# =============================================================================
class CRUDProduct(CRUDBase[inv_models.Product, inv_schemas.ProductCreate, inv_schemas.ProductUpdate]):
    def __init__(self):
        super().__init__(model=inv_models.Product)

    async def get_by_code(self, db: AsyncSession, *, code: str) -> Optional[inv_models.Product]:
        return await self.get_by_attribute(db, attribute="code", value=code)

    async def get_by_barcode(self, db: AsyncSession, *, barcode: str) -> Optional[inv_models.Product]:
        return await self.get_by_attribute(db, attribute="barcode", value=barcode)

    async def _validate_category(self, db: AsyncSession, category_id: Optional[int]) -> None:
        if category_id is not None and await db.get(inv_models.ProductCategory, category_id) is None:
            raise NotFoundError(f"Category {category_id} not found")

    def _validate_levels(self, min_level: Optional[int], max_level: Optional[int]) -> None:
        if min_level is not None and max_level is not None and max_level < min_level:
            raise ValidationError("max_stock_level must be greater than or equal to min_stock_level")

    async def create(self, db: AsyncSession, *, obj_in: inv_schemas.ProductCreate) -> inv_models.Product:
        """코드/바코드 중복과 분류 존재 여부를 확인하고 품목을 생성합니다."""
        if await self.get_by_code(db, code=obj_in.code):
            raise DuplicateError(f"Product with code '{obj_in.code}' already exists.")
        if obj_in.barcode and await self.get_by_barcode(db, barcode=obj_in.barcode):
            raise DuplicateError(f"Product with barcode '{obj_in.barcode}' already exists.")
        await self._validate_category(db, obj_in.category_id)
        self._validate_levels(obj_in.min_stock_level, obj_in.max_stock_level)
        return await super().create(db, obj_in=obj_in)

    async def update(
        self, db: AsyncSession, *, db_obj: inv_models.Product, obj_in: inv_schemas.ProductUpdate
    ) -> inv_models.Product:
        if obj_in.barcode and obj_in.barcode != db_obj.barcode:
            if await self.get_by_barcode(db, barcode=obj_in.barcode):
                raise DuplicateError(f"Product with barcode '{obj_in.barcode}' already exists.")
        await self._validate_category(db, obj_in.category_id)
        self._validate_levels(
            obj_in.min_stock_level if obj_in.min_stock_level is not None else db_obj.min_stock_level,
            obj_in.max_stock_level if obj_in.max_stock_level is not None else db_obj.max_stock_level,
        )
        if obj_in.status == inv_models.ProductStatus.DISCONTINUED and db_obj.status != obj_in.status:
            await self._ensure_no_active_stock(db, db_obj)
        return await super().update(db, db_obj=db_obj, obj_in=obj_in)

    async def search(
        self,
        db: AsyncSession,
        *,
        search: Optional[str] = None,
        category_id: Optional[int] = None,
        status: Optional[inv_models.ProductStatus] = None,
        requires_prescription: Optional[bool] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[inv_models.Product]:
        extra_conditions = []
        if search:
            pattern = f"%{search}%"
            extra_conditions.append(or_(
                self.model.code.ilike(pattern),
                self.model.name.ilike(pattern),
                self.model.generic_name.ilike(pattern),
                self.model.barcode == search,
            ))
        return await self.get_filtered(
            db,
            filters={"category_id": category_id, "status": status, "requires_prescription": requires_prescription},
            extra_conditions=extra_conditions,
            order_by_field="code",
            order_desc=False,
            skip=skip,
            limit=limit,
        )

    async def _ensure_no_active_stock(self, db: AsyncSession, product: inv_models.Product) -> None:
        result = await db.execute(
            select(func.count()).select_from(inv_models.Stock).where(
                inv_models.Stock.product_id == product.id, inv_models.Stock.quantity > 0
            )
        )
        if result.scalar_one() > 0:
            raise HasActiveStockError(f"Product '{product.code}' still has stock on hand.")

    async def discontinue(self, db: AsyncSession, *, id: int) -> inv_models.Product:
        """
        품목을 단종(DISCONTINUED) 처리합니다 (소프트 삭제).
        수량이 남아 있는 재고 행이 있으면 HasActiveStockError.
        """
        product = await self.get_or_404(db, id)
        await self._ensure_no_active_stock(db, product)
        product.status = inv_models.ProductStatus.DISCONTINUED
        db.add(product)
        await db.commit()
        await db.refresh(product)
        logger.info("Product %s discontinued", product.code)
        return product


# =============================================================================
# 3. 배치 (Batch) CRUD - Batch Lifecycle
# =============================================================================
class CRUDBatch(CRUDBase[inv_models.Batch, inv_schemas.BatchCreate, inv_schemas.BatchUpdate]):
    def __init__(self):
        super().__init__(model=inv_models.Batch)

    async def get_by_batch_number(self, db: AsyncSession, *, batch_number: str) -> Optional[inv_models.Batch]:
        return await self.get_by_attribute(db, attribute="batch_number", value=batch_number)

    async def get_active_or_404(self, db: AsyncSession, id: int) -> inv_models.Batch:
        batch = await db.get(self.model, id)
        if batch is None or batch.deleted_at is not None:
            raise NotFoundError(f"Batch {id} not found")
        return batch

    def _validate_dates(self, manufacturing_date: Optional[date], expiry_date: date) -> None:
        if manufacturing_date is not None and manufacturing_date > expiry_date:
            raise ValidationError("Manufacturing date must be on or before the expiry date")

    async def add_batch(
        self,
        db: AsyncSession,
        *,
        obj_in: inv_schemas.BatchCreate,
        current_quantity: int = 0,
    ) -> inv_models.Batch:
        """
        검증 후 배치를 세션에 추가하고 flush 합니다 (커밋하지 않음).
        발주 입고처럼 더 큰 트랜잭션 안에서 배치를 만들 때 사용합니다.
        """
        if await db.get(inv_models.Product, obj_in.product_id) is None:
            raise NotFoundError(f"Product {obj_in.product_id} not found")
        if obj_in.supplier_id is not None and await db.get(Supplier, obj_in.supplier_id) is None:
            raise NotFoundError(f"Supplier {obj_in.supplier_id} not found")
        if await self.get_by_batch_number(db, batch_number=obj_in.batch_number):
            raise DuplicateError(f"Batch number '{obj_in.batch_number}' already exists.")
        if obj_in.initial_quantity <= 0:
            raise ValidationError("Initial quantity must be greater than 0")
        if obj_in.expiry_date < date.today():
            raise ValidationError("Expiry date must not be in the past")
        self._validate_dates(obj_in.manufacturing_date, obj_in.expiry_date)

        batch = self.model.model_validate(obj_in, update={"current_quantity": current_quantity})
        db.add(batch)
        await db.flush()
        return batch

    async def create(self, db: AsyncSession, *, obj_in: inv_schemas.BatchCreate) -> inv_models.Batch:
        """
        배치를 생성합니다. current_quantity 는 0에서 시작하며 이후 원장 이동에 따라 변합니다.
        """
        async with atomic(db):
            batch = await self.add_batch(db, obj_in=obj_in)
        await db.refresh(batch)
        return batch

    async def update(
        self, db: AsyncSession, *, db_obj: inv_models.Batch, obj_in: inv_schemas.BatchUpdate
    ) -> inv_models.Batch:
        update_data = obj_in.model_dump(exclude_unset=True)
        self._validate_dates(
            update_data.get("manufacturing_date", db_obj.manufacturing_date),
            update_data.get("expiry_date") or db_obj.expiry_date,
        )
        if update_data.get("supplier_id") is not None and await db.get(Supplier, update_data["supplier_id"]) is None:
            raise NotFoundError(f"Supplier {update_data['supplier_id']} not found")
        return await super().update(db, db_obj=db_obj, obj_in=update_data)

    async def holding_warehouses(self, db: AsyncSession, *, batch_id: int) -> List[int]:
        """배치의 재고가 양수로 남아 있는 창고 ID 목록"""
        result = await db.execute(
            select(inv_models.Stock.warehouse_id)
            .where(inv_models.Stock.batch_id == batch_id, inv_models.Stock.quantity > 0)
            .distinct()
            .order_by(inv_models.Stock.warehouse_id)
        )
        return list(result.scalars().all())

    async def recall(
        self, db: AsyncSession, *, id: int, reason: str, actor_id: Optional[int] = None
    ) -> inv_models.Batch:
        """
        배치를 회수 처리합니다.
        사유가 비어 있으면 ValidationError, 이미 회수된 배치는 StateConflictError 입니다.
        재고를 보유한 창고마다 RECALL 알림을 한 건씩 생성합니다.
        """
        if not reason or not reason.strip():
            raise ValidationError("Recall reason is required")

        async with atomic(db):
            result = await db.execute(
                select(self.model).where(self.model.id == id).with_for_update()
                .execution_options(populate_existing=True)
            )
            batch = result.scalar_one_or_none()
            if batch is None or batch.deleted_at is not None:
                raise NotFoundError(f"Batch {id} not found")
            if batch.is_recalled:
                raise StateConflictError(f"Batch {batch.batch_number} is already recalled")

            batch.is_recalled = True
            batch.recall_reason = reason.strip()
            batch.recalled_at = datetime.now(UTC)
            db.add(batch)

            warehouse_ids = await self.holding_warehouses(db, batch_id=batch.id)
            product = await db.get(inv_models.Product, batch.product_id)
            for warehouse_id in warehouse_ids:
                await ntf_crud.notification.notify_batch_recalled(
                    db, batch=batch, product=product, warehouse_id=warehouse_id
                )
        await db.refresh(batch)
        logger.warning(
            "Batch %s recalled by user %s (%d warehouse(s) notified): %s",
            batch.batch_number, actor_id, len(warehouse_ids), batch.recall_reason,
        )
        return batch

    async def mark_expired(self, db: AsyncSession, *, today: Optional[date] = None) -> int:
        """
        유효기간이 지난(expiry_date < 오늘) 미처리 배치를 만료 처리하고 그 수를 반환합니다.
        이미 처리된 배치는 건너뛰므로 반복 호출해도 결과가 같습니다.
        배치마다 EXPIRY 알림을 한 건 생성합니다.
        """
        today = today or date.today()
        async with atomic(db):
            result = await db.execute(
                select(self.model)
                .where(
                    self.model.expiry_date < today,
                    self.model.is_expired.is_(False),
                    self.model.deleted_at.is_(None),
                )
                .with_for_update(skip_locked=True)
            )
            batches = result.scalars().all()
            for batch in batches:
                batch.is_expired = True
                db.add(batch)
                product = await db.get(inv_models.Product, batch.product_id)
                await ntf_crud.notification.notify_batch_expired(db, batch=batch, product=product)
        if batches:
            logger.info("Marked %d batch(es) as expired", len(batches))
        return len(batches)

    async def remove(self, db: AsyncSession, *, id: int) -> inv_models.Batch:
        """
        배치를 소프트 삭제합니다 (deleted_at 설정).
        수량이 남아 있는 원장 행이 있거나, 승인/운송 중인 이동 요청이 이 배치를 참조하면 HasActiveStockError.
        """
        async with atomic(db):
            result = await db.execute(
                select(self.model).where(self.model.id == id).with_for_update()
                .execution_options(populate_existing=True)
            )
            batch = result.scalar_one_or_none()
            if batch is None or batch.deleted_at is not None:
                raise NotFoundError(f"Batch {id} not found")
            if await self.holding_warehouses(db, batch_id=batch.id):
                raise HasActiveStockError(f"Batch {batch.batch_number} still has stock on hand.")
            in_flight = (await db.execute(
                select(func.count())
                .select_from(TransferOrderItem)
                .join(TransferOrder, TransferOrder.id == TransferOrderItem.transfer_order_id)
                .where(
                    TransferOrderItem.batch_id == batch.id,
                    TransferOrder.status.in_(IN_FLIGHT_TRANSFER_STATUSES),
                )
            )).scalar_one()
            if in_flight:
                raise HasActiveStockError(
                    f"Batch {batch.batch_number} is referenced by {in_flight} approved or in-transit transfer line(s)."
                )
            batch.deleted_at = datetime.now(UTC)
            db.add(batch)
        await db.refresh(batch)
        return batch

    def _active_conditions(self) -> List[Any]:
        return [self.model.deleted_at.is_(None)]

    async def list_batches(
        self,
        db: AsyncSession,
        *,
        product_id: Optional[int] = None,
        supplier_id: Optional[int] = None,
        is_expired: Optional[bool] = None,
        is_recalled: Optional[bool] = None,
        expiring_within_days: Optional[int] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[inv_models.Batch]:
        extra_conditions = self._active_conditions()
        if expiring_within_days is not None:
            today = date.today()
            extra_conditions.extend([
                self.model.expiry_date >= today,
                self.model.expiry_date <= today + timedelta(days=expiring_within_days),
            ])
        return await self.get_filtered(
            db,
            filters={
                "product_id": product_id,
                "supplier_id": supplier_id,
                "is_expired": is_expired,
                "is_recalled": is_recalled,
            },
            extra_conditions=extra_conditions,
            order_by_field="expiry_date",
            order_desc=False,
            skip=skip,
            limit=limit,
        )

    async def expiring(self, db: AsyncSession, *, days: Optional[int] = None) -> List[inv_models.Batch]:
        """오늘부터 N일 이내에 만료되는 (만료/회수되지 않은) 배치"""
        days = settings.EXPIRY_WARNING_DAYS if days is None else days
        today = date.today()
        statement = (
            select(self.model)
            .where(
                *self._active_conditions(),
                self.model.is_expired.is_(False),
                self.model.is_recalled.is_(False),
                self.model.expiry_date >= today,
                self.model.expiry_date <= today + timedelta(days=days),
            )
            .order_by(self.model.expiry_date)
        )
        return (await db.execute(statement)).scalars().all()

    async def expired(self, db: AsyncSession) -> List[inv_models.Batch]:
        statement = (
            select(self.model)
            .where(
                *self._active_conditions(),
                or_(self.model.is_expired.is_(True), self.model.expiry_date < date.today()),
            )
            .order_by(self.model.expiry_date)
        )
        return (await db.execute(statement)).scalars().all()

    async def statistics(self, db: AsyncSession) -> Dict[str, int]:
        active = self._active_conditions()
        total = await self.count_filtered(db, extra_conditions=active)
        expired = await self.count_filtered(db, filters={"is_expired": True}, extra_conditions=active)
        recalled = await self.count_filtered(db, filters={"is_recalled": True}, extra_conditions=active)
        usable = await self.count_filtered(
            db, filters={"is_expired": False, "is_recalled": False}, extra_conditions=active
        )
        expiring_soon = len(await self.expiring(db))
        total_quantity = (await db.execute(
            select(func.coalesce(func.sum(self.model.current_quantity), 0)).where(*active)
        )).scalar_one()
        return {
            "total": total,
            "expired": expired,
            "recalled": recalled,
            "expiring_soon": expiring_soon,
            "active": usable,
            "total_quantity": total_quantity,
        }


product_category = CRUDProductCategory()
product = CRUDProduct()
batch = CRUDBatch()
