# app/domains/ven/crud.py

"""
'ven' 도메인 (공급업체)과 관련된 CRUD 로직을 담당하는 모듈입니다.
"""

from typing import Optional

from sqlalchemy import func, or_
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from app.core.crud_base import CRUDBase
from app.core.exceptions import DuplicateError, StateConflictError
from app.domains.pur.models import PurchaseOrder
from . import models as ven_models
from . import schemas as ven_schemas


# =============================================================================
# 1. 공급업체 (Supplier) CRUD
# =============================================================================
class CRUDSupplier(CRUDBase[ven_models.Supplier, ven_schemas.SupplierCreate, ven_schemas.SupplierUpdate]):
    def __init__(self):
        super().__init__(model=ven_models.Supplier)

    async def get_by_code(self, db: AsyncSession, *, code: str) -> Optional[ven_models.Supplier]:
        return await self.get_by_attribute(db, attribute="code", value=code)

    async def search(self, db: AsyncSession, *, keyword: str, skip: int = 0, limit: int = 100):
        """코드 또는 이름에 키워드가 포함된 공급업체를 조회합니다."""
        pattern = f"%{keyword}%"
        return await self.get_filtered(
            db,
            extra_conditions=[or_(self.model.code.ilike(pattern), self.model.name.ilike(pattern))],
            order_by_field="code",
            order_desc=False,
            skip=skip,
            limit=limit,
        )

    async def create(self, db: AsyncSession, *, obj_in: ven_schemas.SupplierCreate) -> ven_models.Supplier:
        if await self.get_by_code(db, code=obj_in.code):
            raise DuplicateError(f"Supplier with code '{obj_in.code}' already exists.")
        return await super().create(db, obj_in=obj_in)

    async def update(
        self, db: AsyncSession, *, db_obj: ven_models.Supplier, obj_in: ven_schemas.SupplierUpdate
    ) -> ven_models.Supplier:
        if obj_in.code and obj_in.code != db_obj.code:
            if await self.get_by_code(db, code=obj_in.code):
                raise DuplicateError(f"Supplier with code '{obj_in.code}' already exists.")
        return await super().update(db, db_obj=db_obj, obj_in=obj_in)

    async def remove(self, db: AsyncSession, *, id: int) -> ven_models.Supplier:
        """발주서가 참조하는 공급업체는 삭제하지 않고 비활성화를 유도합니다."""
        db_obj = await self.get_or_404(db, id)
        result = await db.execute(
            select(func.count()).select_from(PurchaseOrder).where(PurchaseOrder.supplier_id == id)
        )
        if result.scalar_one() > 0:
            raise StateConflictError(
                f"Supplier '{db_obj.code}' is referenced by purchase orders; deactivate it instead."
            )
        return await super().delete(db, id=id)


supplier = CRUDSupplier()
