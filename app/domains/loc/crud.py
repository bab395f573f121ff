# app/domains/loc/crud.py

"""
'loc' 도메인 (창고 정보)과 관련된 CRUD 로직을 담당하는 모듈입니다.
"""

import logging
from typing import Optional

from sqlalchemy import func
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from app.core.crud_base import CRUDBase
from app.core.exceptions import DuplicateError, HasActiveStockError
from app.domains.inv.models import Stock
from . import models as loc_models
from . import schemas as loc_schemas


logger = logging.getLogger(__name__)


# =============================================================================
# 1. 창고 (Warehouse) CRUD
# =============================================================================
class CRUDWarehouse(
    CRUDBase[
        loc_models.Warehouse,
        loc_schemas.WarehouseCreate,
        loc_schemas.WarehouseUpdate
    ]
):
    def __init__(self):
        super().__init__(model=loc_models.Warehouse)

    async def get_by_code(self, db: AsyncSession, *, code: str) -> Optional[loc_models.Warehouse]:
        """창고 코드로 조회합니다."""
        statement = select(self.model).where(self.model.code == code)
        result = await db.execute(statement)
        return result.scalars().one_or_none()

    async def create(self, db: AsyncSession, *, obj_in: loc_schemas.WarehouseCreate) -> loc_models.Warehouse:
        """코드 중복을 확인하고 생성합니다."""
        if await self.get_by_code(db, code=obj_in.code):
            raise DuplicateError(f"Warehouse with code '{obj_in.code}' already exists.")
        return await super().create(db, obj_in=obj_in)

    async def update(
        self, db: AsyncSession, *, db_obj: loc_models.Warehouse, obj_in: loc_schemas.WarehouseUpdate
    ) -> loc_models.Warehouse:
        if obj_in.code and obj_in.code != db_obj.code:
            if await self.get_by_code(db, code=obj_in.code):
                raise DuplicateError(f"Warehouse with code '{obj_in.code}' already exists.")
        return await super().update(db, db_obj=db_obj, obj_in=obj_in)

    async def remove(self, db: AsyncSession, *, id: int) -> loc_models.Warehouse:
        """
        ID로 창고를 삭제합니다. 수량이 남아 있는 재고 행이 있으면 삭제를 거부합니다.
        """
        db_obj = await self.get_or_404(db, id)

        result = await db.execute(
            select(func.count()).select_from(Stock).where(
                Stock.warehouse_id == id, Stock.quantity > 0
            )
        )
        if result.scalar_one() > 0:
            raise HasActiveStockError(f"Cannot delete warehouse '{db_obj.code}' because it still holds stock.")

        # 수량이 0인 원장 행은 창고와 함께 정리합니다.
        for row in (await db.execute(select(Stock).where(Stock.warehouse_id == id))).scalars().all():
            await db.delete(row)
        await db.delete(db_obj)
        await db.commit()
        logger.info("Warehouse %s deleted", db_obj.code)
        return db_obj


warehouse = CRUDWarehouse()
