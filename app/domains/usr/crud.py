# app/domains/usr/crud.py

"""
'usr' 도메인의 CRUD 작업을 담당하는 모듈입니다.
"""

from datetime import datetime, UTC
from typing import List, Optional
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from fastapi import HTTPException, status

from app.core.crud_base import CRUDBase
from app.core.exceptions import DuplicateError, NotFoundError, ValidationError
from app.core.security import get_password_hash, verify_password
from app.domains.loc import models as loc_models
from . import models as usr_models
from . import schemas as usr_schemas


# =============================================================================
# 1. usr.users 테이블 CRUD
# =============================================================================
class CRUDUser(CRUDBase[usr_models.User, usr_schemas.UserCreate, usr_schemas.UserUpdate]):
    def __init__(self):
        super().__init__(model=usr_models.User)

    async def get_by_username(self, db: AsyncSession, *, username: str) -> Optional[usr_models.User]:
        """사용자명으로 사용자를 조회합니다."""
        return await self.get_by_attribute(db, attribute="username", value=username)

    async def get_by_email(self, db: AsyncSession, *, email: str) -> Optional[usr_models.User]:
        """이메일로 사용자를 조회합니다."""
        return await self.get_by_attribute(db, attribute="email", value=email)

    async def get_active_by_warehouse(self, db: AsyncSession, *, warehouse_id: int) -> List[usr_models.User]:
        """창고에 소속된 활성 사용자 목록 (알림 수신 대상)"""
        statement = select(self.model).where(
            self.model.warehouse_id == warehouse_id,
            self.model.is_active.is_(True),
        )
        result = await db.execute(statement)
        return result.scalars().all()

    async def _validate_warehouse(self, db: AsyncSession, warehouse_id: Optional[int]) -> None:
        if warehouse_id is not None and await db.get(loc_models.Warehouse, warehouse_id) is None:
            raise NotFoundError(f"Warehouse {warehouse_id} not found")

    async def create(self, db: AsyncSession, *, obj_in: usr_schemas.UserCreate) -> usr_models.User:
        """새로운 사용자를 생성하며 비밀번호를 해싱하고 중복을 검사합니다."""
        if await self.get_by_username(db, username=obj_in.username):
            raise DuplicateError("Username already registered")
        if obj_in.email and await self.get_by_email(db, email=obj_in.email):
            raise DuplicateError("Email already registered")
        await self._validate_warehouse(db, obj_in.warehouse_id)

        hashed_password = get_password_hash(obj_in.password)
        user_data = obj_in.model_dump(exclude={"password"})
        db_user = usr_models.User(**user_data, password_hash=hashed_password)

        db.add(db_user)
        await db.commit()
        await db.refresh(db_user)
        return db_user

    async def authenticate(self, db: AsyncSession, *, username: str, password: str) -> Optional[usr_models.User]:
        """사용자명과 비밀번호를 사용하여 사용자를 인증합니다."""
        user = await self.get_by_username(db, username=username)
        if not user:
            return None
        if not verify_password(password, user.password_hash):
            return None
        return user

    async def touch_last_login(self, db: AsyncSession, *, user: usr_models.User) -> None:
        user.last_login_at = datetime.now(UTC)
        db.add(user)
        await db.commit()

    async def change_password(self, db: AsyncSession, *, user: usr_models.User, new_password: str) -> usr_models.User:
        """비밀번호를 해싱하여 교체합니다."""
        user.password_hash = get_password_hash(new_password)
        db.add(user)
        await db.commit()
        await db.refresh(user)
        return user

    async def remove(self, db: AsyncSession, *, id: int) -> usr_models.User:
        """
        사용자를 삭제합니다. 최고 관리자 계정은 삭제를 허용하지 않습니다.
        """
        user_to_delete = await self.get_or_404(db, id)
        if user_to_delete.role == usr_models.UserRole.SUPERUSER:
            raise ValidationError("Cannot delete a superuser account directly.")
        return await super().delete(db, id=id)

    async def update(self, db: AsyncSession, *, db_obj: usr_models.User, obj_in: usr_schemas.UserUpdate) -> usr_models.User:
        """
        사용자 정보를 업데이트합니다. 최고 관리자 계정의 역할 변경 및 비활성화를 방지합니다.
        """
        if db_obj.role == usr_models.UserRole.SUPERUSER:
            if obj_in.role is not None and obj_in.role != usr_models.UserRole.SUPERUSER:
                raise ValidationError("Cannot change the role of a superuser account.")
            if obj_in.is_active is False:
                raise ValidationError("Cannot deactivate a superuser account.")
        elif obj_in.role == usr_models.UserRole.SUPERUSER:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Only a superuser can promote to superuser."
            )

        if obj_in.email is not None and obj_in.email != db_obj.email:
            existing = await self.get_by_email(db, email=obj_in.email)
            if existing and existing.id != db_obj.id:
                raise DuplicateError("Email already registered")
        await self._validate_warehouse(db, obj_in.warehouse_id)

        return await super().update(db, db_obj=db_obj, obj_in=obj_in)


user = CRUDUser()
