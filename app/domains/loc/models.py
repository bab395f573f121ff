# app/domains/loc/models.py

"""
'loc' 도메인 (PostgreSQL 'loc' 스키마)의 데이터베이스 ORM 모델을 정의하는 모듈입니다.

이 모듈은 'loc' 스키마에 속하는 창고(warehouses) 테이블에 대한 SQLModel 클래스를 포함합니다.
창고는 재고 원장(inv.stocks)의 보관 위치이며, 이동/실사 워크플로우의 기준 단위입니다.
"""

from typing import Optional
from datetime import datetime, UTC
from enum import Enum
from sqlmodel import Field, SQLModel, Column
from sqlalchemy.sql import func
from sqlalchemy.types import TIMESTAMP


class WarehouseType(str, Enum):
    MAIN = "MAIN"                      # 중앙 창고
    PHARMACY = "PHARMACY"              # 약국
    COLD_STORAGE = "COLD_STORAGE"      # 냉장/냉동 보관소
    QUARANTINE = "QUARANTINE"          # 격리 보관소 (회수/불량품)


# =============================================================================
# 1. loc.warehouses 테이블 모델
# =============================================================================
class WarehouseBase(SQLModel):
    """
    loc.warehouses 테이블의 기본 속성을 정의하는 SQLModel Base 클래스입니다.
    """
    id: Optional[int] = Field(default=None, primary_key=True, description="창고 고유 ID")
    code: str = Field(max_length=20, sa_column_kwargs={"unique": True}, description="창고 코드")
    name: str = Field(max_length=100, description="창고 명칭")
    warehouse_type: WarehouseType = Field(default=WarehouseType.MAIN, description="창고 유형")
    address: Optional[str] = Field(default=None, max_length=255, description="주소")
    contact_person: Optional[str] = Field(default=None, max_length=100, description="담당자")
    phone: Optional[str] = Field(default=None, max_length=50, description="연락처")
    is_active: bool = Field(default=True, description="사용 여부")

    created_at: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now()),
        description="레코드 생성 일시"
    )
    updated_at: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now()),
        description="레코드 마지막 업데이트 일시"
    )


class Warehouse(WarehouseBase, table=True):
    """
    PostgreSQL의 loc.warehouses 테이블에 매핑되는 SQLModel ORM 클래스입니다.
    """
    __tablename__ = "warehouses"
    __table_args__ = {'schema': 'loc'}
