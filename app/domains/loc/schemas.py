# app/domains/loc/schemas.py

"""
'loc' 도메인 (PostgreSQL 'loc' 스키마)의 Pydantic 스키마를 정의하는 모듈입니다.

창고 정보에 대한 API 요청(생성, 업데이트) 및 응답(조회)에 사용됩니다.
"""

from typing import Optional
from datetime import datetime
from pydantic import Field
from sqlmodel import SQLModel

from .models import WarehouseType


# =============================================================================
# 1. loc.warehouses 테이블 스키마
# =============================================================================
class WarehouseBase(SQLModel):
    """
    창고의 기본 속성을 정의하는 Base 스키마입니다.
    """
    code: str = Field(..., min_length=1, max_length=20, description="창고 코드")
    name: str = Field(..., min_length=1, max_length=100, description="창고 명칭")
    warehouse_type: WarehouseType = Field(WarehouseType.MAIN, description="창고 유형")
    address: Optional[str] = Field(None, max_length=255, description="주소")
    contact_person: Optional[str] = Field(None, max_length=100, description="담당자")
    phone: Optional[str] = Field(None, max_length=50, description="연락처")
    is_active: bool = Field(True, description="사용 여부")


class WarehouseCreate(WarehouseBase):
    pass


class WarehouseUpdate(SQLModel):
    """
    기존 창고 정보를 업데이트하기 위한 스키마입니다. 모든 필드는 선택 사항입니다.
    """
    code: Optional[str] = Field(None, min_length=1, max_length=20)
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    warehouse_type: Optional[WarehouseType] = None
    address: Optional[str] = None
    contact_person: Optional[str] = None
    phone: Optional[str] = None
    is_active: Optional[bool] = None


class WarehouseResponse(WarehouseBase):
    id: int = Field(..., description="창고 고유 ID")
    created_at: datetime = Field(..., description="레코드 생성 일시")
    updated_at: datetime = Field(..., description="레코드 마지막 업데이트 일시")

    class Config:
        from_attributes = True
