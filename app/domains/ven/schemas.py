# app/domains/ven/schemas.py

"""
'ven' 도메인 (PostgreSQL 'ven' 스키마)의 Pydantic 스키마를 정의하는 모듈입니다.
"""

from typing import Optional
from datetime import datetime
from decimal import Decimal
from pydantic import EmailStr, Field
from sqlmodel import SQLModel


# =============================================================================
# 1. ven.suppliers 테이블 스키마
# =============================================================================
class SupplierBase(SQLModel):
    code: str = Field(..., min_length=1, max_length=20, description="공급업체 코드")
    name: str = Field(..., min_length=1, max_length=200, description="공급업체 명칭")
    license_number: Optional[str] = Field(None, max_length=50, description="허가 번호")
    contact_person: Optional[str] = Field(None, max_length=100)
    email: Optional[EmailStr] = Field(None, description="이메일")
    phone: Optional[str] = Field(None, max_length=50)
    address: Optional[str] = Field(None, max_length=255)
    payment_terms: Optional[str] = Field(None, max_length=100)
    credit_limit: Optional[Decimal] = Field(None, ge=0, description="여신 한도")
    is_active: bool = True


class SupplierCreate(SupplierBase):
    pass


class SupplierUpdate(SQLModel):
    code: Optional[str] = Field(None, min_length=1, max_length=20)
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    license_number: Optional[str] = None
    contact_person: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    payment_terms: Optional[str] = None
    credit_limit: Optional[Decimal] = Field(None, ge=0)
    is_active: Optional[bool] = None


class SupplierResponse(SupplierBase):
    id: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
