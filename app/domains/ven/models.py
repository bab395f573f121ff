# app/domains/ven/models.py

"""
'ven' 도메인 (PostgreSQL 'ven' 스키마)의 데이터베이스 ORM 모델을 정의하는 모듈입니다.

이 모듈은 'ven' 스키마에 속하는 공급업체(suppliers) 테이블에 대한 SQLModel 클래스를 포함합니다.
공급업체는 발주서(pur.purchase_orders)와 배치(inv.batches)에서 참조됩니다.
"""

from typing import Optional
from datetime import datetime, UTC
from decimal import Decimal
from sqlmodel import Field, SQLModel, Column
from sqlalchemy import Numeric
from sqlalchemy.sql import func
from sqlalchemy.types import TIMESTAMP


# =============================================================================
# 1. ven.suppliers 테이블 모델
# =============================================================================
class SupplierBase(SQLModel):
    """
    ven.suppliers 테이블의 기본 속성을 정의하는 SQLModel Base 클래스입니다.
    """
    id: Optional[int] = Field(default=None, primary_key=True, description="공급업체 고유 ID")
    code: str = Field(max_length=20, sa_column_kwargs={"unique": True}, description="공급업체 코드")
    name: str = Field(max_length=200, description="공급업체 명칭")
    license_number: Optional[str] = Field(default=None, max_length=50, description="의약품 유통 허가 번호")
    contact_person: Optional[str] = Field(default=None, max_length=100, description="담당자")
    email: Optional[str] = Field(default=None, max_length=100, description="이메일")
    phone: Optional[str] = Field(default=None, max_length=50, description="연락처")
    address: Optional[str] = Field(default=None, max_length=255, description="주소")
    payment_terms: Optional[str] = Field(default=None, max_length=100, description="결제 조건 (예: NET 30)")
    credit_limit: Optional[Decimal] = Field(
        default=None, sa_column=Column(Numeric(18, 2), nullable=True), description="여신 한도 (없으면 무제한)"
    )
    is_active: bool = Field(default=True, description="거래 여부")

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


class Supplier(SupplierBase, table=True):
    """
    PostgreSQL의 ven.suppliers 테이블에 매핑되는 SQLModel ORM 클래스입니다.
    """
    __tablename__ = "suppliers"
    __table_args__ = {'schema': 'ven'}
