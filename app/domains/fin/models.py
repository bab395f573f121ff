# app/domains/fin/models.py

"""
'fin' 도메인 (PostgreSQL 'fin' 스키마)의 데이터베이스 ORM 모델을 정의하는 모듈입니다.

- 지급(payments): 발주서 한 건에 대한 공급업체 지급 기록 (삭제는 소프트 삭제)
"""

from typing import Optional
from datetime import datetime, date, UTC
from decimal import Decimal
from enum import Enum

from sqlmodel import Field, SQLModel, Column
from sqlalchemy import CheckConstraint, ForeignKey, Integer, Numeric
from sqlalchemy.sql import func
from sqlalchemy.types import TIMESTAMP


class PaymentMethod(str, Enum):
    CASH = "CASH"
    BANK_TRANSFER = "BANK_TRANSFER"
    CHECK = "CHECK"
    CREDIT_CARD = "CREDIT_CARD"
    DEBIT_CARD = "DEBIT_CARD"
    CREDIT_NOTE = "CREDIT_NOTE"


class PaymentStatus(str, Enum):
    """발주서 단위 지급 상태 (저장하지 않고 계산합니다)"""
    PENDING = "PENDING"
    PARTIAL = "PARTIAL"
    PAID = "PAID"
    OVERDUE = "OVERDUE"


# =============================================================================
# 1. fin.payments 테이블 모델
# =============================================================================
class Payment(SQLModel, table=True):
    __tablename__ = "payments"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_payments_amount_positive"),
        {'schema': 'fin'},
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    purchase_order_id: int = Field(foreign_key="pur.purchase_orders.id", index=True, description="발주서 ID (FK)")
    supplier_id: int = Field(foreign_key="ven.suppliers.id", index=True, description="공급업체 ID (FK, 발주서에서 복사)")
    amount: Decimal = Field(sa_column=Column(Numeric(18, 2), nullable=False), description="지급액")
    payment_method: PaymentMethod = Field(index=True)
    payment_date: date = Field(default_factory=date.today, index=True, description="지급일")
    reference_number: Optional[str] = Field(default=None, max_length=100, description="이체/수표 번호 등")
    notes: Optional[str] = Field(default=None)
    created_by: Optional[int] = Field(
        default=None,
        sa_column=Column(Integer, ForeignKey("usr.users.id", ondelete="SET NULL"), nullable=True),
        description="등록자 ID (FK)"
    )
    deleted_by: Optional[int] = Field(
        default=None,
        sa_column=Column(Integer, ForeignKey("usr.users.id", ondelete="SET NULL"), nullable=True),
    )
    deleted_at: Optional[datetime] = Field(default=None, sa_column=Column(TIMESTAMP(timezone=True)))
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
