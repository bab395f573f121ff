# app/domains/fin/schemas.py

"""
'fin' 도메인 (PostgreSQL 'fin' 스키마)의 Pydantic 스키마를 정의하는 모듈입니다.
"""

from typing import List, Optional
from datetime import datetime, date
from decimal import Decimal
from pydantic import BaseModel, Field
from sqlmodel import SQLModel

from .models import PaymentMethod, PaymentStatus


# =============================================================================
# 1. fin.payments 스키마
# =============================================================================
class PaymentCreate(SQLModel):
    purchase_order_id: int
    amount: Decimal = Field(..., description="지급액 (0 초과, 미지급 잔액 이하)")
    payment_method: PaymentMethod
    payment_date: Optional[date] = None
    reference_number: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = None


class PaymentResponse(SQLModel):
    id: int
    purchase_order_id: int
    supplier_id: int
    amount: Decimal
    payment_method: PaymentMethod
    payment_date: date
    reference_number: Optional[str] = None
    notes: Optional[str] = None
    created_by: Optional[int] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


# =============================================================================
# 2. 미지급금 / 잔액 스키마
# =============================================================================
class PaymentSummary(BaseModel):
    grand_total: Decimal
    total_paid: Decimal
    remaining: Decimal
    status: PaymentStatus


class PurchaseOrderPayments(BaseModel):
    purchase_order_id: int
    order_number: str
    payments: List[PaymentResponse]
    summary: PaymentSummary


class PayableLine(BaseModel):
    purchase_order_id: int
    order_number: str
    supplier_id: int
    supplier_name: str
    grand_total: Decimal
    total_paid: Decimal
    remaining: Decimal
    status: PaymentStatus
    due_date: Optional[date] = None
    days_overdue: int
    order_date: date


class PayableTotals(BaseModel):
    total_payable: Decimal
    total_overdue: Decimal
    count: int
    overdue_count: int


class AccountsPayable(BaseModel):
    lines: List[PayableLine]
    summary: PayableTotals


class SupplierBalance(BaseModel):
    supplier_id: int
    supplier_name: str
    total_purchases: Decimal
    total_paid: Decimal
    total_owed: Decimal
    credit_limit: Optional[Decimal] = None
    available_credit: Optional[Decimal] = None


class FinancialSummary(BaseModel):
    total_payable: Decimal
    overdue_payable: Decimal
    last_30_days_paid: Decimal
    last_30_days_count: int
    total_paid_to_date: Decimal
