# app/domains/pur/schemas.py

"""
'pur' 도메인 (PostgreSQL 'pur' 스키마)의 Pydantic 스키마를 정의하는 모듈입니다.
"""

from typing import Dict, List, Optional
from datetime import datetime, date
from decimal import Decimal
from pydantic import BaseModel, Field
from sqlmodel import SQLModel

from .models import PurchaseOrderStatus


# =============================================================================
# 1. pur.purchase_order_items 스키마
# =============================================================================
class PurchaseOrderItemCreate(SQLModel):
    product_id: int
    ordered_qty: int = Field(..., description="발주 수량 (0 초과)")
    unit_price: Decimal = Field(..., description="단가 (0 이상)")
    notes: Optional[str] = None


class PurchaseOrderItemResponse(SQLModel):
    id: int
    product_id: int
    ordered_qty: int
    unit_price: Decimal
    total_price: Decimal
    received_qty: int
    notes: Optional[str] = None

    class Config:
        from_attributes = True


# =============================================================================
# 2. pur.purchase_orders 스키마
# =============================================================================
class PurchaseOrderCreate(SQLModel):
    supplier_id: int
    warehouse_id: int
    order_date: Optional[date] = None
    expected_delivery_date: Optional[date] = None
    notes: Optional[str] = None
    items: List[PurchaseOrderItemCreate] = Field(default_factory=list)


class PurchaseOrderUpdate(SQLModel):
    """DRAFT 상태에서만 허용됩니다. items 를 주면 품목 라인 전체를 교체합니다."""
    supplier_id: Optional[int] = None
    warehouse_id: Optional[int] = None
    expected_delivery_date: Optional[date] = None
    notes: Optional[str] = None
    items: Optional[List[PurchaseOrderItemCreate]] = None


class PurchaseOrderResponse(SQLModel):
    id: int
    order_number: str
    supplier_id: int
    warehouse_id: int
    status: PurchaseOrderStatus
    order_date: date
    expected_delivery_date: Optional[date] = None
    received_date: Optional[date] = None
    subtotal: Decimal
    tax_amount: Decimal
    grand_total: Decimal
    notes: Optional[str] = None
    created_by: Optional[int] = None
    approved_by: Optional[int] = None
    approved_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
    items: List[PurchaseOrderItemResponse] = []

    class Config:
        from_attributes = True


# =============================================================================
# 3. 워크플로우 요청 스키마
# =============================================================================
class ReceiveLine(SQLModel):
    """
    입고 라인. 배치는 기존 배치(batch_id 또는 batch_number)를 지정하거나,
    새 batch_number + expiry_date 로 새 배치를 만듭니다. 둘 다 없으면 배치 없이 입고합니다.
    """
    item_id: int
    received_qty: int = Field(..., description="입고 수량 (0 초과, 잔량 이하)")
    batch_id: Optional[int] = None
    batch_number: Optional[str] = Field(None, max_length=100)
    expiry_date: Optional[date] = None
    manufacturing_date: Optional[date] = None


class PurchaseOrderReceive(SQLModel):
    items: List[ReceiveLine] = Field(..., min_length=1)


class PurchaseOrderCancel(SQLModel):
    reason: Optional[str] = None


class PurchaseOrderStatistics(BaseModel):
    total_orders: int
    by_status: Dict[str, int]
    total_value: Decimal
    pending_receipt: int
