# app/domains/trf/schemas.py

"""
'trf' 도메인 (PostgreSQL 'trf' 스키마)의 Pydantic 스키마를 정의하는 모듈입니다.
"""

from typing import Dict, List, Optional
from datetime import datetime, date
from pydantic import BaseModel, Field
from sqlmodel import SQLModel

from .models import TransferOrderStatus


# =============================================================================
# 1. trf.transfer_order_items 스키마
# =============================================================================
class TransferOrderItemCreate(SQLModel):
    product_id: int
    batch_id: Optional[int] = None
    requested_qty: int = Field(..., description="요청 수량 (0 초과)")
    notes: Optional[str] = None


class TransferOrderItemResponse(SQLModel):
    id: int
    product_id: int
    batch_id: Optional[int] = None
    requested_qty: int
    approved_qty: Optional[int] = None
    received_qty: Optional[int] = None
    notes: Optional[str] = None

    class Config:
        from_attributes = True


# =============================================================================
# 2. trf.transfer_orders 스키마
# =============================================================================
class TransferOrderCreate(SQLModel):
    source_warehouse_id: int
    destination_warehouse_id: int
    requested_date: Optional[date] = None
    notes: Optional[str] = None
    items: List[TransferOrderItemCreate] = Field(default_factory=list)


class TransferOrderUpdate(SQLModel):
    """DRAFT 상태에서만 허용됩니다. items 를 주면 품목 라인 전체를 교체합니다."""
    source_warehouse_id: Optional[int] = None
    destination_warehouse_id: Optional[int] = None
    notes: Optional[str] = None
    items: Optional[List[TransferOrderItemCreate]] = None


class TransferOrderResponse(SQLModel):
    id: int
    transfer_number: str
    source_warehouse_id: int
    destination_warehouse_id: int
    status: TransferOrderStatus
    requested_date: date
    approved_date: Optional[datetime] = None
    shipped_date: Optional[datetime] = None
    received_date: Optional[datetime] = None
    notes: Optional[str] = None
    rejection_reason: Optional[str] = None
    requested_by: Optional[int] = None
    approved_by: Optional[int] = None
    created_at: datetime
    updated_at: datetime
    items: List[TransferOrderItemResponse] = []

    class Config:
        from_attributes = True


# =============================================================================
# 3. 워크플로우 요청 스키마
# =============================================================================
class TransferOrderReject(SQLModel):
    reason: str = Field(..., description="반려 사유 (필수)")


class TransferOrderReceive(SQLModel):
    """품목 라인 ID -> 입고 수량. 생략된 라인은 승인 수량 전량을 입고합니다."""
    received_quantities: Optional[Dict[int, int]] = None


class TransferOrderCancel(SQLModel):
    reason: Optional[str] = None


class TransferOrderStatistics(BaseModel):
    total_orders: int
    by_status: Dict[str, int]
    in_transit: int
    pending_approval: int
