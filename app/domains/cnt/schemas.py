# app/domains/cnt/schemas.py

"""
'cnt' 도메인 (PostgreSQL 'cnt' 스키마)의 Pydantic 스키마를 정의하는 모듈입니다.
"""

from typing import Dict, List, Optional
from datetime import datetime, date
from decimal import Decimal
from pydantic import BaseModel, Field
from sqlmodel import SQLModel

from .models import StockCountStatus


# =============================================================================
# 1. cnt.stock_count_items 스키마
# =============================================================================
class StockCountItemResponse(SQLModel):
    id: int
    product_id: int
    batch_id: Optional[int] = None
    system_qty: int
    counted_qty: Optional[int] = None
    variance: Optional[int] = None
    notes: Optional[str] = None
    counted_by: Optional[int] = None
    counted_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# =============================================================================
# 2. cnt.stock_counts 스키마
# =============================================================================
class StockCountCreate(SQLModel):
    warehouse_id: int
    scheduled_date: date = Field(..., description="실사 예정일 (오늘 이후)")
    notes: Optional[str] = None


class StockCountUpdate(SQLModel):
    """PLANNED 상태에서만 허용됩니다."""
    scheduled_date: Optional[date] = None
    notes: Optional[str] = None


class StockCountResponse(SQLModel):
    id: int
    count_number: str
    warehouse_id: int
    scheduled_date: date
    status: StockCountStatus
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None
    notes: Optional[str] = None
    created_by: Optional[int] = None
    approved_by: Optional[int] = None
    created_at: datetime
    updated_at: datetime
    items: List[StockCountItemResponse] = []

    class Config:
        from_attributes = True


# =============================================================================
# 3. 워크플로우 요청 스키마
# =============================================================================
class CountedItem(SQLModel):
    product_id: int
    batch_id: Optional[int] = None
    counted_qty: int = Field(..., description="실사 수량 (0 이상)")
    notes: Optional[str] = None


class StockCountRecord(SQLModel):
    items: List[CountedItem] = Field(..., min_length=1)


class StockCountCancel(SQLModel):
    reason: Optional[str] = None


class VarianceLine(BaseModel):
    item_id: int
    product_id: int
    product_code: str
    product_name: str
    batch_id: Optional[int] = None
    system_qty: int
    counted_qty: Optional[int] = None
    variance: Optional[int] = None
    unit_price: Optional[Decimal] = None
    value_impact: Decimal


class VarianceReport(BaseModel):
    stock_count_id: int
    count_number: str
    warehouse_id: int
    status: StockCountStatus
    total_items: int
    counted_items: int
    items_with_variance: int
    total_variance: int
    positive_variance: int
    negative_variance: int
    value_impact: Decimal
    lines: List[VarianceLine]


class StockCountStatistics(BaseModel):
    total: int
    by_status: Dict[str, int]
