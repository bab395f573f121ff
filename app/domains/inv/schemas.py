# app/domains/inv/schemas.py

"""
'inv' 도메인 (PostgreSQL 'inv' 스키마)의 Pydantic 스키마를 정의하는 모듈입니다.
"""

from typing import Optional, Dict, List
from datetime import datetime, date
from decimal import Decimal
from pydantic import BaseModel, Field, computed_field
from sqlmodel import SQLModel

from .models import (
    ExpiryStatus, MovementType, ProductStatus, StockStatus,
    batch_expiry_status, days_until_expiry,
)


# =============================================================================
# 1. inv.product_categories 테이블 스키마
# =============================================================================
class ProductCategoryBase(SQLModel):
    code: str = Field(..., min_length=1, max_length=50, description="분류 코드")
    name: str = Field(..., min_length=1, max_length=100, description="분류 명칭")
    description: Optional[str] = Field(None, description="설명")


class ProductCategoryCreate(ProductCategoryBase):
    pass


class ProductCategoryUpdate(SQLModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None


class ProductCategoryResponse(ProductCategoryBase):
    id: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


# =============================================================================
# 2. inv.products 테이블 스키마
# =============================================================================
class ProductBase(SQLModel):
    code: str = Field(..., min_length=1, max_length=50, description="품목 코드")
    barcode: Optional[str] = Field(None, max_length=100, description="바코드")
    name: str = Field(..., min_length=1, max_length=200, description="품목 명칭")
    generic_name: Optional[str] = Field(None, max_length=200, description="성분명")
    category_id: Optional[int] = Field(None, description="품목 분류 ID")
    unit_of_measure: str = Field("EA", max_length=20, description="단위")
    min_stock_level: int = Field(0, ge=0, description="최소 재고 수준")
    max_stock_level: Optional[int] = Field(None, ge=0, description="최대 재고 수준")
    reorder_point: Optional[int] = Field(None, ge=0)
    reorder_quantity: Optional[int] = Field(None, ge=0)
    unit_price: Optional[Decimal] = Field(None, ge=0, description="기준 단가")
    requires_prescription: bool = False
    is_dangerous: bool = False
    requires_cold_chain: bool = False
    description: Optional[str] = None


class ProductCreate(ProductBase):
    pass


class ProductUpdate(SQLModel):
    barcode: Optional[str] = Field(None, max_length=100)
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    generic_name: Optional[str] = None
    category_id: Optional[int] = None
    unit_of_measure: Optional[str] = Field(None, max_length=20)
    min_stock_level: Optional[int] = Field(None, ge=0)
    max_stock_level: Optional[int] = Field(None, ge=0)
    reorder_point: Optional[int] = Field(None, ge=0)
    reorder_quantity: Optional[int] = Field(None, ge=0)
    unit_price: Optional[Decimal] = Field(None, ge=0)
    requires_prescription: Optional[bool] = None
    is_dangerous: Optional[bool] = None
    requires_cold_chain: Optional[bool] = None
    status: Optional[ProductStatus] = None
    description: Optional[str] = None


class ProductResponse(ProductBase):
    id: int
    status: ProductStatus
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


# =============================================================================
# 3. inv.batches 테이블 스키마
# =============================================================================
class BatchCreate(SQLModel):
    batch_number: str = Field(..., min_length=1, max_length=100, description="배치 번호")
    product_id: int
    supplier_id: Optional[int] = None
    manufacturing_date: Optional[date] = None
    expiry_date: date
    received_date: Optional[date] = None
    initial_quantity: int = Field(..., description="최초 수량 (0 초과)")
    notes: Optional[str] = None


class BatchUpdate(SQLModel):
    supplier_id: Optional[int] = None
    manufacturing_date: Optional[date] = None
    expiry_date: Optional[date] = None
    received_date: Optional[date] = None
    notes: Optional[str] = None


class BatchRecall(SQLModel):
    reason: str = Field(..., description="회수 사유")


class BatchResponse(BaseModel):
    id: int
    batch_number: str
    product_id: int
    supplier_id: Optional[int] = None
    manufacturing_date: Optional[date] = None
    expiry_date: date
    received_date: Optional[date] = None
    initial_quantity: int
    current_quantity: int
    is_expired: bool
    is_recalled: bool
    recall_reason: Optional[str] = None
    recalled_at: Optional[datetime] = None
    notes: Optional[str] = None
    deleted_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    @computed_field
    @property
    def days_until_expiry(self) -> int:
        return days_until_expiry(self.expiry_date)

    @computed_field
    @property
    def expiry_status(self) -> ExpiryStatus:
        return batch_expiry_status(self.expiry_date, self.is_expired)

    class Config:
        from_attributes = True


class BatchStatistics(BaseModel):
    total: int
    expired: int
    recalled: int
    expiring_soon: int
    active: int
    total_quantity: int


class MarkExpiredResult(BaseModel):
    expired_count: int


# =============================================================================
# 4. inv.stocks (재고 원장) 스키마
# =============================================================================
class StockResponse(SQLModel):
    id: int
    product_id: int
    warehouse_id: int
    batch_id: Optional[int] = None
    quantity: int
    reserved_qty: int
    available_qty: int
    last_movement_date: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class StockReservation(SQLModel):
    product_id: int
    warehouse_id: int
    batch_id: Optional[int] = None
    quantity: int = Field(..., gt=0, description="예약/해제 수량")


class StockAdjustment(SQLModel):
    product_id: int
    warehouse_id: int
    batch_id: Optional[int] = None
    quantity_change: int = Field(..., description="조정 수량 (+/-, 0 불가)")
    reason: str = Field(..., description="조정 사유 (필수)")
    notes: Optional[str] = None


class ProductStockSummary(BaseModel):
    product_id: int
    product_code: str
    product_name: str
    total_quantity: int
    reserved_quantity: int
    available_quantity: int
    warehouse_count: int
    batch_count: int
    min_stock_level: int
    stock_status: StockStatus
    by_warehouse: List[Dict[str, int]] = []


class WarehouseStockSummary(BaseModel):
    warehouse_id: int
    warehouse_code: str
    warehouse_name: str
    product_count: int
    total_quantity: int
    reserved_quantity: int
    available_quantity: int
    total_value: Decimal


class StockAlertItem(BaseModel):
    product_id: int
    product_code: str
    product_name: str
    warehouse_id: Optional[int] = None
    quantity: int
    min_stock_level: int
    stock_status: StockStatus


class StockStatistics(BaseModel):
    total_quantity: int
    total_reserved: int
    total_available: int
    low_stock_items: int
    out_of_stock_items: int
    items_with_reservations: int
    warehouses_with_stock: int


# =============================================================================
# 5. inv.stock_movements (재고 이동 이력) 스키마
# =============================================================================
class StockMovementCreate(SQLModel):
    movement_type: MovementType
    product_id: int
    warehouse_id: int
    batch_id: Optional[int] = None
    quantity: int = Field(..., description="수량 (ADJUSTMENT 외에는 양수)")
    unit_price: Optional[Decimal] = Field(None, ge=0)
    reference_type: Optional[str] = Field(None, max_length=50)
    reference_id: Optional[int] = None
    reason: Optional[str] = Field(None, max_length=255)
    notes: Optional[str] = None


class StockMovementResponse(SQLModel):
    id: int
    movement_number: str
    movement_type: MovementType
    product_id: int
    batch_id: Optional[int] = None
    warehouse_id: int
    quantity: int
    unit_price: Optional[Decimal] = None
    total_value: Optional[Decimal] = None
    reference_type: Optional[str] = None
    reference_id: Optional[int] = None
    reason: Optional[str] = None
    notes: Optional[str] = None
    performed_by: Optional[int] = None
    movement_date: datetime

    class Config:
        from_attributes = True


class StockAdjustmentResult(BaseModel):
    stock: StockResponse
    movement: StockMovementResponse


class MovementTypeStatistics(BaseModel):
    movement_type: MovementType
    count: int
    total_quantity: int
    total_value: Decimal


class MovementStatistics(BaseModel):
    total_movements: int
    by_type: List[MovementTypeStatistics]

