# app/domains/inv/models.py

"""
'inv' 도메인 (PostgreSQL 'inv' 스키마)의 데이터베이스 ORM 모델을 정의하는 모듈입니다.

- 품목 분류(product_categories), 품목(products)
- 배치(batches): 제조/유효기간, 회수 상태를 가진 로트 단위
- 재고 원장(stocks): (품목, 창고, 배치) 키별 수량/예약 수량
- 재고 이동 이력(stock_movements): 원장을 변경하는 유일한 기록 (추가 전용)
"""

from typing import Optional
from datetime import datetime, date, UTC
from decimal import Decimal
from enum import Enum

from sqlmodel import Field, SQLModel, Column
from sqlalchemy import CheckConstraint, ForeignKey, Integer, Numeric, UniqueConstraint
from sqlalchemy.sql import func
from sqlalchemy.types import TIMESTAMP


class ProductStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    DISCONTINUED = "DISCONTINUED"


class MovementType(str, Enum):
    RECEIPT = "RECEIPT"              # 입고 (+)
    ISSUE = "ISSUE"                  # 출고 (-)
    TRANSFER_IN = "TRANSFER_IN"      # 이동 입고 (+)
    TRANSFER_OUT = "TRANSFER_OUT"    # 이동 출고 (-)
    RETURN = "RETURN"                # 반품 입고 (+)
    EXPIRED = "EXPIRED"              # 유효기간 만료 폐기 (-)
    DAMAGED = "DAMAGED"              # 파손 (-)
    LOST = "LOST"                    # 분실 (-)
    ADJUSTMENT = "ADJUSTMENT"        # 조정 (+/-)
    STOCK_COUNT = "STOCK_COUNT"      # 재고 실사 차이 (+/-)
    FOUND = "FOUND"                  # 발견 (+)


# =============================================================================
# 1. inv.product_categories 테이블 모델
# =============================================================================
class ProductCategoryBase(SQLModel):
    code: str = Field(max_length=50, sa_column_kwargs={"unique": True}, description="분류 코드")
    name: str = Field(max_length=100, description="분류 명칭")
    description: Optional[str] = Field(default=None)


class ProductCategory(ProductCategoryBase, table=True):
    __tablename__ = "product_categories"
    __table_args__ = {'schema': 'inv'}

    id: Optional[int] = Field(default=None, primary_key=True)
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


# =============================================================================
# 2. inv.products 테이블 모델
# =============================================================================
class ProductBase(SQLModel):
    code: str = Field(max_length=50, sa_column_kwargs={"unique": True}, description="품목 코드")
    barcode: Optional[str] = Field(default=None, max_length=100, sa_column_kwargs={"unique": True}, description="바코드")
    name: str = Field(max_length=200, description="품목 명칭")
    generic_name: Optional[str] = Field(default=None, max_length=200, description="성분명(일반명)")
    category_id: Optional[int] = Field(
        default=None,
        sa_column=Column(Integer, ForeignKey("inv.product_categories.id", ondelete="SET NULL"), nullable=True),
        description="품목 분류 ID (FK)"
    )
    unit_of_measure: str = Field(default="EA", max_length=20, description="단위 (EA, BOX, VIAL 등)")
    min_stock_level: int = Field(default=0, description="최소 재고 수준")
    max_stock_level: Optional[int] = Field(default=None, description="최대 재고 수준")
    reorder_point: Optional[int] = Field(default=None, description="재주문 시점 수량")
    reorder_quantity: Optional[int] = Field(default=None, description="재주문 수량")
    unit_price: Optional[Decimal] = Field(default=None, sa_column=Column(Numeric(18, 2)), description="기준 단가")
    requires_prescription: bool = Field(default=False, description="전문의약품 여부")
    is_dangerous: bool = Field(default=False, description="위험물 여부")
    requires_cold_chain: bool = Field(default=False, description="콜드체인 필요 여부")
    status: ProductStatus = Field(default=ProductStatus.ACTIVE, description="품목 상태")
    description: Optional[str] = Field(default=None)


class Product(ProductBase, table=True):
    __tablename__ = "products"
    __table_args__ = {'schema': 'inv'}

    id: Optional[int] = Field(default=None, primary_key=True)
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


# =============================================================================
# 3. inv.batches 테이블 모델
# =============================================================================
class BatchBase(SQLModel):
    batch_number: str = Field(max_length=100, sa_column_kwargs={"unique": True}, description="배치(로트) 번호")
    product_id: int = Field(foreign_key="inv.products.id", description="품목 ID (FK)")
    supplier_id: Optional[int] = Field(
        default=None,
        sa_column=Column(Integer, ForeignKey("ven.suppliers.id", ondelete="SET NULL"), nullable=True),
        description="공급업체 ID (FK)"
    )
    manufacturing_date: Optional[date] = Field(default=None, description="제조일")
    expiry_date: date = Field(description="유효기간 만료일")
    received_date: Optional[date] = Field(default=None, description="입고일")
    initial_quantity: int = Field(description="최초 수량")
    current_quantity: int = Field(default=0, description="전 창고 보유 수량 합계 (원장과 동기화)")
    is_expired: bool = Field(default=False, description="만료 처리 여부")
    is_recalled: bool = Field(default=False, description="회수 여부")
    recall_reason: Optional[str] = Field(default=None, description="회수 사유")
    recalled_at: Optional[datetime] = Field(default=None, sa_column=Column(TIMESTAMP(timezone=True)))
    notes: Optional[str] = Field(default=None)


class Batch(BatchBase, table=True):
    __tablename__ = "batches"
    __table_args__ = (
        CheckConstraint("current_quantity >= 0", name="ck_batches_current_non_negative"),
        CheckConstraint("current_quantity <= initial_quantity", name="ck_batches_current_le_initial"),
        CheckConstraint(
            "manufacturing_date IS NULL OR manufacturing_date <= expiry_date",
            name="ck_batches_date_order",
        ),
        {'schema': 'inv'},
    )

    id: Optional[int] = Field(default=None, primary_key=True)
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


# =============================================================================
# 4. inv.stocks 테이블 모델 (재고 원장)
# =============================================================================
class Stock(SQLModel, table=True):
    """
    (품목, 창고, 배치) 키별 재고 수량입니다.
    available_qty = quantity - reserved_qty, 0 <= reserved_qty <= quantity 를 항상 만족합니다.
    이 테이블은 inv.ledger 모듈을 통해서만 변경됩니다.
    """
    __tablename__ = "stocks"
    __table_args__ = (
        UniqueConstraint("product_id", "warehouse_id", "batch_id", name="uq_stocks_product_warehouse_batch"),
        CheckConstraint("quantity >= 0", name="ck_stocks_quantity_non_negative"),
        CheckConstraint("reserved_qty >= 0", name="ck_stocks_reserved_non_negative"),
        CheckConstraint("reserved_qty <= quantity", name="ck_stocks_reserved_le_quantity"),
        CheckConstraint("available_qty = quantity - reserved_qty", name="ck_stocks_available"),
        {'schema': 'inv'},
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    product_id: int = Field(foreign_key="inv.products.id", index=True)
    warehouse_id: int = Field(foreign_key="loc.warehouses.id", index=True)
    batch_id: Optional[int] = Field(default=None, foreign_key="inv.batches.id", index=True)
    quantity: int = Field(default=0, description="보유 수량")
    reserved_qty: int = Field(default=0, description="예약 수량")
    available_qty: int = Field(default=0, description="가용 수량")
    last_movement_date: Optional[datetime] = Field(default=None, sa_column=Column(TIMESTAMP(timezone=True)))
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


# =============================================================================
# 5. inv.stock_movements 테이블 모델 (재고 이동 이력)
# =============================================================================
class StockMovement(SQLModel, table=True):
    """
    재고 이동 이력입니다. 추가만 가능하며 수정/삭제하지 않습니다.
    quantity는 부호를 가진 값입니다 (입고 +, 출고 -).
    """
    __tablename__ = "stock_movements"
    __table_args__ = {'schema': 'inv'}

    id: Optional[int] = Field(default=None, primary_key=True)
    movement_number: str = Field(max_length=30, sa_column_kwargs={"unique": True}, description="SM-YYYYMMDD-NNNN")
    movement_type: MovementType = Field(description="이동 유형")
    product_id: int = Field(foreign_key="inv.products.id", index=True)
    batch_id: Optional[int] = Field(default=None, foreign_key="inv.batches.id", index=True)
    warehouse_id: int = Field(foreign_key="loc.warehouses.id", index=True)
    quantity: int = Field(description="부호 있는 변경 수량")
    unit_price: Optional[Decimal] = Field(default=None, sa_column=Column(Numeric(18, 2)))
    total_value: Optional[Decimal] = Field(default=None, sa_column=Column(Numeric(18, 2)))
    reference_type: Optional[str] = Field(default=None, max_length=50, description="참조 문서 유형 (PURCHASE_ORDER 등)")
    reference_id: Optional[int] = Field(default=None, description="참조 문서 ID")
    reason: Optional[str] = Field(default=None, max_length=255)
    notes: Optional[str] = Field(default=None)
    performed_by: Optional[int] = Field(
        default=None,
        sa_column=Column(Integer, ForeignKey("usr.users.id", ondelete="SET NULL"), nullable=True),
        description="처리자 ID (FK)"
    )
    movement_date: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now(), index=True),
    )


# =============================================================================
# 6. 파생 상태 계산
# =============================================================================
class ExpiryStatus(str, Enum):
    GOOD = "GOOD"
    WARNING = "WARNING"      # 90일 이내
    CRITICAL = "CRITICAL"    # 30일 이내
    EXPIRED = "EXPIRED"


class StockStatus(str, Enum):
    OK = "OK"
    LOW = "LOW"                    # 최소 재고 이하
    CRITICAL = "CRITICAL"          # 최소 재고의 50% 이하
    OUT_OF_STOCK = "OUT_OF_STOCK"


def days_until_expiry(expiry_date: date, today: Optional[date] = None) -> int:
    return (expiry_date - (today or date.today())).days


def batch_expiry_status(
    expiry_date: date,
    is_expired: bool = False,
    today: Optional[date] = None,
    warning_days: int = 90,
    critical_days: int = 30,
) -> ExpiryStatus:
    days = days_until_expiry(expiry_date, today)
    if is_expired or days < 0:
        return ExpiryStatus.EXPIRED
    if days <= critical_days:
        return ExpiryStatus.CRITICAL
    if days <= warning_days:
        return ExpiryStatus.WARNING
    return ExpiryStatus.GOOD


def stock_status(quantity: int, min_stock_level: int) -> StockStatus:
    if quantity <= 0:
        return StockStatus.OUT_OF_STOCK
    if quantity <= min_stock_level * 0.5:
        return StockStatus.CRITICAL
    if quantity <= min_stock_level:
        return StockStatus.LOW
    return StockStatus.OK
