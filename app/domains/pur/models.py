# app/domains/pur/models.py

"""
'pur' 도메인 (PostgreSQL 'pur' 스키마)의 데이터베이스 ORM 모델을 정의하는 모듈입니다.

- 발주서(purchase_orders): 공급업체에 대한 구매 요청 문서 (상태 전이 워크플로우)
- 발주 품목(purchase_order_items): 발주서 한 건에 속하는 품목 라인
"""

from typing import List, Optional
from datetime import datetime, date, UTC
from decimal import Decimal
from enum import Enum

from sqlmodel import Field, Relationship, SQLModel, Column
from sqlalchemy import ForeignKey, Integer, Numeric
from sqlalchemy.sql import func
from sqlalchemy.types import TIMESTAMP


class PurchaseOrderStatus(str, Enum):
    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"
    APPROVED = "APPROVED"
    ORDERED = "ORDERED"
    PARTIALLY_RECEIVED = "PARTIALLY_RECEIVED"
    RECEIVED = "RECEIVED"
    CANCELLED = "CANCELLED"


# =============================================================================
# 1. pur.purchase_orders 테이블 모델
# =============================================================================
class PurchaseOrder(SQLModel, table=True):
    __tablename__ = "purchase_orders"
    __table_args__ = {'schema': 'pur'}

    id: Optional[int] = Field(default=None, primary_key=True)
    order_number: str = Field(max_length=30, sa_column_kwargs={"unique": True}, description="PO-YYYYMMDD-NNNN")
    supplier_id: int = Field(foreign_key="ven.suppliers.id", index=True, description="공급업체 ID (FK)")
    warehouse_id: int = Field(foreign_key="loc.warehouses.id", index=True, description="입고 창고 ID (FK)")
    status: PurchaseOrderStatus = Field(default=PurchaseOrderStatus.DRAFT, index=True)
    order_date: date = Field(default_factory=date.today, description="발주일")
    expected_delivery_date: Optional[date] = Field(default=None, description="납품 예정일")
    received_date: Optional[date] = Field(default=None, description="최종 입고일")
    subtotal: Decimal = Field(default=Decimal("0"), sa_column=Column(Numeric(18, 2), nullable=False, server_default="0"))
    tax_amount: Decimal = Field(default=Decimal("0"), sa_column=Column(Numeric(18, 2), nullable=False, server_default="0"))
    grand_total: Decimal = Field(default=Decimal("0"), sa_column=Column(Numeric(18, 2), nullable=False, server_default="0"))
    notes: Optional[str] = Field(default=None)
    created_by: Optional[int] = Field(
        default=None,
        sa_column=Column(Integer, ForeignKey("usr.users.id", ondelete="SET NULL"), nullable=True),
        description="작성자 ID (FK)"
    )
    approved_by: Optional[int] = Field(
        default=None,
        sa_column=Column(Integer, ForeignKey("usr.users.id", ondelete="SET NULL"), nullable=True),
        description="승인자 ID (FK)"
    )
    approved_at: Optional[datetime] = Field(default=None, sa_column=Column(TIMESTAMP(timezone=True)))
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

    # 일대다 관계 (발주서가 삭제되면 품목 라인도 삭제)
    items: List["PurchaseOrderItem"] = Relationship(
        back_populates="purchase_order",
        sa_relationship_kwargs={
            'cascade': 'all, delete-orphan',
            'lazy': 'selectin',
            'order_by': 'PurchaseOrderItem.id',
        }
    )


# =============================================================================
# 2. pur.purchase_order_items 테이블 모델
# =============================================================================
class PurchaseOrderItem(SQLModel, table=True):
    __tablename__ = "purchase_order_items"
    __table_args__ = {'schema': 'pur'}

    id: Optional[int] = Field(default=None, primary_key=True)
    purchase_order_id: Optional[int] = Field(
        default=None,
        sa_column=Column(Integer, ForeignKey("pur.purchase_orders.id", ondelete="CASCADE"), nullable=False, index=True),
    )
    product_id: int = Field(foreign_key="inv.products.id", index=True)
    ordered_qty: int = Field(description="발주 수량")
    unit_price: Decimal = Field(sa_column=Column(Numeric(18, 2), nullable=False))
    total_price: Decimal = Field(sa_column=Column(Numeric(18, 2), nullable=False))
    received_qty: int = Field(default=0, description="누적 입고 수량")
    notes: Optional[str] = Field(default=None)

    purchase_order: Optional[PurchaseOrder] = Relationship(back_populates="items")
