# app/domains/trf/models.py

"""
'trf' 도메인 (PostgreSQL 'trf' 스키마)의 데이터베이스 ORM 모델을 정의하는 모듈입니다.

- 창고 간 이동 요청(transfer_orders): 출고 창고 -> 입고 창고 (두 창고는 달라야 함)
- 이동 품목(transfer_order_items): 요청/승인/입고 수량
"""

from typing import List, Optional
from datetime import datetime, date, UTC
from enum import Enum

from sqlmodel import Field, Relationship, SQLModel, Column
from sqlalchemy import CheckConstraint, ForeignKey, Integer
from sqlalchemy.sql import func
from sqlalchemy.types import TIMESTAMP


class TransferOrderStatus(str, Enum):
    DRAFT = "DRAFT"
    PENDING = "PENDING"            # 승인 대기
    APPROVED = "APPROVED"          # 출고 창고 재고 예약됨
    IN_TRANSIT = "IN_TRANSIT"      # 출고 완료, 운송 중
    RECEIVED = "RECEIVED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"


# =============================================================================
# 1. trf.transfer_orders 테이블 모델
# =============================================================================
class TransferOrder(SQLModel, table=True):
    __tablename__ = "transfer_orders"
    __table_args__ = (
        CheckConstraint(
            "source_warehouse_id <> destination_warehouse_id", name="ck_transfer_orders_distinct_warehouses"
        ),
        {'schema': 'trf'},
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    transfer_number: str = Field(max_length=30, sa_column_kwargs={"unique": True}, description="TO-YYYYMMDD-NNNN")
    source_warehouse_id: int = Field(foreign_key="loc.warehouses.id", index=True, description="출고 창고 ID")
    destination_warehouse_id: int = Field(foreign_key="loc.warehouses.id", index=True, description="입고 창고 ID")
    status: TransferOrderStatus = Field(default=TransferOrderStatus.DRAFT, index=True)
    requested_date: date = Field(default_factory=date.today, description="요청일")
    approved_date: Optional[datetime] = Field(default=None, sa_column=Column(TIMESTAMP(timezone=True)))
    shipped_date: Optional[datetime] = Field(default=None, sa_column=Column(TIMESTAMP(timezone=True)))
    received_date: Optional[datetime] = Field(default=None, sa_column=Column(TIMESTAMP(timezone=True)))
    notes: Optional[str] = Field(default=None)
    rejection_reason: Optional[str] = Field(default=None)
    requested_by: Optional[int] = Field(
        default=None,
        sa_column=Column(Integer, ForeignKey("usr.users.id", ondelete="SET NULL"), nullable=True),
        description="요청자 ID (FK)"
    )
    approved_by: Optional[int] = Field(
        default=None,
        sa_column=Column(Integer, ForeignKey("usr.users.id", ondelete="SET NULL"), nullable=True),
        description="승인자 ID (FK)"
    )
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

    items: List["TransferOrderItem"] = Relationship(
        back_populates="transfer_order",
        sa_relationship_kwargs={
            'cascade': 'all, delete-orphan',
            'lazy': 'selectin',
            'order_by': 'TransferOrderItem.id',
        }
    )


# =============================================================================
# 2. trf.transfer_order_items 테이블 모델
# =============================================================================
class TransferOrderItem(SQLModel, table=True):
    __tablename__ = "transfer_order_items"
    __table_args__ = {'schema': 'trf'}

    id: Optional[int] = Field(default=None, primary_key=True)
    transfer_order_id: Optional[int] = Field(
        default=None,
        sa_column=Column(Integer, ForeignKey("trf.transfer_orders.id", ondelete="CASCADE"), nullable=False, index=True),
    )
    product_id: int = Field(foreign_key="inv.products.id", index=True)
    batch_id: Optional[int] = Field(default=None, foreign_key="inv.batches.id")
    requested_qty: int = Field(description="요청 수량")
    approved_qty: Optional[int] = Field(default=None, description="승인(예약) 수량")
    received_qty: Optional[int] = Field(default=None, description="입고 수량")
    notes: Optional[str] = Field(default=None)

    transfer_order: Optional[TransferOrder] = Relationship(back_populates="items")
