# app/domains/cnt/models.py

"""
'cnt' 도메인 (PostgreSQL 'cnt' 스키마)의 데이터베이스 ORM 모델을 정의하는 모듈입니다.

- 재고 실사(stock_counts): 창고 한 곳의 실물 재고 확인 문서
- 실사 품목(stock_count_items): 시작 시점 원장 수량(system_qty) 스냅샷과 실사 수량
"""

from typing import List, Optional
from datetime import datetime, date, UTC
from enum import Enum

from sqlmodel import Field, Relationship, SQLModel, Column
from sqlalchemy import ForeignKey, Integer
from sqlalchemy.sql import func
from sqlalchemy.types import TIMESTAMP


class StockCountStatus(str, Enum):
    PLANNED = "PLANNED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    APPROVED = "APPROVED"
    CANCELLED = "CANCELLED"


# =============================================================================
# 1. cnt.stock_counts 테이블 모델
# =============================================================================
class StockCount(SQLModel, table=True):
    __tablename__ = "stock_counts"
    __table_args__ = {'schema': 'cnt'}

    id: Optional[int] = Field(default=None, primary_key=True)
    count_number: str = Field(max_length=30, sa_column_kwargs={"unique": True}, description="SC-YYYYMMDD-NNNN")
    warehouse_id: int = Field(foreign_key="loc.warehouses.id", index=True, description="실사 창고 ID")
    scheduled_date: date = Field(description="실사 예정일")
    status: StockCountStatus = Field(default=StockCountStatus.PLANNED, index=True)
    started_at: Optional[datetime] = Field(default=None, sa_column=Column(TIMESTAMP(timezone=True)))
    completed_at: Optional[datetime] = Field(default=None, sa_column=Column(TIMESTAMP(timezone=True)))
    approved_at: Optional[datetime] = Field(default=None, sa_column=Column(TIMESTAMP(timezone=True)))
    notes: Optional[str] = Field(default=None)
    created_by: Optional[int] = Field(
        default=None,
        sa_column=Column(Integer, ForeignKey("usr.users.id", ondelete="SET NULL"), nullable=True),
    )
    approved_by: Optional[int] = Field(
        default=None,
        sa_column=Column(Integer, ForeignKey("usr.users.id", ondelete="SET NULL"), nullable=True),
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

    items: List["StockCountItem"] = Relationship(
        back_populates="stock_count",
        sa_relationship_kwargs={
            'cascade': 'all, delete-orphan',
            'lazy': 'selectin',
            'order_by': 'StockCountItem.id',
        }
    )


# =============================================================================
# 2. cnt.stock_count_items 테이블 모델
# =============================================================================
class StockCountItem(SQLModel, table=True):
    __tablename__ = "stock_count_items"
    __table_args__ = {'schema': 'cnt'}

    id: Optional[int] = Field(default=None, primary_key=True)
    stock_count_id: Optional[int] = Field(
        default=None,
        sa_column=Column(Integer, ForeignKey("cnt.stock_counts.id", ondelete="CASCADE"), nullable=False, index=True),
    )
    product_id: int = Field(foreign_key="inv.products.id", index=True)
    batch_id: Optional[int] = Field(default=None, foreign_key="inv.batches.id")
    system_qty: int = Field(description="실사 시작 시점 원장 수량")
    counted_qty: Optional[int] = Field(default=None, description="실사 수량")
    variance: Optional[int] = Field(default=None, description="counted_qty - system_qty")
    notes: Optional[str] = Field(default=None)
    counted_by: Optional[int] = Field(
        default=None,
        sa_column=Column(Integer, ForeignKey("usr.users.id", ondelete="SET NULL"), nullable=True),
    )
    counted_at: Optional[datetime] = Field(default=None, sa_column=Column(TIMESTAMP(timezone=True)))

    stock_count: Optional[StockCount] = Relationship(back_populates="items")
