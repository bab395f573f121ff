# app/domains/ntf/models.py

"""
'ntf' 도메인 (PostgreSQL 'ntf' 스키마)의 데이터베이스 ORM 모델을 정의하는 모듈입니다.

유효기간 임박/만료, 배치 회수, 재고 부족 등 재고 이벤트 알림(notifications)을 저장합니다.
user_id 가 없는 알림은 모든 사용자에게 보이는 공용(broadcast) 알림입니다.
"""

from typing import Optional, Dict, Any
from datetime import datetime, UTC
from enum import Enum

from sqlmodel import Field, SQLModel, Column
from sqlalchemy import ForeignKey, Integer
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func
from sqlalchemy.types import TIMESTAMP


class NotificationType(str, Enum):
    EXPIRY_WARNING = "EXPIRY_WARNING"
    EXPIRY = "EXPIRY"
    RECALL = "RECALL"
    LOW_STOCK = "LOW_STOCK"
    ORDER_STATUS = "ORDER_STATUS"
    SYSTEM = "SYSTEM"


class NotificationPriority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class NotificationStatus(str, Enum):
    UNREAD = "UNREAD"
    READ = "READ"
    ARCHIVED = "ARCHIVED"


# =============================================================================
# 1. ntf.notifications 테이블 모델
# =============================================================================
class Notification(SQLModel, table=True):
    __tablename__ = "notifications"
    __table_args__ = {'schema': 'ntf'}

    id: Optional[int] = Field(default=None, primary_key=True)
    notification_type: NotificationType = Field(description="알림 유형")
    priority: NotificationPriority = Field(default=NotificationPriority.MEDIUM, description="중요도")
    status: NotificationStatus = Field(default=NotificationStatus.UNREAD, description="읽음 상태")
    title: str = Field(max_length=200)
    message: str = Field(description="알림 본문")
    user_id: Optional[int] = Field(
        default=None,
        sa_column=Column(Integer, ForeignKey("usr.users.id", ondelete="CASCADE"), nullable=True, index=True),
        description="수신자 ID (없으면 공용 알림)"
    )
    warehouse_id: Optional[int] = Field(
        default=None,
        sa_column=Column(Integer, ForeignKey("loc.warehouses.id", ondelete="CASCADE"), nullable=True),
        description="관련 창고 ID"
    )
    reference_type: Optional[str] = Field(default=None, max_length=50, description="참조 대상 유형 (BATCH, PRODUCT 등)")
    reference_id: Optional[int] = Field(default=None, description="참조 대상 ID")
    # 'metadata' 는 SQLModel 예약어이므로 속성명은 extra_data, 컬럼명은 metadata 입니다.
    extra_data: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column("metadata", JSONB))
    read_at: Optional[datetime] = Field(default=None, sa_column=Column(TIMESTAMP(timezone=True)))
    expires_at: Optional[datetime] = Field(default=None, sa_column=Column(TIMESTAMP(timezone=True)))
    created_at: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now(), index=True),
        description="레코드 생성 일시"
    )
