# app/domains/ntf/schemas.py

"""
'ntf' 도메인 (알림)의 Pydantic 스키마를 정의하는 모듈입니다.
"""

from typing import Optional, Dict, Any
from datetime import datetime
from enum import Enum
from pydantic import AliasChoices, BaseModel, Field
from sqlmodel import SQLModel

from .models import NotificationPriority, NotificationStatus, NotificationType


class NotificationCreate(SQLModel):
    notification_type: NotificationType = NotificationType.SYSTEM
    priority: NotificationPriority = NotificationPriority.MEDIUM
    title: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=1)
    user_id: Optional[int] = Field(None, description="수신자 ID (없으면 공용 알림)")
    warehouse_id: Optional[int] = None
    reference_type: Optional[str] = Field(None, max_length=50)
    reference_id: Optional[int] = None
    extra_data: Optional[Dict[str, Any]] = None
    expires_at: Optional[datetime] = None


class NotificationResponse(BaseModel):
    id: int
    notification_type: NotificationType
    priority: NotificationPriority
    status: NotificationStatus
    title: str
    message: str
    user_id: Optional[int] = None
    warehouse_id: Optional[int] = None
    reference_type: Optional[str] = None
    reference_id: Optional[int] = None
    metadata: Optional[Dict[str, Any]] = Field(
        None, validation_alias=AliasChoices("extra_data", "metadata")
    )
    read_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class UnreadCount(BaseModel):
    unread_count: int


class BulkResult(BaseModel):
    count: int


class NotificationStatistics(BaseModel):
    total: int
    unread: int
    by_type: Dict[str, int]
    by_status: Dict[str, int]


class GenerateKind(str, Enum):
    EXPIRY_WARNINGS = "expiry_warnings"
    LOW_STOCK = "low_stock"
    MARK_EXPIRED = "mark_expired"
    CLEANUP = "cleanup"


class GenerateResult(BaseModel):
    kind: GenerateKind
    queued: bool
    created: Optional[int] = None
