# app/domains/usr/models.py

"""
'usr' 도메인 (PostgreSQL 'usr' 스키마)의 데이터베이스 ORM 모델을 정의하는 모듈입니다.

이 모듈은 'usr' 스키마에 속하는 테이블 (users)에 대한 SQLModel 클래스를 포함합니다.
사용자는 선택적으로 하나의 창고(loc.warehouses)에 소속되며,
창고 단위 알림(회수, 재고 부족 등)의 수신 대상이 됩니다.
"""

from typing import Optional
from datetime import datetime, UTC
from sqlmodel import Field, SQLModel, Column
from sqlalchemy import ForeignKey, Integer
from sqlalchemy.sql import func
from sqlalchemy.types import TIMESTAMP
from enum import IntEnum


# =============================================================================
# 사용자 역할(RBAC) Enum
# =============================================================================
class UserRole(IntEnum):
    """
    사용자 역할을 정의하는 정수형 Enum 클래스입니다.
    DB에는 정수 값으로 저장되며, 값이 작을수록 권한이 높습니다.
    """
    SUPERUSER = 1            # 최고 관리자
    ADMIN = 10               # 시스템 관리자
    WAREHOUSE_MANAGER = 50   # 창고 관리자 (발주/이동/실사 승인)
    PHARMACIST = 60          # 약사
    STAFF = 80               # 창고 직원
    GENERAL_USER = 100       # 일반 사용자 (조회 전용)


# =============================================================================
# 1. usr.users 테이블 모델
# =============================================================================
class UserBase(SQLModel):
    """
    usr.users 테이블의 기본 속성을 정의하는 SQLModel Base 클래스입니다.
    """
    id: Optional[int] = Field(default=None, primary_key=True, description="사용자 고유 ID")
    username: str = Field(max_length=50, sa_column_kwargs={"unique": True}, description="로그인 사용자명")
    password_hash: str = Field(max_length=255, description="해싱된 비밀번호")
    email: Optional[str] = Field(default=None, max_length=100, sa_column_kwargs={"unique": True}, description="사용자 이메일")
    full_name: Optional[str] = Field(default=None, max_length=100, description="사용자 전체 이름")
    phone: Optional[str] = Field(default=None, max_length=50, description="연락처")
    warehouse_id: Optional[int] = Field(
        default=None,
        sa_column=Column(
            Integer,
            ForeignKey("loc.warehouses.id", onupdate="CASCADE", ondelete="SET NULL"),
            nullable=True,
        ),
        description="소속 창고 ID (FK)"
    )
    role: UserRole = Field(default=UserRole.GENERAL_USER, description="사용자 역할 (권한)")
    code: Optional[str] = Field(default=None, max_length=16, sa_column_kwargs={"unique": True}, description="사번 등 사용자 고유 코드")
    is_active: bool = Field(default=True, description="계정 활성 여부")
    last_login_at: Optional[datetime] = Field(
        default=None,
        sa_column=Column(TIMESTAMP(timezone=True)),
        description="마지막 로그인 일시"
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


class User(UserBase, table=True):
    """
    PostgreSQL의 usr.users 테이블에 매핑되는 SQLModel ORM 클래스입니다.
    """
    __tablename__ = "users"
    __table_args__ = {'schema': 'usr'}
