# app/domains/shared/models.py

"""
'shared' 도메인 (PostgreSQL 'shared' 스키마)의 데이터베이스 ORM 모델을 정의하는 모듈입니다.

여러 도메인이 함께 사용하는 문서 번호 채번 테이블(document_sequences)을 포함합니다.
"""

from typing import Optional
from datetime import datetime, date, UTC

from sqlalchemy import UniqueConstraint
from sqlalchemy.sql import func
from sqlalchemy.types import TIMESTAMP
from sqlmodel import Field, SQLModel, Column


# =============================================================================
# 1. shared.document_sequences 테이블 모델
# =============================================================================
class DocumentSequence(SQLModel, table=True):
    """
    (접두어, 날짜)별 마지막 발급 번호를 보관합니다.
    예) SM-20250101-0001, PO-20250101-0001
    """
    __tablename__ = "document_sequences"
    __table_args__ = (
        UniqueConstraint("prefix", "sequence_date", name="uq_document_sequences_prefix_date"),
        {'schema': 'shared'},
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    prefix: str = Field(max_length=10, description="문서 접두어 (SM, PO, TO, SC)")
    sequence_date: date = Field(description="채번 기준 일자")
    current_number: int = Field(default=0, description="마지막으로 발급된 번호")
    updated_at: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now()),
        description="레코드 마지막 업데이트 일시"
    )
