# app/domains/shared/crud.py

"""
'shared' 도메인 (공용 데이터)과 관련된 CRUD 로직을 담당하는 모듈입니다.
"""

from datetime import datetime, UTC
from typing import Optional

from sqlalchemy.dialects.postgresql import insert
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from . import models as shared_models


MOVEMENT_PREFIX = "SM"
PURCHASE_ORDER_PREFIX = "PO"
TRANSFER_ORDER_PREFIX = "TO"
STOCK_COUNT_PREFIX = "SC"


# =============================================================================
# 1. 문서 번호 채번 (DocumentSequence)
# =============================================================================
class CRUDDocumentSequence:
    def __init__(self):
        self.model = shared_models.DocumentSequence

    async def next_number(self, db: AsyncSession, prefix: str, now: Optional[datetime] = None) -> str:
        """
        `PREFIX-YYYYMMDD-NNNN` 형식의 다음 번호를 발급합니다.

        (prefix, 날짜) 행이 없으면 INSERT ... ON CONFLICT DO NOTHING 으로 만들고,
        SELECT ... FOR UPDATE 로 행을 잠근 뒤 번호를 증가시킵니다.
        잠금은 호출자의 트랜잭션이 끝날 때까지 유지되므로 동시 호출에도 번호가 중복되지 않습니다.
        커밋은 호출자가 합니다.
        """
        today = (now or datetime.now(UTC)).date()

        await db.execute(
            insert(self.model)
            .values(prefix=prefix, sequence_date=today, current_number=0)
            .on_conflict_do_nothing(index_elements=["prefix", "sequence_date"])
        )
        result = await db.execute(
            select(self.model)
            .where(self.model.prefix == prefix, self.model.sequence_date == today)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        sequence = result.scalar_one()
        sequence.current_number += 1
        db.add(sequence)
        await db.flush()
        return f"{prefix}-{today:%Y%m%d}-{sequence.current_number:04d}"


document_sequence = CRUDDocumentSequence()
