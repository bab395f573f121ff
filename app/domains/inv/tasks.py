# app/domains/inv/tasks.py

"""
'inv' 도메인의 ARQ 백그라운드 태스크입니다.
모든 태스크는 반복 실행해도 결과가 같습니다.
"""

import logging
from typing import Any, Dict

from app.core.tasks import task_session
from app.domains.inv import crud as inv_crud
from app.domains.ntf import crud as ntf_crud

logger = logging.getLogger(__name__)


async def mark_expired_batches_task(ctx: Dict[str, Any]) -> Dict[str, Any]:
    """유효기간이 지난 배치를 만료 처리하고 EXPIRY 알림을 생성합니다."""
    async with task_session(ctx) as db:
        expired_count = await inv_crud.batch.mark_expired(db)
    logger.info("ARQ 태스크: 만료 배치 처리 완료 (%d건)", expired_count)
    return {"status": "ok", "expired_count": expired_count}


async def create_expiry_warnings_task(ctx: Dict[str, Any]) -> Dict[str, Any]:
    """유효기간 임박 배치에 대한 EXPIRY_WARNING 알림을 생성합니다."""
    async with task_session(ctx) as db:
        created = await ntf_crud.notification.create_expiry_warnings(db)
    logger.info("ARQ 태스크: 유효기간 임박 알림 생성 (%d건)", created)
    return {"status": "ok", "created": created}


async def create_low_stock_notifications_task(ctx: Dict[str, Any]) -> Dict[str, Any]:
    """최소 재고 수준 이하 품목에 대한 LOW_STOCK 알림을 생성합니다."""
    async with task_session(ctx) as db:
        created = await ntf_crud.notification.create_low_stock_notifications(db)
    logger.info("ARQ 태스크: 재고 부족 알림 생성 (%d건)", created)
    return {"status": "ok", "created": created}
