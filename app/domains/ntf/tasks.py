# app/domains/ntf/tasks.py

import logging
from typing import Any, Dict

from app.core.tasks import task_session
from app.domains.ntf import crud as ntf_crud

logger = logging.getLogger(__name__)


async def delete_expired_notifications_task(ctx: Dict[str, Any]) -> Dict[str, Any]:
    """보관 기한(expires_at)이 지난 알림을 삭제합니다."""
    async with task_session(ctx) as db:
        deleted = await ntf_crud.notification.delete_expired(db)
    logger.info("ARQ 태스크: 만료 알림 삭제 (%d건)", deleted)
    return {"status": "ok", "deleted": deleted}
