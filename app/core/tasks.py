# app/core/tasks.py

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from app.core.database import get_async_session_context

logger = logging.getLogger(__name__)


@asynccontextmanager
async def task_session(ctx: Dict[str, Any]) -> AsyncGenerator[AsyncSession, None]:
    """
    태스크용 DB 세션.
    라우터가 Redis 없이 태스크를 직접 호출할 때는 ctx["db"] 로 요청 세션을 넘겨받고,
    ARQ 워커에서 실행될 때는 독립 세션을 엽니다.
    """
    db = ctx.get("db")
    if db is not None:
        yield db
        return
    async with get_async_session_context() as session:
        yield session


async def health_check_database_task(ctx: Dict[str, Any]) -> Dict[str, Any]:
    """
    ARQ 워커에 의해 실행될 주기적인 데이터베이스 헬스 체크 태스크.
    데이터베이스 연결 상태를 확인하고 로그를 남깁니다.
    """
    logger.info("ARQ 태스크: 데이터베이스 헬스 체크 실행")

    try:
        async with get_async_session_context() as db:
            result = await db.execute(select(1))
            if result.scalar_one_or_none() == 1:
                logger.info("데이터베이스 헬스 체크: 성공적으로 연결되었습니다.")
                return {"status": "success", "message": "Database connection successful."}
            error_msg = "Database health check failed: No result from test query."
            logger.error("데이터베이스 헬스 체크: 실패 - %s", error_msg)
            return {"status": "failed", "message": error_msg}
    except Exception as e:
        # 워커 로그에 남기고 결과로 보고합니다 (크론 잡은 계속 동작).
        logger.exception("데이터베이스 헬스 체크: 연결 오류")
        return {"status": "failed", "message": f"데이터베이스 연결 오류: {e}"}
