import logging
from typing import AsyncGenerator
from contextlib import asynccontextmanager

from arq import cron
from arq.connections import create_pool, RedisSettings
from redis.exceptions import RedisError

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from fastapi import FastAPI, Depends, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# 핵심 설정 및 데이터베이스 모듈 임포트
from app.core.config import settings
from app.core.database import engine, get_session
from app.core.exceptions import InventoryError

from app import API_PREFIX, APP_NAME, APP_VERSION

# 태스크 모듈 임포트
from app.core import tasks as core_tasks
from app.domains.inv import tasks as inv_tasks
from app.domains.ntf import tasks as ntf_tasks

# 도메인 라우터 임포트
from app.domains.usr.routers import router as usr_router
from app.domains.loc.routers import router as loc_router
from app.domains.ven.routers import router as ven_router
from app.domains.inv.routers import router as inv_router
from app.domains.pur.routers import router as pur_router
from app.domains.trf.routers import router as trf_router
from app.domains.cnt.routers import router as cnt_router
from app.domains.ntf.routers import router as ntf_router
from app.domains.fin.routers import router as fin_router

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

# ARQ 워커가 실행할 태스크 함수 목록
worker_functions = [
    core_tasks.health_check_database_task,
    inv_tasks.mark_expired_batches_task,
    inv_tasks.create_expiry_warnings_task,
    inv_tasks.create_low_stock_notifications_task,
    ntf_tasks.delete_expired_notifications_task,
]


# ARQ 워커 설정 클래스 (실행: arq app.main.ArqWorkerSettings)
class ArqWorkerSettings:
    redis_settings = RedisSettings(host=settings.REDIS_HOST, port=settings.REDIS_PORT)
    functions = worker_functions
    cron_jobs = [
        cron(core_tasks.health_check_database_task, hour={0}, minute={0}, timeout=300, keep_result=600),
        # 만료 처리 후 유효기간 임박 알림 (매일 00:30, 00:45)
        cron(inv_tasks.mark_expired_batches_task, hour={0}, minute={30}, timeout=1800),
        cron(inv_tasks.create_expiry_warnings_task, hour={0}, minute={45}, timeout=1800),
        # 재고 부족 알림 (매시 정각)
        cron(inv_tasks.create_low_stock_notifications_task, minute={0}, timeout=1800),
        cron(ntf_tasks.delete_expired_notifications_task, hour={2}, minute={0}, timeout=600),
    ]


# -- 애플리케이션 수명 주기 이벤트 핸들러 --
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    FastAPI 애플리케이션의 수명 주기 이벤트(데이터베이스, ARQ Redis)를 함께 처리합니다.
    Redis에 연결할 수 없으면 app.state.redis 는 None 이고, 라우터는 태스크를 직접 실행합니다.
    """
    logger.info("FastAPI 애플리케이션 시작 중...")
    app.state.redis = None
    try:
        app.state.redis = await create_pool(ArqWorkerSettings.redis_settings)
        logger.info("ARQ Redis 커넥션 풀 생성 완료.")
    except (OSError, RedisError) as e:
        logger.warning("ARQ Redis에 연결할 수 없어 백그라운드 작업을 요청 안에서 실행합니다: %s", e)

    yield  # 애플리케이션 실행

    logger.info("FastAPI 애플리케이션 종료 중...")
    if app.state.redis is not None:
        await app.state.redis.close()
        logger.info("ARQ Redis 연결 풀 종료 완료.")
    await engine.dispose()
    logger.info("데이터베이스 연결 풀 종료 완료.")


# -- FastAPI 애플리케이션 인스턴스 생성 --
app = FastAPI(
    title=APP_NAME,
    description="Medical Warehouse Inventory Management System (MWIMS) API for stock ledger, batches, purchasing, transfers, stock counts and notifications.",
    version=APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)


# -- 도메인 예외 핸들러 --
# CRUD/워크플로우 계층의 InventoryError 를 status_code 에 맞는 JSON 응답으로 변환합니다.
@app.exception_handler(InventoryError)
async def inventory_error_handler(request: Request, exc: InventoryError) -> JSONResponse:
    if exc.status_code >= status.HTTP_409_CONFLICT:
        logger.warning("%s %s -> %s: %s", request.method, request.url.path, type(exc).__name__, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "error": type(exc).__name__},
    )


# -- CORS (Cross-Origin Resource Sharing) 미들웨어 설정 --
# 보안을 위해 'allow_origins'는 실제 프론트엔드 도메인으로 제한해야 합니다.
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # 개발용: 모든 출처 허용
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# -- 도메인 라우터 포함 --
app.include_router(usr_router, prefix=f"{API_PREFIX}/usr", tags=["User Management (사용자 관리)"])
app.include_router(loc_router, prefix=f"{API_PREFIX}/loc", tags=["Warehouse Management (창고 관리)"])
app.include_router(ven_router, prefix=f"{API_PREFIX}/ven", tags=["Vendor Management (공급업체 관리)"])
app.include_router(inv_router, prefix=f"{API_PREFIX}/inv", tags=["Inventory Management (재고 관리)"])
app.include_router(pur_router, prefix=f"{API_PREFIX}/pur", tags=["Purchasing (발주 관리)"])
app.include_router(trf_router, prefix=f"{API_PREFIX}/trf", tags=["Transfers (창고 간 이동)"])
app.include_router(cnt_router, prefix=f"{API_PREFIX}/cnt", tags=["Stock Counts (재고 실사)"])
app.include_router(ntf_router, prefix=f"{API_PREFIX}/ntf", tags=["Notifications (알림)"])
app.include_router(fin_router, prefix=f"{API_PREFIX}/fin", tags=["Finance (지급 관리)"])


# -- 루트 엔드포인트 --
@app.get("/", summary="API Root", response_description="Welcome message and documentation link.")
async def read_root():
    """
    MWIMS API의 루트 엔드포인트입니다.
    API의 시작점을 알리고 문서 링크를 제공합니다.
    """
    return {"message": "Welcome to MWIMS API. Visit /docs for interactive API documentation."}


# -- 헬스 체크 엔드포인트 --
@app.get("/health-check", summary="Health Check", response_description="Status of the application and database connection.")
async def health_check(session: AsyncSession = Depends(get_session)):
    """
    데이터베이스 연결을 테스트하여 서비스의 정상 작동 여부를 확인합니다.
    """
    try:
        result = await session.exec(select(1))
        if result.first():
            return {"status": "ok", "database_connection": "successful"}
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Database health check failed: No result from test query"
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Health check failed")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Database connection error during health check: {e}"
        )
