# app/domains/ntf/routers.py

"""
'ntf' 도메인 (알림)의 API 엔드포인트를 정의하는 모듈입니다.
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, Query, Request, status
from sqlmodel.ext.asyncio.session import AsyncSession

from app.core import dependencies as deps
from app.domains.usr.models import User as UsrUser
from app.domains.inv import tasks as inv_tasks

from . import crud as ntf_crud
from . import models as ntf_models
from . import schemas as ntf_schemas
from . import tasks as ntf_tasks

router = APIRouter(
    tags=["Notifications (알림)"],
    responses={404: {"description": "Not found"}},
)

GENERATORS = {
    ntf_schemas.GenerateKind.EXPIRY_WARNINGS: inv_tasks.create_expiry_warnings_task,
    ntf_schemas.GenerateKind.LOW_STOCK: inv_tasks.create_low_stock_notifications_task,
    ntf_schemas.GenerateKind.MARK_EXPIRED: inv_tasks.mark_expired_batches_task,
    ntf_schemas.GenerateKind.CLEANUP: ntf_tasks.delete_expired_notifications_task,
}


@router.get("/notifications", response_model=List[ntf_schemas.NotificationResponse], summary="내 알림 목록")
async def read_notifications(
    status_filter: Optional[ntf_models.NotificationStatus] = Query(None, alias="status"),
    notification_type: Optional[ntf_models.NotificationType] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_active_user),
):
    """본인 알림과 공용 알림을 최신순으로 조회합니다. 상태를 지정하지 않으면 보관된 알림은 제외합니다."""
    return await ntf_crud.notification.list_for_user(
        db, user=current_user, status=status_filter, notification_type=notification_type, skip=skip, limit=limit
    )


@router.get("/notifications/unread-count", response_model=ntf_schemas.UnreadCount, summary="읽지 않은 알림 수")
async def read_unread_count(
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_active_user),
):
    return {"unread_count": await ntf_crud.notification.unread_count(db, user=current_user)}


@router.get("/notifications/statistics", response_model=ntf_schemas.NotificationStatistics, summary="내 알림 통계")
async def read_notification_statistics(
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_active_user),
):
    return await ntf_crud.notification.statistics(db, user=current_user)


@router.post("/notifications", response_model=ntf_schemas.NotificationResponse, status_code=status.HTTP_201_CREATED, summary="알림 생성")
async def create_notification(
    notification_in: ntf_schemas.NotificationCreate,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_admin_user),
):
    return await ntf_crud.notification.create(db, obj_in=notification_in)


@router.put("/notifications/read-all", response_model=ntf_schemas.BulkResult, summary="모든 알림 읽음 처리")
async def mark_all_notifications_read(
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_active_user),
):
    return {"count": await ntf_crud.notification.mark_all_read(db, user=current_user)}


@router.delete("/notifications/read", response_model=ntf_schemas.BulkResult, summary="읽은 알림 모두 삭제")
async def delete_read_notifications(
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_active_user),
):
    return {"count": await ntf_crud.notification.delete_all_read(db, user=current_user)}


@router.put("/notifications/{notification_id}/read", response_model=ntf_schemas.NotificationResponse, summary="알림 읽음 처리")
async def mark_notification_read(
    notification_id: int,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_active_user),
):
    return await ntf_crud.notification.mark_read(db, id=notification_id, user=current_user)


@router.put("/notifications/{notification_id}/archive", response_model=ntf_schemas.NotificationResponse, summary="알림 보관")
async def archive_notification(
    notification_id: int,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_active_user),
):
    return await ntf_crud.notification.archive(db, id=notification_id, user=current_user)


@router.delete("/notifications/{notification_id}", status_code=status.HTTP_204_NO_CONTENT, summary="알림 삭제")
async def delete_notification(
    notification_id: int,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_active_user),
):
    await ntf_crud.notification.remove(db, id=notification_id, user=current_user)
    return None


@router.post("/notifications/generate/{kind}", response_model=ntf_schemas.GenerateResult, summary="알림 생성 작업 실행")
async def generate_notifications(
    kind: ntf_schemas.GenerateKind,
    request: Request,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_warehouse_manager),
):
    """
    주기 작업(유효기간 임박/재고 부족 알림, 만료 처리, 알림 정리)을 즉시 실행합니다.
    Redis 풀이 있으면 ARQ 작업으로 등록하고, 없으면 요청 세션으로 바로 실행합니다.
    """
    task = GENERATORS[kind]
    arq_redis_pool = getattr(request.app.state, "redis", None)
    if arq_redis_pool:
        await arq_redis_pool.enqueue_job(task.__name__)
        return {"kind": kind, "queued": True}

    result = await task({"db": db})
    created = result.get("created", result.get("expired_count", result.get("deleted")))
    return {"kind": kind, "queued": False, "created": created}
