# app/domains/ntf/crud.py

"""
'ntf' 도메인 (알림)의 CRUD 및 알림 생성 로직을 담당하는 모듈입니다.

- 사용자별 알림 조회/읽음/보관/삭제
- 재고 이벤트 알림 생성기: 유효기간 임박, 만료, 회수, 재고 부족
  (유효기간 임박/재고 부족은 최근 NOTIFICATION_DEDUP_HOURS 이내 같은 대상 알림이 있으면 건너뜀)
"""

import logging
from datetime import datetime, date, timedelta, UTC
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, func, or_, update
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from app.core.config import settings
from app.core.crud_base import CRUDBase
from app.core.exceptions import NotFoundError
from app.domains.inv import models as inv_models
from app.domains.inv.ledger import stock_ledger
from app.domains.usr.models import User
from . import models as ntf_models
from . import schemas as ntf_schemas


logger = logging.getLogger(__name__)

REFERENCE_BATCH = "BATCH"
REFERENCE_PRODUCT = "PRODUCT"


def expiry_priority(days_left: int) -> ntf_models.NotificationPriority:
    if days_left <= settings.EXPIRY_CRITICAL_DAYS:
        return ntf_models.NotificationPriority.CRITICAL
    if days_left <= settings.EXPIRY_HIGH_DAYS:
        return ntf_models.NotificationPriority.HIGH
    return ntf_models.NotificationPriority.MEDIUM


# =============================================================================
# 1. 알림 (Notification) CRUD
# =============================================================================
class CRUDNotification(CRUDBase[ntf_models.Notification, ntf_schemas.NotificationCreate, ntf_schemas.NotificationCreate]):
    def __init__(self):
        super().__init__(model=ntf_models.Notification)

    async def add(
        self,
        db: AsyncSession,
        *,
        notification_type: ntf_models.NotificationType,
        title: str,
        message: str,
        priority: ntf_models.NotificationPriority = ntf_models.NotificationPriority.MEDIUM,
        user_id: Optional[int] = None,
        warehouse_id: Optional[int] = None,
        reference_type: Optional[str] = None,
        reference_id: Optional[int] = None,
        extra_data: Optional[Dict[str, Any]] = None,
        expires_at: Optional[datetime] = None,
    ) -> ntf_models.Notification:
        """알림을 세션에 추가하고 flush 합니다 (커밋은 호출자)."""
        notification = ntf_models.Notification(
            notification_type=notification_type,
            priority=priority,
            title=title,
            message=message,
            user_id=user_id,
            warehouse_id=warehouse_id,
            reference_type=reference_type,
            reference_id=reference_id,
            extra_data=extra_data,
            expires_at=expires_at or datetime.now(UTC) + timedelta(days=settings.NOTIFICATION_TTL_DAYS),
        )
        db.add(notification)
        await db.flush()
        return notification

    async def create(self, db: AsyncSession, *, obj_in: ntf_schemas.NotificationCreate) -> ntf_models.Notification:
        if obj_in.user_id is not None and await db.get(User, obj_in.user_id) is None:
            raise NotFoundError(f"User {obj_in.user_id} not found")
        notification = await self.add(db, **obj_in.model_dump())
        await db.commit()
        await db.refresh(notification)
        return notification

    # -------------------------------------------------------------------------
    # 사용자별 조회/상태 변경
    # -------------------------------------------------------------------------
    def _visible_to(self, user: User):
        """본인 알림 + 공용 알림"""
        return or_(self.model.user_id == user.id, self.model.user_id.is_(None))

    async def list_for_user(
        self,
        db: AsyncSession,
        *,
        user: User,
        status: Optional[ntf_models.NotificationStatus] = None,
        notification_type: Optional[ntf_models.NotificationType] = None,
        skip: int = 0,
        limit: int = 50,
    ) -> List[ntf_models.Notification]:
        extra_conditions = [self._visible_to(user)]
        if status is None:
            extra_conditions.append(self.model.status != ntf_models.NotificationStatus.ARCHIVED)
        return await self.get_filtered(
            db,
            filters={"status": status, "notification_type": notification_type},
            extra_conditions=extra_conditions,
            order_by_field="created_at",
            order_desc=True,
            skip=skip,
            limit=limit,
        )

    async def unread_count(self, db: AsyncSession, *, user: User) -> int:
        return await self.count_filtered(
            db,
            filters={"status": ntf_models.NotificationStatus.UNREAD},
            extra_conditions=[self._visible_to(user)],
        )

    async def get_for_user(self, db: AsyncSession, *, id: int, user: User) -> ntf_models.Notification:
        notification = await db.get(self.model, id)
        if notification is None or (notification.user_id is not None and notification.user_id != user.id):
            raise NotFoundError(f"Notification {id} not found")
        return notification

    async def mark_read(self, db: AsyncSession, *, id: int, user: User) -> ntf_models.Notification:
        notification = await self.get_for_user(db, id=id, user=user)
        if notification.status == ntf_models.NotificationStatus.UNREAD:
            notification.status = ntf_models.NotificationStatus.READ
            notification.read_at = datetime.now(UTC)
            db.add(notification)
            await db.commit()
            await db.refresh(notification)
        return notification

    async def mark_all_read(self, db: AsyncSession, *, user: User) -> int:
        result = await db.execute(
            update(self.model)
            .where(self._visible_to(user), self.model.status == ntf_models.NotificationStatus.UNREAD)
            .values(status=ntf_models.NotificationStatus.READ, read_at=datetime.now(UTC))
        )
        await db.commit()
        return result.rowcount

    async def archive(self, db: AsyncSession, *, id: int, user: User) -> ntf_models.Notification:
        notification = await self.get_for_user(db, id=id, user=user)
        notification.status = ntf_models.NotificationStatus.ARCHIVED
        db.add(notification)
        await db.commit()
        await db.refresh(notification)
        return notification

    async def remove(self, db: AsyncSession, *, id: int, user: User) -> ntf_models.Notification:
        notification = await self.get_for_user(db, id=id, user=user)
        await db.delete(notification)
        await db.commit()
        return notification

    async def delete_all_read(self, db: AsyncSession, *, user: User) -> int:
        """본인에게 온 읽은 알림을 모두 삭제합니다 (공용 알림은 남김)."""
        result = await db.execute(
            delete(self.model).where(
                self.model.user_id == user.id, self.model.status == ntf_models.NotificationStatus.READ
            )
        )
        await db.commit()
        logger.info("Deleted %d read notification(s) for user %s", result.rowcount, user.id)
        return result.rowcount

    async def statistics(self, db: AsyncSession, *, user: User) -> Dict[str, Any]:
        visible = self._visible_to(user)
        by_type = await db.execute(
            select(self.model.notification_type, func.count(self.model.id))
            .where(visible)
            .group_by(self.model.notification_type)
        )
        by_status = await db.execute(
            select(self.model.status, func.count(self.model.id)).where(visible).group_by(self.model.status)
        )
        status_counts = {status.value: count for status, count in by_status.all()}
        return {
            "total": sum(status_counts.values()),
            "unread": status_counts.get(ntf_models.NotificationStatus.UNREAD.value, 0),
            "by_type": {notification_type.value: count for notification_type, count in by_type.all()},
            "by_status": status_counts,
        }

    async def delete_expired(self, db: AsyncSession) -> int:
        """expires_at 이 지난 알림을 삭제하고 삭제 건수를 반환합니다."""
        result = await db.execute(
            delete(self.model).where(self.model.expires_at.is_not(None), self.model.expires_at < datetime.now(UTC))
        )
        await db.commit()
        return result.rowcount

    # -------------------------------------------------------------------------
    # 재고 이벤트 알림 생성기
    # -------------------------------------------------------------------------
    async def _recently_notified(
        self,
        db: AsyncSession,
        *,
        notification_type: ntf_models.NotificationType,
        reference_type: str,
        reference_id: int,
        warehouse_id: Optional[int] = None,
    ) -> bool:
        since = datetime.now(UTC) - timedelta(hours=settings.NOTIFICATION_DEDUP_HOURS)
        conditions = [
            self.model.notification_type == notification_type,
            self.model.reference_type == reference_type,
            self.model.reference_id == reference_id,
            self.model.created_at >= since,
        ]
        if warehouse_id is not None:
            conditions.append(self.model.warehouse_id == warehouse_id)
        result = await db.execute(select(self.model.id).where(*conditions).limit(1))
        return result.first() is not None

    async def notify_batch_recalled(
        self, db: AsyncSession, *, batch: inv_models.Batch, product: inv_models.Product, warehouse_id: int
    ) -> ntf_models.Notification:
        return await self.add(
            db,
            notification_type=ntf_models.NotificationType.RECALL,
            priority=ntf_models.NotificationPriority.CRITICAL,
            title=f"Batch recalled: {batch.batch_number}",
            message=(
                f"Batch {batch.batch_number} of {product.name} ({product.code}) has been recalled. "
                f"Reason: {batch.recall_reason}"
            ),
            warehouse_id=warehouse_id,
            reference_type=REFERENCE_BATCH,
            reference_id=batch.id,
            extra_data={"batch_number": batch.batch_number, "product_id": product.id, "reason": batch.recall_reason},
        )

    async def notify_batch_expired(
        self, db: AsyncSession, *, batch: inv_models.Batch, product: inv_models.Product
    ) -> ntf_models.Notification:
        return await self.add(
            db,
            notification_type=ntf_models.NotificationType.EXPIRY,
            priority=ntf_models.NotificationPriority.HIGH,
            title=f"Batch expired: {batch.batch_number}",
            message=(
                f"Batch {batch.batch_number} of {product.name} ({product.code}) expired on "
                f"{batch.expiry_date.isoformat()}. Remaining quantity: {batch.current_quantity}"
            ),
            reference_type=REFERENCE_BATCH,
            reference_id=batch.id,
            extra_data={"batch_number": batch.batch_number, "expiry_date": batch.expiry_date.isoformat()},
        )

    async def notify_order_status(
        self,
        db: AsyncSession,
        *,
        title: str,
        message: str,
        reference_type: str,
        reference_id: int,
        warehouse_id: Optional[int] = None,
        user_id: Optional[int] = None,
        extra_data: Optional[Dict[str, Any]] = None,
    ) -> ntf_models.Notification:
        """발주/이동 문서 상태 변경 알림 (커밋은 워크플로우가 함께 수행)"""
        return await self.add(
            db,
            notification_type=ntf_models.NotificationType.ORDER_STATUS,
            priority=ntf_models.NotificationPriority.LOW,
            title=title,
            message=message,
            user_id=user_id,
            warehouse_id=warehouse_id,
            reference_type=reference_type,
            reference_id=reference_id,
            extra_data=extra_data,
        )

    async def create_expiry_warnings(self, db: AsyncSession, *, today: Optional[date] = None) -> int:
        """
        EXPIRY_WARNING_DAYS 이내에 만료되는 배치마다 EXPIRY_WARNING 알림을 만듭니다.
        30일 이내 CRITICAL, 60일 이내 HIGH, 그 외 MEDIUM.
        """
        today = today or date.today()
        statement = (
            select(inv_models.Batch, inv_models.Product)
            .join(inv_models.Product, inv_models.Product.id == inv_models.Batch.product_id)
            .where(
                inv_models.Batch.deleted_at.is_(None),
                inv_models.Batch.is_expired.is_(False),
                inv_models.Batch.is_recalled.is_(False),
                inv_models.Batch.expiry_date >= today,
                inv_models.Batch.expiry_date <= today + timedelta(days=settings.EXPIRY_WARNING_DAYS),
            )
            .order_by(inv_models.Batch.expiry_date)
        )
        created = 0
        for batch, product in (await db.execute(statement)).all():
            if await self._recently_notified(
                db,
                notification_type=ntf_models.NotificationType.EXPIRY_WARNING,
                reference_type=REFERENCE_BATCH,
                reference_id=batch.id,
            ):
                continue
            days_left = (batch.expiry_date - today).days
            await self.add(
                db,
                notification_type=ntf_models.NotificationType.EXPIRY_WARNING,
                priority=expiry_priority(days_left),
                title=f"Batch expiring in {days_left} day(s): {batch.batch_number}",
                message=(
                    f"Batch {batch.batch_number} of {product.name} ({product.code}) expires on "
                    f"{batch.expiry_date.isoformat()}. Quantity on hand: {batch.current_quantity}"
                ),
                reference_type=REFERENCE_BATCH,
                reference_id=batch.id,
                extra_data={"days_until_expiry": days_left, "batch_number": batch.batch_number},
            )
            created += 1
        await db.commit()
        logger.info("Expiry warnings created: %d", created)
        return created

    async def create_low_stock_notifications(self, db: AsyncSession) -> int:
        """창고별 보유 합계가 최소 재고 수준 이하인 품목마다 LOW_STOCK 알림을 만듭니다."""
        created = 0
        for item in await stock_ledger.low_stock(db):
            if await self._recently_notified(
                db,
                notification_type=ntf_models.NotificationType.LOW_STOCK,
                reference_type=REFERENCE_PRODUCT,
                reference_id=item["product_id"],
                warehouse_id=item["warehouse_id"],
            ):
                continue
            status = item["stock_status"]
            priority = (
                ntf_models.NotificationPriority.MEDIUM
                if status == inv_models.StockStatus.LOW
                else ntf_models.NotificationPriority.HIGH
            )
            await self.add(
                db,
                notification_type=ntf_models.NotificationType.LOW_STOCK,
                priority=priority,
                title=f"Low stock: {item['product_code']}",
                message=(
                    f"{item['product_name']} ({item['product_code']}) has {item['quantity']} unit(s) left; "
                    f"minimum level is {item['min_stock_level']}."
                ),
                warehouse_id=item["warehouse_id"],
                reference_type=REFERENCE_PRODUCT,
                reference_id=item["product_id"],
                extra_data={
                    "quantity": item["quantity"],
                    "min_stock_level": item["min_stock_level"],
                    "stock_status": status.value,
                },
            )
            created += 1
        await db.commit()
        logger.info("Low stock notifications created: %d", created)
        return created


notification = CRUDNotification()
