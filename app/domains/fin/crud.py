# app/domains/fin/crud.py

"""
'fin' 도메인 (지급/미지급금)의 CRUD 및 집계 로직을 담당하는 모듈입니다.

지급은 승인 이후(APPROVED, ORDERED, PARTIALLY_RECEIVED, RECEIVED) 발주서에만 등록할 수 있고,
발주서 행을 SELECT ... FOR UPDATE 로 잠근 뒤 미지급 잔액을 확인하므로
동시에 들어온 지급이 발주 합계를 넘지 않습니다.
"""

import logging
from datetime import datetime, date, timedelta, UTC
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from app.core.crud_base import CRUDBase
from app.core.database import atomic
from app.core.exceptions import NotFoundError, StateConflictError, ValidationError
from app.domains.pur.models import PurchaseOrder, PurchaseOrderStatus
from app.domains.ven.models import Supplier
from . import models as fin_models
from . import schemas as fin_schemas


logger = logging.getLogger(__name__)

PAYABLE_STATUSES = (
    PurchaseOrderStatus.APPROVED,
    PurchaseOrderStatus.ORDERED,
    PurchaseOrderStatus.PARTIALLY_RECEIVED,
    PurchaseOrderStatus.RECEIVED,
)

ZERO = Decimal("0")


def payment_status(
    grand_total: Decimal, total_paid: Decimal, due_date: Optional[date], today: Optional[date] = None
) -> fin_models.PaymentStatus:
    """완납 > 부분 지급 > 기한 경과 > 대기 순으로 판정합니다."""
    today = today or date.today()
    if total_paid >= grand_total:
        return fin_models.PaymentStatus.PAID
    if total_paid > 0:
        return fin_models.PaymentStatus.PARTIAL
    if due_date is not None and due_date < today:
        return fin_models.PaymentStatus.OVERDUE
    return fin_models.PaymentStatus.PENDING


# =============================================================================
# 1. 지급 (Payment) CRUD + 미지급금 집계
# =============================================================================
class CRUDPayment(CRUDBase[fin_models.Payment, fin_schemas.PaymentCreate, fin_schemas.PaymentCreate]):
    def __init__(self):
        super().__init__(model=fin_models.Payment)

    async def get_active(self, db: AsyncSession, id: int) -> fin_models.Payment:
        payment = await db.get(self.model, id)
        if payment is None or payment.deleted_at is not None:
            raise NotFoundError(f"Payment {id} not found")
        return payment

    async def paid_by_order(self, db: AsyncSession, order_ids: List[int]) -> Dict[int, Decimal]:
        """발주서별 지급 합계 (삭제된 지급 제외)"""
        if not order_ids:
            return {}
        result = await db.execute(
            select(self.model.purchase_order_id, func.sum(self.model.amount))
            .where(self.model.purchase_order_id.in_(order_ids), self.model.deleted_at.is_(None))
            .group_by(self.model.purchase_order_id)
        )
        return {order_id: Decimal(total) for order_id, total in result.all()}

    async def create(
        self, db: AsyncSession, *, obj_in: fin_schemas.PaymentCreate, created_by: Optional[int] = None
    ) -> fin_models.Payment:
        if obj_in.amount <= 0:
            raise ValidationError("Payment amount must be greater than zero")

        async with atomic(db):
            result = await db.execute(
                select(PurchaseOrder)
                .where(PurchaseOrder.id == obj_in.purchase_order_id)
                .with_for_update()
                .execution_options(populate_existing=True)
            )
            order = result.scalar_one_or_none()
            if order is None:
                raise NotFoundError(f"Purchase order {obj_in.purchase_order_id} not found")
            if order.status not in PAYABLE_STATUSES:
                raise StateConflictError(
                    f"Purchase order {order.order_number} is {order.status.value}; "
                    "payments are accepted only after approval"
                )

            paid = (await self.paid_by_order(db, [order.id])).get(order.id, ZERO)
            remaining = order.grand_total - paid
            if obj_in.amount > remaining:
                raise ValidationError(
                    f"Payment amount ({obj_in.amount}) exceeds remaining balance ({remaining})",
                    details={"remaining": str(remaining)},
                )

            payment = fin_models.Payment(
                purchase_order_id=order.id,
                supplier_id=order.supplier_id,
                amount=obj_in.amount,
                payment_method=obj_in.payment_method,
                payment_date=obj_in.payment_date or date.today(),
                reference_number=obj_in.reference_number,
                notes=obj_in.notes,
                created_by=created_by,
            )
            db.add(payment)
            await db.flush()
        logger.info("Payment %s recorded for %s: %s", payment.id, order.order_number, payment.amount)
        await db.refresh(payment)
        return payment

    async def list_payments(
        self,
        db: AsyncSession,
        *,
        supplier_id: Optional[int] = None,
        purchase_order_id: Optional[int] = None,
        payment_method: Optional[fin_models.PaymentMethod] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[fin_models.Payment]:
        return await self.get_filtered(
            db,
            filters={
                "supplier_id": supplier_id,
                "purchase_order_id": purchase_order_id,
                "payment_method": payment_method,
            },
            extra_conditions=[self.model.deleted_at.is_(None)],
            date_range_field="payment_date",
            start_date=start_date,
            end_date=end_date,
            order_by_field="payment_date",
            order_desc=True,
            skip=skip,
            limit=limit,
        )

    async def for_purchase_order(self, db: AsyncSession, *, purchase_order_id: int) -> Dict[str, Any]:
        order = await db.get(PurchaseOrder, purchase_order_id)
        if order is None:
            raise NotFoundError(f"Purchase order {purchase_order_id} not found")
        payments = await self.list_payments(db, purchase_order_id=purchase_order_id, limit=1000)
        total_paid = sum((payment.amount for payment in payments), ZERO)
        return {
            "purchase_order_id": order.id,
            "order_number": order.order_number,
            "payments": payments,
            "summary": {
                "grand_total": order.grand_total,
                "total_paid": total_paid,
                "remaining": order.grand_total - total_paid,
                "status": payment_status(order.grand_total, total_paid, order.expected_delivery_date),
            },
        }

    async def remove(self, db: AsyncSession, *, id: int, deleted_by: Optional[int] = None) -> fin_models.Payment:
        """소프트 삭제. 삭제된 지급은 합계에서 빠집니다."""
        async with atomic(db):
            payment = await self.get_active(db, id)
            payment.deleted_at = datetime.now(UTC)
            payment.deleted_by = deleted_by
            db.add(payment)
        logger.info("Payment %s deleted by user %s", id, deleted_by)
        return payment

    # -------------------------------------------------------------------------
    # 미지급금 / 잔액
    # -------------------------------------------------------------------------
    async def _payable_orders(self, db: AsyncSession, supplier_id: Optional[int] = None):
        query = (
            select(PurchaseOrder, Supplier.name)
            .join(Supplier, Supplier.id == PurchaseOrder.supplier_id)
            .where(PurchaseOrder.status.in_(PAYABLE_STATUSES))
            .order_by(PurchaseOrder.expected_delivery_date.asc().nulls_last(), PurchaseOrder.id)
        )
        if supplier_id is not None:
            query = query.where(PurchaseOrder.supplier_id == supplier_id)
        return (await db.execute(query)).all()

    async def accounts_payable(
        self,
        db: AsyncSession,
        *,
        supplier_id: Optional[int] = None,
        status: Optional[fin_models.PaymentStatus] = None,
        overdue_days: Optional[int] = None,
        today: Optional[date] = None,
    ) -> Dict[str, Any]:
        """
        승인 이후 발주서 중 잔액이 남은 건의 목록입니다.
        잔액 = 발주 합계 - 지급 합계, 경과 일수는 납품 예정일 기준입니다.
        """
        today = today or date.today()
        rows = await self._payable_orders(db, supplier_id)
        paid = await self.paid_by_order(db, [order.id for order, _ in rows])

        lines = []
        for order, supplier_name in rows:
            total_paid = paid.get(order.id, ZERO)
            remaining = order.grand_total - total_paid
            if remaining <= 0:
                continue
            due_date = order.expected_delivery_date
            line = {
                "purchase_order_id": order.id,
                "order_number": order.order_number,
                "supplier_id": order.supplier_id,
                "supplier_name": supplier_name,
                "grand_total": order.grand_total,
                "total_paid": total_paid,
                "remaining": remaining,
                "status": payment_status(order.grand_total, total_paid, due_date, today),
                "due_date": due_date,
                "days_overdue": max(0, (today - due_date).days) if due_date else 0,
                "order_date": order.order_date,
            }
            if status is not None and line["status"] != status:
                continue
            if overdue_days is not None and line["days_overdue"] < overdue_days:
                continue
            lines.append(line)

        overdue = [line for line in lines if line["status"] == fin_models.PaymentStatus.OVERDUE]
        return {
            "lines": lines,
            "summary": {
                "total_payable": sum((line["remaining"] for line in lines), ZERO),
                "total_overdue": sum((line["remaining"] for line in overdue), ZERO),
                "count": len(lines),
                "overdue_count": len(overdue),
            },
        }

    async def supplier_balance(self, db: AsyncSession, *, supplier_id: int) -> Dict[str, Any]:
        supplier = await db.get(Supplier, supplier_id)
        if supplier is None:
            raise NotFoundError(f"Supplier {supplier_id} not found")

        rows = await self._payable_orders(db, supplier_id)
        paid = await self.paid_by_order(db, [order.id for order, _ in rows])
        total_purchases = sum((order.grand_total for order, _ in rows), ZERO)
        total_paid = sum(paid.values(), ZERO)
        total_owed = total_purchases - total_paid
        return {
            "supplier_id": supplier.id,
            "supplier_name": supplier.name,
            "total_purchases": total_purchases,
            "total_paid": total_paid,
            "total_owed": total_owed,
            "credit_limit": supplier.credit_limit,
            "available_credit": supplier.credit_limit - total_owed if supplier.credit_limit is not None else None,
        }

    async def financial_summary(self, db: AsyncSession, *, today: Optional[date] = None) -> Dict[str, Any]:
        today = today or date.today()
        rows = await self._payable_orders(db)
        paid = await self.paid_by_order(db, [order.id for order, _ in rows])

        total_payable = ZERO
        overdue_payable = ZERO
        for order, _ in rows:
            remaining = order.grand_total - paid.get(order.id, ZERO)
            total_payable += remaining
            if order.expected_delivery_date and order.expected_delivery_date < today and remaining > 0:
                overdue_payable += remaining

        recent = (await db.execute(
            select(func.coalesce(func.sum(self.model.amount), 0), func.count(self.model.id))
            .where(self.model.deleted_at.is_(None), self.model.payment_date >= today - timedelta(days=30))
        )).one()
        return {
            "total_payable": total_payable,
            "overdue_payable": overdue_payable,
            "last_30_days_paid": Decimal(recent[0]),
            "last_30_days_count": recent[1],
            "total_paid_to_date": sum(paid.values(), ZERO),
        }


payment = CRUDPayment()
