# app/domains/fin/routers.py

"""
'fin' 도메인 (지급/미지급금)의 API 엔드포인트를 정의하는 모듈입니다.
"""

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlmodel.ext.asyncio.session import AsyncSession

from app.core import dependencies as deps
from app.domains.usr.models import User as UsrUser

from app.domains.fin import crud as fin_crud
from app.domains.fin import models as fin_models
from app.domains.fin import schemas as fin_schemas


router = APIRouter(
    tags=["Finance (지급 관리)"],
    responses={404: {"description": "Not found"}},
)


# =============================================================================
# 1. fin.payments 엔드포인트
# =============================================================================
@router.post("/payments", response_model=fin_schemas.PaymentResponse, status_code=status.HTTP_201_CREATED)
async def create_payment(
    payment_in: fin_schemas.PaymentCreate,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_warehouse_manager),
):
    """승인 이후 발주서에 지급을 등록합니다. 지급액은 미지급 잔액을 넘을 수 없습니다."""
    return await fin_crud.payment.create(db, obj_in=payment_in, created_by=current_user.id)


@router.get("/payments", response_model=List[fin_schemas.PaymentResponse])
async def read_payments(
    supplier_id: Optional[int] = Query(None),
    purchase_order_id: Optional[int] = Query(None),
    payment_method: Optional[fin_models.PaymentMethod] = Query(None),
    start_date: Optional[date] = Query(None, description="지급일 검색 시작일"),
    end_date: Optional[date] = Query(None, description="지급일 검색 종료일"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1),
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_active_user),
):
    return await fin_crud.payment.list_payments(
        db,
        supplier_id=supplier_id,
        purchase_order_id=purchase_order_id,
        payment_method=payment_method,
        start_date=start_date,
        end_date=end_date,
        skip=skip,
        limit=limit,
    )


@router.get("/payments/{payment_id}", response_model=fin_schemas.PaymentResponse)
async def read_payment(
    payment_id: int,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_active_user),
):
    return await fin_crud.payment.get_active(db, payment_id)


@router.delete("/payments/{payment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_payment(
    payment_id: int,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_warehouse_manager),
):
    await fin_crud.payment.remove(db, id=payment_id, deleted_by=current_user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/purchase-orders/{order_id}/payments", response_model=fin_schemas.PurchaseOrderPayments)
async def read_purchase_order_payments(
    order_id: int,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_active_user),
):
    return await fin_crud.payment.for_purchase_order(db, purchase_order_id=order_id)


# =============================================================================
# 2. 미지급금 / 잔액 엔드포인트
# =============================================================================
@router.get("/accounts-payable", response_model=fin_schemas.AccountsPayable)
async def read_accounts_payable(
    supplier_id: Optional[int] = Query(None),
    payment_status: Optional[fin_models.PaymentStatus] = Query(None, alias="status"),
    overdue_days: Optional[int] = Query(None, ge=0, description="납품 예정일 경과 일수 이상"),
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_active_user),
):
    return await fin_crud.payment.accounts_payable(
        db, supplier_id=supplier_id, status=payment_status, overdue_days=overdue_days
    )


@router.get("/suppliers/{supplier_id}/balance", response_model=fin_schemas.SupplierBalance)
async def read_supplier_balance(
    supplier_id: int,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_active_user),
):
    return await fin_crud.payment.supplier_balance(db, supplier_id=supplier_id)


@router.get("/summary", response_model=fin_schemas.FinancialSummary)
async def read_financial_summary(
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_active_user),
):
    return await fin_crud.payment.financial_summary(db)
