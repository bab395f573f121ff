# app/domains/pur/routers.py

"""
'pur' 도메인 (발주서)의 API 엔드포인트를 정의하는 모듈입니다.
"""

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlmodel.ext.asyncio.session import AsyncSession

from app.core import dependencies as deps
from app.domains.usr.models import User as UsrUser

from app.domains.pur import crud as pur_crud
from app.domains.pur import models as pur_models
from app.domains.pur import schemas as pur_schemas


router = APIRouter(
    tags=["Purchasing (발주 관리)"],
    responses={404: {"description": "Not found"}},
)


# =============================================================================
# 1. pur.purchase_orders 엔드포인트
# =============================================================================
@router.post("/purchase-orders", response_model=pur_schemas.PurchaseOrderResponse, status_code=status.HTTP_201_CREATED)
async def create_purchase_order(
    order_in: pur_schemas.PurchaseOrderCreate,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_warehouse_manager),
):
    """DRAFT 상태의 발주서를 생성합니다. 세액은 소계의 TAX_RATE 입니다."""
    return await pur_crud.purchase_order.create(db, obj_in=order_in, created_by=current_user.id)


@router.get("/purchase-orders", response_model=List[pur_schemas.PurchaseOrderResponse])
async def read_purchase_orders(
    order_status: Optional[pur_models.PurchaseOrderStatus] = Query(None, alias="status"),
    supplier_id: Optional[int] = Query(None),
    warehouse_id: Optional[int] = Query(None),
    start_date: Optional[date] = Query(None, description="발주일 검색 시작일"),
    end_date: Optional[date] = Query(None, description="발주일 검색 종료일"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1),
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_active_user),
):
    return await pur_crud.purchase_order.list_orders(
        db,
        status=order_status,
        supplier_id=supplier_id,
        warehouse_id=warehouse_id,
        start_date=start_date,
        end_date=end_date,
        skip=skip,
        limit=limit,
    )


@router.get("/purchase-orders/statistics", response_model=pur_schemas.PurchaseOrderStatistics)
async def read_purchase_order_statistics(
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_active_user),
):
    return await pur_crud.purchase_order.statistics(db)


@router.get("/purchase-orders/{order_id}", response_model=pur_schemas.PurchaseOrderResponse)
async def read_purchase_order(
    order_id: int,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_active_user),
):
    return await pur_crud.purchase_order.get_with_items(db, order_id)


@router.put("/purchase-orders/{order_id}", response_model=pur_schemas.PurchaseOrderResponse)
async def update_purchase_order(
    order_id: int,
    order_in: pur_schemas.PurchaseOrderUpdate,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_warehouse_manager),
):
    return await pur_crud.purchase_order.update(db, id=order_id, obj_in=order_in)


@router.delete("/purchase-orders/{order_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_purchase_order(
    order_id: int,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_warehouse_manager),
):
    await pur_crud.purchase_order.remove(db, id=order_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# =============================================================================
# 2. 발주 워크플로우 엔드포인트
# =============================================================================
@router.post("/purchase-orders/{order_id}/submit", response_model=pur_schemas.PurchaseOrderResponse)
async def submit_purchase_order(
    order_id: int,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_warehouse_manager),
):
    return await pur_crud.purchase_order.submit(db, id=order_id)


@router.post("/purchase-orders/{order_id}/approve", response_model=pur_schemas.PurchaseOrderResponse)
async def approve_purchase_order(
    order_id: int,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_warehouse_manager),
):
    return await pur_crud.purchase_order.approve(db, id=order_id, approver_id=current_user.id)


@router.post("/purchase-orders/{order_id}/order", response_model=pur_schemas.PurchaseOrderResponse)
async def place_purchase_order(
    order_id: int,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_warehouse_manager),
):
    return await pur_crud.purchase_order.place_order(db, id=order_id)


@router.post("/purchase-orders/{order_id}/receive", response_model=pur_schemas.PurchaseOrderResponse)
async def receive_purchase_order(
    order_id: int,
    receive_in: pur_schemas.PurchaseOrderReceive,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_warehouse_manager),
):
    """
    입고 처리. 한 라인이라도 검증에 실패하면 어떤 원장 변경도 남지 않습니다.
    """
    return await pur_crud.purchase_order.receive(db, id=order_id, obj_in=receive_in, actor_id=current_user.id)


@router.post("/purchase-orders/{order_id}/cancel", response_model=pur_schemas.PurchaseOrderResponse)
async def cancel_purchase_order(
    order_id: int,
    cancel_in: Optional[pur_schemas.PurchaseOrderCancel] = None,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_warehouse_manager),
):
    reason = cancel_in.reason if cancel_in else None
    return await pur_crud.purchase_order.cancel(db, id=order_id, reason=reason)
