# app/domains/trf/routers.py

"""
'trf' 도메인 (창고 간 이동)의 API 엔드포인트를 정의하는 모듈입니다.
"""

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlmodel.ext.asyncio.session import AsyncSession

from app.core import dependencies as deps
from app.domains.usr.models import User as UsrUser

from app.domains.trf import crud as trf_crud
from app.domains.trf import models as trf_models
from app.domains.trf import schemas as trf_schemas


router = APIRouter(
    tags=["Transfers (창고 간 이동)"],
    responses={404: {"description": "Not found"}},
)


# =============================================================================
# 1. trf.transfer_orders 엔드포인트
# =============================================================================
@router.post("/transfer-orders", response_model=trf_schemas.TransferOrderResponse, status_code=status.HTTP_201_CREATED)
async def create_transfer_order(
    order_in: trf_schemas.TransferOrderCreate,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_warehouse_manager),
):
    """출고 창고와 입고 창고가 같으면 409 응답입니다."""
    return await trf_crud.transfer_order.create(db, obj_in=order_in, requested_by=current_user.id)


@router.get("/transfer-orders", response_model=List[trf_schemas.TransferOrderResponse])
async def read_transfer_orders(
    order_status: Optional[trf_models.TransferOrderStatus] = Query(None, alias="status"),
    source_warehouse_id: Optional[int] = Query(None),
    destination_warehouse_id: Optional[int] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1),
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_active_user),
):
    return await trf_crud.transfer_order.list_orders(
        db,
        status=order_status,
        source_warehouse_id=source_warehouse_id,
        destination_warehouse_id=destination_warehouse_id,
        start_date=start_date,
        end_date=end_date,
        skip=skip,
        limit=limit,
    )


@router.get("/transfer-orders/statistics", response_model=trf_schemas.TransferOrderStatistics)
async def read_transfer_order_statistics(
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_active_user),
):
    return await trf_crud.transfer_order.statistics(db)


@router.get("/transfer-orders/{order_id}", response_model=trf_schemas.TransferOrderResponse)
async def read_transfer_order(
    order_id: int,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_active_user),
):
    return await trf_crud.transfer_order.get_with_items(db, order_id)


@router.put("/transfer-orders/{order_id}", response_model=trf_schemas.TransferOrderResponse)
async def update_transfer_order(
    order_id: int,
    order_in: trf_schemas.TransferOrderUpdate,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_warehouse_manager),
):
    return await trf_crud.transfer_order.update(db, id=order_id, obj_in=order_in)


@router.delete("/transfer-orders/{order_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_transfer_order(
    order_id: int,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_warehouse_manager),
):
    await trf_crud.transfer_order.remove(db, id=order_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# =============================================================================
# 2. 이동 워크플로우 엔드포인트
# =============================================================================
@router.post("/transfer-orders/{order_id}/submit", response_model=trf_schemas.TransferOrderResponse)
async def submit_transfer_order(
    order_id: int,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_warehouse_manager),
):
    return await trf_crud.transfer_order.submit(db, id=order_id)


@router.post("/transfer-orders/{order_id}/approve", response_model=trf_schemas.TransferOrderResponse)
async def approve_transfer_order(
    order_id: int,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_warehouse_manager),
):
    """출고 창고 재고를 예약합니다. 가용 수량이 부족하면 품목 코드와 함께 409 응답입니다."""
    return await trf_crud.transfer_order.approve(db, id=order_id, approver_id=current_user.id)


@router.post("/transfer-orders/{order_id}/reject", response_model=trf_schemas.TransferOrderResponse)
async def reject_transfer_order(
    order_id: int,
    reject_in: trf_schemas.TransferOrderReject,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_warehouse_manager),
):
    return await trf_crud.transfer_order.reject(
        db, id=order_id, reason=reject_in.reason, approver_id=current_user.id
    )


@router.post("/transfer-orders/{order_id}/ship", response_model=trf_schemas.TransferOrderResponse)
async def ship_transfer_order(
    order_id: int,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_warehouse_manager),
):
    return await trf_crud.transfer_order.ship(db, id=order_id, actor_id=current_user.id)


@router.post("/transfer-orders/{order_id}/receive", response_model=trf_schemas.TransferOrderResponse)
async def receive_transfer_order(
    order_id: int,
    receive_in: Optional[trf_schemas.TransferOrderReceive] = None,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_warehouse_manager),
):
    received_quantities = receive_in.received_quantities if receive_in else None
    return await trf_crud.transfer_order.receive(
        db, id=order_id, received_quantities=received_quantities, actor_id=current_user.id
    )


@router.post("/transfer-orders/{order_id}/cancel", response_model=trf_schemas.TransferOrderResponse)
async def cancel_transfer_order(
    order_id: int,
    cancel_in: Optional[trf_schemas.TransferOrderCancel] = None,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_warehouse_manager),
):
    reason = cancel_in.reason if cancel_in else None
    return await trf_crud.transfer_order.cancel(db, id=order_id, reason=reason, actor_id=current_user.id)
