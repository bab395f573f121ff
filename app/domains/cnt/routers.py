# app/domains/cnt/routers.py

"""
'cnt' 도메인 (재고 실사)의 API 엔드포인트를 정의하는 모듈입니다.
"""

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlmodel.ext.asyncio.session import AsyncSession

from app.core import dependencies as deps
from app.domains.usr.models import User as UsrUser

from app.domains.cnt import crud as cnt_crud
from app.domains.cnt import models as cnt_models
from app.domains.cnt import schemas as cnt_schemas


router = APIRouter(
    tags=["Stock Counts (재고 실사)"],
    responses={404: {"description": "Not found"}},
)


# =============================================================================
# 1. cnt.stock_counts 엔드포인트
# =============================================================================
@router.post("/stock-counts", response_model=cnt_schemas.StockCountResponse, status_code=status.HTTP_201_CREATED)
async def create_stock_count(
    count_in: cnt_schemas.StockCountCreate,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_warehouse_manager),
):
    return await cnt_crud.stock_count.create(db, obj_in=count_in, created_by=current_user.id)


@router.get("/stock-counts", response_model=List[cnt_schemas.StockCountResponse])
async def read_stock_counts(
    count_status: Optional[cnt_models.StockCountStatus] = Query(None, alias="status"),
    warehouse_id: Optional[int] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1),
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_active_user),
):
    return await cnt_crud.stock_count.list_counts(
        db,
        status=count_status,
        warehouse_id=warehouse_id,
        start_date=start_date,
        end_date=end_date,
        skip=skip,
        limit=limit,
    )


@router.get("/stock-counts/statistics", response_model=cnt_schemas.StockCountStatistics)
async def read_stock_count_statistics(
    start_date: Optional[date] = Query(None, description="예정일 검색 시작일"),
    end_date: Optional[date] = Query(None, description="예정일 검색 종료일"),
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_active_user),
):
    return await cnt_crud.stock_count.statistics(db, start_date=start_date, end_date=end_date)


@router.get("/stock-counts/{count_id}", response_model=cnt_schemas.StockCountResponse)
async def read_stock_count(
    count_id: int,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_active_user),
):
    return await cnt_crud.stock_count.get_with_items(db, count_id)


@router.put("/stock-counts/{count_id}", response_model=cnt_schemas.StockCountResponse)
async def update_stock_count(
    count_id: int,
    count_in: cnt_schemas.StockCountUpdate,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_warehouse_manager),
):
    return await cnt_crud.stock_count.update(db, id=count_id, obj_in=count_in)


@router.delete("/stock-counts/{count_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_stock_count(
    count_id: int,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_warehouse_manager),
):
    await cnt_crud.stock_count.remove(db, id=count_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/stock-counts/{count_id}/variance-report", response_model=cnt_schemas.VarianceReport)
async def read_variance_report(
    count_id: int,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_active_user),
):
    return await cnt_crud.stock_count.variance_report(db, id=count_id)


# =============================================================================
# 2. 실사 워크플로우 엔드포인트
# =============================================================================
@router.post("/stock-counts/{count_id}/start", response_model=cnt_schemas.StockCountResponse)
async def start_stock_count(
    count_id: int,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_warehouse_manager),
):
    """창고의 현재 원장 수량을 스냅샷하여 실사 품목을 생성합니다."""
    return await cnt_crud.stock_count.start(db, id=count_id)


@router.post("/stock-counts/{count_id}/counts", response_model=cnt_schemas.StockCountResponse)
async def record_stock_counts(
    count_id: int,
    record_in: cnt_schemas.StockCountRecord,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_warehouse_manager),
):
    return await cnt_crud.stock_count.record_counts(db, id=count_id, obj_in=record_in, counted_by=current_user.id)


@router.post("/stock-counts/{count_id}/complete", response_model=cnt_schemas.StockCountResponse)
async def complete_stock_count(
    count_id: int,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_warehouse_manager),
):
    return await cnt_crud.stock_count.complete(db, id=count_id)


@router.post("/stock-counts/{count_id}/approve", response_model=cnt_schemas.StockCountResponse)
async def approve_stock_count(
    count_id: int,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_warehouse_manager),
):
    """차이가 있는 품목의 원장 수량을 실사 수량으로 맞춥니다."""
    return await cnt_crud.stock_count.approve(db, id=count_id, approver_id=current_user.id)


@router.post("/stock-counts/{count_id}/cancel", response_model=cnt_schemas.StockCountResponse)
async def cancel_stock_count(
    count_id: int,
    cancel_in: Optional[cnt_schemas.StockCountCancel] = None,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_warehouse_manager),
):
    reason = cancel_in.reason if cancel_in else None
    return await cnt_crud.stock_count.cancel(db, id=count_id, reason=reason)
