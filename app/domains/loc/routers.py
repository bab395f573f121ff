# app/domains/loc/routers.py

"""
'loc' 도메인 (PostgreSQL 'loc' 스키마)의 API 엔드포인트를 정의하는 모듈입니다.

이 라우터는 창고(Warehouse) 정보에 대한 CRUD 작업을 위한 HTTP 엔드포인트를 제공합니다.
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status
from sqlmodel.ext.asyncio.session import AsyncSession

from app.core import dependencies as deps
from app.domains.usr.models import User as UsrUser

from app.domains.loc import crud as loc_crud
from app.domains.loc import models as loc_models
from app.domains.loc import schemas as loc_schemas

router = APIRouter(
    tags=["Location Management (창고 관리)"],
    responses={404: {"description": "Not found"}},
)


# =============================================================================
# 1. loc.warehouses 엔드포인트
# =============================================================================
@router.post("/warehouses", response_model=loc_schemas.WarehouseResponse, status_code=status.HTTP_201_CREATED, summary="새 창고 생성")
async def create_warehouse(
    warehouse_in: loc_schemas.WarehouseCreate,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_admin_user),
):
    """
    새로운 창고를 생성합니다. (관리자 권한 필요)
    - `code`: 창고 코드 (고유)
    """
    return await loc_crud.warehouse.create(db=db, obj_in=warehouse_in)


@router.get("/warehouses", response_model=List[loc_schemas.WarehouseResponse], summary="창고 목록 조회")
async def read_warehouses(
    warehouse_type: Optional[loc_models.WarehouseType] = Query(None),
    is_active: Optional[bool] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1),
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_active_user),
):
    return await loc_crud.warehouse.get_filtered(
        db,
        filters={"warehouse_type": warehouse_type, "is_active": is_active},
        order_by_field="code",
        order_desc=False,
        skip=skip,
        limit=limit,
    )


@router.get("/warehouses/{warehouse_id}", response_model=loc_schemas.WarehouseResponse, summary="특정 창고 조회")
async def read_warehouse(
    warehouse_id: int,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_active_user),
):
    return await loc_crud.warehouse.get_or_404(db, warehouse_id)


@router.put("/warehouses/{warehouse_id}", response_model=loc_schemas.WarehouseResponse, summary="창고 정보 업데이트")
async def update_warehouse(
    warehouse_id: int,
    warehouse_update: loc_schemas.WarehouseUpdate,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_admin_user),
):
    db_warehouse = await loc_crud.warehouse.get_or_404(db, warehouse_id)
    return await loc_crud.warehouse.update(db=db, db_obj=db_warehouse, obj_in=warehouse_update)


@router.delete("/warehouses/{warehouse_id}", status_code=status.HTTP_204_NO_CONTENT, summary="창고 삭제")
async def delete_warehouse(
    warehouse_id: int,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_admin_user),
):
    """
    창고를 삭제합니다. (관리자 권한 필요)
    수량이 남아 있는 재고가 있으면 409 응답을 반환합니다.
    """
    await loc_crud.warehouse.remove(db, id=warehouse_id)
    return None
