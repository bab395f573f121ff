# app/domains/ven/routers.py

"""
'ven' 도메인 (PostgreSQL 'ven' 스키마)의 API 엔드포인트를 정의하는 모듈입니다.
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status
from sqlmodel.ext.asyncio.session import AsyncSession

from app.core import dependencies as deps
from app.domains.usr.models import User as UsrUser

from app.domains.ven import crud as ven_crud
from app.domains.ven import schemas as ven_schemas

router = APIRouter(
    tags=["Vendor Management (공급업체 관리)"],
    responses={404: {"description": "Not found"}},
)


# =============================================================================
# 1. ven.suppliers 엔드포인트
# =============================================================================
@router.post("/suppliers", response_model=ven_schemas.SupplierResponse, status_code=status.HTTP_201_CREATED, summary="공급업체 생성")
async def create_supplier(
    supplier_in: ven_schemas.SupplierCreate,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_admin_user),
):
    return await ven_crud.supplier.create(db, obj_in=supplier_in)


@router.get("/suppliers", response_model=List[ven_schemas.SupplierResponse], summary="공급업체 목록 조회")
async def read_suppliers(
    search: Optional[str] = Query(None, description="코드/이름 검색어"),
    is_active: Optional[bool] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1),
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_active_user),
):
    if search:
        return await ven_crud.supplier.search(db, keyword=search, skip=skip, limit=limit)
    return await ven_crud.supplier.get_filtered(
        db, filters={"is_active": is_active}, order_by_field="code", order_desc=False, skip=skip, limit=limit
    )


@router.get("/suppliers/{supplier_id}", response_model=ven_schemas.SupplierResponse, summary="공급업체 조회")
async def read_supplier(
    supplier_id: int,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_active_user),
):
    return await ven_crud.supplier.get_or_404(db, supplier_id)


@router.put("/suppliers/{supplier_id}", response_model=ven_schemas.SupplierResponse, summary="공급업체 수정")
async def update_supplier(
    supplier_id: int,
    supplier_in: ven_schemas.SupplierUpdate,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_admin_user),
):
    db_supplier = await ven_crud.supplier.get_or_404(db, supplier_id)
    return await ven_crud.supplier.update(db, db_obj=db_supplier, obj_in=supplier_in)


@router.delete("/suppliers/{supplier_id}", status_code=status.HTTP_204_NO_CONTENT, summary="공급업체 삭제")
async def delete_supplier(
    supplier_id: int,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_admin_user),
):
    await ven_crud.supplier.remove(db, id=supplier_id)
    return None
