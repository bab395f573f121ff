# app/domains/inv/routers.py

"""
'inv' 도메인 (품목, 배치, 재고 원장, 재고 이동)의 API 엔드포인트를 정의하는 모듈입니다.
"""

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlmodel.ext.asyncio.session import AsyncSession

from app.core import dependencies as deps
from app.core.database import atomic
from app.domains.usr.models import User as UsrUser

from app.domains.inv import crud as inv_crud
from app.domains.inv import models as inv_models
from app.domains.inv import schemas as inv_schemas
from app.domains.inv.ledger import stock_ledger, stock_movement


router = APIRouter(
    tags=["Inventory Management (재고 관리)"],
    responses={404: {"description": "Not found"}},
)


# =============================================================================
# 1. inv.product_categories 엔드포인트
# =============================================================================
@router.post("/categories", response_model=inv_schemas.ProductCategoryResponse, status_code=status.HTTP_201_CREATED)
async def create_product_category(
    category_in: inv_schemas.ProductCategoryCreate,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_admin_user),
):
    """새로운 품목 분류를 생성합니다. 관리자 권한이 필요합니다."""
    return await inv_crud.product_category.create(db, obj_in=category_in)


@router.get("/categories", response_model=List[inv_schemas.ProductCategoryResponse])
async def read_product_categories(
    skip: int = 0,
    limit: int = 100,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_active_user),
):
    return await inv_crud.product_category.get_multi(db, skip=skip, limit=limit)


@router.get("/categories/{category_id}", response_model=inv_schemas.ProductCategoryResponse)
async def read_product_category(
    category_id: int,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_active_user),
):
    return await inv_crud.product_category.get_or_404(db, category_id)


@router.put("/categories/{category_id}", response_model=inv_schemas.ProductCategoryResponse)
async def update_product_category(
    category_id: int,
    category_in: inv_schemas.ProductCategoryUpdate,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_admin_user),
):
    db_category = await inv_crud.product_category.get_or_404(db, category_id)
    return await inv_crud.product_category.update(db, db_obj=db_category, obj_in=category_in)


@router.delete("/categories/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_product_category(
    category_id: int,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_admin_user),
):
    """품목 분류를 삭제합니다. 소속 품목이 있으면 409 응답입니다."""
    await inv_crud.product_category.remove(db, id=category_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# =============================================================================
# 2. inv.products 엔드포인트
# =============================================================================
@router.post("/products", response_model=inv_schemas.ProductResponse, status_code=status.HTTP_201_CREATED)
async def create_product(
    product_in: inv_schemas.ProductCreate,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_admin_user),
):
    """새로운 품목을 생성합니다. 관리자 권한이 필요합니다."""
    return await inv_crud.product.create(db, obj_in=product_in)


@router.get("/products", response_model=List[inv_schemas.ProductResponse])
async def read_products(
    search: Optional[str] = Query(None, description="코드/이름/성분명/바코드 검색"),
    category_id: Optional[int] = Query(None),
    product_status: Optional[inv_models.ProductStatus] = Query(None, alias="status"),
    requires_prescription: Optional[bool] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1),
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_active_user),
):
    return await inv_crud.product.search(
        db,
        search=search,
        category_id=category_id,
        status=product_status,
        requires_prescription=requires_prescription,
        skip=skip,
        limit=limit,
    )


@router.get("/products/{product_id}", response_model=inv_schemas.ProductResponse)
async def read_product(
    product_id: int,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_active_user),
):
    return await inv_crud.product.get_or_404(db, product_id)


@router.put("/products/{product_id}", response_model=inv_schemas.ProductResponse)
async def update_product(
    product_id: int,
    product_in: inv_schemas.ProductUpdate,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_admin_user),
):
    db_product = await inv_crud.product.get_or_404(db, product_id)
    return await inv_crud.product.update(db, db_obj=db_product, obj_in=product_in)


@router.post("/products/{product_id}/discontinue", response_model=inv_schemas.ProductResponse)
async def discontinue_product(
    product_id: int,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_admin_user),
):
    """품목을 단종 처리합니다. 재고가 남아 있으면 409 응답입니다."""
    return await inv_crud.product.discontinue(db, id=product_id)


@router.delete("/products/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_product(
    product_id: int,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_admin_user),
):
    """품목 삭제는 단종(소프트 삭제)으로 처리합니다."""
    await inv_crud.product.discontinue(db, id=product_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# =============================================================================
# 3. inv.batches 엔드포인트
# =============================================================================
@router.post("/batches", response_model=inv_schemas.BatchResponse, status_code=status.HTTP_201_CREATED)
async def create_batch(
    batch_in: inv_schemas.BatchCreate,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_warehouse_manager),
):
    """
    새 배치를 등록합니다. current_quantity 는 0에서 시작하며 입고 이동으로 증가합니다.
    """
    return await inv_crud.batch.create(db, obj_in=batch_in)


@router.get("/batches", response_model=List[inv_schemas.BatchResponse])
async def read_batches(
    product_id: Optional[int] = Query(None),
    supplier_id: Optional[int] = Query(None),
    is_expired: Optional[bool] = Query(None),
    is_recalled: Optional[bool] = Query(None),
    expiring_within_days: Optional[int] = Query(None, ge=0),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1),
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_active_user),
):
    return await inv_crud.batch.list_batches(
        db,
        product_id=product_id,
        supplier_id=supplier_id,
        is_expired=is_expired,
        is_recalled=is_recalled,
        expiring_within_days=expiring_within_days,
        skip=skip,
        limit=limit,
    )


@router.get("/batches/expiring", response_model=List[inv_schemas.BatchResponse])
async def read_expiring_batches(
    days: Optional[int] = Query(None, ge=0, description="기본값: EXPIRY_WARNING_DAYS"),
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_active_user),
):
    return await inv_crud.batch.expiring(db, days=days)


@router.get("/batches/expired", response_model=List[inv_schemas.BatchResponse])
async def read_expired_batches(
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_active_user),
):
    return await inv_crud.batch.expired(db)


@router.get("/batches/statistics", response_model=inv_schemas.BatchStatistics)
async def read_batch_statistics(
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_active_user),
):
    return await inv_crud.batch.statistics(db)


@router.post("/batches/mark-expired", response_model=inv_schemas.MarkExpiredResult)
async def mark_expired_batches(
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_warehouse_manager),
):
    """유효기간이 지난 배치를 만료 처리합니다. 여러 번 호출해도 결과는 같습니다."""
    return {"expired_count": await inv_crud.batch.mark_expired(db)}


@router.get("/batches/{batch_id}", response_model=inv_schemas.BatchResponse)
async def read_batch(
    batch_id: int,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_active_user),
):
    return await inv_crud.batch.get_active_or_404(db, batch_id)


@router.put("/batches/{batch_id}", response_model=inv_schemas.BatchResponse)
async def update_batch(
    batch_id: int,
    batch_in: inv_schemas.BatchUpdate,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_warehouse_manager),
):
    db_batch = await inv_crud.batch.get_active_or_404(db, batch_id)
    return await inv_crud.batch.update(db, db_obj=db_batch, obj_in=batch_in)


@router.post("/batches/{batch_id}/recall", response_model=inv_schemas.BatchResponse)
async def recall_batch(
    batch_id: int,
    recall_in: inv_schemas.BatchRecall,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_admin_user),
):
    """배치를 회수 처리하고 재고 보유 창고에 RECALL 알림을 보냅니다."""
    return await inv_crud.batch.recall(db, id=batch_id, reason=recall_in.reason, actor_id=current_user.id)


@router.delete("/batches/{batch_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_batch(
    batch_id: int,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_admin_user),
):
    await inv_crud.batch.remove(db, id=batch_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# =============================================================================
# 4. inv.stocks (재고 원장) 엔드포인트
# =============================================================================
@router.get("/stocks", response_model=List[inv_schemas.StockResponse])
async def read_stocks(
    product_id: Optional[int] = Query(None),
    warehouse_id: Optional[int] = Query(None),
    batch_id: Optional[int] = Query(None),
    low_stock: bool = Query(False),
    out_of_stock: bool = Query(False),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1),
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_active_user),
):
    return await stock_ledger.list_stocks(
        db,
        product_id=product_id,
        warehouse_id=warehouse_id,
        batch_id=batch_id,
        low_stock=low_stock,
        out_of_stock=out_of_stock,
        skip=skip,
        limit=limit,
    )


@router.get("/stocks/low", response_model=List[inv_schemas.StockAlertItem])
async def read_low_stock(
    warehouse_id: Optional[int] = Query(None),
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_active_user),
):
    return await stock_ledger.low_stock(db, warehouse_id=warehouse_id)


@router.get("/stocks/out", response_model=List[inv_schemas.StockAlertItem])
async def read_out_of_stock(
    warehouse_id: Optional[int] = Query(None),
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_active_user),
):
    return await stock_ledger.out_of_stock(db, warehouse_id=warehouse_id)


@router.get("/stocks/statistics", response_model=inv_schemas.StockStatistics)
async def read_stock_statistics(
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_active_user),
):
    return await stock_ledger.statistics(db)


@router.get("/stocks/products/{product_id}/summary", response_model=inv_schemas.ProductStockSummary)
async def read_product_stock_summary(
    product_id: int,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_active_user),
):
    return await stock_ledger.product_summary(db, product_id=product_id)


@router.get("/stocks/warehouses/{warehouse_id}/summary", response_model=inv_schemas.WarehouseStockSummary)
async def read_warehouse_stock_summary(
    warehouse_id: int,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_active_user),
):
    return await stock_ledger.warehouse_summary(db, warehouse_id=warehouse_id)


@router.post("/stocks/reserve", response_model=inv_schemas.StockResponse)
async def reserve_stock(
    reservation: inv_schemas.StockReservation,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_warehouse_manager),
):
    """가용 수량에서 예약합니다. 가용 수량을 넘으면 409 응답입니다."""
    async with atomic(db):
        row = await stock_ledger.get_or_create(
            db, reservation.product_id, reservation.warehouse_id, reservation.batch_id, create=False
        )
        await stock_ledger.reserve(db, row, reservation.quantity)
    await db.refresh(row)
    return row


@router.post("/stocks/release", response_model=inv_schemas.StockResponse)
async def release_stock(
    reservation: inv_schemas.StockReservation,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_warehouse_manager),
):
    """예약을 해제합니다. 예약 수량을 넘으면 409 응답입니다."""
    async with atomic(db):
        row = await stock_ledger.get_or_create(
            db, reservation.product_id, reservation.warehouse_id, reservation.batch_id, create=False
        )
        await stock_ledger.release(db, row, reservation.quantity)
    await db.refresh(row)
    return row


@router.post("/stocks/adjust", response_model=inv_schemas.StockAdjustmentResult)
async def adjust_stock(
    adjustment: inv_schemas.StockAdjustment,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_warehouse_manager),
):
    """ADJUSTMENT 이동으로 재고를 조정합니다. 사유는 필수입니다."""
    async with atomic(db):
        stock, movement = await stock_movement.adjust_stock(db, obj_in=adjustment, performed_by=current_user.id)
    await db.refresh(stock)
    return {"stock": stock, "movement": movement}


@router.get("/stocks/{stock_id}", response_model=inv_schemas.StockResponse)
async def read_stock(
    stock_id: int,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_active_user),
):
    return await stock_ledger.get_or_404(db, stock_id)


# =============================================================================
# 5. inv.stock_movements (재고 이동 이력) 엔드포인트
# =============================================================================
@router.post("/stock-movements", response_model=inv_schemas.StockMovementResponse, status_code=status.HTTP_201_CREATED)
async def create_stock_movement(
    movement_in: inv_schemas.StockMovementCreate,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_warehouse_manager),
):
    """
    수동 재고 이동을 등록합니다.
    TRANSFER_IN/TRANSFER_OUT/STOCK_COUNT 는 각 워크플로우에서만 기록되므로 400 응답입니다.
    """
    async with atomic(db):
        movement = await stock_movement.create_manual(db, obj_in=movement_in, performed_by=current_user.id)
    return movement


@router.get("/stock-movements", response_model=List[inv_schemas.StockMovementResponse])
async def read_stock_movements(
    movement_type: Optional[inv_models.MovementType] = Query(None),
    product_id: Optional[int] = Query(None),
    warehouse_id: Optional[int] = Query(None),
    batch_id: Optional[int] = Query(None),
    performed_by: Optional[int] = Query(None),
    reference_type: Optional[str] = Query(None),
    reference_id: Optional[int] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1),
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_active_user),
):
    return await stock_movement.list_movements(
        db,
        movement_type=movement_type,
        product_id=product_id,
        warehouse_id=warehouse_id,
        batch_id=batch_id,
        performed_by=performed_by,
        reference_type=reference_type,
        reference_id=reference_id,
        start_date=start_date,
        end_date=end_date,
        skip=skip,
        limit=limit,
    )


@router.get("/stock-movements/statistics", response_model=inv_schemas.MovementStatistics)
async def read_stock_movement_statistics(
    warehouse_id: Optional[int] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_active_user),
):
    return await stock_movement.statistics(db, warehouse_id=warehouse_id, start_date=start_date, end_date=end_date)


@router.get("/stock-movements/{movement_id}", response_model=inv_schemas.StockMovementResponse)
async def read_stock_movement(
    movement_id: int,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: UsrUser = Depends(deps.get_current_active_user),
):
    return await stock_movement.get_or_404(db, movement_id)
