# tests/domains/test_ven.py

"""
'ven' 도메인 (공급업체 관리) API 테스트 모듈입니다.
"""

import pytest
from decimal import Decimal
from httpx import AsyncClient
from sqlmodel.ext.asyncio.session import AsyncSession

from app.domains.inv import models as inv_models
from app.domains.loc import models as loc_models
from app.domains.pur import crud as pur_crud
from app.domains.pur import schemas as pur_schemas
from app.domains.ven import models as ven_models


@pytest.mark.asyncio
async def test_create_supplier(admin_client: AsyncClient):
    """(성공) 관리자: 공급업체 생성"""
    payload = {"code": "SUP-NEW", "name": "새 제약", "email": "sales@newpharma.example.com"}
    response = await admin_client.post("/api/v1/ven/suppliers", json=payload)
    assert response.status_code == 201
    assert response.json()["email"] == payload["email"]


@pytest.mark.asyncio
async def test_create_supplier_invalid_email(admin_client: AsyncClient):
    """(실패) 잘못된 이메일 형식은 422"""
    response = await admin_client.post("/api/v1/ven/suppliers", json={"code": "SUP-BAD", "name": "x", "email": "nope"})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_search_suppliers(authorized_client: AsyncClient, supplier: ven_models.Supplier):
    """(성공) 키워드로 공급업체 검색"""
    response = await authorized_client.get("/api/v1/ven/suppliers", params={"search": "SUP-0"})
    assert response.status_code == 200
    assert any(s["id"] == supplier.id for s in response.json())


@pytest.mark.asyncio
async def test_delete_supplier_referenced_by_order(
    admin_client: AsyncClient,
    db_session: AsyncSession,
    supplier: ven_models.Supplier,
    warehouse_a: loc_models.Warehouse,
    product: inv_models.Product,
):
    """(실패) 발주서가 참조하는 공급업체는 삭제할 수 없음 (409)"""
    await pur_crud.purchase_order.create(
        db_session,
        obj_in=pur_schemas.PurchaseOrderCreate(
            supplier_id=supplier.id,
            warehouse_id=warehouse_a.id,
            items=[pur_schemas.PurchaseOrderItemCreate(product_id=product.id, ordered_qty=10, unit_price=Decimal("1.00"))],
        ),
    )
    response = await admin_client.delete(f"/api/v1/ven/suppliers/{supplier.id}")
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_delete_unreferenced_supplier(admin_client: AsyncClient, supplier: ven_models.Supplier):
    """(성공) 참조가 없는 공급업체 삭제"""
    response = await admin_client.delete(f"/api/v1/ven/suppliers/{supplier.id}")
    assert response.status_code == 204
