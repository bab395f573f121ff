# tests/domains/test_loc.py

"""
'loc' 도메인 (창고 관리) API 테스트 모듈입니다.
"""

import pytest
from httpx import AsyncClient
from typing import Callable

from app.domains.inv import models as inv_models
from app.domains.loc import models as loc_models


@pytest.mark.asyncio
async def test_create_warehouse(admin_client: AsyncClient):
    """(성공) 관리자: 창고 생성"""
    payload = {"code": "WH-COLD", "name": "냉장 창고", "warehouse_type": "COLD_STORAGE"}
    response = await admin_client.post("/api/v1/loc/warehouses", json=payload)
    assert response.status_code == 201
    assert response.json()["warehouse_type"] == "COLD_STORAGE"


@pytest.mark.asyncio
async def test_create_warehouse_duplicate_code(admin_client: AsyncClient, warehouse_a: loc_models.Warehouse):
    """(실패) 중복 창고 코드는 400"""
    response = await admin_client.post("/api/v1/loc/warehouses", json={"code": warehouse_a.code, "name": "dup"})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_create_warehouse_forbidden_for_manager(manager_client: AsyncClient):
    """(실패) 권한: 창고 관리자는 창고 마스터를 만들 수 없음"""
    response = await manager_client.post("/api/v1/loc/warehouses", json={"code": "WH-X", "name": "x"})
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_list_warehouses_filter_by_type(
    authorized_client: AsyncClient, warehouse_a: loc_models.Warehouse, warehouse_b: loc_models.Warehouse
):
    """(성공) 창고 유형으로 필터링"""
    response = await authorized_client.get("/api/v1/loc/warehouses", params={"warehouse_type": "PHARMACY"})
    assert response.status_code == 200
    codes = [w["code"] for w in response.json()]
    assert warehouse_b.code in codes
    assert warehouse_a.code not in codes


@pytest.mark.asyncio
async def test_update_warehouse(admin_client: AsyncClient, warehouse_a: loc_models.Warehouse):
    """(성공) 관리자: 창고 정보 수정"""
    response = await admin_client.put(f"/api/v1/loc/warehouses/{warehouse_a.id}", json={"name": "본관 창고"})
    assert response.status_code == 200
    assert response.json()["name"] == "본관 창고"


@pytest.mark.asyncio
async def test_delete_warehouse_with_stock_conflicts(
    admin_client: AsyncClient,
    warehouse_a: loc_models.Warehouse,
    product: inv_models.Product,
    receive_stock: Callable,
):
    """(실패) 재고가 남아 있는 창고는 삭제할 수 없음 (409)"""
    await receive_stock(product.id, warehouse_a.id, 10)
    response = await admin_client.delete(f"/api/v1/loc/warehouses/{warehouse_a.id}")
    assert response.status_code == 409
    assert response.json()["error"] == "HasActiveStockError"


@pytest.mark.asyncio
async def test_delete_empty_warehouse(admin_client: AsyncClient, warehouse_b: loc_models.Warehouse):
    """(성공) 재고가 없는 창고 삭제"""
    response = await admin_client.delete(f"/api/v1/loc/warehouses/{warehouse_b.id}")
    assert response.status_code == 204
    follow = await admin_client.get(f"/api/v1/loc/warehouses/{warehouse_b.id}")
    assert follow.status_code == 404
