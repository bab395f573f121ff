# tests/domains/test_usr.py

"""
'usr' 도메인 (사용자 관리) API 테스트 모듈입니다.
"""

import pytest
from httpx import AsyncClient
from sqlmodel.ext.asyncio.session import AsyncSession

from app.domains.loc import models as loc_models
from app.domains.usr import models as usr_models


@pytest.mark.asyncio
async def test_admin_creates_user(admin_client: AsyncClient, warehouse_a: loc_models.Warehouse):
    """(성공) 관리자: 창고 소속 사용자 생성"""
    payload = {
        "username": "pharm01",
        "email": "pharm01@example.com",
        "password": "pharmpass123",
        "full_name": "약사 1",
        "role": usr_models.UserRole.PHARMACIST.value,
        "warehouse_id": warehouse_a.id,
    }
    response = await admin_client.post("/api/v1/usr/users", json=payload)
    assert response.status_code == 201
    body = response.json()
    assert body["username"] == "pharm01"
    assert body["warehouse_id"] == warehouse_a.id
    assert "password" not in body


@pytest.mark.asyncio
async def test_create_user_duplicate_username(admin_client: AsyncClient, test_user: usr_models.User):
    """(실패) 중복 사용자명은 400"""
    payload = {"username": test_user.username, "password": "anotherpass1"}
    response = await admin_client.post("/api/v1/usr/users", json=payload)
    assert response.status_code == 400
    assert response.json()["error"] == "DuplicateError"


@pytest.mark.asyncio
async def test_create_user_unknown_warehouse(admin_client: AsyncClient):
    """(실패) 존재하지 않는 창고 소속은 404"""
    payload = {"username": "ghost", "password": "ghostpass123", "warehouse_id": 999999}
    response = await admin_client.post("/api/v1/usr/users", json=payload)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_create_user_forbidden_for_regular_user(authorized_client: AsyncClient):
    """(실패) 권한: 일반 사용자는 사용자 생성 불가"""
    response = await authorized_client.post("/api/v1/usr/users", json={"username": "x1", "password": "xxxxxxxx1"})
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_regular_user_sees_only_self(authorized_client: AsyncClient, test_user: usr_models.User, test_admin_user: usr_models.User):
    """(성공) 일반 사용자의 목록 조회는 자기 자신만 반환"""
    response = await authorized_client.get("/api/v1/usr/users")
    assert response.status_code == 200
    assert [u["id"] for u in response.json()] == [test_user.id]

    other = await authorized_client.get(f"/api/v1/usr/users/{test_admin_user.id}")
    assert other.status_code == 403


@pytest.mark.asyncio
async def test_regular_user_cannot_change_own_role(authorized_client: AsyncClient, test_user: usr_models.User):
    """(실패) 일반 사용자가 자신의 역할을 바꾸려 하면 403"""
    response = await authorized_client.put(
        f"/api/v1/usr/users/{test_user.id}", json={"role": usr_models.UserRole.ADMIN.value}
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_admin_deletes_user(admin_client: AsyncClient, test_user: usr_models.User, db_session: AsyncSession):
    """(성공) 관리자: 사용자 삭제"""
    response = await admin_client.delete(f"/api/v1/usr/users/{test_user.id}")
    assert response.status_code == 204
    assert await db_session.get(usr_models.User, test_user.id) is None


@pytest.mark.asyncio
async def test_admin_cannot_delete_self(admin_client: AsyncClient, test_admin_user: usr_models.User):
    """(실패) 자기 자신은 삭제할 수 없음"""
    response = await admin_client.delete(f"/api/v1/usr/users/{test_admin_user.id}")
    assert response.status_code == 400
