# tests/domains/test_auth.py

"""
인증(토큰 발급, 현재 사용자, 비밀번호 변경) 관련 API 테스트 모듈입니다.
"""

import pytest
from httpx import AsyncClient
from typing import Callable

from app.domains.usr import models as usr_models


@pytest.mark.asyncio
async def test_login_success(client: AsyncClient, test_user: usr_models.User):
    """(성공) 올바른 자격 증명으로 토큰 발급"""
    response = await client.post("/api/v1/usr/auth/token", data={"username": "testuser", "password": "testpass123"})
    assert response.status_code == 200
    body = response.json()
    assert body["token_type"] == "bearer"
    assert body["access_token"]


@pytest.mark.asyncio
async def test_login_wrong_password(client: AsyncClient, test_user: usr_models.User):
    """(실패) 잘못된 비밀번호는 401"""
    response = await client.post("/api/v1/usr/auth/token", data={"username": "testuser", "password": "wrong-password"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_login_inactive_user(client: AsyncClient, user_factory: Callable):
    """(실패) 비활성 계정은 로그인할 수 없음"""
    await user_factory("sleeper", "sleeperpass1", role=usr_models.UserRole.STAFF, is_active=False)
    response = await client.post("/api/v1/usr/auth/token", data={"username": "sleeper", "password": "sleeperpass1"})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_read_me(authorized_client: AsyncClient, test_user: usr_models.User):
    """(성공) 토큰으로 현재 사용자 정보 조회, 비밀번호 해시는 노출되지 않음"""
    response = await authorized_client.get("/api/v1/usr/auth/me")
    assert response.status_code == 200
    body = response.json()
    assert body["username"] == test_user.username
    assert "password_hash" not in body
    assert body["last_login_at"] is not None


@pytest.mark.asyncio
async def test_invalid_token_rejected(client: AsyncClient):
    """(실패) 위조된 토큰은 401"""
    response = await client.get("/api/v1/usr/auth/me", headers={"Authorization": "Bearer not-a-token"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_change_my_password(authorized_client: AsyncClient, client: AsyncClient):
    """(성공) 현재 비밀번호 확인 후 변경, 새 비밀번호로 로그인 가능"""
    response = await authorized_client.post(
        "/api/v1/usr/auth/me/password",
        json={"current_password": "testpass123", "new_password": "brandnewpass1"},
    )
    assert response.status_code == 204

    login = await client.post("/api/v1/usr/auth/token", data={"username": "testuser", "password": "brandnewpass1"})
    assert login.status_code == 200


@pytest.mark.asyncio
async def test_change_my_password_wrong_current(authorized_client: AsyncClient):
    """(실패) 현재 비밀번호가 틀리면 400"""
    response = await authorized_client.post(
        "/api/v1/usr/auth/me/password",
        json={"current_password": "nope-nope", "new_password": "brandnewpass1"},
    )
    assert response.status_code == 400
