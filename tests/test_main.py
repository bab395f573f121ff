# tests/test_main.py

"""
FastAPI 애플리케이션의 메인 엔드포인트에 대한 통합 테스트를 정의하는 모듈입니다.

- 애플리케이션의 루트 경로 (`/`) 응답을 테스트합니다.
- 데이터베이스 연결 헬스 체크 엔드포인트 (`/health-check`)를 테스트합니다.
- 도메인 예외가 공통 JSON 형식으로 변환되는지 확인합니다.
"""

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_read_root(client: AsyncClient):
    """(성공) 루트 엔드포인트가 환영 메시지를 반환"""
    response = await client.get("/")
    assert response.status_code == 200
    assert response.json() == {"message": "Welcome to MWIMS API. Visit /docs for interactive API documentation."}


@pytest.mark.asyncio
async def test_health_check(client: AsyncClient):
    """(성공) 헬스 체크가 데이터베이스 연결 상태를 반환"""
    response = await client.get("/health-check")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "database_connection": "successful"}


@pytest.mark.asyncio
async def test_inventory_error_response_format(authorized_client: AsyncClient):
    """(실패) 존재하지 않는 리소스는 detail 과 error 이름을 포함한 404 응답"""
    response = await authorized_client.get("/api/v1/inv/products/999999")
    assert response.status_code == 404
    body = response.json()
    assert body["error"] == "NotFoundError"
    assert "999999" in body["detail"]


@pytest.mark.asyncio
async def test_protected_endpoint_requires_token(client: AsyncClient):
    """(실패) 토큰 없이 보호된 엔드포인트 호출 시 401"""
    response = await client.get("/api/v1/inv/stocks")
    assert response.status_code == 401
