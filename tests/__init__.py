# tests/__init__.py

"""
MWIMS FastAPI 애플리케이션의 테스트 스위트 패키지입니다.

테스트는 `pytest` 와 `pytest-asyncio` 를 기반으로 하며, API 호출은 `httpx.AsyncClient` 로 수행합니다.

주요 구성:
- `conftest.py`: 테스트 데이터베이스, 세션, 역할별 인증 클라이언트, 공통 데이터 픽스처.
- `test_main.py`: 루트/헬스 체크 및 공통 오류 응답 형식.
- `domains/`: 도메인별(usr, loc, ven, inv, pur, trf, cnt, ntf, fin) 테스트와
              재고 원장 불변식, 동시성 테스트.
"""

__title__ = "MWIMS API Tests"
__description__ = "Test suite for MWIMS FastAPI application."
__version__ = "0.1.0"
__all__ = []
