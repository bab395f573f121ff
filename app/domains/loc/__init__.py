# app/domains/loc/__init__.py

"""
FastAPI 애플리케이션의 'loc' 도메인 패키지입니다.

이 패키지는 PostgreSQL의 'loc' 스키마에 해당하는 창고(Warehouse) 데이터 모델과
관련된 CRUD 로직 및 API 엔드포인트를 포함합니다.

주요 서브모듈:
- `models.py`: 'loc' 스키마의 테이블에 매핑되는 SQLModel 정의.
- `schemas.py`: 요청 및 응답 유효성 검사용 Pydantic 모델.
- `crud.py`: 창고 CRUD 로직 (재고 보유 창고 삭제 방지 포함).
- `routers.py`: 창고 관리 API 엔드포인트.
"""

__title__ = "MWIMS Location Domain"
__description__ = "Manages warehouses that hold stock."
__version__ = "0.1.0"
__all__ = []
