# app/domains/cnt/__init__.py

"""
FastAPI 애플리케이션의 'cnt' 도메인 패키지입니다.

'cnt' 도메인은 창고 단위 재고 실사(StockCount)를 관리합니다.
시작 시 원장 수량을 스냅샷하고, 실사 수량을 기록한 뒤,
승인 시 원장 수량을 실사 수량으로 맞추고 STOCK_COUNT 이동을 남깁니다.

주요 서브모듈:
- `models.py`: 'cnt' 스키마의 테이블에 매핑되는 SQLModel 정의.
- `schemas.py`: 요청/응답 및 차이 보고서 Pydantic 모델.
- `crud.py`: 실사 CRUD 및 워크플로우 (start, record_counts, complete, approve, cancel).
- `routers.py`: FastAPI API 엔드포인트 정의.
"""

__title__ = "MWIMS Stock Count Domain"
__description__ = "Manages physical stock counts and reconciliation."
__version__ = "0.1.0"
__all__ = []
