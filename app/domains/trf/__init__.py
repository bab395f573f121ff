# app/domains/trf/__init__.py

"""
FastAPI 애플리케이션의 'trf' 도메인 패키지입니다.

'trf' 도메인은 창고 간 재고 이동 요청(TransferOrder)을 관리합니다.
승인 시 출고 창고 재고를 예약하고, 출고 시 예약을 소진하며,
입고 시 입고 창고에 재고를 반영합니다.

주요 서브모듈:
- `models.py`: 'trf' 스키마의 테이블에 매핑되는 SQLModel 정의.
- `schemas.py`: 요청 및 응답 유효성 검사용 Pydantic 모델.
- `crud.py`: 이동 요청 CRUD 및 워크플로우 (submit, approve, reject, ship, receive, cancel).
- `routers.py`: FastAPI API 엔드포인트 정의.
"""

__title__ = "MWIMS Transfer Domain"
__description__ = "Manages stock transfers between warehouses."
__version__ = "0.1.0"
__all__ = []
