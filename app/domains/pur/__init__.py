# app/domains/pur/__init__.py

"""
FastAPI 애플리케이션의 'pur' 도메인 패키지입니다.

'pur' 도메인은 발주서(PurchaseOrder)와 발주 품목(PurchaseOrderItem)을 관리합니다.
발주서는 DRAFT 에서 RECEIVED 까지 명시적인 전이 테이블을 따르며,
입고 시 배치를 생성하고 RECEIPT 재고 이동을 기록합니다.

주요 서브모듈:
- `models.py`: 'pur' 스키마의 테이블에 매핑되는 SQLModel 정의.
- `schemas.py`: 요청 및 응답 유효성 검사용 Pydantic 모델.
- `crud.py`: 발주서 CRUD 및 워크플로우 (submit, approve, place_order, receive, cancel).
- `routers.py`: FastAPI API 엔드포인트 정의.
"""

__title__ = "MWIMS Purchasing Domain"
__description__ = "Manages purchase orders and goods receipt."
__version__ = "0.1.0"
__all__ = []
