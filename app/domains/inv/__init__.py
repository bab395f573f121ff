# app/domains/inv/__init__.py

"""
FastAPI 애플리케이션의 'inv' 도메인 패키지입니다.

이 패키지는 PostgreSQL의 'inv' 스키마에 해당하는 데이터 모델과
관련된 비즈니스 로직 및 API 엔드포인트를 포함합니다.

'inv' 도메인은 품목 분류(ProductCategory), 품목(Product), 배치(Batch),
재고 원장(Stock), 재고 이동 이력(StockMovement)을 관리합니다.
재고 수량은 오직 재고 이동을 통해서만 변경되며, 원장 행 단위로
quantity >= reserved_qty >= 0 이 항상 유지됩니다.

주요 서브모듈:
- `models.py`: 'inv' 스키마의 테이블에 매핑되는 SQLModel 정의 및 유효기간/재고 상태 계산.
- `schemas.py`: 요청 및 응답 유효성 검사용 Pydantic 모델.
- `crud.py`: 품목 분류, 품목, 배치(회수/만료 포함) CRUD 로직.
- `ledger.py`: 재고 원장(예약/해제/소진/실사 반영)과 재고 이동 기록.
- `tasks.py`: 만료 처리, 유효기간 임박/재고 부족 알림 백그라운드 작업.
- `routers.py`: FastAPI API 엔드포인트 정의.
"""

__title__ = "MWIMS Inventory Domain"
__description__ = "Manages products, batches, the stock ledger and the stock movement log."
__version__ = "0.1.0"
__all__ = []
