# app/domains/fin/__init__.py

"""
FastAPI 애플리케이션의 'fin' 도메인 패키지입니다.

'fin' 도메인은 발주서에 대한 공급업체 지급(Payment)을 기록하고,
발주 합계에서 지급액을 뺀 미지급금(accounts payable)과 공급업체별 잔액을 계산합니다.

주요 서브모듈:
- `models.py`: 'fin' 스키마의 테이블에 매핑되는 SQLModel 정의.
- `schemas.py`: 요청 및 응답 유효성 검사용 Pydantic 모델.
- `crud.py`: 지급 등록/조회/취소와 미지급금, 공급업체 잔액, 재무 요약 계산.
- `routers.py`: FastAPI API 엔드포인트 정의.
"""

__title__ = "MWIMS Finance Domain"
__description__ = "Records supplier payments against purchase orders and computes payables."
__version__ = "0.1.0"
__all__ = []
