# app/domains/shared/__init__.py

"""
FastAPI 애플리케이션의 'shared' 도메인 패키지입니다.

여러 도메인이 공통으로 사용하는 데이터(문서 번호 채번)를 관리합니다.
이동 이력, 발주서, 이동 주문서, 재고 실사 번호가 모두 이 패키지에서 발급됩니다.
"""

__title__ = "MWIMS Shared Domain"
__description__ = "Provides atomic document number sequences."
__version__ = "0.1.0"
__all__ = []
