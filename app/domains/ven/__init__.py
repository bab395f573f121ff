# app/domains/ven/__init__.py

"""
FastAPI 애플리케이션의 'ven' 도메인 패키지입니다.

이 패키지는 PostgreSQL의 'ven' 스키마에 해당하는 공급업체(Supplier) 데이터 모델과
관련된 CRUD 로직 및 API 엔드포인트를 포함합니다.
공급업체는 발주서(pur)와 배치(inv)의 공급처로 참조됩니다.
"""

__title__ = "MWIMS Vendor Domain"
__description__ = "Manages suppliers of medical products."
__version__ = "0.1.0"
__all__ = []
