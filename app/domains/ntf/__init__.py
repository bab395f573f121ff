# app/domains/ntf/__init__.py

"""
FastAPI 애플리케이션의 'ntf' 도메인 패키지입니다.

이 패키지는 PostgreSQL의 'ntf' 스키마에 해당하는 알림(Notification) 모델과
알림 조회/상태 변경 API, 그리고 재고 이벤트(유효기간 임박, 만료, 회수, 재고 부족)
알림 생성기 및 정리 태스크를 포함합니다.
"""

__title__ = "MWIMS Notification Domain"
__description__ = "Stores inventory event notifications and their generators."
__version__ = "0.1.0"
__all__ = []
