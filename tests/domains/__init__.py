# tests/domains/__init__.py

"""
도메인별 테스트 모듈 패키지입니다.

- `test_auth.py`, `test_usr.py`: 인증 및 사용자 관리
- `test_loc.py`: 창고
- `test_ven.py`: 공급업체
- `test_inv.py`: 품목 분류, 품목, 배치, 재고 조회/예약/조정, 재고 이동
- `test_ledger.py`: 재고 원장과 이동 이력의 불변식 (CRUD 계층)
- `test_pur.py`: 발주 워크플로우
- `test_trf.py`: 창고 간 이동 워크플로우
- `test_cnt.py`: 재고 실사 워크플로우
- `test_ntf.py`: 알림과 알림 생성 작업
- `test_fin.py`: 발주서 지급, 미지급금, 공급업체 잔액
- `test_concurrency.py`: 동시 트랜잭션에서의 예약/출고/번호 발급
"""

__title__ = "MWIMS Domain Tests"
__description__ = "Categorized tests for each business domain in MWIMS FastAPI application."
__version__ = "0.1.0"
__all__ = []
