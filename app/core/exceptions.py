# app/core/exceptions.py

"""
재고 트랜잭션 코어에서 사용하는 예외 계층을 정의하는 모듈입니다.

CRUD/워크플로우 계층은 HTTPException 대신 아래 예외를 발생시키고,
main.py에 등록된 예외 핸들러가 `status_code`에 따라 HTTP 응답으로 변환합니다.
"""

from typing import Any, Dict, Optional

from fastapi import status


class InventoryError(Exception):
    """모든 재고 도메인 예외의 기본 클래스"""
    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


# =============================================================================
# 1. 조회/입력 오류
# =============================================================================
class NotFoundError(InventoryError):
    """참조한 ID의 레코드가 존재하지 않을 때"""
    status_code = status.HTTP_404_NOT_FOUND


class StockNotFoundError(NotFoundError):
    """(품목, 창고, 배치) 키에 해당하는 재고 행이 없을 때"""


class ItemNotFoundError(NotFoundError):
    """주문/실사 문서에 해당 품목 라인이 없을 때"""


class ValidationError(InventoryError):
    """필드 누락, 잘못된 값, 0 이하 수량 등"""
    status_code = status.HTTP_400_BAD_REQUEST


class DuplicateError(InventoryError):
    """코드, 번호, 바코드 등의 고유값 충돌"""
    status_code = status.HTTP_400_BAD_REQUEST


# =============================================================================
# 2. 상태/불변식 위반
# =============================================================================
class InvalidTransitionError(InventoryError):
    """현재 상태에서 허용되지 않는 워크플로우 동작"""
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, entity: str, current: Any, action: str):
        current_name = getattr(current, "value", current)
        super().__init__(
            f"Cannot {action} {entity} in status {current_name}",
            {"entity": entity, "status": current_name, "action": action},
        )


class StockInvariantError(InventoryError):
    """재고 원장 불변식 위반의 공통 부모"""
    status_code = status.HTTP_409_CONFLICT


class NegativeStockError(StockInvariantError):
    """quantity + delta < 0"""


class InsufficientAvailableError(StockInvariantError):
    """요청 수량이 가용 수량(available_qty)을 초과"""


class OverReleaseError(StockInvariantError):
    """해제 수량이 예약 수량(reserved_qty)을 초과"""


class StateConflictError(InventoryError):
    """현재 데이터 상태와 충돌하는 요청"""
    status_code = status.HTTP_409_CONFLICT


class SameWarehouseError(StateConflictError):
    """출고 창고와 입고 창고가 동일"""


class HasActiveStockError(StateConflictError):
    """재고가 남아 있어 삭제/단종할 수 없음"""


class BatchUnavailableError(StateConflictError):
    """회수(recall)되었거나 만료된 배치에 대한 할당 시도"""
