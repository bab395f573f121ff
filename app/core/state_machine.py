# app/core/state_machine.py

"""
워크플로우(발주, 이동, 실사)의 상태 전이를 명시적인 테이블로 관리하는 모듈입니다.

전이 테이블은 `(현재 상태, 동작) -> 다음 상태` 형태의 dict이며,
테이블에 없는 조합은 모두 InvalidTransitionError로 거부됩니다.
"""

from enum import Enum
from typing import Dict, Generic, List, Tuple, TypeVar

from app.core.exceptions import InvalidTransitionError

StatusType = TypeVar("StatusType", bound=Enum)


class StateMachine(Generic[StatusType]):
    def __init__(self, entity: str, transitions: Dict[Tuple[StatusType, str], StatusType]):
        self.entity = entity
        self.transitions = transitions

    def can(self, current: StatusType, action: str) -> bool:
        return (current, action) in self.transitions

    def next_state(self, current: StatusType, action: str) -> StatusType:
        """전이 가능하면 다음 상태를, 아니면 InvalidTransitionError를 반환합니다."""
        try:
            return self.transitions[(current, action)]
        except KeyError:
            raise InvalidTransitionError(self.entity, current, action) from None

    def ensure(self, current: StatusType, *actions: str, label: str = "") -> None:
        """주어진 동작 중 하나라도 현재 상태에서 가능해야 합니다."""
        if not any(self.can(current, action) for action in actions):
            raise InvalidTransitionError(self.entity, current, label or actions[0])

    def allowed_actions(self, current: StatusType) -> List[str]:
        return [action for (state, action) in self.transitions if state == current]
