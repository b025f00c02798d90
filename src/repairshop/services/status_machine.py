from __future__ import annotations

from ..domain import WorkOrderStatus
from ..errors import InvalidTransition

TRANSITIONS: dict[WorkOrderStatus, frozenset[WorkOrderStatus]] = {
    WorkOrderStatus.OPEN: frozenset({WorkOrderStatus.IN_PROGRESS, WorkOrderStatus.CANCELLED}),
    WorkOrderStatus.IN_PROGRESS: frozenset({WorkOrderStatus.COMPLETED, WorkOrderStatus.CANCELLED}),
    WorkOrderStatus.COMPLETED: frozenset(),
    WorkOrderStatus.CANCELLED: frozenset(),
}


def is_valid_transition(current: WorkOrderStatus, new: WorkOrderStatus) -> bool:
    if current == new:
        return True
    return new in TRANSITIONS[current]


def check_transition(current: WorkOrderStatus, new: WorkOrderStatus) -> bool:
    """Raise InvalidTransition for pairs outside the table.

    Returns False for a self-transition, which callers treat as a no-op.
    """
    if not is_valid_transition(current, new):
        raise InvalidTransition(current.value, new.value)
    return current != new
