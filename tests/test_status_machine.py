from __future__ import annotations

import itertools

import pytest

from repairshop.domain import WorkOrderStatus
from repairshop.errors import InvalidTransition, ValidationError
from repairshop.services.status_machine import check_transition, is_valid_transition

S = WorkOrderStatus

ALLOWED = {
    (S.OPEN, S.IN_PROGRESS),
    (S.OPEN, S.CANCELLED),
    (S.IN_PROGRESS, S.COMPLETED),
    (S.IN_PROGRESS, S.CANCELLED),
}


@pytest.mark.parametrize("current,new", sorted(ALLOWED, key=str))
def test_allowed_transitions_report_a_change(current, new) -> None:
    assert is_valid_transition(current, new)
    assert check_transition(current, new) is True


@pytest.mark.parametrize(
    "current,new",
    [(a, b) for a, b in itertools.product(S, S) if a != b and (a, b) not in ALLOWED],
)
def test_transitions_outside_table_raise(current, new) -> None:
    assert not is_valid_transition(current, new)
    with pytest.raises(InvalidTransition) as exc:
        check_transition(current, new)
    assert exc.value.current == current.value
    assert exc.value.requested == new.value
    assert exc.value.http_status == 400


@pytest.mark.parametrize("status", list(S))
def test_self_transition_is_a_valid_noop(status) -> None:
    assert is_valid_transition(status, status)
    assert check_transition(status, status) is False


def test_open_cannot_skip_to_completed() -> None:
    with pytest.raises(InvalidTransition, match="from aberta to concluida"):
        check_transition(S.OPEN, S.COMPLETED)


def test_status_tokens_are_case_sensitive() -> None:
    assert WorkOrderStatus.parse("emandamento") is S.IN_PROGRESS
    with pytest.raises(ValidationError):
        WorkOrderStatus.parse("Aberta")
    with pytest.raises(ValidationError):
        WorkOrderStatus.parse("open")


def test_terminal_statuses() -> None:
    assert [s for s in S if s.is_terminal] == [S.COMPLETED, S.CANCELLED]
