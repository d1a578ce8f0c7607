import pytest

from errors import InvalidTransitionError, TerminalStateError
from models.enums import RequestStatus
from pickup.transitions import can_transition, ensure_transition, status_fields

PENDING, ACCEPTED, COMPLETED, CANCELLED = (
    RequestStatus.PENDING,
    RequestStatus.ACCEPTED,
    RequestStatus.COMPLETED,
    RequestStatus.CANCELLED,
)


@pytest.mark.parametrize(
    "current,target",
    [(PENDING, ACCEPTED), (ACCEPTED, PENDING), (PENDING, CANCELLED), (ACCEPTED, CANCELLED), (ACCEPTED, COMPLETED)],
)
def test_allowed_transitions(current, target):
    assert can_transition(current, target)
    assert ensure_transition(current.value, target) is target


@pytest.mark.parametrize("current,target", [(PENDING, COMPLETED), (PENDING, PENDING), (ACCEPTED, ACCEPTED)])
def test_invalid_transitions(current, target):
    assert not can_transition(current, target)
    with pytest.raises(InvalidTransitionError):
        ensure_transition(current, target)


@pytest.mark.parametrize("terminal", [COMPLETED, CANCELLED])
@pytest.mark.parametrize("target", list(RequestStatus))
def test_terminal_states_reject_everything(terminal, target):
    with pytest.raises(TerminalStateError) as exc_info:
        ensure_transition(terminal, target)
    assert exc_info.value.code == "TERMINAL_STATE"


def test_only_cancelled_requests_leave_the_unique_index():
    assert status_fields(CANCELLED) == {"status": "CANCELLED", "active": False}
    assert status_fields(COMPLETED)["active"] is True
