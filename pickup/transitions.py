import logging

from errors import InvalidTransitionError, TerminalStateError
from models.enums import TERMINAL_STATUSES, RequestStatus

logger = logging.getLogger(__name__)

# ACCEPTED -> PENDING is the driver handing a ride back
ALLOWED_TRANSITIONS = {
    RequestStatus.PENDING: frozenset({RequestStatus.ACCEPTED, RequestStatus.CANCELLED}),
    RequestStatus.ACCEPTED: frozenset(
        {RequestStatus.PENDING, RequestStatus.COMPLETED, RequestStatus.CANCELLED}
    ),
    RequestStatus.COMPLETED: frozenset(),
    RequestStatus.CANCELLED: frozenset(),
}


def ensure_not_terminal(current: RequestStatus) -> RequestStatus:
    current = RequestStatus(current)
    if current in TERMINAL_STATUSES:
        if current is RequestStatus.COMPLETED:
            raise TerminalStateError("Request is already completed")
        raise TerminalStateError("Request is already cancelled")
    return current


def can_transition(current: RequestStatus, target: RequestStatus) -> bool:
    return RequestStatus(target) in ALLOWED_TRANSITIONS[RequestStatus(current)]


def ensure_transition(current: RequestStatus, target: RequestStatus) -> RequestStatus:
    """Validate ``current -> target`` and return the target status."""
    current = ensure_not_terminal(current)
    target = RequestStatus(target)
    if target not in ALLOWED_TRANSITIONS[current]:
        logger.warning("Rejected status change %s -> %s", current.value, target.value)
        raise InvalidTransitionError(
            f"Cannot change a {current.value.lower()} request to {target.value.lower()}"
        )
    return target


def status_fields(status: RequestStatus) -> dict:
    """Fields to ``$set`` for a status change; ``active`` backs the unique index."""
    status = RequestStatus(status)
    return {"status": status.value, "active": status is not RequestStatus.CANCELLED}
