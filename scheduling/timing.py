from datetime import date, datetime, timedelta
from enum import Enum
from typing import Optional, Tuple
from zoneinfo import ZoneInfo

import config
from models.enums import RequestStatus
from scheduling.occurrences import to_date


class CutoffAction(str, Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    CANCEL = "CANCEL"


def cutoff_hours(action: CutoffAction) -> float:
    if action is CutoffAction.CANCEL:
        return config.CANCEL_CUTOFF_HOURS
    return config.REQUEST_CUTOFF_HOURS


def current_time() -> datetime:
    """Naive wall-clock time in the service time zone."""
    return datetime.now(ZoneInfo(config.SERVICE_TIMEZONE)).replace(tzinfo=None)


def parse_service_time(service_time: str) -> Tuple[int, int]:
    """Split ``HH:MM`` into hour and minute.

    Malformed values raise ``ValueError`` instead of silently meaning midnight.
    """
    try:
        hours, minutes = service_time.strip().split(":")
        hour, minute = int(hours), int(minutes)
    except (AttributeError, ValueError):
        raise ValueError(f"Invalid service time {service_time!r}") from None
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        raise ValueError(f"Invalid service time {service_time!r}")
    return hour, minute


def service_start(candidate_date, service_time: str) -> datetime:
    hour, minute = parse_service_time(service_time)
    day = to_date(candidate_date)
    return datetime(day.year, day.month, day.day, hour, minute)


def is_within_request_buffer(
    candidate_date, service_time: str, buffer_hours: float, now: Optional[datetime] = None
) -> bool:
    """True when ``now`` is already inside the buffer before the service starts."""
    now = now or current_time()
    cutoff = service_start(candidate_date, service_time) - timedelta(hours=buffer_hours)
    return now > cutoff


def validate_cutoff(
    action: CutoffAction,
    start: datetime,
    now: Optional[datetime] = None,
    status: Optional[RequestStatus] = None,
) -> bool:
    """Whether ``action`` is still allowed for a service starting at ``start``.

    Creating or editing closes ``REQUEST_CUTOFF_HOURS`` before the start.
    Cancelling only closes ``CANCEL_CUTOFF_HOURS`` before the start once a
    driver has accepted; a pending request can be cancelled at any time.
    """
    now = now or current_time()
    action = CutoffAction(action)
    if action is CutoffAction.CANCEL and (status is None or RequestStatus(status) is not RequestStatus.ACCEPTED):
        return True
    cutoff = start - timedelta(hours=cutoff_hours(action))
    return now <= cutoff


def cutoff_message(action: CutoffAction) -> str:
    hours = cutoff_hours(action)
    hour_text = f"{hours:g} hour" + ("" if hours == 1 else "s")
    if action is CutoffAction.CANCEL:
        return f"Cannot cancel accepted requests less than {hour_text} before service time"
    if action is CutoffAction.UPDATE:
        return f"Cannot change pickup less than {hour_text} before service time"
    return f"Cannot request pickup less than {hour_text} before service time"


def today() -> date:
    return current_time().date()
