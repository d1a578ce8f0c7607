from datetime import date, datetime

import pytest

from models.enums import RequestStatus
from scheduling.timing import (
    CutoffAction,
    cutoff_message,
    is_within_request_buffer,
    parse_service_time,
    service_start,
    validate_cutoff,
)

SERVICE_DATE = date(2024, 1, 7)
START = datetime(2024, 1, 7, 11, 0)


def at(hour, minute=0):
    return datetime(2024, 1, 7, hour, minute)


def test_service_start_combines_date_and_time():
    assert service_start(SERVICE_DATE, "11:00") == START
    assert service_start(datetime(2024, 1, 7, 18, 45), "09:05") == datetime(2024, 1, 7, 9, 5)


def test_create_rejected_inside_one_hour():
    assert is_within_request_buffer(SERVICE_DATE, "11:00", 1, now=at(10, 1))
    assert not validate_cutoff(CutoffAction.CREATE, START, now=at(10, 1))


def test_create_accepted_before_one_hour():
    assert not is_within_request_buffer(SERVICE_DATE, "11:00", 1, now=at(9, 59))
    assert validate_cutoff(CutoffAction.CREATE, START, now=at(9, 59))


def test_exact_cutoff_is_still_allowed():
    assert validate_cutoff(CutoffAction.CREATE, START, now=at(10, 0))


def test_cancel_accepted_within_two_hours_rejected():
    assert not validate_cutoff(CutoffAction.CANCEL, START, now=at(10), status=RequestStatus.ACCEPTED)


def test_cancel_accepted_three_hours_before_allowed():
    assert validate_cutoff(CutoffAction.CANCEL, START, now=at(8), status=RequestStatus.ACCEPTED)


@pytest.mark.parametrize("status", [RequestStatus.PENDING, "PENDING", None])
def test_cancel_pending_has_no_cutoff(status):
    assert validate_cutoff(CutoffAction.CANCEL, START, now=at(10, 59), status=status)


@pytest.mark.parametrize("value", ["", "10", "25:00", "10:75", "ten:thirty", None])
def test_malformed_service_time_fails_closed(value):
    with pytest.raises(ValueError):
        parse_service_time(value)


def test_cutoff_messages():
    assert cutoff_message(CutoffAction.CREATE) == "Cannot request pickup less than 1 hour before service time"
    assert cutoff_message(CutoffAction.CANCEL) == "Cannot cancel accepted requests less than 2 hours before service time"
