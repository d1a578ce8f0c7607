from datetime import date, timedelta

import pytest

from scheduling.rules import (
    validate_day_of_week,
    validate_end_date_limit,
    validate_not_in_past,
    validate_request_options,
)

SUNDAY = date(2024, 1, 7)


def test_day_of_week_names_allowed_days():
    validate_day_of_week([0], SUNDAY)
    with pytest.raises(ValueError, match="Request date should be a Sunday"):
        validate_day_of_week([0], SUNDAY + timedelta(days=1))
    with pytest.raises(ValueError, match="Sunday or Wednesday"):
        validate_day_of_week([3, 0], SUNDAY + timedelta(days=1))


def test_past_dates_rejected():
    validate_not_in_past(SUNDAY, SUNDAY)
    with pytest.raises(ValueError):
        validate_not_in_past(SUNDAY - timedelta(days=1), SUNDAY)


def test_recurring_requires_end_date():
    with pytest.raises(ValueError, match="End date is required"):
        validate_end_date_limit(None, SUNDAY, is_recurring=True)


def test_single_request_must_not_carry_end_date():
    validate_end_date_limit(None, SUNDAY, is_recurring=False)
    with pytest.raises(ValueError):
        validate_end_date_limit(SUNDAY + timedelta(weeks=3), SUNDAY, is_recurring=False)


@pytest.mark.parametrize(
    "end_date",
    [SUNDAY - timedelta(days=7), SUNDAY + timedelta(days=7), date(2024, 5, 8)],
)
def test_recurring_window_limits(end_date):
    with pytest.raises(ValueError):
        validate_end_date_limit(end_date, SUNDAY, is_recurring=True)


def test_recurring_window_accepted():
    validate_end_date_limit(SUNDAY + timedelta(weeks=2), SUNDAY, is_recurring=True)
    validate_end_date_limit(date(2024, 4, 7), SUNDAY, is_recurring=True)


def test_request_needs_pickup_or_drop_off():
    with pytest.raises(ValueError, match="at least one option"):
        validate_request_options(False, False, False, None)


@pytest.mark.parametrize("size", [None, 1, 11])
def test_group_size_bounds(size):
    with pytest.raises(ValueError):
        validate_request_options(True, False, True, size)


def test_group_size_only_for_group_rides():
    validate_request_options(True, True, True, 4)
    with pytest.raises(ValueError):
        validate_request_options(True, False, False, 3)
