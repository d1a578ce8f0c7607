"""Field-level rules for pickup request payloads.

Each check raises ``ValueError`` carrying the message shown to the user.
"""

from datetime import date
from typing import Iterable, Optional

from dateutil.relativedelta import relativedelta

import config
from scheduling.occurrences import day_name, to_date, weekday_of

MIN_GROUP_SIZE = 2
MAX_GROUP_SIZE = 10


def validate_day_of_week(allowed_weekdays: Iterable[int], request_date) -> None:
    allowed = sorted(set(allowed_weekdays))
    if weekday_of(to_date(request_date)) not in allowed:
        names = " or ".join(day_name(day) for day in allowed)
        raise ValueError(f"Request date should be a {names}")


def validate_not_in_past(request_date, today: date) -> None:
    if to_date(request_date) < today:
        raise ValueError("Please select a valid date that is today or later")


def validate_end_date_limit(end_date: Optional[date], request_date, is_recurring: bool) -> None:
    if not is_recurring:
        if end_date is not None:
            raise ValueError("Recurring ride end date is not required")
        return
    if end_date is None:
        raise ValueError("End date is required for recurring requests")

    start = to_date(request_date)
    end = to_date(end_date)
    if end < start:
        raise ValueError("End date must be after request date")
    if (end - start).days // 7 < config.MIN_RECURRING_WEEKS:
        raise ValueError(
            f"Please select an end date at least {config.MIN_RECURRING_WEEKS} weeks after the request date"
        )
    span = relativedelta(end, start)
    if span.years * 12 + span.months > config.MAX_RECURRING_MONTHS:
        raise ValueError(f"Recurring period must not exceed {config.MAX_RECURRING_MONTHS} months")


def validate_request_options(
    is_pick_up: bool, is_drop_off: bool, is_group_ride: bool, number_of_group: Optional[int]
) -> None:
    if not is_pick_up and not is_drop_off:
        raise ValueError("Please select at least one option: Pickup or Drop-off")
    if is_group_ride:
        if number_of_group is None:
            raise ValueError("Please enter number of people in group ride")
        if number_of_group < MIN_GROUP_SIZE:
            raise ValueError(f"Group ride must include at least {MIN_GROUP_SIZE} people")
        if number_of_group > MAX_GROUP_SIZE:
            raise ValueError(f"Group ride must include at most {MAX_GROUP_SIZE} people")
    elif number_of_group is not None:
        raise ValueError("Number of people must be empty if not a group ride")
