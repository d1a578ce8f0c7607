"""Recurring service-day date resolution.

All weekday numbers in this module are Sunday based (0=Sunday .. 6=Saturday),
which is how service days are stored. ``date.weekday()`` is Monday based, so
always go through :func:`weekday_of`.
"""

from datetime import date, datetime, timedelta
from typing import Iterable, List, Optional, Union

from dateutil.relativedelta import relativedelta

from models.enums import FREQUENCY_MONTHS, ORDINAL_NTH, Frequency, Ordinal

MAX_ITERATIONS = 10000

DAY_NAMES = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")

DateLike = Union[date, datetime]


def weekday_of(d: date) -> int:
    return (d.weekday() + 1) % 7


def day_name(day_number: int) -> str:
    return DAY_NAMES[day_number]


def to_date(value: Optional[DateLike]) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    return value


def resolve_occurrences(
    from_date: DateLike,
    allowed_weekdays: Iterable[int],
    count: Optional[int] = None,
    end_date: Optional[DateLike] = None,
    frequency: Frequency = Frequency.WEEKLY,
    ordinal: Ordinal = Ordinal.NEXT,
) -> List[date]:
    """Return the ascending list of service dates on or after ``from_date``.

    The walk stops once ``count`` dates have been produced or the candidate
    passes ``end_date``, whichever comes first. ``end_date`` is inclusive.
    Any time of day on the inputs is ignored.

    For ``DAILY`` the count bounds the number of consecutive calendar days
    walked, not the number of dates returned. Monthly-style frequencies step
    by whole months: with ``NEXT`` the allowed weekdays of the week holding
    each monthly anchor are used, with ``FIRST``..``FOURTH``/``LAST`` the nth
    or last allowed weekday of each stepped month.

    Raises ``ValueError`` for an empty weekday set, weekday numbers outside
    0..6, a non-positive count, or when neither count nor end date is given.
    """
    weekdays = frozenset(allowed_weekdays)
    if not weekdays:
        raise ValueError("At least one weekday is required to resolve occurrences")
    if any(day < 0 or day > 6 for day in weekdays):
        raise ValueError("Weekdays must be between 0 (Sunday) and 6 (Saturday)")
    if count is None and end_date is None:
        raise ValueError("Either a count or an end date is required")
    if count is not None and count < 1:
        raise ValueError("Count must be a positive integer")

    start = to_date(from_date)
    end = to_date(end_date)
    if end is not None and end < start:
        return []

    frequency = Frequency(frequency)
    ordinal = Ordinal(ordinal)
    step = FREQUENCY_MONTHS[frequency]

    if step == 0:
        # Ordinals only mean something for month-based rules
        return _walk_days(start, weekdays, count, end, daily=frequency is Frequency.DAILY)
    if ordinal is Ordinal.NEXT:
        return _walk_anchor_weeks(start, weekdays, count, end, step)
    return _walk_month_ordinals(start, weekdays, count, end, step, ordinal)


def _walk_days(start, weekdays, count, end, daily):
    results = []
    current = start
    walked = 0
    while walked < MAX_ITERATIONS:
        if end is not None and current > end:
            break
        if count is not None:
            if daily and walked >= count:
                break
            if not daily and len(results) >= count:
                break
        if weekday_of(current) in weekdays:
            results.append(current)
        current += timedelta(days=1)
        walked += 1
    return results


def _walk_anchor_weeks(start, weekdays, count, end, step):
    results = set()
    for i in range(MAX_ITERATIONS):
        # Offset from the first anchor so day-of-month clamping never drifts
        anchor = start + relativedelta(months=step * i)
        week_start = anchor - timedelta(days=weekday_of(anchor))
        if end is not None and week_start > end:
            break
        for day in weekdays:
            candidate = week_start + timedelta(days=day)
            if candidate < start or (end is not None and candidate > end):
                continue
            results.add(candidate)
        if count is not None and len(results) >= count:
            break
    return _finish(results, count)


def _walk_month_ordinals(start, weekdays, count, end, step, ordinal):
    results = set()
    first_month = start.replace(day=1)
    for i in range(MAX_ITERATIONS):
        month = first_month + relativedelta(months=step * i)
        if end is not None and month > end:
            break
        for day in weekdays:
            if ordinal is Ordinal.LAST:
                candidate = last_weekday_of_month(month, day)
            else:
                candidate = nth_weekday_of_month(month, day, ORDINAL_NTH[ordinal])
            if candidate is None or candidate < start:
                continue
            if end is not None and candidate > end:
                continue
            results.add(candidate)
        if count is not None and len(results) >= count:
            break
    return _finish(results, count)


def _finish(results, count):
    ordered = sorted(results)
    return ordered[:count] if count is not None else ordered


def nth_weekday_of_month(month: date, weekday: int, nth: int) -> Optional[date]:
    """The ``nth`` (1-based) ``weekday`` of ``month``'s month, or None if it does not exist."""
    first = month.replace(day=1)
    offset = (weekday - weekday_of(first)) % 7 + (nth - 1) * 7
    candidate = first + timedelta(days=offset)
    if candidate.month != first.month:
        return None
    return candidate


def last_weekday_of_month(month: date, weekday: int) -> date:
    last = month + relativedelta(day=31)
    return last - timedelta(days=(weekday_of(last) - weekday) % 7)


def next_service_date(
    from_date: DateLike,
    allowed_weekdays: Iterable[int],
    end_date: Optional[DateLike] = None,
    frequency: Frequency = Frequency.WEEKLY,
    ordinal: Ordinal = Ordinal.NEXT,
) -> Optional[date]:
    """First occurrence strictly after ``from_date``."""
    tomorrow = to_date(from_date) + timedelta(days=1)
    occurrences = resolve_occurrences(
        tomorrow, allowed_weekdays, count=1, end_date=end_date, frequency=frequency, ordinal=ordinal
    )
    return occurrences[0] if occurrences else None


def occurrence_cap(service_day) -> Optional[int]:
    """How many occurrences a service day's ``cycle`` allows, if it sets one."""
    if not service_day.cycle:
        return None
    if service_day.frequency is Frequency.DAILY:
        return service_day.cycle
    return service_day.cycle * len(service_day.weekdays)


def service_day_occurrences(service_day, from_date: DateLike, count: Optional[int] = None) -> List[date]:
    """Resolve dates for a stored service day definition.

    ``service_day`` is anything exposing ``weekdays``, ``frequency``,
    ``ordinal``, ``start_date``, ``end_date`` and ``cycle``.
    """
    start = to_date(from_date)
    if service_day.start_date and service_day.start_date > start:
        start = service_day.start_date
    cap = occurrence_cap(service_day)
    if cap is not None:
        count = min(count, cap) if count is not None else cap
    if count is None and service_day.end_date is None:
        raise ValueError("A count is required for open-ended services")
    return resolve_occurrences(
        start,
        service_day.weekdays,
        count=count,
        end_date=service_day.end_date,
        frequency=service_day.frequency,
        ordinal=service_day.ordinal,
    )


def service_day_options(service_day, today: date) -> List[dict]:
    """Selectable "Day N" entries for services that span several weekdays."""
    weekdays = list(service_day.weekdays)
    if len(weekdays) <= 1:
        return []

    options = []

    def add(day_of_week):
        number = len(options) + 1
        options.append({"value": f"{day_of_week}-{number}", "label": f"Day {number}", "day_of_week": day_of_week})

    if service_day.cycle and not service_day.end_date:
        if service_day.frequency is not Frequency.DAILY:
            for _ in range(service_day.cycle):
                for day in weekdays:
                    add(day)
        else:
            while len(options) < service_day.cycle:
                for day in weekdays:
                    if len(options) >= service_day.cycle:
                        break
                    add(day)
        return options

    if service_day.end_date:
        occurrences = resolve_occurrences(
            service_day.start_date or today,
            weekdays,
            end_date=service_day.end_date,
            frequency=service_day.frequency,
            ordinal=service_day.ordinal,
        )
        for occurrence in occurrences:
            add(weekday_of(occurrence))
    return options
