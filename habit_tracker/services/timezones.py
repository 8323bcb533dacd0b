"""Turn a client-local calendar date plus timezone hints into a UTC day window.

Every window is half-open, `[start_of_day, start_of_day + 24h)`, with naive
UTC bounds that compare directly against stored timestamps.

Offsets follow the browser `Date.getTimezoneOffset()` convention: the number
of minutes to add to local time to reach UTC, so zones west of Greenwich are
positive (`America/New_York` in winter is `300`).
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta

import pendulum
from fastapi import HTTPException, status
from pendulum.tz.exceptions import InvalidTimezone

from habit_tracker.core.logging import get_logger
from habit_tracker.core.time import to_naive_utc

DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
INVALID_DATE_MESSAGE = "Invalid date format. Expected YYYY-MM-DD"
DAY_LENGTH = timedelta(hours=24)

logger = get_logger(__name__)


@dataclass(frozen=True)
class DayRange:
    """UTC bounds of one local calendar day (or a span of days)."""

    local_date: date
    start_of_day: datetime
    end_of_day: datetime

    def contains(self, instant: datetime) -> bool:
        return self.start_of_day <= to_naive_utc(instant) < self.end_of_day


def current_local_date() -> date:
    """Server's current calendar date in its own local timezone."""
    return pendulum.now().date()


def _invalid_date() -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=INVALID_DATE_MESSAGE)


def parse_local_date(value: str) -> date:
    """Parse a strict `YYYY-MM-DD` string or raise a 400."""
    if not DATE_PATTERN.match(value):
        raise _invalid_date()
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise _invalid_date() from None


def day_range_for_offset(day: date, timezone_offset: int) -> DayRange:
    """Window for `day` given a fixed offset in minutes.

    Days whose UTC window falls outside the representable datetime range
    (the first and last calendar days) are rejected as invalid dates.
    """
    try:
        start = datetime.combine(day, time.min) + timedelta(minutes=timezone_offset)
        end = start + DAY_LENGTH
    except OverflowError:
        raise _invalid_date() from None
    return DayRange(local_date=day, start_of_day=start, end_of_day=end)


def zone_offset_minutes(day: date, timezone_name: str) -> int | None:
    """Offset of an IANA zone at local midnight of `day`, or None if unknown."""
    try:
        local_midnight = pendulum.datetime(day.year, day.month, day.day, tz=timezone_name)
    except (InvalidTimezone, ValueError, KeyError, OverflowError):
        logger.warning(
            "timezones.lookup_failed",
            extra={"timezone_name": timezone_name, "local_date": day.isoformat()},
        )
        return None
    utc_offset = local_midnight.utcoffset() or timedelta(0)
    return -round(utc_offset.total_seconds() / 60)


def resolve_offset(
    day: date,
    *,
    timezone_offset: int | None = None,
    timezone_name: str | None = None,
) -> int:
    """Pick the effective offset: zone name first, then raw offset, then UTC."""
    if timezone_name:
        offset = zone_offset_minutes(day, timezone_name)
        return 0 if offset is None else offset
    if timezone_offset is not None:
        return timezone_offset
    return 0


def resolve_day_range(
    local_date: str | None = None,
    timezone_offset: int | None = None,
    timezone_name: str | None = None,
) -> DayRange:
    """Resolve the UTC window of the client's local day.

    Without a date the server's current local date is used. A zone name wins
    over a raw offset; a failed zone lookup falls back to UTC instead of
    raising. Without any timezone hint the date is read as a UTC day.
    """
    day = parse_local_date(local_date) if local_date else current_local_date()
    offset = resolve_offset(day, timezone_offset=timezone_offset, timezone_name=timezone_name)
    return day_range_for_offset(day, offset)


def resolve_date_span(
    start_date: str,
    end_date: str,
    *,
    timezone_offset: int | None = None,
    timezone_name: str | None = None,
) -> DayRange:
    """Window covering every local day from `start_date` through `end_date`."""
    first = resolve_day_range(start_date, timezone_offset, timezone_name)
    last = resolve_day_range(end_date, timezone_offset, timezone_name)
    if last.local_date < first.local_date:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="endDate must not be before startDate",
        )
    return DayRange(
        local_date=first.local_date,
        start_of_day=first.start_of_day,
        end_of_day=last.end_of_day,
    )


def normalize_instant(instant: datetime) -> datetime:
    """Naive UTC form of a client-supplied instant; out-of-range values are a 400."""
    try:
        return to_naive_utc(instant)
    except OverflowError:
        raise _invalid_date() from None


def utc_to_local_date(instant: datetime, timezone_offset: int = 0) -> date:
    """Calendar date an instant falls on for a client with the given offset."""
    try:
        return (to_naive_utc(instant) - timedelta(minutes=timezone_offset)).date()
    except OverflowError:
        raise _invalid_date() from None


def day_range_containing(
    instant: datetime,
    *,
    timezone_offset: int | None = None,
    timezone_name: str | None = None,
) -> DayRange:
    """Window of the client's local day that `instant` falls on."""
    moment = normalize_instant(instant)
    offset = resolve_offset(
        moment.date(),
        timezone_offset=timezone_offset,
        timezone_name=timezone_name,
    )
    day = utc_to_local_date(moment, offset)
    offset = resolve_offset(day, timezone_offset=timezone_offset, timezone_name=timezone_name)
    return day_range_for_offset(day, offset)
