"""Recurrence evaluation: decide whether a task is active on a calendar day."""

from __future__ import annotations

from typing import TYPE_CHECKING

from habit_tracker.schemas.frequency import WEEKDAY_ORDER, SpecificDaysFrequency, Weekday

if TYPE_CHECKING:
    from datetime import date

    from habit_tracker.schemas.frequency import AnyFrequency


def weekday_of(day: date) -> Weekday:
    """Map a date to its weekday name (Python counts Monday as 0)."""
    return WEEKDAY_ORDER[(day.weekday() + 1) % 7]


def is_active_on_date(frequency: AnyFrequency | None, day: date) -> bool:
    """Return whether a task with this rule should appear on `day`.

    One-time tasks, daily rules and quota rules are always active. Quotas
    (`times_per_week`, `times_per_month`) are not checked against completion
    history. Unrecognized rules fail open.
    """
    if frequency is None:
        return True
    if isinstance(frequency, SpecificDaysFrequency):
        return weekday_of(day) in frequency.data.days
    return True
