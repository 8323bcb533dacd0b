"""Recurrence rules: a tagged union discriminated on `type`, plus row mapping."""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Annotated, Literal

from pydantic import Field, TypeAdapter, ValidationError, field_validator

from habit_tracker.core.logging import get_logger
from habit_tracker.schemas.common import ApiModel

if TYPE_CHECKING:
    from habit_tracker.models.tasks import Task

FREQUENCY_TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class Weekday(str, Enum):
    """Day names used by `specific_days` rules."""

    SUNDAY = "sunday"
    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"


# Sunday=0 .. Saturday=6, the numbering clients send for day indexes.
WEEKDAY_ORDER: tuple[Weekday, ...] = (
    Weekday.SUNDAY,
    Weekday.MONDAY,
    Weekday.TUESDAY,
    Weekday.WEDNESDAY,
    Weekday.THURSDAY,
    Weekday.FRIDAY,
    Weekday.SATURDAY,
)


class _FrequencyBase(ApiModel):
    time: str | None = Field(
        default=None,
        pattern=FREQUENCY_TIME_PATTERN,
        description="Optional HH:MM local-time hint; does not gate completion.",
        examples=["07:30"],
    )


class DailyFrequency(_FrequencyBase):
    """Active every day."""

    type: Literal["daily"] = "daily"
    data: dict[str, object] = Field(default_factory=dict)


class SpecificDaysData(ApiModel):
    """Weekdays a `specific_days` task is active on."""

    days: list[Weekday] = Field(min_length=1, examples=[["monday", "wednesday", "friday"]])

    @field_validator("days", mode="before")
    @classmethod
    def _normalize_days(cls, value: object) -> object:
        if not isinstance(value, (list, tuple, set, frozenset)):
            return value
        normalized: list[object] = []
        for item in value:
            if isinstance(item, int) and not isinstance(item, bool):
                if not 0 <= item < len(WEEKDAY_ORDER):
                    msg = f"Day index must be between 0 (Sunday) and 6 (Saturday), got {item}"
                    raise ValueError(msg)
                normalized.append(WEEKDAY_ORDER[item])
            elif isinstance(item, str):
                normalized.append(item.strip().lower())
            else:
                normalized.append(item)
        return normalized

    @field_validator("days")
    @classmethod
    def _dedupe_days(cls, value: list[Weekday]) -> list[Weekday]:
        present = set(value)
        return [day for day in WEEKDAY_ORDER if day in present]


class SpecificDaysFrequency(_FrequencyBase):
    """Active only on the listed weekdays."""

    type: Literal["specific_days"] = "specific_days"
    data: SpecificDaysData


class CountData(ApiModel):
    """Target number of completions per period."""

    count: int = Field(ge=1, examples=[3])


class TimesPerWeekFrequency(_FrequencyBase):
    """Target count per week; every day stays eligible."""

    type: Literal["times_per_week"] = "times_per_week"
    data: CountData


class TimesPerMonthFrequency(_FrequencyBase):
    """Target count per month; every day stays eligible."""

    type: Literal["times_per_month"] = "times_per_month"
    data: CountData


class UnknownFrequency(_FrequencyBase):
    """A stored rule whose type this version does not recognize."""

    type: str
    data: dict[str, object] = Field(default_factory=dict)


Frequency = Annotated[
    DailyFrequency | SpecificDaysFrequency | TimesPerWeekFrequency | TimesPerMonthFrequency,
    Field(discriminator="type"),
]

# Stored rows may carry a type this version does not know.
AnyFrequency = (
    DailyFrequency
    | SpecificDaysFrequency
    | TimesPerWeekFrequency
    | TimesPerMonthFrequency
    | UnknownFrequency
)

_FREQUENCY_ADAPTER: TypeAdapter[Frequency] = TypeAdapter(Frequency)
logger = get_logger(__name__)


def parse_frequency(payload: object) -> AnyFrequency:
    """Validate a `{type, data, time?}` mapping into a typed rule."""
    return _FREQUENCY_ADAPTER.validate_python(payload)


def frequency_from_row(task: Task) -> AnyFrequency | None:
    """Rebuild the typed rule from the three frequency columns of a task row."""
    if not task.frequency_type:
        return None
    payload = {
        "type": task.frequency_type,
        "data": dict(task.frequency_data or {}),
        "time": task.frequency_time,
    }
    try:
        return parse_frequency(payload)
    except ValidationError:
        logger.warning(
            "tasks.frequency.unrecognized",
            extra={"task_id": str(task.id), "frequency_type": task.frequency_type},
        )
        return UnknownFrequency.model_construct(
            type=task.frequency_type,
            data=payload["data"],
            time=task.frequency_time,
        )


def frequency_to_columns(frequency: AnyFrequency | None) -> dict[str, object]:
    """Flatten a rule into task column values (all NULL for one-time tasks)."""
    if frequency is None:
        return {"frequency_type": None, "frequency_data": None, "frequency_time": None}
    if isinstance(frequency.data, dict):
        data = dict(frequency.data)
    else:
        data = frequency.data.model_dump(mode="json")
    return {
        "frequency_type": frequency.type,
        "frequency_data": data,
        "frequency_time": frequency.time,
    }
