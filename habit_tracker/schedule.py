"""Habit schedules: which calendar days count for a habit.

Daily habits count every day. Weekly habits count only on their configured
weekdays, numbered Monday=1 ... Sunday=7 (``date.isoweekday()``). The set of
active days is validated once, when a habit is created or updated, and stored
as a JSON array of integers.
"""
import json
import logging
from datetime import date
from enum import Enum, IntEnum
from typing import FrozenSet, Iterable, Optional

from .errors import DataCorruptionError, InvalidScheduleError, ValidationError

logger = logging.getLogger(__name__)


class FrequencyType(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"


class Weekday(IntEnum):
    MONDAY = 1
    TUESDAY = 2
    WEDNESDAY = 3
    THURSDAY = 4
    FRIDAY = 5
    SATURDAY = 6
    SUNDAY = 7

    @classmethod
    def of(cls, day: date) -> "Weekday":
        return cls(day.isoweekday())


ActiveDays = FrozenSet[Weekday]


def validate_active_days(frequency_type, active_days: Optional[Iterable[int]]) -> Optional[ActiveDays]:
    """Normalize ``active_days`` for storage on a habit.

    Weekly habits need a non-empty set of integers in 1..7. Daily habits
    ignore whatever was sent and store no schedule.
    """
    frequency_type = FrequencyType(frequency_type)
    if frequency_type == FrequencyType.DAILY:
        return None
    if not active_days:
        raise InvalidScheduleError()
    days = set()
    for value in active_days:
        if isinstance(value, bool) or not isinstance(value, int) or not 1 <= value <= 7:
            raise ValidationError("Active days must contain integers between 1 and 7")
        days.add(Weekday(value))
    return frozenset(days)


def encode_active_days(active_days: Optional[ActiveDays]) -> Optional[str]:
    if not active_days:
        return None
    return json.dumps(sorted(int(d) for d in active_days))


def decode_active_days(raw: Optional[str]) -> Optional[ActiveDays]:
    """Parse the stored JSON array. Raises DataCorruptionError on bad data."""
    if raw is None or raw in ("", "null"):
        return None
    try:
        values = json.loads(raw)
    except (TypeError, ValueError) as exc:
        raise DataCorruptionError(f"Unreadable active_days value: {raw!r}") from exc
    if not isinstance(values, list):
        raise DataCorruptionError(f"Unreadable active_days value: {raw!r}")
    try:
        return frozenset(Weekday(v) for v in values)
    except (TypeError, ValueError) as exc:
        raise DataCorruptionError(f"Unreadable active_days value: {raw!r}") from exc


def active_days_for_display(raw: Optional[str]):
    """Sorted list of weekday numbers, or None. Never raises."""
    try:
        days = decode_active_days(raw)
    except DataCorruptionError:
        logger.warning("Ignoring corrupted active_days %r", raw)
        return None
    return sorted(int(d) for d in days) if days else None


def is_countable_day(frequency_type, active_days: Optional[ActiveDays], day: date) -> bool:
    """True when ``day`` is a scheduled occurrence of the habit."""
    frequency_type = FrequencyType(frequency_type)
    if frequency_type == FrequencyType.DAILY:
        return True
    if not active_days:
        raise InvalidScheduleError("Weekly habit has no active days")
    return Weekday.of(day) in active_days
