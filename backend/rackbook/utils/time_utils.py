from __future__ import annotations

from datetime import date, datetime, time
from typing import Union

from ..core.constants import MINUTES_PER_DAY

TimeLike = Union[time, str]


def parse_time(value: TimeLike) -> time:
    """
    Parse "HH:MM" or "HH:MM:SS" (or pass a time through).

    Stored rows may carry either format.
    """
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0)
    parts = value.strip().split(":")
    if len(parts) < 2 or not all(p.isdigit() for p in parts):
        raise ValueError(f"Invalid time string: {value!r}")
    hour, minute = int(parts[0]), int(parts[1])
    return time(hour, minute)


def time_to_minutes(t: TimeLike) -> int:
    """Convert a time (or HH:MM string) to minutes since midnight."""
    parsed = parse_time(t)
    return parsed.hour * 60 + parsed.minute


def minutes_to_time_str(minutes: int) -> str:
    """
    Convert minutes since midnight to HH:MM.

    1440 is rendered as "24:00".
    """
    if not 0 <= minutes <= MINUTES_PER_DAY:
        raise ValueError(f"minutes out of range: {minutes}")
    if minutes == MINUTES_PER_DAY:
        return "24:00"
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def format_hhmm(value: TimeLike) -> str:
    return parse_time(value).strftime("%H:%M")


def hour_bucket(hour: int) -> str:
    """Hour-granularity key, e.g. 9 -> "09:00"."""
    return f"{hour:02d}:00"


def day_of_week(value: date) -> int:
    """Weekday number with Sunday = 0 .. Saturday = 6."""
    return (value.weekday() + 1) % 7


def combine_date_and_time(day: date, value: TimeLike) -> datetime:
    """Naive local datetime for ``day`` at ``value``."""
    return datetime.combine(day, parse_time(value))
