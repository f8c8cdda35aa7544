# backend/rackbook/services/schedule_applicability.py
"""
Decides whether a stored capacity schedule governs a given calendar date.

Pure functions only: callers pass schedules already read from the store.
Weekdays are numbered Sunday = 0 .. Saturday = 6 throughout.
"""

from datetime import date, time
import json
import logging
from typing import Any, List, Optional

from ..core.constants import WEEKDAY_NUMBERS, WEEKEND_NUMBERS
from ..core.enums import RecurrenceType
from ..models.capacity_schedule import CapacitySchedule
from ..utils.time_utils import TimeLike, day_of_week, parse_time

logger = logging.getLogger(__name__)


def parse_excluded_dates(raw: Any) -> List[str]:
    """
    Normalise the stored ``excluded_dates`` value to a list of ISO strings.

    Rows may hold a JSON array, a JSON-encoded string, or nothing.
    """
    if raw is None:
        return []
    if isinstance(raw, (list, tuple)):
        return [d.isoformat() if isinstance(d, date) else str(d) for d in raw]
    if isinstance(raw, str):
        try:
            parsed = json.loads(raw)
        except ValueError:
            logger.warning(f"Ignoring unparseable excluded_dates value: {raw!r}")
            return []
        if isinstance(parsed, list):
            return [str(d) for d in parsed]
    return []


def _within_validity(schedule: CapacitySchedule, candidate_date: date) -> bool:
    if schedule.start_date > candidate_date:
        return False
    return schedule.end_date is None or schedule.end_date >= candidate_date


def applies(
    schedule: CapacitySchedule,
    candidate_day_of_week: int,
    candidate_date: date,
) -> bool:
    """
    True if ``schedule`` governs ``candidate_date``.

    An excluded date always vetoes, whatever the recurrence type.
    """
    if candidate_date.isoformat() in parse_excluded_dates(schedule.excluded_dates):
        return False

    if schedule.day_of_week != candidate_day_of_week:
        return False

    recurrence = schedule.recurrence_type
    if recurrence == RecurrenceType.SINGLE:
        return schedule.start_date == candidate_date
    if recurrence == RecurrenceType.WEEKDAY:
        return candidate_day_of_week in WEEKDAY_NUMBERS and _within_validity(
            schedule, candidate_date
        )
    if recurrence == RecurrenceType.WEEKEND:
        return candidate_day_of_week in WEEKEND_NUMBERS and _within_validity(
            schedule, candidate_date
        )
    if recurrence in (RecurrenceType.WEEKLY, RecurrenceType.ALL_FUTURE):
        return _within_validity(schedule, candidate_date)

    logger.debug(f"Unknown recurrence type {recurrence!r} on schedule {schedule.id}")
    return False


def applies_on(schedule: CapacitySchedule, candidate_date: date) -> bool:
    """``applies`` with the weekday derived from the date."""
    return applies(schedule, day_of_week(candidate_date), candidate_date)


def applies_at(
    schedule: CapacitySchedule,
    candidate_date: date,
    at: TimeLike,
    candidate_day_of_week: Optional[int] = None,
) -> bool:
    """True if ``schedule`` governs ``candidate_date`` and ``at`` is in [start_time, end_time)."""
    moment: time = parse_time(at)
    if not (parse_time(schedule.start_time) <= moment < parse_time(schedule.end_time)):
        return False
    if candidate_day_of_week is None:
        candidate_day_of_week = day_of_week(candidate_date)
    return applies(schedule, candidate_day_of_week, candidate_date)
