# backend/rackbook/services/closed_periods.py
"""
Closed-period index for one side on one date.

The pure helpers take the periods (and optionally the coarse hour buckets)
of a single day and answer minute-level questions about them. When no
periods are supplied but hour buckets are, the helpers fall back to
hour-granularity checks so older callers holding only buckets keep working.

ClosedPeriodService is the only part that touches the store. It keeps no
cache; callers that check many times for the same date reuse the index.
"""

from datetime import date, timedelta
import logging
from typing import AbstractSet, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from ..core.constants import LAST_SLOT_OF_DAY
from ..core.enums import PeriodType
from ..models.capacity_schedule import CapacitySchedule
from ..repositories.capacity_schedule_repository import CapacityScheduleRepository
from ..repositories.factory import RepositoryFactory
from ..schemas.capacity import ClosedPeriod, ClosedPeriodIndex, TimeRange
from ..utils.time_utils import (
    TimeLike,
    day_of_week,
    hour_bucket,
    minutes_to_time_str,
    parse_time,
    time_to_minutes,
)
from .base import BaseService
from .schedule_applicability import applies

logger = logging.getLogger(__name__)

WHOLE_DAY = TimeRange(start="00:00", end=LAST_SLOT_OF_DAY)


def week_bounds(on_date: date) -> Tuple[date, date]:
    """Sunday and Saturday of the week containing ``on_date``."""
    week_start = on_date - timedelta(days=day_of_week(on_date))
    return week_start, week_start + timedelta(days=6)


def build_closed_period_index(
    schedules: Iterable[CapacitySchedule], on_date: date
) -> ClosedPeriodIndex:
    """
    Collect the Closed schedules governing ``on_date``.

    Every applicable closure contributes its period and the "HH:00" bucket
    of each hour in [start hour, end hour). Periods are not merged.
    """
    weekday = day_of_week(on_date)
    buckets = set()
    periods: List[ClosedPeriod] = []

    for schedule in schedules:
        if schedule.period_type != PeriodType.CLOSED:
            continue
        if not applies(schedule, weekday, on_date):
            continue

        start, end = parse_time(schedule.start_time), parse_time(schedule.end_time)
        periods.append(ClosedPeriod(start_time=start, end_time=end))
        for hour in range(start.hour, end.hour):
            buckets.add(hour_bucket(hour))

    return ClosedPeriodIndex(closed_hour_buckets=frozenset(buckets), closed_periods=periods)


def _period_minutes(period: ClosedPeriod) -> Tuple[int, int]:
    return time_to_minutes(period.start_time), time_to_minutes(period.end_time)


def is_time_closed(
    at: TimeLike,
    periods: Sequence[ClosedPeriod],
    is_end_time: bool = False,
    closed_hour_buckets: Optional[AbstractSet[str]] = None,
) -> bool:
    """
    True if ``at`` falls inside a closed period.

    As an end time, the exact start of a closure is allowed: a booking may
    end when the facility closes.
    """
    if not periods:
        if not closed_hour_buckets:
            return False
        return hour_bucket(parse_time(at).hour) in closed_hour_buckets

    minutes = time_to_minutes(at)
    for period in periods:
        start, end = _period_minutes(period)
        if is_end_time and minutes == start:
            continue
        if start <= minutes < end:
            return True
    return False


def is_time_range_closed(
    start_time: TimeLike,
    end_time: TimeLike,
    periods: Sequence[ClosedPeriod],
    closed_hour_buckets: Optional[AbstractSet[str]] = None,
) -> bool:
    """True if [start_time, end_time) shares time with any closed period."""
    if not periods:
        if not closed_hour_buckets:
            return False
        start, end = parse_time(start_time), parse_time(end_time)
        for hour in range(start.hour, end.hour + 1):
            if hour_bucket(hour) not in closed_hour_buckets:
                continue
            # Ending on the hour does not touch that hour
            if hour == end.hour and end.minute == 0:
                continue
            return True
        return False

    start_minutes, end_minutes = time_to_minutes(start_time), time_to_minutes(end_time)
    for period in periods:
        period_start, period_end = _period_minutes(period)
        if (
            start_minutes < period_end
            and end_minutes > period_start
            and end_minutes != period_start
        ):
            return True
    return False


def available_time_ranges(
    periods: Sequence[ClosedPeriod],
    closed_hour_buckets: Optional[AbstractSet[str]] = None,
) -> List[TimeRange]:
    """
    Open gaps of the day between closures, as "HH:MM" pairs.

    The trailing gap runs to the last bookable slot (23:30). A day closed
    from midnight to the last slot has no ranges; a day with no closures is
    open throughout.
    """
    if not periods:
        return _available_from_buckets(closed_hour_buckets or frozenset())

    ordered = sorted(periods, key=lambda p: time_to_minutes(p.start_time))
    last_slot = time_to_minutes(LAST_SLOT_OF_DAY)
    ranges: List[TimeRange] = []
    cursor = 0
    for period in ordered:
        start, end = _period_minutes(period)
        if cursor < start:
            ranges.append(TimeRange(start=minutes_to_time_str(cursor), end=minutes_to_time_str(start)))
        # Overlapping closures never move the cursor backwards
        cursor = max(cursor, end)

    if cursor < last_slot:
        ranges.append(TimeRange(start=minutes_to_time_str(cursor), end=LAST_SLOT_OF_DAY))

    return ranges


def _available_from_buckets(closed_hour_buckets: AbstractSet[str]) -> List[TimeRange]:
    if not closed_hour_buckets:
        return [WHOLE_DAY]

    closed_hours = sorted(int(bucket.split(":")[0]) for bucket in closed_hour_buckets)
    ranges: List[TimeRange] = []
    cursor = 0
    for hour in closed_hours:
        if cursor < hour:
            ranges.append(TimeRange(start=hour_bucket(cursor), end=hour_bucket(hour)))
        cursor = hour + 1

    if cursor < 24:
        ranges.append(TimeRange(start=hour_bucket(cursor), end=LAST_SLOT_OF_DAY))
    return ranges


def calculate_end_time(
    start_time: TimeLike, minutes: int, closed_hour_buckets: AbstractSet[str]
) -> Optional[str]:
    """
    Suggest an end time ``minutes`` after ``start_time``.

    Stops at HH:59 before the first closed hour the booking would reach,
    including an end landing exactly on a closed hour. Returns None when the
    start hour itself is closed. Past midnight the end is capped at 23:59.
    """
    start = parse_time(start_time)
    if hour_bucket(start.hour) in closed_hour_buckets:
        return None

    end_total = start.hour * 60 + start.minute + minutes
    end_hour, end_minute = divmod(end_total, 60)
    if end_hour >= 24:
        end_hour, end_minute = 23, 59

    for hour in range(start.hour, end_hour + 1):
        if hour_bucket(hour) not in closed_hour_buckets:
            continue
        if hour > start.hour:
            return f"{hour - 1:02d}:59"
        return None

    return f"{end_hour:02d}:{end_minute:02d}"


class ClosedPeriodService(BaseService):
    """
    Reads the Closed schedules of a side and indexes them per date.
    """

    def __init__(
        self, db: Session, schedule_repository: Optional[CapacityScheduleRepository] = None
    ):
        super().__init__(db)
        self.schedule_repository = (
            schedule_repository or RepositoryFactory.create_capacity_schedule_repository(db)
        )

    @BaseService.measure_operation("closed_periods_for")
    def closed_periods_for(self, side_id: int, on_date: date) -> ClosedPeriodIndex:
        """
        Closed periods of ``side_id`` on ``on_date``.

        Raises:
            RepositoryException: If the schedules cannot be read
        """
        week_start, week_end = week_bounds(on_date)
        schedules = self.schedule_repository.fetch_schedules(
            side_id, week_start, week_end, period_type=PeriodType.CLOSED
        )
        index = build_closed_period_index(schedules, on_date)
        self.logger.debug(
            f"Side {side_id} on {on_date}: {len(index.closed_periods)} closed period(s)"
        )
        return index

    def is_range_closed_on(
        self, side_id: int, on_date: date, start_time: TimeLike, end_time: TimeLike
    ) -> bool:
        index = self.closed_periods_for(side_id, on_date)
        return is_time_range_closed(
            start_time, end_time, index.closed_periods, index.closed_hour_buckets
        )
