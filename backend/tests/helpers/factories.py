# backend/tests/helpers/factories.py
"""
Unsaved model builders for capacity engine tests.

Only the fields a test cares about need to be passed; the rest default to
an open General User rule on side 1 anchored on a Wednesday.
"""

from datetime import date, datetime, time
from typing import Iterable, Optional

from rackbook.core.enums import PeriodType, RecurrenceType
from rackbook.models.booking import BookingInstance
from rackbook.models.capacity_schedule import CapacitySchedule
from rackbook.utils.time_utils import day_of_week

SIDE_ID = 1

# A Wednesday; its week runs Sunday 2024-01-07 .. Saturday 2024-01-13
WEDNESDAY = date(2024, 1, 10)


def make_schedule(
    period_type: PeriodType = PeriodType.GENERAL_USER,
    start_time: time = time(6, 0),
    end_time: time = time(22, 0),
    capacity: int = 10,
    recurrence_type: RecurrenceType = RecurrenceType.WEEKLY,
    start_date: date = WEDNESDAY,
    end_date: Optional[date] = None,
    dow: Optional[int] = None,
    side_id: int = SIDE_ID,
    platforms: Iterable[int] = (),
    excluded_dates: Iterable[str] = (),
) -> CapacitySchedule:
    """Schedule row; the weekday defaults to that of ``start_date``."""
    closed = period_type == PeriodType.CLOSED
    return CapacitySchedule(
        side_id=side_id,
        period_type=period_type,
        recurrence_type=recurrence_type,
        day_of_week=day_of_week(start_date) if dow is None else dow,
        start_date=start_date,
        end_date=end_date,
        start_time=start_time,
        end_time=end_time,
        capacity=0 if closed else capacity,
        platforms=[] if closed else list(platforms),
        excluded_dates=list(excluded_dates),
    )


def make_instance(
    start: datetime,
    end: datetime,
    capacity: int = 1,
    racks: Iterable[int] = (),
    side_id: int = SIDE_ID,
    booking_id: str = "01HZZZZZZZZZZZZZZZZZZZZZZZ",
) -> BookingInstance:
    return BookingInstance(
        booking_id=booking_id,
        side_id=side_id,
        start=start,
        end=end,
        racks=list(racks),
        capacity=capacity,
    )


def at(day: date, hour: int, minute: int = 0) -> datetime:
    return datetime.combine(day, time(hour, minute))
