# backend/rackbook/schemas/__init__.py
"""
Pydantic schemas for rackbook.
"""

from .booking import BookingSeriesCreate, PlatformEligibility, RackConflict
from .capacity import (
    CapacityCheckResult,
    CapacityLimit,
    CapacityViolation,
    ClosedPeriod,
    ClosedPeriodIndex,
    SeriesValidationResult,
    TimeRange,
    WeekResult,
)
from .schedule import CapacityScheduleCreate, ScheduleConflict

__all__ = [
    "BookingSeriesCreate",
    "CapacityCheckResult",
    "CapacityLimit",
    "CapacityScheduleCreate",
    "CapacityViolation",
    "ClosedPeriod",
    "ClosedPeriodIndex",
    "PlatformEligibility",
    "RackConflict",
    "ScheduleConflict",
    "SeriesValidationResult",
    "TimeRange",
    "WeekResult",
]
