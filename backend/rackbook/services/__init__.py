# backend/rackbook/services/__init__.py
"""
Service layer for rackbook.

Services own transactions and turn repository data into decisions. The
capacity engine's pure helpers live beside the services that use them.
"""

from .base import BaseService
from .booking_series_service import BookingSeriesService
from .capacity_limits import CapacityContext, CapacityLimitService, limit_at
from .capacity_violations import CapacityValidationService, check_violations
from .closed_periods import (
    ClosedPeriodService,
    available_time_ranges,
    build_closed_period_index,
    calculate_end_time,
    is_time_closed,
    is_time_range_closed,
)
from .occupancy import occupancy_at
from .recurrence import expand_occurrences, weekly_windows
from .schedule_applicability import applies, applies_at, parse_excluded_dates
from .schedule_overlap_service import ScheduleOverlapService
from .series_validation_service import SeriesValidationService

__all__ = [
    "BaseService",
    "BookingSeriesService",
    "CapacityContext",
    "CapacityLimitService",
    "CapacityValidationService",
    "ClosedPeriodService",
    "ScheduleOverlapService",
    "SeriesValidationService",
    "applies",
    "applies_at",
    "available_time_ranges",
    "build_closed_period_index",
    "calculate_end_time",
    "check_violations",
    "expand_occurrences",
    "is_time_closed",
    "is_time_range_closed",
    "limit_at",
    "occupancy_at",
    "parse_excluded_dates",
    "weekly_windows",
]
