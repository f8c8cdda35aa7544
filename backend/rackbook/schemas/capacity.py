# backend/rackbook/schemas/capacity.py
"""
Result types produced by the capacity engine.

These are plain value objects. Validators return them instead of raising,
so callers can show every violation at once and decide what to block.
"""

import datetime
from typing import FrozenSet, List, Optional

from pydantic import Field

from ..core.enums import PeriodType
from .base import FrozenModel, StandardizedModel


class ClosedPeriod(FrozenModel):
    """A closed time window within one day, ``[start_time, end_time)``."""

    start_time: datetime.time
    end_time: datetime.time


class ClosedPeriodIndex(FrozenModel):
    """
    Closed periods of one side on one date.

    ``closed_hour_buckets`` holds "HH:00" keys of every hour touched by a
    closure and is kept for hour-granularity callers; ``closed_periods`` is
    the minute-accurate list.
    """

    closed_hour_buckets: FrozenSet[str] = Field(default_factory=frozenset)
    closed_periods: List[ClosedPeriod] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.closed_periods and not self.closed_hour_buckets


class TimeRange(FrozenModel):
    """An open interval of the day as "HH:MM" strings."""

    start: str
    end: str


class CapacityLimit(FrozenModel):
    """Effective ceiling at an instant and the period type it came from."""

    capacity: int
    period_type: PeriodType


class CapacityViolation(FrozenModel):
    """One sampled instant where usage exceeds the ceiling."""

    time: datetime.datetime
    time_str: str
    used: int
    limit: int
    period_type: PeriodType
    week: Optional[int] = None


class CapacityCheckResult(FrozenModel):
    """Outcome of sampling one proposed booking window."""

    is_valid: bool
    violations: List[CapacityViolation] = Field(default_factory=list)
    max_used: int = 0
    max_limit: Optional[int] = None
    max_violation_time: Optional[datetime.datetime] = None

    @property
    def over_by(self) -> int:
        if self.max_limit is None:
            return 0
        return max(self.max_used - self.max_limit, 0)


class WeekResult(StandardizedModel):
    """Capacity outcome of one week of a series; ``week`` is 1-based."""

    week: int
    proposed_start: datetime.datetime
    proposed_end: datetime.datetime
    proposed_capacity: int
    result: CapacityCheckResult


class SeriesValidationResult(StandardizedModel):
    """Aggregate over every week of a proposed series."""

    is_valid: bool
    has_warnings: bool
    violations: List[CapacityViolation] = Field(default_factory=list)
    max_used: int = 0
    max_limit: Optional[int] = None
    week_results: List[WeekResult] = Field(default_factory=list)
    closed_conflicts: List[datetime.date] = Field(default_factory=list)

    @property
    def over_by(self) -> int:
        if self.max_limit is None:
            return 0
        return max(self.max_used - self.max_limit, 0)
