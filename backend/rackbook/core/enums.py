# backend/rackbook/core/enums.py
"""
Core enums for the rackbook capacity engine.

Values are the strings persisted in the database, so rows written by other
tools (seed scripts, admin consoles) compare equal to these members.
"""

from enum import Enum


class PeriodType(str, Enum):
    """
    Named capacity tier governing the default ceiling of a time window.

    CLOSED always carries zero capacity and no eligible platforms.
    """

    HIGH_HYBRID = "High Hybrid"
    LOW_HYBRID = "Low Hybrid"
    PERFORMANCE = "Performance"
    GENERAL_USER = "General User"
    CLOSED = "Closed"


class RecurrenceType(str, Enum):
    """How a capacity schedule or booking repeats."""

    SINGLE = "single"
    WEEKDAY = "weekday"
    WEEKEND = "weekend"
    WEEKLY = "weekly"
    ALL_FUTURE = "all_future"

    @property
    def is_recurring(self) -> bool:
        return self is not RecurrenceType.SINGLE
