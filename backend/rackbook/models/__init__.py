"""
Database models for the rackbook capacity engine.

- Capacity schedules (per-side capacity rules, including closures)
- Period-type capacity defaults and per-date overrides
- Booking series and their dated instances
"""

from .booking import Booking, BookingInstance
from .capacity_schedule import CapacitySchedule
from .period_type_capacity import PeriodTypeCapacityDefault, PeriodTypeCapacityOverride

__all__ = [
    "Booking",
    "BookingInstance",
    "CapacitySchedule",
    "PeriodTypeCapacityDefault",
    "PeriodTypeCapacityOverride",
]
