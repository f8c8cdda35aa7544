# backend/rackbook/schemas/booking.py
"""
Booking series submission schemas.
"""

import datetime
from typing import Any, Dict, List, Optional

from pydantic import Field, field_validator

from ..core.enums import RecurrenceType
from .base import FrozenModel, StrictRequestModel


class BookingSeriesCreate(StrictRequestModel):
    """
    A weekly-recurring booking submitted by a coach or admin.

    Week keys in ``racks_by_week`` and ``capacity_by_week`` are 0-based.
    A week missing from ``capacity_by_week`` books ``capacity`` athletes.
    """

    title: str = Field(..., min_length=1, max_length=255)
    side_id: int
    start_date: datetime.date
    start_time: datetime.time
    end_time: datetime.time
    weeks: int = Field(1, ge=1)
    capacity: int = Field(1, ge=0)
    racks_by_week: Dict[int, List[int]] = Field(default_factory=dict)
    capacity_by_week: Dict[int, int] = Field(default_factory=dict)
    recurrence_type: RecurrenceType = RecurrenceType.WEEKLY
    created_by: Optional[str] = None

    @field_validator("end_time")
    @classmethod
    def validate_time_order(cls, v: datetime.time, info: Any) -> datetime.time:
        """Ensure end time is after start time."""
        if (
            isinstance(getattr(info, "data", None), dict)
            and info.data.get("start_time")
            and v <= info.data["start_time"]
        ):
            raise ValueError("End time must be after start time.")
        return v

    @field_validator("capacity_by_week")
    @classmethod
    def validate_week_capacities(cls, v: Dict[int, int]) -> Dict[int, int]:
        for week, capacity in v.items():
            if capacity < 0:
                raise ValueError(f"Week {week + 1} capacity must not be negative")
        return v


class RackConflict(FrozenModel):
    """A requested rack already claimed by an overlapping instance."""

    week: int
    rack: int
    booking_id: str
    booking_title: str
    start: datetime.datetime
    end: datetime.datetime


class PlatformEligibility(FrozenModel):
    """Whether the requested racks are open to General User bookings."""

    is_valid: bool
    unavailable_platforms: List[int] = Field(default_factory=list)
    available_platforms: List[int] = Field(default_factory=list)
