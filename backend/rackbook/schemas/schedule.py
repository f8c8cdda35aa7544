# backend/rackbook/schemas/schedule.py
"""
Capacity schedule request and conflict schemas.
"""

import datetime
from typing import Any, List, Optional

from pydantic import Field, field_validator, model_validator

from ..core.enums import PeriodType, RecurrenceType
from .base import FrozenModel, StrictRequestModel


class CapacityScheduleCreate(StrictRequestModel):
    """
    One capacity rule submitted from the schedule editor.

    ``anchor_date`` is the date the editor was opened on; weekday and weekend
    rules are expanded to one row per weekday when saved.
    """

    side_id: int
    period_type: PeriodType
    recurrence_type: RecurrenceType = RecurrenceType.SINGLE
    anchor_date: datetime.date
    end_date: Optional[datetime.date] = None
    start_time: datetime.time
    end_time: datetime.time
    capacity: int = Field(0, ge=0)
    platforms: List[int] = Field(default_factory=list)

    @field_validator("end_time")
    @classmethod
    def validate_time_order(cls, v: datetime.time, info: Any) -> datetime.time:
        """Ensure end time is after start time."""
        if (
            isinstance(getattr(info, "data", None), dict)
            and info.data.get("start_time")
            and v <= info.data["start_time"]
        ):
            raise ValueError("End time must be after start time")
        return v

    @field_validator("end_date")
    @classmethod
    def validate_date_order(
        cls, v: Optional[datetime.date], info: Any
    ) -> Optional[datetime.date]:
        if (
            v is not None
            and isinstance(getattr(info, "data", None), dict)
            and info.data.get("anchor_date")
            and v < info.data["anchor_date"]
        ):
            raise ValueError("End date must not be before the start date")
        return v

    @model_validator(mode="before")
    @classmethod
    def normalize_closed(cls, data: Any) -> Any:
        """Closed rules never carry capacity or platforms."""
        if isinstance(data, dict) and data.get("period_type") in (
            PeriodType.CLOSED,
            PeriodType.CLOSED.value,
        ):
            return {**data, "capacity": 0, "platforms": []}
        return data


class ScheduleConflict(FrozenModel):
    """An existing schedule that a new rule would overlap."""

    day: str
    time: str
    existing_period: PeriodType
    recurrence: str
    existing_schedule_id: str

    def describe(self) -> str:
        return f'{self.day} ({self.recurrence}) {self.time}: Already booked as "{self.existing_period}"'
