# backend/rackbook/models/capacity_schedule.py
"""
Capacity schedule model.

A capacity schedule is one capacity rule for one side: a period type, a
recurrence rule anchored on a weekday, a validity window and a time-of-day
window. Weekday-recurring rules are stored as one row per weekday.

Classes:
    CapacitySchedule: One capacity rule for one side
"""

import logging
from typing import List

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Index,
    Integer,
    String,
    Time,
)
from sqlalchemy.sql import func
import ulid

from ..core.enums import PeriodType, RecurrenceType
from ..database import Base
from .base_enum import create_safe_enum

logger = logging.getLogger(__name__)


class CapacitySchedule(Base):
    """
    One capacity rule for one side.

    Attributes:
        side_id: The facility side this rule governs
        period_type: Capacity tier; Closed implies zero capacity and no platforms
        recurrence_type: single, weekday, weekend, weekly or all_future
        day_of_week: 0 (Sunday) .. 6 (Saturday); the rule only matches this weekday
        start_date / end_date: Validity window, end_date NULL means open-ended
        start_time / end_time: Local time-of-day window, end exclusive
        capacity: Ceiling on concurrent athletes inside the window
        platforms: Rack numbers eligible under this rule
        excluded_dates: ISO dates on which the rule does not apply
    """

    __tablename__ = "capacity_schedules"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    side_id = Column(Integer, nullable=False, index=True)
    period_type = Column(create_safe_enum(PeriodType, "period_type_enum"), nullable=False)
    recurrence_type = Column(
        create_safe_enum(RecurrenceType, "recurrence_type_enum"),
        nullable=False,
        default=RecurrenceType.SINGLE,
    )
    day_of_week = Column(Integer, nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    capacity = Column(Integer, nullable=False, default=0)
    platforms = Column(JSON, nullable=False, default=list)
    excluded_dates = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    __table_args__ = (
        CheckConstraint("day_of_week >= 0 AND day_of_week <= 6", name="ck_schedule_day_of_week"),
        CheckConstraint("start_time < end_time", name="ck_schedule_time_order"),
        CheckConstraint("capacity >= 0", name="ck_schedule_capacity_non_negative"),
        CheckConstraint(
            "period_type != 'Closed' OR capacity = 0", name="ck_schedule_closed_zero_capacity"
        ),
        Index("idx_capacity_schedules_side_dates", "side_id", "start_date", "end_date"),
        Index("idx_capacity_schedules_side_period", "side_id", "period_type"),
    )

    @property
    def is_closed(self) -> bool:
        return self.period_type == PeriodType.CLOSED

    @property
    def platform_list(self) -> List[int]:
        return [int(p) for p in (self.platforms or [])]

    def __repr__(self) -> str:
        return (
            f"<CapacitySchedule side={self.side_id} {self.period_type} "
            f"{self.recurrence_type} dow={self.day_of_week} "
            f"{self.start_time}-{self.end_time} cap={self.capacity}>"
        )
