# backend/rackbook/models/booking.py
"""
Booking series and booking instance models.

A Booking is the owning series created when a coach or admin submits a
recurring booking. Each BookingInstance is one concrete dated occurrence
claiming a set of racks and an athlete count. All datetimes are naive local
times of the facility.
"""

import logging

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..database import Base

logger = logging.getLogger(__name__)


class Booking(Base):
    """Owning record of a weekly-recurring booking series."""

    __tablename__ = "bookings"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    title = Column(String(255), nullable=False)
    side_id = Column(Integer, nullable=False, index=True)
    start_template = Column(DateTime, nullable=False)
    end_template = Column(DateTime, nullable=False)
    weeks = Column(Integer, nullable=False, default=1)
    racks = Column(JSON, nullable=False, default=list)
    capacity_template = Column(Integer, nullable=False, default=1)
    created_by = Column(String(64), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    instances = relationship(
        "BookingInstance",
        back_populates="booking",
        cascade="all, delete-orphan",
        order_by="BookingInstance.start",
    )

    __table_args__ = (
        CheckConstraint("end_template > start_template", name="ck_booking_template_order"),
        CheckConstraint("weeks >= 1", name="ck_booking_weeks_positive"),
    )

    def __repr__(self) -> str:
        return f"<Booking {self.id} '{self.title}' side={self.side_id} weeks={self.weeks}>"


class BookingInstance(Base):
    """One concrete dated occurrence of a booking series."""

    __tablename__ = "booking_instances"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    booking_id = Column(
        String(26), ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True
    )
    side_id = Column(Integer, nullable=False)
    start = Column(DateTime, nullable=False)
    end = Column(DateTime, nullable=False)
    racks = Column(JSON, nullable=False, default=list)
    capacity = Column(Integer, nullable=False, default=0)

    booking = relationship("Booking", back_populates="instances")

    __table_args__ = (
        CheckConstraint("\"end\" > start", name="ck_instance_time_order"),
        CheckConstraint("capacity >= 0", name="ck_instance_capacity_non_negative"),
        Index("idx_booking_instances_side_window", "side_id", "start", "end"),
    )

    def overlaps(self, range_start, range_end) -> bool:
        """True if [start, end) intersects [range_start, range_end)."""
        return self.start < range_end and self.end > range_start

    def __repr__(self) -> str:
        return f"<BookingInstance {self.id} side={self.side_id} {self.start}-{self.end} cap={self.capacity}>"
