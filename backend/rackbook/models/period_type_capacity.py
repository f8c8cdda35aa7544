# backend/rackbook/models/period_type_capacity.py
"""
Period-type capacity defaults and per-date overrides.

Classes:
    PeriodTypeCapacityDefault: Fallback ceiling per (period type, side)
    PeriodTypeCapacityOverride: Ceiling pinned to one date and period type
"""

from sqlalchemy import (
    JSON,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.sql import func
import ulid

from ..core.enums import PeriodType
from ..database import Base
from .base_enum import create_safe_enum


class PeriodTypeCapacityDefault(Base):
    """Default ceiling and eligible platforms for one period type on one side."""

    __tablename__ = "period_type_capacity_defaults"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    period_type = Column(create_safe_enum(PeriodType, "period_type_enum"), nullable=False)
    side_id = Column(Integer, nullable=False)
    default_capacity = Column(Integer, nullable=False, default=0)
    platforms = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint("period_type", "side_id", name="unique_period_type_side_default"),
    )

    def __repr__(self) -> str:
        return f"<PeriodTypeCapacityDefault {self.period_type} side={self.side_id} cap={self.default_capacity}>"


class PeriodTypeCapacityOverride(Base):
    """
    Capacity ceiling pinned to one concrete date for a period type.

    Optionally linked to the booking that caused the override.
    """

    __tablename__ = "period_type_capacity_overrides"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    date = Column(Date, nullable=False, index=True)
    period_type = Column(create_safe_enum(PeriodType, "period_type_enum"), nullable=False)
    capacity = Column(Integer, nullable=False)
    booking_id = Column(String(26), ForeignKey("bookings.id", ondelete="SET NULL"), nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (Index("idx_period_type_overrides_date_type", "date", "period_type"),)

    def __repr__(self) -> str:
        return f"<PeriodTypeCapacityOverride {self.date} {self.period_type} cap={self.capacity}>"
