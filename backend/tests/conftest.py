# backend/tests/conftest.py
"""
Pytest configuration for rackbook.

Every test gets its own in-memory SQLite database, so services are free to
commit inside their transactions without leaking rows into other tests.
The add_* fixtures store defaults, overrides and booking series with the
fields most tests don't care about already filled in.
"""

import os

# Set test configuration BEFORE any rackbook imports
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("PROMETHEUS_ENABLED", "true")
os.environ.setdefault("CI", "true")

from datetime import date, datetime, timedelta
from typing import Iterable, List

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

import rackbook.models  # noqa: F401  ensure models are registered on Base.metadata
from rackbook.core.enums import PeriodType
from rackbook.database import Base
from rackbook.models.booking import Booking, BookingInstance
from rackbook.models.capacity_schedule import CapacitySchedule
from rackbook.models.period_type_capacity import (
    PeriodTypeCapacityDefault,
    PeriodTypeCapacityOverride,
)

from helpers.factories import SIDE_ID


@pytest.fixture
def unit_db() -> Session:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        future=True,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(bind=engine, expire_on_commit=False, future=True)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def db(unit_db: Session) -> Session:
    """Alias used by service tests."""
    return unit_db


@pytest.fixture
def add_schedules(unit_db: Session):
    def _add(*schedules: CapacitySchedule) -> List[CapacitySchedule]:
        unit_db.add_all(schedules)
        unit_db.commit()
        return list(schedules)

    return _add


@pytest.fixture
def add_default(unit_db: Session):
    def _add(
        period_type: PeriodType = PeriodType.GENERAL_USER,
        capacity: int = 10,
        side_id: int = SIDE_ID,
        platforms: Iterable[int] = (),
    ) -> PeriodTypeCapacityDefault:
        row = PeriodTypeCapacityDefault(
            period_type=period_type,
            side_id=side_id,
            default_capacity=capacity,
            platforms=list(platforms),
        )
        unit_db.add(row)
        unit_db.commit()
        return row

    return _add


@pytest.fixture
def add_override(unit_db: Session):
    def _add(
        on_date: date,
        capacity: int,
        period_type: PeriodType = PeriodType.GENERAL_USER,
    ) -> PeriodTypeCapacityOverride:
        row = PeriodTypeCapacityOverride(date=on_date, period_type=period_type, capacity=capacity)
        unit_db.add(row)
        unit_db.commit()
        return row

    return _add


@pytest.fixture
def add_booking(unit_db: Session):
    """Store a weekly booking with one instance per week."""

    def _add(
        start: datetime,
        end: datetime,
        capacity: int = 1,
        racks: Iterable[int] = (1,),
        weeks: int = 1,
        title: str = "Squad session",
        side_id: int = SIDE_ID,
    ) -> Booking:
        booking = Booking(
            title=title,
            side_id=side_id,
            start_template=start,
            end_template=end,
            weeks=weeks,
            racks=list(racks),
            capacity_template=capacity,
        )
        booking.instances = [
            BookingInstance(
                side_id=side_id,
                start=start + timedelta(weeks=week),
                end=end + timedelta(weeks=week),
                racks=list(racks),
                capacity=capacity,
            )
            for week in range(weeks)
        ]
        unit_db.add(booking)
        unit_db.commit()
        return booking

    return _add
