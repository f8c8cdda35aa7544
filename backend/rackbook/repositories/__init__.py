# backend/rackbook/repositories/__init__.py
"""
Repository layer for rackbook.

Key Components:
- BaseRepository: Lookup, insert and count per model
- RepositoryFactory: Factory for creating repository instances
- CapacityScheduleRepository: Capacity rules per side
- PeriodTypeCapacityRepository: Period-type defaults and per-date overrides
- BookingInstanceRepository: Booking series and their dated instances

Usage:
    from rackbook.repositories import RepositoryFactory

    repo = RepositoryFactory.create_capacity_schedule_repository(db)
"""

from .base_repository import BaseRepository
from .booking_instance_repository import BookingInstanceRepository
from .capacity_schedule_repository import CapacityScheduleRepository
from .factory import RepositoryFactory
from .period_type_capacity_repository import PeriodTypeCapacityRepository

__all__ = [
    "BaseRepository",
    "BookingInstanceRepository",
    "CapacityScheduleRepository",
    "PeriodTypeCapacityRepository",
    "RepositoryFactory",
]
