# backend/rackbook/repositories/factory.py
"""
Repository Factory for rackbook

Provides centralized creation of repository instances,
ensuring consistent initialization and dependency injection.
"""

from typing import TYPE_CHECKING, Any

from sqlalchemy.orm import Session

from .base_repository import BaseRepository

# Avoid circular imports
if TYPE_CHECKING:
    from .booking_instance_repository import BookingInstanceRepository
    from .capacity_schedule_repository import CapacityScheduleRepository
    from .period_type_capacity_repository import PeriodTypeCapacityRepository


class RepositoryFactory:
    """
    Factory class for creating repository instances.

    Centralizes repository creation so services can be handed fakes in tests.
    """

    @staticmethod
    def create_base_repository(db: Session, model: Any) -> BaseRepository[Any]:
        """Create a generic base repository for any model."""
        return BaseRepository(db, model)

    @staticmethod
    def create_capacity_schedule_repository(db: Session) -> "CapacityScheduleRepository":
        """Create repository for capacity schedule rules."""
        from .capacity_schedule_repository import CapacityScheduleRepository

        return CapacityScheduleRepository(db)

    @staticmethod
    def create_period_type_capacity_repository(db: Session) -> "PeriodTypeCapacityRepository":
        """Create repository for period-type defaults and overrides."""
        from .period_type_capacity_repository import PeriodTypeCapacityRepository

        return PeriodTypeCapacityRepository(db)

    @staticmethod
    def create_booking_instance_repository(db: Session) -> "BookingInstanceRepository":
        """Create repository for booking instances and series."""
        from .booking_instance_repository import BookingInstanceRepository

        return BookingInstanceRepository(db)
