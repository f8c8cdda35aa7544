# backend/rackbook/repositories/period_type_capacity_repository.py
"""
PeriodTypeCapacity Repository for rackbook

Defaults are keyed by (period type, side); overrides by (date, period type).
"""

from datetime import date
import logging
from typing import List, Optional, Sequence, cast

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.enums import PeriodType
from ..core.exceptions import RepositoryException
from ..models.period_type_capacity import PeriodTypeCapacityDefault, PeriodTypeCapacityOverride
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class PeriodTypeCapacityRepository(BaseRepository[PeriodTypeCapacityDefault]):
    """Data access for period-type capacity defaults and per-date overrides."""

    def __init__(self, db: Session):
        super().__init__(db, PeriodTypeCapacityDefault)
        self.logger = logging.getLogger(__name__)

    # Defaults

    def fetch_default(
        self, period_type: PeriodType, side_id: int
    ) -> Optional[PeriodTypeCapacityDefault]:
        try:
            return cast(
                Optional[PeriodTypeCapacityDefault],
                self.db.query(PeriodTypeCapacityDefault)
                .filter(
                    PeriodTypeCapacityDefault.period_type == period_type,
                    PeriodTypeCapacityDefault.side_id == side_id,
                )
                .first(),
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error fetching {period_type} default for side {side_id}: {str(e)}")
            raise RepositoryException(f"Failed to fetch capacity default: {str(e)}")

    def fetch_defaults_for_side(self, side_id: int) -> List[PeriodTypeCapacityDefault]:
        try:
            return cast(
                List[PeriodTypeCapacityDefault],
                self.db.query(PeriodTypeCapacityDefault)
                .filter(PeriodTypeCapacityDefault.side_id == side_id)
                .all(),
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error fetching defaults for side {side_id}: {str(e)}")
            raise RepositoryException(f"Failed to fetch capacity defaults: {str(e)}")

    def upsert_default(
        self,
        period_type: PeriodType,
        side_id: int,
        default_capacity: int,
        platforms: Sequence[int] = (),
    ) -> PeriodTypeCapacityDefault:
        """
        Create or update the default for one (period type, side) pair.

        Closed defaults are always stored with zero capacity and no platforms.
        """
        if period_type == PeriodType.CLOSED:
            default_capacity, platforms = 0, ()

        try:
            existing = self.fetch_default(period_type, side_id)
            if existing is not None:
                existing.default_capacity = default_capacity
                existing.platforms = list(platforms)
                self.db.flush()
                return existing

            return self.create(
                period_type=period_type,
                side_id=side_id,
                default_capacity=default_capacity,
                platforms=list(platforms),
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error upserting {period_type} default for side {side_id}: {str(e)}")
            self.db.rollback()
            raise RepositoryException(f"Failed to save capacity default: {str(e)}")

    # Overrides

    def fetch_override(
        self, on_date: date, period_type: PeriodType
    ) -> Optional[PeriodTypeCapacityOverride]:
        try:
            return cast(
                Optional[PeriodTypeCapacityOverride],
                self.db.query(PeriodTypeCapacityOverride)
                .filter(
                    PeriodTypeCapacityOverride.date == on_date,
                    PeriodTypeCapacityOverride.period_type == period_type,
                )
                .order_by(
                    PeriodTypeCapacityOverride.created_at.desc(),
                    PeriodTypeCapacityOverride.id.desc(),
                )
                .first(),
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error fetching {period_type} override for {on_date}: {str(e)}")
            raise RepositoryException(f"Failed to fetch capacity override: {str(e)}")

    def fetch_overrides_between(
        self, start: date, end: date
    ) -> List[PeriodTypeCapacityOverride]:
        """Overrides dated within [start, end], oldest first within each date."""
        try:
            return cast(
                List[PeriodTypeCapacityOverride],
                self.db.query(PeriodTypeCapacityOverride)
                .filter(
                    PeriodTypeCapacityOverride.date >= start,
                    PeriodTypeCapacityOverride.date <= end,
                )
                .order_by(
                    PeriodTypeCapacityOverride.date,
                    PeriodTypeCapacityOverride.created_at,
                    PeriodTypeCapacityOverride.id,
                )
                .all(),
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error fetching overrides {start}..{end}: {str(e)}")
            raise RepositoryException(f"Failed to fetch capacity overrides: {str(e)}")

    def upsert_override(
        self,
        on_date: date,
        period_type: PeriodType,
        capacity: int,
        booking_id: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> PeriodTypeCapacityOverride:
        try:
            existing = self.fetch_override(on_date, period_type)
            if existing is not None:
                existing.capacity = capacity
                if booking_id is not None:
                    existing.booking_id = booking_id
                if notes is not None:
                    existing.notes = notes
                self.db.flush()
                return existing

            override = PeriodTypeCapacityOverride(
                date=on_date,
                period_type=period_type,
                capacity=capacity,
                booking_id=booking_id,
                notes=notes,
            )
            self.db.add(override)
            self.db.flush()
            return override
        except SQLAlchemyError as e:
            self.logger.error(f"Error upserting {period_type} override for {on_date}: {str(e)}")
            self.db.rollback()
            raise RepositoryException(f"Failed to save capacity override: {str(e)}")

    def delete_override(self, on_date: date, period_type: PeriodType) -> int:
        """Remove every override for ``(on_date, period_type)``; returns the count."""
        try:
            removed = (
                self.db.query(PeriodTypeCapacityOverride)
                .filter(
                    PeriodTypeCapacityOverride.date == on_date,
                    PeriodTypeCapacityOverride.period_type == period_type,
                )
                .delete(synchronize_session=False)
            )
            self.db.flush()
            return int(removed)
        except SQLAlchemyError as e:
            self.logger.error(f"Error deleting {period_type} override for {on_date}: {str(e)}")
            self.db.rollback()
            raise RepositoryException(f"Failed to delete capacity override: {str(e)}")
