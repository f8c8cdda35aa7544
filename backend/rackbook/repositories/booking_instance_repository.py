# backend/rackbook/repositories/booking_instance_repository.py
"""
BookingInstance Repository for rackbook

Overlap reads for capacity and rack checks, plus series creation and the
deletion paths that cascade to the owning booking.
"""

from datetime import datetime
import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence, cast

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from ..core.exceptions import RepositoryException
from ..models.booking import Booking, BookingInstance
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class BookingInstanceRepository(BaseRepository[BookingInstance]):
    """Data access for booking instances and their owning series."""

    def __init__(self, db: Session):
        super().__init__(db, BookingInstance)
        self.logger = logging.getLogger(__name__)

    def fetch_instances(
        self,
        side_id: int,
        range_start: datetime,
        range_end: datetime,
        exclude_booking_id: Optional[str] = None,
    ) -> List[BookingInstance]:
        """
        Instances of a side overlapping [range_start, range_end).

        Overlap is ``start < range_end AND end > range_start``, so an instance
        ending exactly at ``range_start`` is not returned.

        Args:
            side_id: The side to read
            range_start: Inclusive lower bound
            range_end: Exclusive upper bound
            exclude_booking_id: Skip instances of this series (used when editing)

        Returns:
            Instances ordered by start, with their booking loaded
        """
        try:
            query = (
                self.db.query(BookingInstance)
                .options(joinedload(BookingInstance.booking))
                .filter(
                    BookingInstance.side_id == side_id,
                    BookingInstance.start < range_end,
                    BookingInstance.end > range_start,
                )
            )
            if exclude_booking_id:
                query = query.filter(BookingInstance.booking_id != exclude_booking_id)

            return cast(List[BookingInstance], query.order_by(BookingInstance.start).all())
        except SQLAlchemyError as e:
            self.logger.error(
                f"Error fetching instances for side {side_id} {range_start}..{range_end}: {str(e)}"
            )
            raise RepositoryException(f"Failed to fetch booking instances: {str(e)}")

    def create_series(
        self, booking_data: Dict[str, Any], instances: Sequence[Dict[str, Any]]
    ) -> Booking:
        """
        Add a booking and its instances in one flush.

        Note: Does NOT commit - the calling service owns the transaction.
        """
        try:
            booking = Booking(**booking_data)
            booking.instances = [
                BookingInstance(side_id=booking.side_id, **data) for data in instances
            ]
            self.db.add(booking)
            self.db.flush()
            return booking
        except SQLAlchemyError as e:
            self.logger.error(f"Error creating booking series '{booking_data.get('title')}': {str(e)}")
            self.db.rollback()
            raise RepositoryException(f"Failed to create booking series: {str(e)}")

    def get_booking(self, booking_id: str) -> Optional[Booking]:
        try:
            return cast(
                Optional[Booking],
                self.db.query(Booking).filter(Booking.id == booking_id).first(),
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting booking {booking_id}: {str(e)}")
            raise RepositoryException(f"Failed to retrieve booking: {str(e)}")

    def count_for_booking(self, booking_id: str) -> int:
        return self.count(booking_id=booking_id)

    def delete_instances(self, instance_ids: Iterable[str]) -> Dict[str, int]:
        """
        Delete instances; a booking left without instances is deleted too.

        Returns:
            {"instances": n, "bookings": m}
        """
        ids = list(instance_ids)
        if not ids:
            return {"instances": 0, "bookings": 0}

        try:
            instances = (
                self.db.query(BookingInstance).filter(BookingInstance.id.in_(ids)).all()
            )
            affected_bookings = {instance.booking_id for instance in instances}

            for instance in instances:
                self.db.delete(instance)
            self.db.flush()

            deleted_bookings = 0
            for booking_id in affected_bookings:
                if self.count_for_booking(booking_id) == 0:
                    booking = self.get_booking(booking_id)
                    if booking is not None:
                        # Collection may still hold the instances deleted above
                        self.db.expire(booking, ["instances"])
                        self.db.delete(booking)
                        deleted_bookings += 1
            self.db.flush()

            return {"instances": len(instances), "bookings": deleted_bookings}
        except SQLAlchemyError as e:
            self.logger.error(f"Error deleting instances {ids}: {str(e)}")
            self.db.rollback()
            raise RepositoryException(f"Failed to delete booking instances: {str(e)}")

    def delete_series(self, booking_id: str) -> int:
        """
        Delete a booking and all of its instances.

        Returns:
            Number of instances removed, or -1 when the booking does not exist
        """
        try:
            booking = self.get_booking(booking_id)
            if booking is None:
                return -1
            removed = len(booking.instances)
            self.db.delete(booking)
            self.db.flush()
            return removed
        except SQLAlchemyError as e:
            self.logger.error(f"Error deleting booking {booking_id}: {str(e)}")
            self.db.rollback()
            raise RepositoryException(f"Failed to delete booking series: {str(e)}")
