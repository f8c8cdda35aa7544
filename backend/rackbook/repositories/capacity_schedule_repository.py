# backend/rackbook/repositories/capacity_schedule_repository.py
"""
CapacitySchedule Repository for rackbook

Read side used by the capacity engine plus the write helpers used when an
admin saves or edits schedules from the capacity editor.
"""

from datetime import date, time
import logging
from typing import Iterable, List, Optional, cast

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.enums import PeriodType, RecurrenceType
from ..core.exceptions import RepositoryException
from ..models.capacity_schedule import CapacitySchedule
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class CapacityScheduleRepository(BaseRepository[CapacitySchedule]):
    """Data access for capacity schedule rules."""

    def __init__(self, db: Session):
        super().__init__(db, CapacitySchedule)
        self.logger = logging.getLogger(__name__)

    def fetch_schedules(
        self,
        side_id: int,
        range_start: date,
        range_end: date,
        period_type: Optional[PeriodType] = None,
    ) -> List[CapacitySchedule]:
        """
        Schedules of a side whose validity window intersects [range_start, range_end].

        A rule qualifies when it starts on or before ``range_end`` and is
        open-ended or ends on or after ``range_start``. Recurrence and
        exclusions are not evaluated here.

        Args:
            side_id: The side to read
            range_start: First date of interest
            range_end: Last date of interest
            period_type: Optional filter, e.g. only Closed rules

        Returns:
            Matching schedules ordered by weekday and start time
        """
        try:
            query = self.db.query(CapacitySchedule).filter(
                CapacitySchedule.side_id == side_id,
                CapacitySchedule.start_date <= range_end,
                or_(
                    CapacitySchedule.end_date.is_(None),
                    CapacitySchedule.end_date >= range_start,
                ),
            )
            if period_type is not None:
                query = query.filter(CapacitySchedule.period_type == period_type)

            return cast(
                List[CapacitySchedule],
                query.order_by(CapacitySchedule.day_of_week, CapacitySchedule.start_time).all(),
            )
        except SQLAlchemyError as e:
            self.logger.error(
                f"Error fetching schedules for side {side_id} "
                f"{range_start}..{range_end}: {str(e)}"
            )
            raise RepositoryException(f"Failed to fetch capacity schedules: {str(e)}")

    def get_side_schedules(self, side_id: int) -> List[CapacitySchedule]:
        """Every schedule of a side, used for overlap checks before saving."""
        try:
            return cast(
                List[CapacitySchedule],
                self.db.query(CapacitySchedule)
                .filter(CapacitySchedule.side_id == side_id)
                .order_by(CapacitySchedule.day_of_week, CapacitySchedule.start_time)
                .all(),
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting schedules for side {side_id}: {str(e)}")
            raise RepositoryException(f"Failed to get side schedules: {str(e)}")

    def find_matching_ids(
        self, side_id: int, day_of_week: int, start_time: time, recurrence_type: RecurrenceType
    ) -> List[str]:
        """Ids of rules a save with the same slot pattern replaces."""
        try:
            rows = (
                self.db.query(CapacitySchedule.id)
                .filter(
                    CapacitySchedule.side_id == side_id,
                    CapacitySchedule.day_of_week == day_of_week,
                    CapacitySchedule.start_time == start_time,
                    CapacitySchedule.recurrence_type == recurrence_type,
                )
                .all()
            )
            return [row[0] for row in rows]
        except SQLAlchemyError as e:
            self.logger.error(f"Error finding matching schedules: {str(e)}")
            raise RepositoryException(f"Failed to find matching schedules: {str(e)}")

    def delete_matching(
        self, side_id: int, day_of_week: int, start_time: time, recurrence_type: RecurrenceType
    ) -> int:
        """
        Delete rules sharing the (side, weekday, start time, recurrence) pattern.

        Returns:
            Number of rows deleted
        """
        try:
            count = (
                self.db.query(CapacitySchedule)
                .filter(
                    CapacitySchedule.side_id == side_id,
                    CapacitySchedule.day_of_week == day_of_week,
                    CapacitySchedule.start_time == start_time,
                    CapacitySchedule.recurrence_type == recurrence_type,
                )
                .delete(synchronize_session=False)
            )
            self.db.flush()
            return int(count)
        except SQLAlchemyError as e:
            self.logger.error(f"Error deleting matching schedules: {str(e)}")
            self.db.rollback()
            raise RepositoryException(f"Failed to delete matching schedules: {str(e)}")

    def delete_by_ids(self, ids: Iterable[str]) -> int:
        id_list = list(ids)
        if not id_list:
            return 0
        try:
            count = (
                self.db.query(CapacitySchedule)
                .filter(CapacitySchedule.id.in_(id_list))
                .delete(synchronize_session=False)
            )
            self.db.flush()
            return int(count)
        except SQLAlchemyError as e:
            self.logger.error(f"Error deleting schedules {id_list}: {str(e)}")
            self.db.rollback()
            raise RepositoryException(f"Failed to delete schedules: {str(e)}")

    def exclude_date(self, schedule_id: str, excluded: date) -> Optional[CapacitySchedule]:
        """
        Add ``excluded`` to a rule's excluded dates.

        Returns:
            The updated schedule, or None if it does not exist
        """
        try:
            schedule = self.get_by_id(schedule_id)
            if schedule is None:
                return None

            iso = excluded.isoformat()
            current = list(schedule.excluded_dates or [])
            if iso not in current:
                # Reassign so the JSON column is marked dirty
                schedule.excluded_dates = current + [iso]
                self.db.flush()
            return schedule
        except SQLAlchemyError as e:
            self.logger.error(f"Error excluding {excluded} from schedule {schedule_id}: {str(e)}")
            self.db.rollback()
            raise RepositoryException(f"Failed to exclude date: {str(e)}")
