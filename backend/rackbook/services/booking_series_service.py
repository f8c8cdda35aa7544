# backend/rackbook/services/booking_series_service.py
"""
Booking series submission and removal.

create_series is the gate in front of the store: it runs every check the
capacity engine offers, turns a failed check into the matching domain
exception, and only then writes the booking and all of its instances in a
single transaction.
"""

from datetime import date, datetime
import logging
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.enums import PeriodType, RecurrenceType
from ..core.exceptions import (
    CapacityExceededException,
    CapacityNotConfiguredException,
    CapacityValidationUnavailableException,
    ClosedPeriodConflictException,
    NotFoundException,
    RackConflictException,
    RepositoryException,
    ValidationException,
)
from ..models.booking import Booking
from ..repositories.booking_instance_repository import BookingInstanceRepository
from ..repositories.capacity_schedule_repository import CapacityScheduleRepository
from ..repositories.factory import RepositoryFactory
from ..schemas.booking import BookingSeriesCreate, PlatformEligibility, RackConflict
from ..schemas.capacity import SeriesValidationResult
from ..utils.time_utils import TimeLike, combine_date_and_time, format_hhmm, parse_time
from .base import BaseService
from .closed_periods import ClosedPeriodService, week_bounds
from .recurrence import weekly_windows
from .schedule_applicability import applies_on
from .series_validation_service import SeriesValidationService, capacity_for_week

logger = logging.getLogger(__name__)

Window = Tuple[datetime, datetime]


class BookingSeriesService(BaseService):
    """
    Creates and deletes weekly booking series.
    """

    def __init__(
        self,
        db: Session,
        instance_repository: Optional[BookingInstanceRepository] = None,
        schedule_repository: Optional[CapacityScheduleRepository] = None,
        validation_service: Optional[SeriesValidationService] = None,
        closed_period_service: Optional[ClosedPeriodService] = None,
    ):
        super().__init__(db)
        self.instance_repository = (
            instance_repository or RepositoryFactory.create_booking_instance_repository(db)
        )
        self.schedule_repository = (
            schedule_repository or RepositoryFactory.create_capacity_schedule_repository(db)
        )
        self.validation_service = validation_service or SeriesValidationService(
            db,
            instance_repository=self.instance_repository,
            schedule_repository=self.schedule_repository,
        )
        self.closed_period_service = closed_period_service or ClosedPeriodService(
            db, schedule_repository=self.schedule_repository
        )

    # Checks

    @BaseService.measure_operation("find_rack_conflicts")
    def find_rack_conflicts(
        self,
        side_id: int,
        windows: Sequence[Window],
        racks_by_week: Mapping[int, Sequence[int]],
        exclude_booking_id: Optional[str] = None,
    ) -> List[RackConflict]:
        """
        Requested racks already claimed by an instance overlapping the same week.

        Raises:
            CapacityValidationUnavailableException: If instances cannot be read
        """
        conflicts: List[RackConflict] = []
        for week, (start, end) in enumerate(windows):
            requested = racks_by_week.get(week) or []
            if not requested:
                continue
            try:
                overlapping = self.instance_repository.fetch_instances(
                    side_id, start, end, exclude_booking_id=exclude_booking_id
                )
            except RepositoryException as e:
                self.logger.error(f"Rack conflict check for side {side_id} failed: {str(e)}")
                raise CapacityValidationUnavailableException("find_rack_conflicts", str(e)) from e

            for rack in requested:
                holder = next(
                    (inst for inst in overlapping if rack in (inst.racks or [])), None
                )
                if holder is None:
                    continue
                conflicts.append(
                    RackConflict(
                        week=week + 1,
                        rack=rack,
                        booking_id=holder.booking_id,
                        booking_title=holder.booking.title if holder.booking else "Unknown",
                        start=holder.start,
                        end=holder.end,
                    )
                )
        return conflicts

    @BaseService.measure_operation("platforms_available")
    def platforms_available(
        self,
        side_id: int,
        on_date: date,
        start_time: TimeLike,
        end_time: TimeLike,
        racks: Iterable[int],
    ) -> PlatformEligibility:
        """
        Whether ``racks`` are open to General User bookings for the window.

        When General User periods overlap the window, every requested rack
        must be in the union of their platforms. No overlapping period means
        no restriction.
        """
        week_start, week_end = week_bounds(on_date)
        schedules = self.schedule_repository.fetch_schedules(
            side_id, week_start, week_end, period_type=PeriodType.GENERAL_USER
        )
        start, end = parse_time(start_time), parse_time(end_time)
        overlapping = [
            s
            for s in schedules
            if applies_on(s, on_date)
            and start < parse_time(s.end_time)
            and end > parse_time(s.start_time)
        ]
        if not overlapping:
            return PlatformEligibility(is_valid=True)

        available: Set[int] = set()
        for schedule in overlapping:
            available.update(schedule.platform_list)
        unavailable = [rack for rack in racks if rack not in available]
        return PlatformEligibility(
            is_valid=not unavailable,
            unavailable_platforms=unavailable,
            available_platforms=sorted(available),
        )

    def _require_ceiling(self, side_id: int, validation: SeriesValidationResult) -> None:
        if not settings.require_capacity_ceiling:
            return
        if any(week.result.max_limit is None for week in validation.week_results):
            raise CapacityNotConfiguredException(
                side_id, PeriodType(settings.fallback_period_type).value
            )

    # Writes

    @BaseService.measure_operation("create_series")
    def create_series(self, payload: BookingSeriesCreate) -> Booking:
        """
        Validate and store a booking series.

        Raises:
            ValidationException: Too many weeks, or a week without racks
            ClosedPeriodConflictException: An occurrence falls in a closure
            CapacityExceededException: Headcount would exceed the ceiling
            CapacityNotConfiguredException: No ceiling and policy requires one
            RackConflictException: A requested rack is already booked
            CapacityValidationUnavailableException: Stored state could not be read
        """
        if payload.weeks > settings.max_series_weeks:
            raise ValidationException(
                f"A series may span at most {settings.max_series_weeks} weeks",
                code="TOO_MANY_WEEKS",
                details={"weeks": payload.weeks},
            )
        for week in range(payload.weeks):
            if not payload.racks_by_week.get(week):
                raise ValidationException(
                    f"Week {week + 1} has no racks selected. "
                    "Please select at least one rack for each week.",
                    code="NO_RACKS_SELECTED",
                    details={"week": week + 1},
                )

        start_template = combine_date_and_time(payload.start_date, payload.start_time)
        end_template = combine_date_and_time(payload.start_date, payload.end_time)
        windows = weekly_windows(start_template, end_template, payload.weeks)

        try:
            first_day_closed = self.closed_period_service.is_range_closed_on(
                payload.side_id, payload.start_date, payload.start_time, payload.end_time
            )
        except RepositoryException as e:
            raise CapacityValidationUnavailableException("closed_periods_for", str(e)) from e

        validation = self.validation_service.validate_series(
            side_id=payload.side_id,
            start_date=payload.start_date,
            start_time=payload.start_time,
            end_time=payload.end_time,
            weeks=payload.weeks,
            default_capacity=payload.capacity,
            capacity_per_week=payload.capacity_by_week,
            recurrence_type=RecurrenceType(payload.recurrence_type),
        )

        closed_dates = list(validation.closed_conflicts)
        if first_day_closed and payload.start_date not in closed_dates:
            closed_dates.insert(0, payload.start_date)
        if closed_dates:
            raise ClosedPeriodConflictException(
                [d.isoformat() for d in closed_dates],
                format_hhmm(payload.start_time),
                format_hhmm(payload.end_time),
            )

        if not all(week.result.is_valid for week in validation.week_results):
            raise CapacityExceededException(
                validation.max_used,
                validation.max_limit,
                [v.model_dump(mode="json") for v in validation.violations],
            )
        self._require_ceiling(payload.side_id, validation)

        rack_conflicts = self.find_rack_conflicts(payload.side_id, windows, payload.racks_by_week)
        if rack_conflicts:
            raise RackConflictException([c.model_dump(mode="json") for c in rack_conflicts])

        booking_data = {
            "title": payload.title,
            "side_id": payload.side_id,
            "start_template": start_template,
            "end_template": end_template,
            "weeks": payload.weeks,
            "racks": list(payload.racks_by_week.get(0, [])),
            "capacity_template": capacity_for_week(payload.capacity_by_week, 0, payload.capacity),
            "created_by": payload.created_by,
        }
        instances = [
            {
                "start": start,
                "end": end,
                "racks": list(payload.racks_by_week[week]),
                "capacity": capacity_for_week(payload.capacity_by_week, week, payload.capacity),
            }
            for week, (start, end) in enumerate(windows)
        ]

        with self.transaction():
            booking = self.instance_repository.create_series(booking_data, instances)

        self.logger.info(
            f"Created booking '{payload.title}' on side {payload.side_id} "
            f"with {len(instances)} instance(s)"
        )
        return booking

    @BaseService.measure_operation("delete_instances")
    def delete_instances(self, instance_ids: Iterable[str]) -> Dict[str, int]:
        """Delete instances; bookings left without instances go with them."""
        with self.transaction():
            removed = self.instance_repository.delete_instances(instance_ids)
        self.logger.info(
            f"Deleted {removed['instances']} instance(s) and {removed['bookings']} empty booking(s)"
        )
        return removed

    @BaseService.measure_operation("delete_series")
    def delete_series(self, booking_id: str) -> int:
        """
        Delete a booking and every instance of it.

        Raises:
            NotFoundException: If the booking does not exist
        """
        with self.transaction():
            removed = self.instance_repository.delete_series(booking_id)
            if removed < 0:
                raise NotFoundException(f"Booking {booking_id} not found")
        self.logger.info(f"Deleted booking {booking_id} with {removed} instance(s)")
        return removed
