# backend/rackbook/services/series_validation_service.py
"""
Multi-week validation of a proposed booking series.

Each week of the series is sampled against the capacity ceiling on its
own, and recurring requests are additionally checked occurrence by
occurrence against the side's closed periods. Results are aggregated into
one SeriesValidationResult; a failed check is data, not an exception.

Store failures are never reported as "no violations": any repository error
while reading the state a decision depends on raises
CapacityValidationUnavailableException.
"""

from datetime import date, datetime
import logging
from types import MappingProxyType
from typing import List, Mapping, Optional, Sequence, Tuple, Union

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.enums import PeriodType, RecurrenceType
from ..core.exceptions import CapacityValidationUnavailableException, RepositoryException
from ..models.booking import BookingInstance
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.booking_instance_repository import BookingInstanceRepository
from ..repositories.capacity_schedule_repository import CapacityScheduleRepository
from ..repositories.factory import RepositoryFactory
from ..schemas.capacity import CapacityViolation, SeriesValidationResult, WeekResult
from ..utils.time_utils import TimeLike, combine_date_and_time, format_hhmm
from .base import BaseService
from .capacity_limits import CapacityContext, CapacityLimitService
from .capacity_violations import check_violations
from .closed_periods import build_closed_period_index, is_time_range_closed, week_bounds
from .recurrence import expand_occurrences, weekly_windows

logger = logging.getLogger(__name__)

WeekCapacities = Union[Sequence[Optional[int]], Mapping[int, int]]


def freeze_week_capacities(capacities: Optional[WeekCapacities]) -> WeekCapacities:
    """Read-only copy of a per-week capacity input."""
    if capacities is None:
        return ()
    if isinstance(capacities, Mapping):
        return MappingProxyType(dict(capacities))
    return tuple(capacities)


def capacity_for_week(capacities: WeekCapacities, week: int, default_capacity: int) -> int:
    """Capacity booked in 0-based ``week``; missing or None falls back to the default."""
    if isinstance(capacities, Mapping):
        value = capacities.get(week)
    else:
        value = capacities[week] if week < len(capacities) else None
    return default_capacity if value is None else value


def _overlapping(
    instances: Sequence[BookingInstance], start: datetime, end: datetime
) -> List[BookingInstance]:
    return [i for i in instances if i.start < end and i.end > start]


def aggregate_weeks(
    week_results: List[WeekResult], closed_conflicts: Sequence[date] = ()
) -> SeriesValidationResult:
    """
    Fold per-week results into one.

    ``max_limit`` is the tightest finite ceiling across weeks.
    """
    violations: List[CapacityViolation] = [
        v for week in week_results for v in week.result.violations
    ]
    finite_limits = [
        w.result.max_limit for w in week_results if w.result.max_limit is not None
    ]
    capacity_ok = all(w.result.is_valid for w in week_results)
    return SeriesValidationResult(
        is_valid=capacity_ok and not closed_conflicts,
        has_warnings=bool(violations),
        violations=violations,
        max_used=max([w.result.max_used for w in week_results], default=0),
        max_limit=min(finite_limits) if finite_limits else None,
        week_results=week_results,
        closed_conflicts=list(closed_conflicts),
    )


class SeriesValidationService(BaseService):
    """
    Validates every week of a proposed series before it is saved.
    """

    def __init__(
        self,
        db: Session,
        instance_repository: Optional[BookingInstanceRepository] = None,
        schedule_repository: Optional[CapacityScheduleRepository] = None,
        limit_service: Optional[CapacityLimitService] = None,
    ):
        super().__init__(db)
        self.instance_repository = (
            instance_repository or RepositoryFactory.create_booking_instance_repository(db)
        )
        self.schedule_repository = (
            schedule_repository or RepositoryFactory.create_capacity_schedule_repository(db)
        )
        self.limit_service = limit_service or CapacityLimitService(
            db, schedule_repository=self.schedule_repository
        )

    @BaseService.measure_operation("validate_series")
    def validate_series(
        self,
        side_id: int,
        start_date: date,
        start_time: TimeLike,
        end_time: TimeLike,
        weeks: int,
        default_capacity: int,
        capacity_per_week: Optional[WeekCapacities] = None,
        recurrence_type: RecurrenceType = RecurrenceType.WEEKLY,
        exclude_booking_id: Optional[str] = None,
    ) -> SeriesValidationResult:
        """
        Validate ``weeks`` weekly occurrences of a booking.

        Args:
            side_id: Side being booked
            start_date: Date of the first occurrence
            start_time / end_time: Local time-of-day window
            weeks: Number of weekly occurrences
            default_capacity: Athletes per week when no per-week value is given
            capacity_per_week: 0-based per-week athletes, sequence or mapping
            recurrence_type: Non-single types also run the closed-period chain check
            exclude_booking_id: Ignore this series' own instances (when editing)

        Returns:
            SeriesValidationResult; violations carry 1-based week numbers

        Raises:
            CapacityValidationUnavailableException: If stored state cannot be read
        """
        capacities = freeze_week_capacities(capacity_per_week)
        base_start = combine_date_and_time(start_date, start_time)
        base_end = combine_date_and_time(start_date, end_time)
        windows = weekly_windows(base_start, base_end, weeks)
        if not windows:
            return aggregate_weeks([])

        instances, context = self._load_state(
            side_id, windows[0][0], windows[-1][1], exclude_booking_id
        )

        week_results: List[WeekResult] = []
        for week, (proposed_start, proposed_end) in enumerate(windows):
            proposed_capacity = capacity_for_week(capacities, week, default_capacity)
            result = check_violations(
                proposed_start,
                proposed_end,
                proposed_capacity,
                _overlapping(instances, proposed_start, proposed_end),
                context,
            )
            if result.violations:
                result = result.model_copy(
                    update={
                        "violations": [
                            v.model_copy(update={"week": week + 1}) for v in result.violations
                        ]
                    }
                )
            week_results.append(
                WeekResult(
                    week=week + 1,
                    proposed_start=proposed_start,
                    proposed_end=proposed_end,
                    proposed_capacity=proposed_capacity,
                    result=result,
                )
            )

        closed_conflicts: List[date] = []
        if RecurrenceType(recurrence_type).is_recurring:
            closed_conflicts = self.validate_closed_chain(
                side_id, start_date, start_time, end_time, recurrence_type
            )

        series = aggregate_weeks(week_results, closed_conflicts)
        if series.has_warnings:
            self.logger.warning(
                f"Series on side {side_id} from {start_date}: {len(series.violations)} "
                f"violation(s) across {weeks} week(s), peak {series.max_used}/{series.max_limit}"
            )
        else:
            self.logger.info(
                f"Series on side {side_id} from {start_date} passed capacity checks for {weeks} week(s)"
            )
        return series

    def _load_state(
        self,
        side_id: int,
        range_start: datetime,
        range_end: datetime,
        exclude_booking_id: Optional[str],
    ) -> Tuple[List[BookingInstance], CapacityContext]:
        try:
            instances = self.instance_repository.fetch_instances(
                side_id, range_start, range_end, exclude_booking_id=exclude_booking_id
            )
            context = self.limit_service.build_context(
                side_id, range_start.date(), range_end.date()
            )
        except RepositoryException as e:
            self.logger.error(f"Series validation for side {side_id} could not read state: {str(e)}")
            raise CapacityValidationUnavailableException("validate_series", str(e)) from e
        return instances, context

    @BaseService.measure_operation("validate_closed_chain")
    def validate_closed_chain(
        self,
        side_id: int,
        anchor_date: date,
        start_time: TimeLike,
        end_time: TimeLike,
        recurrence_type: RecurrenceType,
    ) -> List[date]:
        """
        Occurrence dates on which [start_time, end_time) hits a closed period.

        Closed schedules are read once for the whole lookahead and indexed
        per date.

        Raises:
            CapacityValidationUnavailableException: If closures cannot be read
        """
        occurrences = expand_occurrences(
            anchor_date, recurrence_type, settings.chain_lookahead_weeks
        )
        if not occurrences:
            return []

        range_start, _ = week_bounds(occurrences[0])
        _, range_end = week_bounds(occurrences[-1])
        try:
            closed_schedules = self.schedule_repository.fetch_schedules(
                side_id, range_start, range_end, period_type=PeriodType.CLOSED
            )
        except RepositoryException as e:
            self.logger.error(f"Closed-period chain check for side {side_id} failed: {str(e)}")
            raise CapacityValidationUnavailableException("validate_closed_chain", str(e)) from e

        conflicts = []
        for occurrence in occurrences:
            index = build_closed_period_index(closed_schedules, occurrence)
            if is_time_range_closed(start_time, end_time, index.closed_periods):
                conflicts.append(occurrence)

        if conflicts:
            self.logger.warning(
                f"{format_hhmm(start_time)}-{format_hhmm(end_time)} on side {side_id} "
                f"hits closed periods on {len(conflicts)} of {len(occurrences)} occurrence(s)"
            )
            if settings.prometheus_enabled:
                prometheus_metrics.record_closed_conflict(side_id)
        return conflicts

