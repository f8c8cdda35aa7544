# backend/rackbook/services/capacity_violations.py
"""
Samples a proposed booking window and reports where headcount exceeds the
effective ceiling.

The check is advisory: it reads current state and reserves nothing. Two
coaches validating at the same moment can both see room.
"""

from datetime import date, datetime, timedelta
import logging
from typing import List, Optional, Sequence

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.constants import END_BOUNDARY_OFFSET_MS
from ..core.exceptions import CapacityValidationUnavailableException, RepositoryException
from ..models.booking import BookingInstance
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.booking_instance_repository import BookingInstanceRepository
from ..repositories.factory import RepositoryFactory
from ..schemas.capacity import CapacityCheckResult, CapacityViolation
from .base import BaseService
from .capacity_limits import CapacityContext, CapacityLimitService, limit_at
from .occupancy import occupancy_at

logger = logging.getLogger(__name__)


def sample_points(
    proposed_start: datetime, proposed_end: datetime, stride_minutes: Optional[int] = None
) -> List[datetime]:
    """
    Instants checked across [proposed_start, proposed_end).

    One sample every ``stride_minutes`` from the start, plus one just before
    the end when the stride does not land there.
    """
    stride = timedelta(minutes=stride_minutes or settings.capacity_sample_minutes)
    points: List[datetime] = []
    current = proposed_start
    while current < proposed_end:
        points.append(current)
        current += stride

    if points:
        last = proposed_end - timedelta(milliseconds=END_BOUNDARY_OFFSET_MS)
        if last > points[-1]:
            points.append(last)
    return points


def check_violations(
    proposed_start: datetime,
    proposed_end: datetime,
    proposed_capacity: int,
    existing_instances: Sequence[BookingInstance],
    context: CapacityContext,
    stride_minutes: Optional[int] = None,
) -> CapacityCheckResult:
    """
    Compare headcount with the ceiling at every sample of the proposed window.

    Limits are resolved against the date the booking starts on. ``max_limit``
    is the ceiling at the busiest sample; when that sample had no ceiling it
    is the tightest ceiling seen, or None if none was configured at all.
    """
    resolution_date: date = proposed_start.date()
    violations: List[CapacityViolation] = []
    max_used = 0
    max_limit: Optional[int] = None
    max_violation_time: Optional[datetime] = None
    limits_seen: List[int] = []

    for point in sample_points(proposed_start, proposed_end, stride_minutes):
        used = occupancy_at(
            point, existing_instances, proposed_capacity, proposed_start, proposed_end
        )
        limit = limit_at(context, resolution_date, point.time())

        if limit is None:
            max_used = max(max_used, used)
            continue

        limits_seen.append(limit.capacity)
        if used > limit.capacity:
            violations.append(
                CapacityViolation(
                    time=point,
                    time_str=point.strftime("%H:%M"),
                    used=used,
                    limit=limit.capacity,
                    period_type=limit.period_type,
                )
            )
            if used > max_used:
                max_used, max_limit, max_violation_time = used, limit.capacity, point
        elif used > max_used:
            max_used, max_limit = used, limit.capacity

    if max_limit is None and limits_seen:
        max_limit = min(limits_seen)

    return CapacityCheckResult(
        is_valid=not violations,
        violations=violations,
        max_used=max_used,
        max_limit=max_limit,
        max_violation_time=max_violation_time,
    )


class CapacityValidationService(BaseService):
    """
    Runs check_violations for one proposed booking against stored state.
    """

    def __init__(
        self,
        db: Session,
        instance_repository: Optional[BookingInstanceRepository] = None,
        limit_service: Optional[CapacityLimitService] = None,
    ):
        super().__init__(db)
        self.instance_repository = (
            instance_repository or RepositoryFactory.create_booking_instance_repository(db)
        )
        self.limit_service = limit_service or CapacityLimitService(db)

    @BaseService.measure_operation("check_violations")
    def check_violations(
        self,
        side_id: int,
        proposed_start: datetime,
        proposed_end: datetime,
        proposed_capacity: int,
        exclude_booking_id: Optional[str] = None,
    ) -> CapacityCheckResult:
        """
        Validate one proposed booking window.

        Raises:
            CapacityValidationUnavailableException: If stored state cannot be read
        """
        try:
            instances = self.instance_repository.fetch_instances(
                side_id, proposed_start, proposed_end, exclude_booking_id=exclude_booking_id
            )
            context = self.limit_service.build_context(
                side_id, proposed_start.date(), proposed_end.date()
            )
        except RepositoryException as e:
            self.logger.error(f"Capacity check for side {side_id} could not read state: {str(e)}")
            raise CapacityValidationUnavailableException("check_violations", str(e)) from e

        result = check_violations(
            proposed_start, proposed_end, proposed_capacity, instances, context
        )
        if settings.prometheus_enabled:
            prometheus_metrics.record_capacity_check(side_id, result.is_valid)
        if not result.is_valid:
            self.logger.info(
                f"Side {side_id} {proposed_start:%Y-%m-%d %H:%M}-{proposed_end:%H:%M}: "
                f"{len(result.violations)} capacity violation(s), peak {result.max_used}/{result.max_limit}"
            )
        return result
