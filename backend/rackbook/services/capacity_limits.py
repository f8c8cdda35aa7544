# backend/rackbook/services/capacity_limits.py
"""
Effective capacity ceiling for a side at an instant.

Resolution walks an ordered chain of strategies; the first one returning a
limit wins:

1. the most specific capacity schedule covering the instant,
2. the per-date override for the fallback period type,
3. the side's default for the fallback period type.

All strategies read from a CapacityContext snapshot taken once per
validation, so resolving the same instant twice always gives the same
answer. ``None`` means no ceiling is configured; callers decide whether
that is acceptable.
"""

from dataclasses import dataclass, field
from datetime import date, time
import logging
from types import MappingProxyType
from typing import Callable, Iterable, List, Mapping, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.enums import PeriodType
from ..models.capacity_schedule import CapacitySchedule
from ..models.period_type_capacity import PeriodTypeCapacityDefault, PeriodTypeCapacityOverride
from ..repositories.capacity_schedule_repository import CapacityScheduleRepository
from ..repositories.factory import RepositoryFactory
from ..repositories.period_type_capacity_repository import PeriodTypeCapacityRepository
from ..schemas.capacity import CapacityLimit
from ..utils.time_utils import TimeLike, day_of_week, parse_time
from .base import BaseService
from .schedule_applicability import applies_at

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CapacityContext:
    """Read-only snapshot of everything limit resolution needs for one side."""

    side_id: int
    schedules: Tuple[CapacitySchedule, ...] = ()
    defaults: Mapping[str, int] = field(default_factory=lambda: MappingProxyType({}))
    overrides: Mapping[Tuple[date, str], int] = field(
        default_factory=lambda: MappingProxyType({})
    )
    fallback_period_type: PeriodType = PeriodType.GENERAL_USER

    @classmethod
    def build(
        cls,
        side_id: int,
        schedules: Iterable[CapacitySchedule],
        defaults: Iterable[PeriodTypeCapacityDefault] = (),
        overrides: Iterable[PeriodTypeCapacityOverride] = (),
        fallback_period_type: Optional[PeriodType] = None,
    ) -> "CapacityContext":
        default_map = {
            PeriodType(row.period_type).value: row.default_capacity
            for row in defaults
            if row.side_id == side_id
        }
        override_map = {}
        for row in overrides:
            # Rows arrive oldest first, so the newest override for a key wins
            override_map[(row.date, PeriodType(row.period_type).value)] = row.capacity

        return cls(
            side_id=side_id,
            schedules=tuple(schedules),
            defaults=MappingProxyType(default_map),
            overrides=MappingProxyType(override_map),
            fallback_period_type=fallback_period_type or settings.fallback_period_type,
        )


LimitStrategy = Callable[[CapacityContext, date, time], Optional[CapacityLimit]]


def _specificity_key(schedule: CapacitySchedule) -> Tuple[int, time]:
    # Non-Closed before Closed, then the latest start time
    is_open = 0 if schedule.period_type == PeriodType.CLOSED else 1
    return is_open, parse_time(schedule.start_time)


def most_specific_schedule(
    schedules: Sequence[CapacitySchedule], on_date: date, at: TimeLike
) -> Optional[CapacitySchedule]:
    """
    The schedule governing ``at`` on ``on_date``, or None.

    A bookable tier beats a Closed rule covering the same instant; between
    rules of the same kind the one starting latest is the most specific.
    """
    weekday = day_of_week(on_date)
    candidates = [s for s in schedules if applies_at(s, on_date, at, weekday)]
    if not candidates:
        return None
    return max(candidates, key=_specificity_key)


def schedule_strategy(context: CapacityContext, on_date: date, at: time) -> Optional[CapacityLimit]:
    schedule = most_specific_schedule(context.schedules, on_date, at)
    if schedule is None:
        return None
    return CapacityLimit(capacity=schedule.capacity, period_type=schedule.period_type)


def override_strategy(context: CapacityContext, on_date: date, at: time) -> Optional[CapacityLimit]:
    period_type = context.fallback_period_type
    capacity = context.overrides.get((on_date, PeriodType(period_type).value))
    if capacity is None:
        return None
    return CapacityLimit(capacity=capacity, period_type=period_type)


def default_strategy(context: CapacityContext, on_date: date, at: time) -> Optional[CapacityLimit]:
    period_type = context.fallback_period_type
    capacity = context.defaults.get(PeriodType(period_type).value)
    if capacity is None:
        return None
    return CapacityLimit(capacity=capacity, period_type=period_type)


DEFAULT_STRATEGIES: Tuple[LimitStrategy, ...] = (
    schedule_strategy,
    override_strategy,
    default_strategy,
)


def limit_at(
    context: CapacityContext,
    on_date: date,
    at: TimeLike,
    strategies: Sequence[LimitStrategy] = DEFAULT_STRATEGIES,
) -> Optional[CapacityLimit]:
    """
    Effective ceiling for ``context.side_id`` at ``at`` on ``on_date``.

    Returns:
        The first limit produced by ``strategies``, or None
    """
    moment = parse_time(at)
    for strategy in strategies:
        limit = strategy(context, on_date, moment)
        if limit is not None:
            return limit
    return None


class CapacityLimitService(BaseService):
    """
    Builds CapacityContext snapshots from the store and resolves limits.
    """

    def __init__(
        self,
        db: Session,
        schedule_repository: Optional[CapacityScheduleRepository] = None,
        capacity_repository: Optional[PeriodTypeCapacityRepository] = None,
    ):
        super().__init__(db)
        self.schedule_repository = (
            schedule_repository or RepositoryFactory.create_capacity_schedule_repository(db)
        )
        self.capacity_repository = (
            capacity_repository or RepositoryFactory.create_period_type_capacity_repository(db)
        )

    def build_context(self, side_id: int, range_start: date, range_end: date) -> CapacityContext:
        """
        Snapshot the schedules, defaults and overrides of a side for a date range.

        Raises:
            RepositoryException: If any of them cannot be read
        """
        schedules = self.schedule_repository.fetch_schedules(side_id, range_start, range_end)
        defaults = self.capacity_repository.fetch_defaults_for_side(side_id)
        overrides = self.capacity_repository.fetch_overrides_between(range_start, range_end)
        self.logger.debug(
            f"Capacity context for side {side_id} {range_start}..{range_end}: "
            f"{len(schedules)} schedules, {len(defaults)} defaults, {len(overrides)} overrides"
        )
        return CapacityContext.build(side_id, schedules, defaults, overrides)

    @BaseService.measure_operation("limit_at")
    def limit_at(self, side_id: int, on_date: date, at: TimeLike) -> Optional[CapacityLimit]:
        context = self.build_context(side_id, on_date, on_date)
        return limit_at(context, on_date, at)

    def limits_for_day(
        self, side_id: int, on_date: date, times: Iterable[TimeLike]
    ) -> List[Optional[CapacityLimit]]:
        """Resolve several instants of one day against a single snapshot."""
        context = self.build_context(side_id, on_date, on_date)
        return [limit_at(context, on_date, at) for at in times]
