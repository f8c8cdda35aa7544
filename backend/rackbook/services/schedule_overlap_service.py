# backend/rackbook/services/schedule_overlap_service.py
"""
Saving capacity schedules from the capacity editor.

A submitted rule is expanded into one row per weekday it governs, checked
against the side's other rules, and written in place of any rows sharing
its (side, weekday, start time, recurrence) pattern.
"""

from datetime import date
import logging
from typing import Dict, Iterable, List, Optional, Sequence

from sqlalchemy.orm import Session

from ..core.constants import DAYS_OF_WEEK
from ..core.enums import PeriodType, RecurrenceType
from ..core.exceptions import NotFoundException, ScheduleOverlapException, ValidationException
from ..models.capacity_schedule import CapacitySchedule
from ..models.period_type_capacity import PeriodTypeCapacityDefault
from ..repositories.capacity_schedule_repository import CapacityScheduleRepository
from ..repositories.factory import RepositoryFactory
from ..repositories.period_type_capacity_repository import PeriodTypeCapacityRepository
from ..schemas.schedule import CapacityScheduleCreate, ScheduleConflict
from ..utils.time_utils import day_of_week, format_hhmm, parse_time
from .base import BaseService

logger = logging.getLogger(__name__)

RECURRENCE_LABELS = {
    RecurrenceType.WEEKDAY: "Weekdays",
    RecurrenceType.WEEKEND: "Weekends",
    RecurrenceType.WEEKLY: "Weekly",
    RecurrenceType.ALL_FUTURE: "All future",
}


def expand_schedule_rows(payload: CapacityScheduleCreate) -> List[CapacitySchedule]:
    """
    Unsaved rows for one submitted rule.

    Weekday rules cover Monday-Friday, weekend rules Saturday and Sunday;
    everything else lands on the anchor date's weekday.
    """
    recurrence = RecurrenceType(payload.recurrence_type)
    if recurrence == RecurrenceType.WEEKDAY:
        days: Sequence[int] = (1, 2, 3, 4, 5)
    elif recurrence == RecurrenceType.WEEKEND:
        days = (6, 0)
    else:
        days = (day_of_week(payload.anchor_date),)

    closed = payload.period_type == PeriodType.CLOSED
    return [
        CapacitySchedule(
            side_id=payload.side_id,
            period_type=PeriodType(payload.period_type),
            recurrence_type=recurrence,
            day_of_week=dow,
            start_date=payload.anchor_date,
            end_date=payload.end_date,
            start_time=payload.start_time,
            end_time=payload.end_time,
            capacity=0 if closed else payload.capacity,
            platforms=[] if closed else list(payload.platforms),
            excluded_dates=[],
        )
        for dow in days
    ]


def _governs_same_day(new: CapacitySchedule, existing: CapacitySchedule) -> bool:
    """Whether two rules on the same weekday can both apply to one date."""
    new_type = RecurrenceType(new.recurrence_type)
    existing_type = RecurrenceType(existing.recurrence_type)
    existing_open = existing.end_date is None or new.start_date <= existing.end_date

    if new_type == existing_type:
        if new_type == RecurrenceType.SINGLE:
            return new.start_date == existing.start_date
        if new_type == RecurrenceType.WEEKDAY:
            return 1 <= new.day_of_week <= 5
        if new_type == RecurrenceType.WEEKEND:
            return new.day_of_week in (0, 6)
        return existing_open

    if new_type == RecurrenceType.SINGLE:
        return new.start_date >= existing.start_date and existing_open
    if existing_type == RecurrenceType.SINGLE:
        return existing.start_date >= new.start_date
    return existing_open


def _times_overlap(new: CapacitySchedule, existing: CapacitySchedule) -> bool:
    return parse_time(new.start_time) < parse_time(existing.end_time) and parse_time(
        new.end_time
    ) > parse_time(existing.start_time)


def _recurrence_label(schedule: CapacitySchedule) -> str:
    recurrence = RecurrenceType(schedule.recurrence_type)
    if recurrence == RecurrenceType.SINGLE:
        start = schedule.start_date
        return f"{start:%b} {start.day}, {start:%Y}"
    return RECURRENCE_LABELS[recurrence]


def find_overlaps(
    new_rows: Iterable[CapacitySchedule],
    existing_rows: Iterable[CapacitySchedule],
    exclude_ids: Iterable[str] = (),
) -> List[ScheduleConflict]:
    """Existing rules each new row would overlap, ignoring ``exclude_ids``."""
    excluded = set(exclude_ids)
    candidates = [row for row in existing_rows if row.id not in excluded]
    conflicts: List[ScheduleConflict] = []

    for new in new_rows:
        for existing in candidates:
            if new.day_of_week != existing.day_of_week:
                continue
            if not _governs_same_day(new, existing) or not _times_overlap(new, existing):
                continue
            conflicts.append(
                ScheduleConflict(
                    day=DAYS_OF_WEEK[new.day_of_week],
                    time=f"{format_hhmm(new.start_time)} - {format_hhmm(new.end_time)}",
                    existing_period=existing.period_type,
                    recurrence=_recurrence_label(new),
                    existing_schedule_id=existing.id,
                )
            )
    return conflicts


class ScheduleOverlapService(BaseService):
    """
    Validates and saves capacity schedules for a side.
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

    def _ids_replaced_by(self, rows: Sequence[CapacitySchedule]) -> List[str]:
        ids: List[str] = []
        for row in rows:
            for match in self.schedule_repository.find_matching_ids(
                row.side_id, row.day_of_week, row.start_time, row.recurrence_type
            ):
                if match not in ids:
                    ids.append(match)
        return ids

    @BaseService.measure_operation("find_overlaps")
    def find_overlaps(
        self, payload: CapacityScheduleCreate, replacing_ids: Sequence[str] = ()
    ) -> List[ScheduleConflict]:
        """
        Conflicts a save of ``payload`` would create.

        Rows the save replaces, and any ``replacing_ids``, are not conflicts.
        """
        rows = expand_schedule_rows(payload)
        exclude = list(replacing_ids) + self._ids_replaced_by(rows)
        existing = self.schedule_repository.get_side_schedules(payload.side_id)
        return find_overlaps(rows, existing, exclude)

    @BaseService.measure_operation("save_schedules")
    def save_schedules(
        self, payload: CapacityScheduleCreate, replacing_ids: Sequence[str] = ()
    ) -> List[CapacitySchedule]:
        """
        Validate and store one submitted rule.

        Single-date rules also pin a per-date override for their period type.

        Raises:
            ScheduleOverlapException: If the rule overlaps another rule of the side
        """
        conflicts = self.find_overlaps(payload, replacing_ids)
        if conflicts:
            self.logger.warning(
                f"Rejected {payload.period_type} schedule on side {payload.side_id}: "
                f"{len(conflicts)} conflict(s)"
            )
            raise ScheduleOverlapException([c.model_dump() for c in conflicts])

        rows = expand_schedule_rows(payload)
        with self.transaction():
            self.schedule_repository.delete_by_ids(replacing_ids)
            for row in rows:
                self.schedule_repository.delete_matching(
                    row.side_id, row.day_of_week, row.start_time, row.recurrence_type
                )
            self.db.add_all(rows)
            self.db.flush()

            if payload.recurrence_type == RecurrenceType.SINGLE:
                self.capacity_repository.upsert_override(
                    payload.anchor_date, PeriodType(payload.period_type), rows[0].capacity
                )

        self.logger.info(
            f"Saved {len(rows)} {payload.recurrence_type} {payload.period_type} schedule row(s) "
            f"for side {payload.side_id}"
        )
        return rows

    @BaseService.measure_operation("exclude_date")
    def exclude_date(self, schedule_id: str, excluded: date) -> CapacitySchedule:
        """
        Stop a recurring rule from applying on one date.

        Raises:
            NotFoundException: If the schedule does not exist
        """
        with self.transaction():
            schedule = self.schedule_repository.exclude_date(schedule_id, excluded)
            if schedule is None:
                raise NotFoundException(f"Capacity schedule {schedule_id} not found")
        self.logger.info(f"Excluded {excluded} from schedule {schedule_id}")
        return schedule

    @BaseService.measure_operation("delete_schedule")
    def delete_schedule(
        self, schedule_id: str, on_date: Optional[date] = None
    ) -> Dict[str, int]:
        """
        Remove a rule as the capacity editor's delete action does.

        A single-date rule is deleted together with the per-date override it
        pinned. A recurring rule only stops applying on ``on_date``.

        Returns:
            {"schedules": n, "overrides": m, "excluded_dates": k}

        Raises:
            NotFoundException: If the schedule does not exist
            ValidationException: If a recurring rule is deleted without a date
        """
        schedule = self.schedule_repository.get_by_id(schedule_id)
        if schedule is None:
            raise NotFoundException(f"Capacity schedule {schedule_id} not found")

        if RecurrenceType(schedule.recurrence_type).is_recurring:
            if on_date is None:
                raise ValidationException(
                    "A date is required to remove a recurring schedule for one day",
                    code="DATE_REQUIRED",
                    details={"schedule_id": schedule_id},
                )
            self.exclude_date(schedule_id, on_date)
            return {"schedules": 0, "overrides": 0, "excluded_dates": 1}

        period_type = PeriodType(schedule.period_type)
        pinned_date = schedule.start_date
        with self.transaction():
            removed = self.schedule_repository.delete_by_ids([schedule_id])
            overrides = self.capacity_repository.delete_override(pinned_date, period_type)

        self.logger.info(
            f"Deleted single {period_type.value} schedule {schedule_id} on {pinned_date} "
            f"and {overrides} override(s)"
        )
        return {"schedules": removed, "overrides": overrides, "excluded_dates": 0}

    @BaseService.measure_operation("upsert_default")
    def upsert_default(
        self,
        period_type: PeriodType,
        side_id: int,
        default_capacity: int,
        platforms: Sequence[int] = (),
    ) -> PeriodTypeCapacityDefault:
        """Set the fallback ceiling of a period type on a side."""
        with self.transaction():
            default = self.capacity_repository.upsert_default(
                PeriodType(period_type), side_id, default_capacity, platforms
            )
        self.logger.info(
            f"{period_type} default on side {side_id} is now {default.default_capacity}"
        )
        return default
