"""
Tests for multi-week series validation and the closed-period chain check.
"""

from datetime import date, time, timedelta
from types import MappingProxyType
from unittest.mock import MagicMock

import pytest

from rackbook.core.enums import PeriodType, RecurrenceType
from rackbook.core.exceptions import CapacityValidationUnavailableException, RepositoryException
from rackbook.services.capacity_limits import CapacityContext
from rackbook.services.series_validation_service import (
    SeriesValidationService,
    aggregate_weeks,
    capacity_for_week,
    freeze_week_capacities,
)

from helpers.factories import SIDE_ID, WEDNESDAY, at, make_schedule


class TestWeekCapacities:
    def test_mapping_lookup(self):
        capacities = {1: 5, 2: 0}

        assert capacity_for_week(capacities, 0, 3) == 3
        assert capacity_for_week(capacities, 1, 3) == 5
        assert capacity_for_week(capacities, 2, 3) == 0

    def test_sequence_lookup(self):
        capacities = [4, None]

        assert capacity_for_week(capacities, 0, 3) == 4
        assert capacity_for_week(capacities, 1, 3) == 3
        assert capacity_for_week(capacities, 7, 3) == 3

    def test_frozen_inputs_cannot_be_modified(self):
        frozen_mapping = freeze_week_capacities({0: 2})
        frozen_sequence = freeze_week_capacities([2, 3])

        assert isinstance(frozen_mapping, MappingProxyType)
        with pytest.raises(TypeError):
            frozen_mapping[0] = 9  # type: ignore[index]
        assert frozen_sequence == (2, 3)
        assert freeze_week_capacities(None) == ()

    def test_caller_input_is_copied(self):
        capacities = {0: 2}
        frozen = freeze_week_capacities(capacities)
        capacities[0] = 9

        assert frozen[0] == 2


def test_aggregate_of_nothing_is_valid():
    result = aggregate_weeks([])

    assert result.is_valid is True
    assert result.has_warnings is False
    assert result.max_limit is None
    assert result.max_used == 0


class TestValidateSeries:
    @pytest.fixture
    def busy_second_week(self, add_default, add_booking):
        """Default of 10 with 9 athletes already booked in week 2."""
        add_default(capacity=10)
        next_week = WEDNESDAY + timedelta(weeks=1)
        add_booking(at(next_week, 10), at(next_week, 11), capacity=9)

    def test_violations_carry_one_based_week(self, db, busy_second_week):
        service = SeriesValidationService(db)

        result = service.validate_series(
            side_id=SIDE_ID,
            start_date=WEDNESDAY,
            start_time=time(10, 0),
            end_time=time(11, 0),
            weeks=3,
            default_capacity=2,
        )

        assert result.is_valid is False
        assert result.has_warnings is True
        assert [w.week for w in result.week_results] == [1, 2, 3]
        assert [w.result.is_valid for w in result.week_results] == [True, False, True]
        assert result.violations
        assert {v.week for v in result.violations} == {2}
        assert (result.max_used, result.max_limit) == (11, 10)
        assert result.over_by == 1
        assert result.closed_conflicts == []

    def test_per_week_capacity(self, db, busy_second_week):
        service = SeriesValidationService(db)

        result = service.validate_series(
            side_id=SIDE_ID,
            start_date=WEDNESDAY,
            start_time="10:00",
            end_time="11:00",
            weeks=3,
            default_capacity=2,
            capacity_per_week={1: 0},
        )

        assert result.is_valid is True
        assert [w.proposed_capacity for w in result.week_results] == [2, 0, 2]

    def test_own_series_is_excluded_when_editing(self, db, add_default, add_booking):
        add_default(capacity=10)
        booking = add_booking(at(WEDNESDAY, 10), at(WEDNESDAY, 11), capacity=9, weeks=2)
        service = SeriesValidationService(db)

        result = service.validate_series(
            side_id=SIDE_ID,
            start_date=WEDNESDAY,
            start_time="10:00",
            end_time="11:00",
            weeks=2,
            default_capacity=9,
            exclude_booking_id=booking.id,
        )

        assert result.is_valid is True


class TestClosedChain:
    @pytest.fixture
    def closures_from_third_week(self, add_default, add_schedules):
        add_default(capacity=10)
        add_schedules(
            make_schedule(
                PeriodType.CLOSED,
                time(0, 0),
                time(9, 0),
                start_date=WEDNESDAY + timedelta(weeks=2),
            )
        )

    def test_recurring_series_reports_closed_occurrences(self, db, closures_from_third_week):
        service = SeriesValidationService(db)

        result = service.validate_series(
            side_id=SIDE_ID,
            start_date=WEDNESDAY,
            start_time="08:00",
            end_time="10:00",
            weeks=1,
            default_capacity=1,
            recurrence_type=RecurrenceType.WEEKLY,
        )

        assert result.week_results[0].result.is_valid is True
        assert result.is_valid is False
        assert result.closed_conflicts[0] == date(2024, 1, 24)
        assert len(result.closed_conflicts) == 6

    def test_single_booking_skips_chain(self, db, closures_from_third_week):
        service = SeriesValidationService(db)

        result = service.validate_series(
            side_id=SIDE_ID,
            start_date=WEDNESDAY,
            start_time="08:00",
            end_time="10:00",
            weeks=1,
            default_capacity=1,
            recurrence_type=RecurrenceType.SINGLE,
        )

        assert result.is_valid is True
        assert result.closed_conflicts == []

    def test_chain_for_weekday_rule(self, db, closures_from_third_week):
        conflicts = SeriesValidationService(db).validate_closed_chain(
            SIDE_ID, WEDNESDAY, "08:00", "10:00", RecurrenceType.WEEKDAY
        )
        assert conflicts == [WEDNESDAY + timedelta(weeks=n) for n in range(2, 8)]

    def test_ending_at_closure_start_is_allowed(self, db, add_schedules):
        add_schedules(make_schedule(PeriodType.CLOSED, time(18, 0), time(23, 0)))

        conflicts = SeriesValidationService(db).validate_closed_chain(
            SIDE_ID, WEDNESDAY, "16:00", "18:00", RecurrenceType.WEEKLY
        )

        assert conflicts == []


class TestStoreFailures:
    def test_instance_read_failure(self):
        instances = MagicMock()
        instances.fetch_instances.side_effect = RepositoryException("connection reset")
        service = SeriesValidationService(
            MagicMock(),
            instance_repository=instances,
            schedule_repository=MagicMock(),
            limit_service=MagicMock(),
        )

        with pytest.raises(CapacityValidationUnavailableException) as exc_info:
            service.validate_series(SIDE_ID, WEDNESDAY, "10:00", "11:00", 2, 1)

        assert exc_info.value.details["operation"] == "validate_series"

    def test_closed_chain_read_failure(self):
        instances = MagicMock()
        instances.fetch_instances.return_value = []
        limits = MagicMock()
        limits.build_context.return_value = CapacityContext.build(SIDE_ID, [])
        schedules = MagicMock()
        schedules.fetch_schedules.side_effect = RepositoryException("timeout")
        service = SeriesValidationService(
            MagicMock(),
            instance_repository=instances,
            schedule_repository=schedules,
            limit_service=limits,
        )

        with pytest.raises(CapacityValidationUnavailableException) as exc_info:
            service.validate_series(
                SIDE_ID, WEDNESDAY, "10:00", "11:00", 2, 1, recurrence_type=RecurrenceType.WEEKLY
            )

        assert exc_info.value.details["operation"] == "validate_closed_chain"
