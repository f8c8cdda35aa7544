"""
Tests for the closed-period index and its minute-level checks.
"""

from datetime import date, time, timedelta
from unittest.mock import MagicMock

import pytest

from rackbook.core.enums import PeriodType
from rackbook.core.exceptions import RepositoryException
from rackbook.schemas.capacity import ClosedPeriod, TimeRange
from rackbook.services.closed_periods import (
    WHOLE_DAY,
    ClosedPeriodService,
    available_time_ranges,
    build_closed_period_index,
    calculate_end_time,
    is_time_closed,
    is_time_range_closed,
    week_bounds,
)

from helpers.factories import SIDE_ID, WEDNESDAY, make_schedule


def closed(start: time, end: time) -> ClosedPeriod:
    return ClosedPeriod(start_time=start, end_time=end)


MORNING_CLOSURE = [closed(time(0, 0), time(9, 0))]
EVENING_CLOSURE = [closed(time(18, 0), time(23, 59))]


def test_week_bounds_run_sunday_to_saturday():
    assert week_bounds(WEDNESDAY) == (date(2024, 1, 7), date(2024, 1, 13))
    assert week_bounds(date(2024, 1, 7)) == (date(2024, 1, 7), date(2024, 1, 13))
    assert week_bounds(date(2024, 1, 13)) == (date(2024, 1, 7), date(2024, 1, 13))


class TestBuildIndex:
    def test_collects_only_applicable_closures(self):
        schedules = [
            make_schedule(PeriodType.CLOSED, time(0, 0), time(9, 0)),
            make_schedule(PeriodType.GENERAL_USER, time(9, 0), time(22, 0)),
            make_schedule(PeriodType.CLOSED, time(12, 0), time(13, 0), dow=4),
        ]

        index = build_closed_period_index(schedules, WEDNESDAY)

        assert index.closed_periods == [closed(time(0, 0), time(9, 0))]
        assert index.closed_hour_buckets == frozenset(f"{h:02d}:00" for h in range(9))
        assert "09:00" not in index.closed_hour_buckets

    def test_partial_end_hour_is_not_bucketed(self):
        index = build_closed_period_index(
            [make_schedule(PeriodType.CLOSED, time(8, 30), time(9, 15))], WEDNESDAY
        )

        assert index.closed_hour_buckets == frozenset({"08:00"})
        assert index.closed_periods == [closed(time(8, 30), time(9, 15))]

    def test_other_dates_are_empty(self):
        schedules = [make_schedule(PeriodType.CLOSED, time(0, 0), time(9, 0))]

        index = build_closed_period_index(schedules, WEDNESDAY + timedelta(days=1))

        assert index.is_empty


class TestIsTimeClosed:
    def test_inside_and_outside(self):
        assert is_time_closed("08:59", MORNING_CLOSURE) is True
        assert is_time_closed("09:00", MORNING_CLOSURE) is False

    def test_end_time_may_touch_closure_start(self):
        assert is_time_closed("18:00", EVENING_CLOSURE) is True
        assert is_time_closed("18:00", EVENING_CLOSURE, is_end_time=True) is False
        assert is_time_closed("18:30", EVENING_CLOSURE, is_end_time=True) is True

    def test_hour_bucket_fallback(self):
        assert is_time_closed("09:15", [], closed_hour_buckets={"09:00"}) is True
        assert is_time_closed("10:15", [], closed_hour_buckets={"09:00"}) is False
        assert is_time_closed("10:15", []) is False


class TestIsTimeRangeClosed:
    def test_range_into_morning_closure(self):
        assert is_time_range_closed("08:30", "10:00", MORNING_CLOSURE) is True

    def test_range_starting_when_closure_ends(self):
        assert is_time_range_closed("09:00", "10:00", MORNING_CLOSURE) is False

    def test_range_ending_when_closure_starts(self):
        assert is_time_range_closed("16:00", "18:00", EVENING_CLOSURE) is False
        assert is_time_range_closed("16:00", "18:01", EVENING_CLOSURE) is True

    def test_range_containing_closure(self):
        assert is_time_range_closed("11:00", "15:00", [closed(time(12, 0), time(13, 0))]) is True

    def test_hour_bucket_fallback(self):
        buckets = {"09:00"}
        assert is_time_range_closed("07:00", "09:00", [], buckets) is False
        assert is_time_range_closed("07:00", "09:30", [], buckets) is True
        assert is_time_range_closed("07:00", "09:30", []) is False


class TestAvailableTimeRanges:
    def test_no_closures_is_whole_day(self):
        assert available_time_ranges([]) == [WHOLE_DAY]

    def test_trailing_gap_after_morning_closure(self):
        assert available_time_ranges(MORNING_CLOSURE) == [TimeRange(start="09:00", end="23:30")]

    def test_gaps_between_overlapping_closures(self):
        periods = [closed(time(12, 30), time(14, 0)), closed(time(12, 0), time(13, 0))]

        assert available_time_ranges(periods) == [
            TimeRange(start="00:00", end="12:00"),
            TimeRange(start="14:00", end="23:30"),
        ]

    def test_fully_closed_day_has_no_ranges(self):
        assert available_time_ranges([closed(time(0, 0), time(23, 59))]) == []

    def test_hour_bucket_fallback(self):
        assert available_time_ranges([], {"12:00"}) == [
            TimeRange(start="00:00", end="12:00"),
            TimeRange(start="13:00", end="23:30"),
        ]


class TestCalculateEndTime:
    def test_unobstructed(self):
        assert calculate_end_time("10:00", 60, set()) == "11:00"
        assert calculate_end_time("10:15", 50, set()) == "11:05"

    def test_stops_before_first_closed_hour(self):
        assert calculate_end_time("10:00", 120, {"11:00"}) == "10:59"

    def test_end_landing_on_closed_hour(self):
        assert calculate_end_time("09:30", 30, {"10:00"}) == "09:59"

    def test_closed_start_hour(self):
        assert calculate_end_time("10:00", 60, {"10:00"}) is None

    def test_capped_at_end_of_day(self):
        assert calculate_end_time("23:00", 120, set()) == "23:59"


class TestClosedPeriodService:
    def test_reads_closures_of_the_side(self, db, add_schedules):
        add_schedules(
            make_schedule(PeriodType.CLOSED, time(0, 0), time(9, 0)),
            make_schedule(PeriodType.CLOSED, time(12, 0), time(13, 0), side_id=SIDE_ID + 1),
            make_schedule(PeriodType.GENERAL_USER, time(9, 0), time(22, 0)),
        )
        service = ClosedPeriodService(db)

        index = service.closed_periods_for(SIDE_ID, WEDNESDAY)

        assert index.closed_periods == MORNING_CLOSURE
        assert service.is_range_closed_on(SIDE_ID, WEDNESDAY, "08:30", "10:00") is True
        assert service.is_range_closed_on(SIDE_ID, WEDNESDAY, "09:00", "10:00") is False
        assert service.is_range_closed_on(SIDE_ID + 1, WEDNESDAY, "09:00", "10:00") is False

    def test_store_failure_propagates(self):
        repository = MagicMock()
        repository.fetch_schedules.side_effect = RepositoryException("database unavailable")
        service = ClosedPeriodService(MagicMock(), schedule_repository=repository)

        with pytest.raises(RepositoryException):
            service.closed_periods_for(SIDE_ID, WEDNESDAY)
