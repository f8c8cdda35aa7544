"""
Tests for deciding whether a stored schedule governs a date.

WEDNESDAY is 2024-01-10; weekday numbers run Sunday = 0 .. Saturday = 6.
"""

from datetime import date, time, timedelta

from rackbook.core.enums import RecurrenceType
from rackbook.services.schedule_applicability import (
    applies,
    applies_at,
    applies_on,
    parse_excluded_dates,
)

from helpers.factories import WEDNESDAY, make_schedule

NEXT_WEDNESDAY = WEDNESDAY + timedelta(weeks=1)


class TestExcludedDates:
    def test_excluded_date_vetoes_recurring_rule(self):
        schedule = make_schedule(excluded_dates=[NEXT_WEDNESDAY.isoformat()])

        assert applies_on(schedule, WEDNESDAY) is True
        assert applies_on(schedule, NEXT_WEDNESDAY) is False
        assert applies_on(schedule, NEXT_WEDNESDAY + timedelta(weeks=1)) is True

    def test_excluded_date_vetoes_single_rule(self):
        schedule = make_schedule(
            recurrence_type=RecurrenceType.SINGLE, excluded_dates=[WEDNESDAY.isoformat()]
        )
        assert applies_on(schedule, WEDNESDAY) is False

    def test_json_string_exclusions_are_honoured(self):
        schedule = make_schedule()
        schedule.excluded_dates = f'["{NEXT_WEDNESDAY.isoformat()}"]'
        assert applies_on(schedule, NEXT_WEDNESDAY) is False


class TestRecurrenceRules:
    def test_single_applies_only_on_its_date(self):
        schedule = make_schedule(recurrence_type=RecurrenceType.SINGLE)

        assert applies_on(schedule, WEDNESDAY) is True
        assert applies_on(schedule, NEXT_WEDNESDAY) is False

    def test_wrong_weekday_never_applies(self):
        schedule = make_schedule()
        assert applies_on(schedule, WEDNESDAY + timedelta(days=1)) is False

    def test_weekday_row_respects_validity_window(self):
        schedule = make_schedule(recurrence_type=RecurrenceType.WEEKDAY, dow=1)

        assert applies_on(schedule, date(2024, 1, 15)) is True  # Monday after start
        assert applies_on(schedule, date(2024, 1, 8)) is False  # Monday before start

    def test_weekend_rule_on_a_weekday_row_never_applies(self):
        schedule = make_schedule(recurrence_type=RecurrenceType.WEEKEND, dow=1)
        assert applies(schedule, 1, date(2024, 1, 15)) is False

    def test_weekend_row_applies_on_its_day(self):
        schedule = make_schedule(recurrence_type=RecurrenceType.WEEKEND, dow=6)
        assert applies_on(schedule, date(2024, 1, 13)) is True

    def test_end_date_is_inclusive(self):
        schedule = make_schedule(end_date=NEXT_WEDNESDAY)

        assert applies_on(schedule, NEXT_WEDNESDAY) is True
        assert applies_on(schedule, NEXT_WEDNESDAY + timedelta(weeks=1)) is False

    def test_all_future_applies_indefinitely(self):
        schedule = make_schedule(recurrence_type=RecurrenceType.ALL_FUTURE)
        assert applies_on(schedule, WEDNESDAY + timedelta(weeks=100)) is True


class TestAppliesAt:
    def test_time_window_is_half_open(self):
        schedule = make_schedule(start_time=time(6, 0), end_time=time(22, 0))

        assert applies_at(schedule, WEDNESDAY, "06:00") is True
        assert applies_at(schedule, WEDNESDAY, "21:59") is True
        assert applies_at(schedule, WEDNESDAY, "22:00") is False
        assert applies_at(schedule, WEDNESDAY, "05:59") is False


class TestParseExcludedDates:
    def test_normalises_supported_shapes(self):
        assert parse_excluded_dates(None) == []
        assert parse_excluded_dates(["2024-01-01"]) == ["2024-01-01"]
        assert parse_excluded_dates([date(2024, 1, 1)]) == ["2024-01-01"]
        assert parse_excluded_dates('["2024-01-01"]') == ["2024-01-01"]

    def test_unparseable_value_is_ignored(self):
        assert parse_excluded_dates("not json") == []
        assert parse_excluded_dates('{"a": 1}') == []
