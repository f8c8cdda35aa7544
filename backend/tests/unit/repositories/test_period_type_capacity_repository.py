from datetime import datetime, timedelta
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import SQLAlchemyError

from rackbook.core.enums import PeriodType
from rackbook.core.exceptions import RepositoryException
from rackbook.models.period_type_capacity import PeriodTypeCapacityOverride
from rackbook.repositories.period_type_capacity_repository import PeriodTypeCapacityRepository
from rackbook.services.capacity_limits import CapacityContext

from helpers.factories import SIDE_ID, WEDNESDAY


class TestDefaults:
    def test_upsert_creates_then_updates(self, unit_db):
        repo = PeriodTypeCapacityRepository(unit_db)

        created = repo.upsert_default(PeriodType.GENERAL_USER, SIDE_ID, 10, [1, 2])
        updated = repo.upsert_default(PeriodType.GENERAL_USER, SIDE_ID, 14, [3])

        assert created.id == updated.id
        assert (updated.default_capacity, updated.platforms) == (14, [3])
        assert len(repo.fetch_defaults_for_side(SIDE_ID)) == 1

    def test_closed_default_is_always_zero(self, unit_db):
        repo = PeriodTypeCapacityRepository(unit_db)

        row = repo.upsert_default(PeriodType.CLOSED, SIDE_ID, 8, [1])

        assert row.default_capacity == 0
        assert row.platforms == []

    def test_defaults_are_per_side(self, unit_db, add_default):
        add_default(capacity=10)
        add_default(capacity=20, side_id=SIDE_ID + 1)
        repo = PeriodTypeCapacityRepository(unit_db)

        assert repo.fetch_default(PeriodType.GENERAL_USER, SIDE_ID).default_capacity == 10
        assert repo.fetch_default(PeriodType.PERFORMANCE, SIDE_ID) is None


class TestOverrides:
    def test_upsert_updates_existing_override(self, unit_db):
        repo = PeriodTypeCapacityRepository(unit_db)

        first = repo.upsert_override(WEDNESDAY, PeriodType.GENERAL_USER, 4, notes="Exam week")
        second = repo.upsert_override(WEDNESDAY, PeriodType.GENERAL_USER, 6)

        assert first.id == second.id
        assert repo.fetch_override(WEDNESDAY, PeriodType.GENERAL_USER).capacity == 6

    def test_update_keeps_booking_and_notes_in_step(self, unit_db, add_booking):
        booking = add_booking(datetime(2024, 1, 10, 10), datetime(2024, 1, 10, 11))
        repo = PeriodTypeCapacityRepository(unit_db)
        repo.upsert_override(WEDNESDAY, PeriodType.GENERAL_USER, 4, notes="Exam week")

        updated = repo.upsert_override(
            WEDNESDAY, PeriodType.GENERAL_USER, 5, booking_id=booking.id, notes="Open day"
        )
        kept = repo.upsert_override(WEDNESDAY, PeriodType.GENERAL_USER, 6)

        assert (updated.booking_id, updated.notes) == (booking.id, "Open day")
        assert (kept.capacity, kept.booking_id, kept.notes) == (6, booking.id, "Open day")

    def test_newest_override_wins_on_both_read_paths(self, unit_db):
        unit_db.add_all(
            [
                PeriodTypeCapacityOverride(
                    date=WEDNESDAY,
                    period_type=PeriodType.GENERAL_USER,
                    capacity=2,
                    created_at=datetime(2024, 1, 2),
                ),
                PeriodTypeCapacityOverride(
                    date=WEDNESDAY,
                    period_type=PeriodType.GENERAL_USER,
                    capacity=1,
                    created_at=datetime(2024, 1, 1),
                ),
            ]
        )
        unit_db.commit()
        repo = PeriodTypeCapacityRepository(unit_db)

        rows = repo.fetch_overrides_between(WEDNESDAY, WEDNESDAY)
        context = CapacityContext.build(SIDE_ID, [], overrides=rows)

        assert [row.capacity for row in rows] == [1, 2]
        assert repo.fetch_override(WEDNESDAY, PeriodType.GENERAL_USER).capacity == 2
        assert context.overrides[(WEDNESDAY, PeriodType.GENERAL_USER.value)] == 2

    def test_delete_override(self, unit_db, add_override):
        add_override(WEDNESDAY, 3)
        add_override(WEDNESDAY, 5, period_type=PeriodType.PERFORMANCE)
        repo = PeriodTypeCapacityRepository(unit_db)

        assert repo.delete_override(WEDNESDAY, PeriodType.GENERAL_USER) == 1
        assert repo.delete_override(WEDNESDAY, PeriodType.GENERAL_USER) == 0
        assert repo.fetch_override(WEDNESDAY, PeriodType.GENERAL_USER) is None
        assert repo.fetch_override(WEDNESDAY, PeriodType.PERFORMANCE).capacity == 5

    def test_overrides_between_is_inclusive(self, unit_db, add_override):
        add_override(WEDNESDAY + timedelta(days=7), 1)
        add_override(WEDNESDAY, 2)
        add_override(WEDNESDAY + timedelta(days=8), 3)
        repo = PeriodTypeCapacityRepository(unit_db)

        rows = repo.fetch_overrides_between(WEDNESDAY, WEDNESDAY + timedelta(days=7))

        assert [row.capacity for row in rows] == [2, 1]


def test_store_failure_raises_repository_exception():
    db = MagicMock()
    db.query.side_effect = SQLAlchemyError("connection lost")
    repo = PeriodTypeCapacityRepository(db)

    with pytest.raises(RepositoryException):
        repo.fetch_defaults_for_side(SIDE_ID)
    with pytest.raises(RepositoryException):
        repo.fetch_overrides_between(WEDNESDAY, WEDNESDAY)
    with pytest.raises(RepositoryException):
        repo.upsert_override(WEDNESDAY, PeriodType.GENERAL_USER, 1)
    with pytest.raises(RepositoryException):
        repo.delete_override(WEDNESDAY, PeriodType.GENERAL_USER)
    db.rollback.assert_called_once()
