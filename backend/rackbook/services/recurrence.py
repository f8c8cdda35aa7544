# backend/rackbook/services/recurrence.py
"""
Recurrence expansion shared by chain validation and series materialisation.

``expand_occurrences`` turns a recurrence rule into the concrete dates that
must be checked against closures. ``weekly_windows`` produces the
``+N weeks`` time windows a booking series occupies.
"""

from datetime import date, datetime, timedelta
from typing import List, Optional, Tuple

from ..core.config import settings
from ..core.enums import RecurrenceType

ONE_WEEK = timedelta(weeks=1)

# Python weekday() numbering
_MONDAY, _SATURDAY, _SUNDAY = 0, 5, 6


def _first_monday(anchor: date) -> date:
    """Monday of the anchor's week; a Sunday anchor moves to the next Monday."""
    if anchor.weekday() == _SUNDAY:
        return anchor + timedelta(days=1)
    return anchor - timedelta(days=anchor.weekday() - _MONDAY)


def _first_saturday(anchor: date) -> date:
    """Saturday of the weekend containing or following the anchor."""
    if anchor.weekday() == _SUNDAY:
        return anchor - timedelta(days=1)
    return anchor + timedelta(days=_SATURDAY - anchor.weekday())


def expand_occurrences(
    anchor_date: date,
    recurrence_type: RecurrenceType,
    lookahead_weeks: Optional[int] = None,
) -> List[date]:
    """
    Dates a recurring rule lands on within the lookahead, in order.

    Dates before the anchor are dropped, so the anchor's own week may
    contribute fewer days. ``single`` has no chain and yields nothing.
    """
    weeks = settings.chain_lookahead_weeks if lookahead_weeks is None else lookahead_weeks
    recurrence = RecurrenceType(recurrence_type)

    if recurrence == RecurrenceType.SINGLE:
        return []

    if recurrence in (RecurrenceType.WEEKLY, RecurrenceType.ALL_FUTURE):
        return [anchor_date + ONE_WEEK * n for n in range(weeks)]

    if recurrence == RecurrenceType.WEEKDAY:
        first, day_offsets = _first_monday(anchor_date), range(5)
    else:
        first, day_offsets = _first_saturday(anchor_date), range(2)

    dates = [
        first + ONE_WEEK * week + timedelta(days=offset)
        for week in range(weeks)
        for offset in day_offsets
    ]
    return [d for d in dates if d >= anchor_date]


def weekly_windows(
    start: datetime, end: datetime, weeks: int
) -> List[Tuple[datetime, datetime]]:
    """The (start, end) window of each week of a series, week 0 first."""
    return [(start + ONE_WEEK * week, end + ONE_WEEK * week) for week in range(weeks)]
