"""Application-wide constants for the rackbook capacity engine."""

from __future__ import annotations

# Capacity sampling
DEFAULT_SAMPLE_MINUTES = 15
# Extra sample taken just before the proposed end to catch boundary violations
END_BOUNDARY_OFFSET_MS = 1

# Recurrence lookahead used when validating a recurring chain against closures
DEFAULT_CHAIN_LOOKAHEAD_WEEKS = 8

# Series limits
MAX_SERIES_WEEKS = 52

# Day of week mapping (Sunday = 0, matching stored schedule rows)
DAYS_OF_WEEK = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]
WEEKDAY_NUMBERS = frozenset({1, 2, 3, 4, 5})
WEEKEND_NUMBERS = frozenset({0, 6})

MINUTES_PER_DAY = 24 * 60
# Last selectable 30-minute slot of the day
LAST_SLOT_OF_DAY = "23:30"
