# backend/rackbook/services/occupancy.py
"""
Athlete headcount on a side at an instant.

Racks are not counted here; rack clashes are checked separately when a
series is submitted.
"""

from datetime import datetime
from typing import Iterable

from ..models.booking import BookingInstance


def occupancy_at(
    at: datetime,
    existing_instances: Iterable[BookingInstance],
    proposed_capacity: int,
    proposed_start: datetime,
    proposed_end: datetime,
) -> int:
    """
    Athletes present at ``at``: existing instances plus the proposed booking.

    Every interval is half-open, so an instance ending at ``at`` does not count.
    """
    total = sum(
        instance.capacity or 0
        for instance in existing_instances
        if instance.start <= at < instance.end
    )
    if proposed_start <= at < proposed_end:
        total += proposed_capacity
    return total
