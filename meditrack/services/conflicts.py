"""
Interval conflict detection for a doctor's visits.

Intervals are half-open, [start, end): two visits conflict when they
share any instant. Touching at a boundary is not a conflict.
"""

from datetime import datetime

from loguru import logger

from meditrack.repositories.base import BookingTransaction


def intervals_overlap(
    start1: datetime, end1: datetime, start2: datetime, end2: datetime
) -> bool:
    """True when [start1, end1) and [start2, end2) share at least one instant."""
    return start1 < end2 and start2 < end1


class ConflictChecker:
    """
    Checks a candidate interval against every committed visit of a doctor.

    Runs inside a booking transaction so that the check and the insert
    that follows it see the same visit set. Results are never cached.
    """

    def __init__(self, transaction: BookingTransaction):
        self._transaction = transaction

    async def has_conflict(self, doctor_id: int, start: datetime, end: datetime) -> bool:
        overlapping = await self._transaction.count_overlapping_visits(doctor_id, start, end)
        if overlapping > 0:
            logger.debug(
                f"Doctor {doctor_id}: {overlapping} visit(s) overlap "
                f"[{start.isoformat()}, {end.isoformat()})"
            )
        return overlapping > 0
