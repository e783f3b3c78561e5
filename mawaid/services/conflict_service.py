"""Conflict evaluation for proposed appointment intervals."""

from collections.abc import Awaitable, Callable, Iterable
from datetime import datetime
from uuid import UUID

import structlog

from mawaid.core.exceptions import InvalidIntervalException
from mawaid.schemas.appointments import INACTIVE_STATUSES, AppointmentStatus, AppointmentType
from mawaid.schemas.conflicts import ConflictCheckResult, ConflictOutcome, ConflictQueryResult

logger = structlog.get_logger(__name__)

OverlapQuery = Callable[
    [datetime, datetime, UUID | None],
    Awaitable[list[ConflictQueryResult]],
]


def is_blocking(conflict: ConflictQueryResult) -> bool:
    """A confirmed ministry meeting blocks everything overlapping it."""
    return (
        conflict.type == AppointmentType.MINISTRY
        and conflict.status == AppointmentStatus.CONFIRMED
    )


def classify_conflicts(conflicts: Iterable[ConflictQueryResult]) -> ConflictCheckResult:
    """
    Classify an overlap set.

    Rules are ordered and the first match wins: any blocking conflict makes
    the slot a hard block, any other overlap is a soft warning, and an empty
    set is no conflict.

    Args:
        conflicts: Appointments overlapping the candidate interval

    Returns:
        Classification with the full overlap set for display
    """
    overlap = sorted(conflicts, key=lambda c: (c.start_time, str(c.id)))

    if any(is_blocking(c) for c in overlap):
        return ConflictCheckResult(
            outcome=ConflictOutcome.BLOCK,
            has_ministry_conflict=True,
            conflicts=overlap,
        )
    if overlap:
        return ConflictCheckResult(
            outcome=ConflictOutcome.WARNING,
            has_warning_conflict=True,
            conflicts=overlap,
        )
    return ConflictCheckResult(outcome=ConflictOutcome.NONE)


class ConflictEvaluator:
    """Evaluate candidate intervals against the overlap query of the store."""

    def __init__(self, overlap_query: OverlapQuery):
        """Initialize evaluator with an overlap query (start, end, exclude_id)."""
        self.overlap_query = overlap_query

    async def evaluate_conflicts(
        self,
        start_time: datetime,
        end_time: datetime,
        exclude_id: UUID | None = None,
    ) -> ConflictCheckResult:
        """
        Evaluate a candidate interval.

        Args:
            start_time: Candidate start (inclusive)
            end_time: Candidate end (exclusive)
            exclude_id: Appointment being edited, left out of the overlap set

        Returns:
            The classification. When the overlap query fails the outcome is
            ``indeterminate`` and callers must not book.

        Raises:
            InvalidIntervalException: If start_time is not before end_time
        """
        if start_time >= end_time:
            raise InvalidIntervalException()

        try:
            rows = await self.overlap_query(start_time, end_time, exclude_id)
        except Exception as e:
            logger.warning(
                "conflict_check_failed",
                error=str(e),
                start_time=start_time.isoformat(),
                end_time=end_time.isoformat(),
            )
            return ConflictCheckResult(outcome=ConflictOutcome.INDETERMINATE)

        # Inactive rows never conflict, whatever the query returned
        conflicts = [
            row
            for row in rows
            if row.status not in INACTIVE_STATUSES and (exclude_id is None or row.id != exclude_id)
        ]
        result = classify_conflicts(conflicts)

        logger.debug(
            "conflict_check_completed",
            outcome=result.outcome.value,
            conflict_count=len(result.conflicts),
        )
        return result
