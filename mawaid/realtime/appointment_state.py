"""Local projection of appointments and suggestions kept in step with the change feed."""

from collections import Counter
from datetime import datetime
from uuid import UUID

import structlog

from mawaid.realtime.reconcile import RecordSet
from mawaid.repositories.appointments import AppointmentRepository
from mawaid.schemas.appointments import (
    INACTIVE_STATUSES,
    AppointmentFilters,
    AppointmentRecord,
    AppointmentStatus,
    SuggestionRecord,
)
from mawaid.schemas.events import ChangeEvent, ChangeKind, EntityKind

logger = structlog.get_logger(__name__)


def appointment_version(record: AppointmentRecord) -> datetime:
    return record.updated_at


def suggestion_version(record: SuggestionRecord) -> tuple[datetime, bool]:
    # Deactivation is one way: an inactive row outranks an active row of the same age
    return record.created_at, not record.is_active


class AppointmentStateReconciler:
    """
    Holds appointments and suggestions as last asserted by the store.

    Remote state always wins except when it is older than what is held. There
    are no optimistic local writes: mutations go through the API and come back
    through the change feed.
    """

    def __init__(self, repository: AppointmentRepository):
        """Initialize reconciler with the repository used for resyncs."""
        self.repository = repository
        self._appointments: RecordSet[AppointmentRecord] = RecordSet(
            sort_key=lambda a: (a.start_time, str(a.id)),
            version=appointment_version,
        )
        self._suggestions: RecordSet[SuggestionRecord] = RecordSet(
            sort_key=lambda s: (s.created_at, str(s.id)),
            version=suggestion_version,
            reverse=True,
        )

    @property
    def appointments(self) -> list[AppointmentRecord]:
        """Appointments ordered by start time."""
        return self._appointments.values()

    @property
    def suggestions(self) -> list[SuggestionRecord]:
        """Suggestions, newest first."""
        return self._suggestions.values()

    def get(self, appointment_id: UUID | str) -> AppointmentRecord | None:
        return self._appointments.get(appointment_id)

    async def fetch_all(self) -> list[AppointmentRecord]:
        """
        Resync every appointment from the store, replacing local state.

        Returns:
            Appointments ordered by start time
        """
        records = await self.repository.list_appointments(AppointmentFilters())
        self._appointments.replace_all(records)
        logger.debug("appointments_resynced", count=len(records))
        return self.appointments

    async def fetch_suggestions(self, appointment_id: UUID) -> list[SuggestionRecord]:
        """
        Resync the active suggestions of one appointment.

        Locally held suggestions of that appointment missing from the result
        are dropped.

        Returns:
            Active suggestions, newest first
        """
        records = await self.repository.list_active_suggestions(appointment_id)
        for held in self._suggestions_of(appointment_id):
            self._suggestions.remove(held.id)
        for record in records:
            self._suggestions.upsert(record)
        self._enforce_single_active(appointment_id)
        return [s for s in self._suggestions_of(appointment_id) if s.is_active]

    def apply_change_event(self, event: ChangeEvent) -> bool:
        """
        Apply a change event idempotently.

        Inserts and updates are upserts by id; deletes remove by id and are a
        no-op when the row is not held.

        Args:
            event: Appointment or suggestion change

        Returns:
            True if local state changed
        """
        if event.entity is EntityKind.APPOINTMENT:
            return self._apply_appointment(event)
        if event.entity is EntityKind.SUGGESTION:
            return self._apply_suggestion(event)
        logger.debug("change_event_skipped", entity=event.entity.value)
        return False

    def _apply_appointment(self, event: ChangeEvent) -> bool:
        if event.kind is ChangeKind.DELETE:
            removed = self._appointments.remove(event.record_id)
            for suggestion in self._suggestions_of(event.record_id):
                self._suggestions.remove(suggestion.id)
            return removed is not None

        record = AppointmentRecord.model_validate(event.payload)
        applied = self._appointments.upsert(record)
        if not applied:
            logger.info(
                "stale_appointment_discarded",
                appointment_id=str(record.id),
                updated_at=record.updated_at.isoformat(),
            )
        return applied

    def _apply_suggestion(self, event: ChangeEvent) -> bool:
        if event.kind is ChangeKind.DELETE:
            return self._suggestions.remove(event.record_id) is not None

        record = SuggestionRecord.model_validate(event.payload)
        if not self._suggestions.upsert(record):
            logger.info("stale_suggestion_discarded", suggestion_id=str(record.id))
            return False
        if record.is_active:
            self._enforce_single_active(record.appointment_id)
        return True

    def _suggestions_of(self, appointment_id: UUID | str) -> list[SuggestionRecord]:
        key = str(appointment_id)
        return [s for s in self._suggestions if str(s.appointment_id) == key]

    def _enforce_single_active(self, appointment_id: UUID | str) -> None:
        """Keep only the newest active suggestion of an appointment active."""
        active = [s for s in self._suggestions_of(appointment_id) if s.is_active]
        for older in active[1:]:
            self._suggestions.upsert(older.model_copy(update={"is_active": False}))

    def active_suggestion(self, appointment_id: UUID | str) -> SuggestionRecord | None:
        """The active suggestion of an appointment, if any."""
        for suggestion in self._suggestions_of(appointment_id):
            if suggestion.is_active:
                return suggestion
        return None

    def count_by_status(self) -> dict[AppointmentStatus, int]:
        """Number of held appointments per status, every status present."""
        counts = Counter(a.status for a in self._appointments)
        return {status: counts.get(status, 0) for status in AppointmentStatus}

    def appointments_between(
        self,
        start: datetime,
        end: datetime,
        include_inactive: bool = False,
    ) -> list[AppointmentRecord]:
        """Held appointments overlapping [start, end), ordered by start time."""
        return [
            a
            for a in self._appointments
            if a.start_time < end
            and a.end_time > start
            and (include_inactive or a.status not in INACTIVE_STATUSES)
        ]
