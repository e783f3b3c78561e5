"""Appointment repository - database operations for appointments and suggestions."""

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import and_, insert, select, text, update

from mawaid.models.appointments import appointment_suggestions, appointments
from mawaid.repositories.base import BaseRepository
from mawaid.schemas.appointments import (
    INACTIVE_STATUSES,
    AppointmentFilters,
    AppointmentRecord,
    SuggestionRecord,
)
from mawaid.schemas.conflicts import ConflictQueryResult

# Key for pg_advisory_xact_lock serializing bookings
SCHEDULE_LOCK_KEY = 0x6D617761


class AppointmentRepository(BaseRepository):
    """Repository for appointment database operations."""

    async def lock_schedule(self) -> None:
        """Serialize overlap check and write until the transaction ends."""
        await self.db.execute(
            text("SELECT pg_advisory_xact_lock(:key)"),
            {"key": SCHEDULE_LOCK_KEY},
        )

    async def find_overlapping(
        self,
        start_time: datetime,
        end_time: datetime,
        exclude_id: UUID | None = None,
    ) -> list[ConflictQueryResult]:
        """
        Find appointments overlapping [start_time, end_time).

        Cancelled and rejected appointments never overlap anything.

        Args:
            start_time: Candidate start
            end_time: Candidate end
            exclude_id: Appointment to leave out (the one being edited)

        Returns:
            Overlapping appointments ordered by start time
        """
        conditions = [
            appointments.c.start_time < end_time,
            appointments.c.end_time > start_time,
            appointments.c.status.not_in([s.value for s in INACTIVE_STATUSES]),
        ]
        if exclude_id is not None:
            conditions.append(appointments.c.id != exclude_id)

        stmt = (
            select(
                appointments.c.id,
                appointments.c.title,
                appointments.c.type,
                appointments.c.status,
                appointments.c.start_time,
                appointments.c.end_time,
            )
            .where(and_(*conditions))
            .order_by(appointments.c.start_time, appointments.c.id)
        )
        result = await self.db.execute(stmt)
        return [ConflictQueryResult.model_validate(dict(row._mapping)) for row in result]

    async def get(self, appointment_id: UUID) -> AppointmentRecord | None:
        """Get an appointment by ID."""
        result = await self.db.execute(
            select(appointments).where(appointments.c.id == appointment_id)
        )
        row = result.fetchone()
        return AppointmentRecord.model_validate(dict(row._mapping)) if row else None

    async def list_appointments(
        self,
        filters: AppointmentFilters | None = None,
    ) -> list[AppointmentRecord]:
        """List appointments ordered by start time."""
        conditions = []
        if filters is not None:
            if filters.status:
                conditions.append(appointments.c.status == filters.status.value)
            if filters.from_date:
                conditions.append(appointments.c.end_time > filters.from_date)
            if filters.to_date:
                conditions.append(appointments.c.start_time < filters.to_date)

        stmt = select(appointments).order_by(appointments.c.start_time, appointments.c.id)
        if conditions:
            stmt = stmt.where(and_(*conditions))

        result = await self.db.execute(stmt)
        return [AppointmentRecord.model_validate(dict(row._mapping)) for row in result]

    async def insert(self, values: dict[str, Any]) -> AppointmentRecord:
        """Insert an appointment and return the stored row."""
        result = await self.db.execute(
            insert(appointments).values(**values).returning(appointments)
        )
        return AppointmentRecord.model_validate(dict(result.fetchone()._mapping))

    async def update(self, appointment_id: UUID, values: dict[str, Any]) -> AppointmentRecord:
        """
        Update an appointment and return the stored row.

        ``updated_at`` is stamped by the ``trigger_appointments_touch_updated_at``
        trigger, never by the caller.
        """
        result = await self.db.execute(
            update(appointments)
            .where(appointments.c.id == appointment_id)
            .values(**values)
            .returning(appointments)
        )
        return AppointmentRecord.model_validate(dict(result.fetchone()._mapping))

    async def get_suggestion(self, suggestion_id: UUID) -> SuggestionRecord | None:
        """Get a suggestion by ID."""
        result = await self.db.execute(
            select(appointment_suggestions).where(appointment_suggestions.c.id == suggestion_id)
        )
        row = result.fetchone()
        return SuggestionRecord.model_validate(dict(row._mapping)) if row else None

    async def list_active_suggestions(self, appointment_id: UUID) -> list[SuggestionRecord]:
        """Active suggestions for an appointment, most recent first."""
        result = await self.db.execute(
            select(appointment_suggestions)
            .where(
                appointment_suggestions.c.appointment_id == appointment_id,
                appointment_suggestions.c.is_active.is_(True),
            )
            .order_by(appointment_suggestions.c.created_at.desc())
        )
        return [SuggestionRecord.model_validate(dict(row._mapping)) for row in result]

    async def insert_suggestion(self, values: dict[str, Any]) -> SuggestionRecord:
        """Insert a suggestion and return the stored row."""
        result = await self.db.execute(
            insert(appointment_suggestions).values(**values).returning(appointment_suggestions)
        )
        return SuggestionRecord.model_validate(dict(result.fetchone()._mapping))

    async def deactivate_suggestions(self, appointment_id: UUID) -> int:
        """Deactivate every active suggestion of an appointment."""
        result = await self.db.execute(
            update(appointment_suggestions)
            .where(
                appointment_suggestions.c.appointment_id == appointment_id,
                appointment_suggestions.c.is_active.is_(True),
            )
            .values(is_active=False)
        )
        return result.rowcount
