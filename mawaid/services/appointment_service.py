"""Appointment service for the booking and review workflow."""

from datetime import UTC, datetime
from typing import Any
from uuid import UUID

import structlog

from mawaid.core.exceptions import (
    BadRequestException,
    ConflictWarningException,
    ForbiddenException,
    InvalidIntervalException,
    MinistryConflictException,
    NotFoundException,
    ServiceUnavailableException,
)
from mawaid.repositories.appointments import AppointmentRepository
from mawaid.repositories.profiles import ProfileRepository
from mawaid.schemas.appointments import (
    AppointmentCreate,
    AppointmentFilters,
    AppointmentRecord,
    AppointmentReview,
    AppointmentStatus,
    AppointmentType,
    AppointmentUpdate,
    ReviewDecision,
    SuggestionCreate,
    SuggestionRecord,
)
from mawaid.schemas.conflicts import ConflictCheckRequest, ConflictCheckResult, ConflictOutcome
from mawaid.schemas.notifications import NotificationType
from mawaid.schemas.profiles import ProfileRecord, UserRole
from mawaid.services.conflict_service import ConflictEvaluator
from mawaid.services.notification_service import NotificationService

logger = structlog.get_logger(__name__)

EDITABLE_STATUSES = (AppointmentStatus.PENDING, AppointmentStatus.SUGGESTED)
CANCELLABLE_STATUSES = (
    AppointmentStatus.PENDING,
    AppointmentStatus.SUGGESTED,
    AppointmentStatus.CONFIRMED,
)


class AppointmentService:
    """Service for managing appointments and their suggestions."""

    def __init__(
        self,
        appointments: AppointmentRepository,
        profiles: ProfileRepository,
        notifications: NotificationService,
    ):
        """Initialize service with repositories and the notification service."""
        self.appointments = appointments
        self.profiles = profiles
        self.notifications = notifications
        self.evaluator = ConflictEvaluator(appointments.find_overlapping)

    async def _get_profile(self, user_id: UUID) -> ProfileRecord:
        profile = await self.profiles.get(user_id)
        if profile is None:
            raise ForbiddenException("No profile for this user")
        return profile

    async def _require_role(self, user_id: UUID, role: UserRole) -> ProfileRecord:
        profile = await self._get_profile(user_id)
        if profile.role != role:
            raise ForbiddenException(f"Only a {role.value} can do this")
        return profile

    async def _ensure_bookable(
        self,
        start_time: datetime,
        end_time: datetime,
        exclude_id: UUID | None,
        acknowledge_conflicts: bool,
    ) -> ConflictCheckResult:
        """
        Take the schedule lock and evaluate the interval.

        Raises:
            MinistryConflictException: On a hard block
            ConflictWarningException: On an unacknowledged soft warning
            ServiceUnavailableException: If the overlap query failed
        """
        await self.appointments.lock_schedule()
        result = await self.evaluator.evaluate_conflicts(start_time, end_time, exclude_id)

        if result.outcome is ConflictOutcome.INDETERMINATE:
            raise ServiceUnavailableException("Could not check for conflicts, please retry")
        if result.outcome is ConflictOutcome.BLOCK:
            raise MinistryConflictException(result.conflicts_payload())
        if result.outcome is ConflictOutcome.WARNING and not acknowledge_conflicts:
            raise ConflictWarningException(result.conflicts_payload())
        return result

    async def check_conflicts(self, request: ConflictCheckRequest) -> ConflictCheckResult:
        """Evaluate a candidate interval without booking it."""
        return await self.evaluator.evaluate_conflicts(
            request.start_time,
            request.end_time,
            request.exclude_id,
        )

    async def get_appointment(self, appointment_id: UUID) -> AppointmentRecord:
        """
        Get appointment by ID.

        Raises:
            NotFoundException: If appointment not found
        """
        appointment = await self.appointments.get(appointment_id)
        if appointment is None:
            raise NotFoundException("Appointment not found")
        return appointment

    async def list_appointments(self, filters: AppointmentFilters) -> list[AppointmentRecord]:
        """List appointments ordered by start time."""
        return await self.appointments.list_appointments(filters)

    async def list_suggestions(self, appointment_id: UUID) -> list[SuggestionRecord]:
        """Active suggestions of an appointment, most recent first."""
        await self.get_appointment(appointment_id)
        return await self.appointments.list_active_suggestions(appointment_id)

    async def create_appointment(
        self,
        user_id: UUID,
        data: AppointmentCreate,
    ) -> AppointmentRecord:
        """
        Book a new appointment.

        A ministry meeting with no overlap at all is confirmed straight away;
        everything else waits for a manager's review.

        Args:
            user_id: Coordinator creating the appointment
            data: Appointment creation data

        Returns:
            Created appointment
        """
        await self._require_role(user_id, UserRole.COORDINATOR)
        result = await self._ensure_bookable(
            data.start_time,
            data.end_time,
            None,
            data.acknowledge_conflicts,
        )

        auto_confirm = (
            data.type == AppointmentType.MINISTRY and result.outcome is ConflictOutcome.NONE
        )
        status = AppointmentStatus.CONFIRMED if auto_confirm else AppointmentStatus.PENDING

        appointment = await self.appointments.insert(
            {
                "title": data.title,
                "type": data.type.value,
                "status": status.value,
                "start_time": data.start_time,
                "end_time": data.end_time,
                "location": data.location,
                "notes": data.notes,
                "created_by": user_id,
            }
        )
        await self.notifications.notify_managers(
            NotificationType.MINISTRY_AUTO_CONFIRMED
            if auto_confirm
            else NotificationType.NEW_APPOINTMENT,
            appointment,
        )
        await self.appointments.commit()

        logger.info(
            "appointment_created",
            appointment_id=str(appointment.id),
            status=appointment.status.value,
            conflicts=len(result.conflicts),
        )
        return appointment

    async def update_appointment(
        self,
        appointment_id: UUID,
        user_id: UUID,
        data: AppointmentUpdate,
    ) -> AppointmentRecord:
        """
        Edit an appointment that is still awaiting a decision.

        A changed interval is re-checked for conflicts, excluding the
        appointment itself.

        Raises:
            NotFoundException: If appointment not found
            ForbiddenException: If the user did not create it
            BadRequestException: If it is no longer editable
        """
        appointment = await self.get_appointment(appointment_id)
        if appointment.created_by != user_id:
            raise ForbiddenException("Access denied to this appointment")
        if appointment.status not in EDITABLE_STATUSES:
            raise BadRequestException("Only pending or suggested appointments can be edited")

        update_values: dict[str, Any] = {
            field: value
            for field, value in data.model_dump(
                exclude_unset=True,
                exclude={"acknowledge_conflicts"},
            ).items()
            if value is not None
        }
        if not update_values:
            return appointment

        start_time = update_values.get("start_time", appointment.start_time)
        end_time = update_values.get("end_time", appointment.end_time)
        if start_time >= end_time:
            raise InvalidIntervalException()

        if (start_time, end_time) != (appointment.start_time, appointment.end_time):
            await self._ensure_bookable(
                start_time,
                end_time,
                appointment.id,
                data.acknowledge_conflicts,
            )

        updated = await self.appointments.update(appointment_id, update_values)
        await self.appointments.commit()
        return updated

    async def cancel_appointment(self, appointment_id: UUID, user_id: UUID) -> AppointmentRecord:
        """
        Cancel an appointment. Cancellation is terminal.

        Coordinators may cancel their own appointments, managers any.
        """
        profile = await self._get_profile(user_id)
        appointment = await self.get_appointment(appointment_id)
        if profile.role == UserRole.COORDINATOR and appointment.created_by != user_id:
            raise ForbiddenException("Access denied to this appointment")
        if appointment.status == AppointmentStatus.CANCELLED:
            raise BadRequestException("Appointment is already cancelled")
        if appointment.status not in CANCELLABLE_STATUSES:
            raise BadRequestException("Rejected appointments cannot be cancelled")

        await self.appointments.deactivate_suggestions(appointment_id)
        updated = await self.appointments.update(
            appointment_id,
            {"status": AppointmentStatus.CANCELLED.value},
        )

        if user_id == appointment.created_by:
            await self.notifications.notify_managers(
                NotificationType.APPOINTMENT_CANCELLED, updated
            )
        else:
            await self.notifications.notify(
                [appointment.created_by], NotificationType.APPOINTMENT_CANCELLED, updated
            )
        await self.appointments.commit()

        logger.info("appointment_cancelled", appointment_id=str(appointment_id))
        return updated

    async def review_appointment(
        self,
        appointment_id: UUID,
        user_id: UUID,
        review: AppointmentReview,
    ) -> AppointmentRecord:
        """
        Confirm or reject a pending appointment.

        A slot overlapping a confirmed ministry meeting can never be confirmed.
        """
        await self._require_role(user_id, UserRole.MANAGER)
        appointment = await self.get_appointment(appointment_id)
        if appointment.status != AppointmentStatus.PENDING:
            raise BadRequestException("Only pending appointments can be reviewed")

        if review.decision is ReviewDecision.CONFIRM:
            await self._ensure_bookable(
                appointment.start_time,
                appointment.end_time,
                appointment.id,
                acknowledge_conflicts=True,
            )
            status = AppointmentStatus.CONFIRMED
            notification_type = NotificationType.APPOINTMENT_CONFIRMED
        else:
            status = AppointmentStatus.REJECTED
            notification_type = NotificationType.APPOINTMENT_REJECTED

        updated = await self.appointments.update(
            appointment_id,
            {
                "status": status.value,
                "reviewed_by": user_id,
                "reviewed_at": datetime.now(UTC),
            },
        )
        await self.notifications.notify([appointment.created_by], notification_type, updated)
        await self.appointments.commit()

        logger.info(
            "appointment_reviewed",
            appointment_id=str(appointment_id),
            decision=review.decision.value,
        )
        return updated

    async def suggest_alternative(
        self,
        appointment_id: UUID,
        user_id: UUID,
        data: SuggestionCreate,
    ) -> SuggestionRecord:
        """
        Propose a different time for an appointment.

        Any earlier active suggestion is deactivated first, so at most one
        suggestion per appointment is active.
        """
        await self._require_role(user_id, UserRole.MANAGER)
        appointment = await self.get_appointment(appointment_id)
        if appointment.status not in EDITABLE_STATUSES:
            raise BadRequestException("Alternatives can only be suggested for open appointments")

        await self._ensure_bookable(
            data.suggested_start,
            data.suggested_end,
            appointment.id,
            acknowledge_conflicts=True,
        )

        await self.appointments.deactivate_suggestions(appointment_id)
        suggestion = await self.appointments.insert_suggestion(
            {
                "appointment_id": appointment_id,
                "suggested_by": user_id,
                "suggested_start": data.suggested_start,
                "suggested_end": data.suggested_end,
                "message": data.message,
            }
        )
        updated = await self.appointments.update(
            appointment_id,
            {"status": AppointmentStatus.SUGGESTED.value},
        )
        await self.notifications.notify(
            [appointment.created_by], NotificationType.ALTERNATIVE_SUGGESTED, updated
        )
        await self.appointments.commit()

        logger.info(
            "alternative_suggested",
            appointment_id=str(appointment_id),
            suggestion_id=str(suggestion.id),
        )
        return suggestion

    async def _resolve_suggestion(
        self,
        suggestion_id: UUID,
        user_id: UUID,
    ) -> tuple[SuggestionRecord, AppointmentRecord]:
        suggestion = await self.appointments.get_suggestion(suggestion_id)
        if suggestion is None:
            raise NotFoundException("Suggestion not found")
        appointment = await self.get_appointment(suggestion.appointment_id)
        if appointment.created_by != user_id:
            raise ForbiddenException("Access denied to this appointment")
        if not suggestion.is_active or appointment.status != AppointmentStatus.SUGGESTED:
            raise BadRequestException("Suggestion is no longer active")
        return suggestion, appointment

    async def accept_suggestion(self, suggestion_id: UUID, user_id: UUID) -> AppointmentRecord:
        """
        Accept a suggested time: the appointment moves there and is confirmed.

        The suggested slot is re-checked; a ministry meeting booked since the
        suggestion was made still blocks it.
        """
        suggestion, appointment = await self._resolve_suggestion(suggestion_id, user_id)
        await self._ensure_bookable(
            suggestion.suggested_start,
            suggestion.suggested_end,
            appointment.id,
            acknowledge_conflicts=True,
        )

        await self.appointments.deactivate_suggestions(appointment.id)

        updated = await self.appointments.update(
            appointment.id,
            {
                "start_time": suggestion.suggested_start,
                "end_time": suggestion.suggested_end,
                "status": AppointmentStatus.CONFIRMED.value,
                "reviewed_by": suggestion.suggested_by,
                "reviewed_at": datetime.now(UTC),
            },
        )
        await self.notifications.notify(
            [suggestion.suggested_by], NotificationType.SUGGESTION_ACCEPTED, updated
        )
        await self.appointments.commit()

        logger.info("suggestion_accepted", suggestion_id=str(suggestion_id))
        return updated

    async def reject_suggestion(self, suggestion_id: UUID, user_id: UUID) -> AppointmentRecord:
        """Decline a suggested time; the appointment goes back to review."""
        suggestion, appointment = await self._resolve_suggestion(suggestion_id, user_id)

        await self.appointments.deactivate_suggestions(appointment.id)
        updated = await self.appointments.update(
            appointment.id,
            {"status": AppointmentStatus.PENDING.value},
        )
        await self.notifications.notify(
            [suggestion.suggested_by], NotificationType.SUGGESTION_REJECTED, updated
        )
        await self.appointments.commit()

        logger.info("suggestion_rejected", suggestion_id=str(suggestion_id))
        return updated
