"""Suggestion endpoints."""

from uuid import UUID

from fastapi import APIRouter, status

from mawaid.dependencies import Appointments, CurrentUserId
from mawaid.schemas.appointments import AppointmentRecord

router = APIRouter(prefix="/suggestions")


@router.post(
    "/{suggestion_id}/accept",
    response_model=AppointmentRecord,
    status_code=status.HTTP_200_OK,
    summary="Accept suggested time",
)
async def accept_suggestion(
    suggestion_id: UUID,
    current_user_id: CurrentUserId,
    service: Appointments,
) -> AppointmentRecord:
    """Move the appointment to the suggested time and confirm it."""
    return await service.accept_suggestion(suggestion_id, current_user_id)


@router.post(
    "/{suggestion_id}/reject",
    response_model=AppointmentRecord,
    status_code=status.HTTP_200_OK,
    summary="Reject suggested time",
)
async def reject_suggestion(
    suggestion_id: UUID,
    current_user_id: CurrentUserId,
    service: Appointments,
) -> AppointmentRecord:
    """Decline the suggested time; the appointment returns to pending."""
    return await service.reject_suggestion(suggestion_id, current_user_id)
