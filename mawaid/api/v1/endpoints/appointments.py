"""Appointment endpoints."""

from uuid import UUID

from fastapi import APIRouter, Query, status
from pydantic import AwareDatetime

from mawaid.dependencies import Appointments, CurrentUserId
from mawaid.schemas.appointments import (
    AppointmentCreate,
    AppointmentFilters,
    AppointmentRecord,
    AppointmentReview,
    AppointmentStatus,
    AppointmentUpdate,
    SuggestionCreate,
    SuggestionRecord,
)
from mawaid.schemas.conflicts import ConflictCheckRequest, ConflictCheckResult

router = APIRouter()


@router.post(
    "/conflicts",
    response_model=ConflictCheckResult,
    status_code=status.HTTP_200_OK,
    summary="Check a time slot for conflicts",
)
async def check_conflicts(
    data: ConflictCheckRequest,
    current_user_id: CurrentUserId,
    service: Appointments,
) -> ConflictCheckResult:
    """
    Classify a candidate interval against existing appointments.

    An ``indeterminate`` outcome means the check could not run; clients must
    not submit and should retry.
    """
    return await service.check_conflicts(data)


@router.post(
    "/",
    response_model=AppointmentRecord,
    status_code=status.HTTP_201_CREATED,
    summary="Create new appointment",
)
async def create_appointment(
    data: AppointmentCreate,
    current_user_id: CurrentUserId,
    service: Appointments,
) -> AppointmentRecord:
    """
    Book a new appointment.

    Args:
        data: Appointment creation data
        current_user_id: Authenticated coordinator
        service: Appointment service

    Returns:
        Created appointment
    """
    return await service.create_appointment(current_user_id, data)


@router.get(
    "/",
    response_model=list[AppointmentRecord],
    status_code=status.HTTP_200_OK,
    summary="List appointments",
)
async def list_appointments(
    current_user_id: CurrentUserId,
    service: Appointments,
    status_filter: AppointmentStatus | None = Query(None, alias="status"),
    from_date: AwareDatetime | None = Query(None),
    to_date: AwareDatetime | None = Query(None),
) -> list[AppointmentRecord]:
    """List appointments ordered by start time."""
    filters = AppointmentFilters(status=status_filter, from_date=from_date, to_date=to_date)
    return await service.list_appointments(filters)


@router.get(
    "/{appointment_id}",
    response_model=AppointmentRecord,
    status_code=status.HTTP_200_OK,
    summary="Get appointment details",
)
async def get_appointment(
    appointment_id: UUID,
    current_user_id: CurrentUserId,
    service: Appointments,
) -> AppointmentRecord:
    return await service.get_appointment(appointment_id)


@router.put(
    "/{appointment_id}",
    response_model=AppointmentRecord,
    status_code=status.HTTP_200_OK,
    summary="Update appointment",
)
async def update_appointment(
    appointment_id: UUID,
    data: AppointmentUpdate,
    current_user_id: CurrentUserId,
    service: Appointments,
) -> AppointmentRecord:
    """Edit a pending or suggested appointment."""
    return await service.update_appointment(appointment_id, current_user_id, data)


@router.post(
    "/{appointment_id}/cancel",
    response_model=AppointmentRecord,
    status_code=status.HTTP_200_OK,
    summary="Cancel appointment",
)
async def cancel_appointment(
    appointment_id: UUID,
    current_user_id: CurrentUserId,
    service: Appointments,
) -> AppointmentRecord:
    return await service.cancel_appointment(appointment_id, current_user_id)


@router.post(
    "/{appointment_id}/review",
    response_model=AppointmentRecord,
    status_code=status.HTTP_200_OK,
    summary="Confirm or reject appointment",
)
async def review_appointment(
    appointment_id: UUID,
    data: AppointmentReview,
    current_user_id: CurrentUserId,
    service: Appointments,
) -> AppointmentRecord:
    """Manager decision on a pending appointment."""
    return await service.review_appointment(appointment_id, current_user_id, data)


@router.get(
    "/{appointment_id}/suggestions",
    response_model=list[SuggestionRecord],
    status_code=status.HTTP_200_OK,
    summary="List active suggestions",
)
async def list_suggestions(
    appointment_id: UUID,
    current_user_id: CurrentUserId,
    service: Appointments,
) -> list[SuggestionRecord]:
    return await service.list_suggestions(appointment_id)


@router.post(
    "/{appointment_id}/suggestions",
    response_model=SuggestionRecord,
    status_code=status.HTTP_201_CREATED,
    summary="Suggest an alternative time",
)
async def suggest_alternative(
    appointment_id: UUID,
    data: SuggestionCreate,
    current_user_id: CurrentUserId,
    service: Appointments,
) -> SuggestionRecord:
    """
    Propose a different time. Replaces any earlier active suggestion.

    Args:
        appointment_id: Appointment ID
        data: Suggested interval and message
        current_user_id: Authenticated manager
        service: Appointment service

    Returns:
        Created suggestion
    """
    return await service.suggest_alternative(appointment_id, current_user_id, data)
