"""Notification endpoints."""

from uuid import UUID

from fastapi import APIRouter, status

from mawaid.dependencies import CurrentUserId, Notifications
from mawaid.schemas.notifications import NotificationRecord, PushTokenUpdate

router = APIRouter(prefix="/notifications")


@router.get(
    "/",
    response_model=list[NotificationRecord],
    status_code=status.HTTP_200_OK,
    summary="List own notifications",
)
async def list_notifications(
    current_user_id: CurrentUserId,
    service: Notifications,
) -> list[NotificationRecord]:
    """Notifications of the authenticated user, newest first."""
    return await service.list_notifications(current_user_id)


@router.patch(
    "/{notification_id}/read",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Mark notification as read",
)
async def mark_notification_read(
    notification_id: UUID,
    current_user_id: CurrentUserId,
    service: Notifications,
) -> None:
    await service.mark_as_read(notification_id, current_user_id)


@router.put(
    "/push-token",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Store or clear push token",
)
async def update_push_token(
    data: PushTokenUpdate,
    current_user_id: CurrentUserId,
    service: Notifications,
) -> None:
    """
    Store the caller's push token.

    The value is either a Web Push subscription serialized as JSON or a
    platform push token. ``null`` clears it.
    """
    await service.update_push_token(current_user_id, data.push_token)
