"""Notification service: records domain events for their recipients."""

from collections.abc import Iterable
from uuid import UUID

import structlog

from mawaid.core.exceptions import NotFoundException
from mawaid.repositories.notifications import NotificationRepository
from mawaid.repositories.profiles import ProfileRepository
from mawaid.schemas.appointments import AppointmentRecord
from mawaid.schemas.notifications import NotificationRecord, NotificationType
from mawaid.schemas.profiles import UserRole
from mawaid.services.push_service import parse_push_token, validate_subscription

logger = structlog.get_logger(__name__)

MESSAGES: dict[NotificationType, tuple[str, str]] = {
    NotificationType.NEW_APPOINTMENT: (
        "New appointment request",
        "{title} on {when} is waiting for review",
    ),
    NotificationType.MINISTRY_AUTO_CONFIRMED: (
        "Ministry meeting confirmed",
        "{title} on {when} was booked and confirmed automatically",
    ),
    NotificationType.APPOINTMENT_CONFIRMED: (
        "Appointment confirmed",
        "{title} on {when} has been confirmed",
    ),
    NotificationType.APPOINTMENT_REJECTED: (
        "Appointment rejected",
        "{title} on {when} has been rejected",
    ),
    NotificationType.ALTERNATIVE_SUGGESTED: (
        "Alternative time suggested",
        "A different time was suggested for {title}",
    ),
    NotificationType.SUGGESTION_ACCEPTED: (
        "Suggestion accepted",
        "{title} is confirmed for {when}",
    ),
    NotificationType.SUGGESTION_REJECTED: (
        "Suggestion rejected",
        "The suggested time for {title} was declined",
    ),
    NotificationType.APPOINTMENT_CANCELLED: (
        "Appointment cancelled",
        "{title} on {when} has been cancelled",
    ),
}


def render_message(
    notification_type: NotificationType,
    appointment: AppointmentRecord,
) -> tuple[str, str]:
    """Title and body for a domain event."""
    title, body = MESSAGES[notification_type]
    when = appointment.start_time.strftime("%Y-%m-%d %H:%M")
    return title, body.format(title=appointment.title, when=when)


class NotificationService:
    """Service for creating and reading notifications."""

    def __init__(self, notifications: NotificationRepository, profiles: ProfileRepository):
        """Initialize service with its repositories."""
        self.notifications = notifications
        self.profiles = profiles

    async def notify(
        self,
        recipient_ids: Iterable[UUID],
        notification_type: NotificationType,
        appointment: AppointmentRecord,
    ) -> list[NotificationRecord]:
        """
        Record a domain event for each recipient.

        The rows join the caller's transaction; inserting them is what triggers
        push delivery and the change feed.

        Args:
            recipient_ids: Profiles to notify (duplicates are collapsed)
            notification_type: Event kind
            appointment: Appointment the event is about

        Returns:
            Inserted notifications
        """
        title, body = render_message(notification_type, appointment)
        rows = [
            {
                "recipient_id": recipient_id,
                "type": notification_type.value,
                "title": title,
                "body": body,
                "appointment_id": appointment.id,
            }
            for recipient_id in dict.fromkeys(recipient_ids)
        ]
        created = await self.notifications.insert_many(rows)

        logger.info(
            "notifications_created",
            type=notification_type.value,
            appointment_id=str(appointment.id),
            recipients=len(created),
        )
        return created

    async def notify_managers(
        self,
        notification_type: NotificationType,
        appointment: AppointmentRecord,
    ) -> list[NotificationRecord]:
        """Record a domain event for every manager."""
        manager_ids = await self.profiles.list_ids_by_role(UserRole.MANAGER)
        if not manager_ids:
            logger.warning("no_managers_to_notify", type=notification_type.value)
        return await self.notify(manager_ids, notification_type, appointment)

    async def list_notifications(self, user_id: UUID) -> list[NotificationRecord]:
        """Notifications of a user, newest first."""
        return await self.notifications.list_for_recipient(user_id)

    async def mark_as_read(self, notification_id: UUID, user_id: UUID) -> None:
        """
        Mark one of the user's notifications as read.

        Raises:
            NotFoundException: If the notification does not belong to the user
        """
        if not await self.notifications.mark_read(notification_id, user_id):
            raise NotFoundException("Notification not found")
        await self.notifications.commit()

    async def update_push_token(self, user_id: UUID, push_token: str | None) -> None:
        """
        Store or clear the user's push token.

        A JSON value must be a complete Web Push subscription; anything else is
        stored as a platform token.

        Raises:
            InvalidPushSubscriptionException: If a JSON value is malformed
            NotFoundException: If the user has no profile
        """
        if push_token is not None:
            push_token = push_token.strip() or None
        if push_token is not None:
            token = parse_push_token(push_token)
            if isinstance(token, dict):
                validate_subscription(token)

        if not await self.profiles.set_push_token(user_id, push_token):
            raise NotFoundException("Profile not found")
        await self.profiles.commit()
        logger.info("push_token_updated", user_id=str(user_id), cleared=push_token is None)
