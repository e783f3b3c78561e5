"""Local projection of one user's notifications and their unread count."""

from uuid import UUID

import structlog

from mawaid.core.exceptions import NotFoundException
from mawaid.realtime.reconcile import RecordSet
from mawaid.repositories.notifications import NotificationRepository
from mawaid.schemas.events import ChangeEvent, ChangeKind, EntityKind
from mawaid.schemas.notifications import NotificationRecord

logger = structlog.get_logger(__name__)


class NotificationProjection:
    """Notifications of a recipient, newest first, deduplicated by id."""

    def __init__(self, repository: NotificationRepository, recipient_id: UUID):
        """Initialize projection for one recipient."""
        self.repository = repository
        self.recipient_id = recipient_id
        # is_read only ever goes from False to True
        self._notifications: RecordSet[NotificationRecord] = RecordSet(
            sort_key=lambda n: (n.created_at, str(n.id)),
            version=lambda n: n.is_read,
            reverse=True,
        )

    @property
    def notifications(self) -> list[NotificationRecord]:
        return self._notifications.values()

    @property
    def unread_count(self) -> int:
        """Number of held notifications not yet read."""
        return sum(1 for n in self._notifications if not n.is_read)

    async def fetch_notifications(self) -> list[NotificationRecord]:
        """Resync from the store, replacing local state."""
        records = await self.repository.list_for_recipient(self.recipient_id)
        self._notifications.replace_all(records)
        return self.notifications

    def handle_new_notification(self, record: NotificationRecord) -> bool:
        """
        Take a newly delivered notification.

        A repeated delivery of the same id overwrites the held record and
        leaves the unread count unchanged.

        Returns:
            True if the id was not held before
        """
        is_new = record.id not in self._notifications
        self._notifications.upsert(record)
        if not is_new:
            logger.debug("duplicate_notification_ignored", notification_id=str(record.id))
        return is_new

    async def mark_as_read(self, notification_id: UUID) -> None:
        """
        Mark a notification as read in the store, then locally.

        Raises:
            NotFoundException: If the store has no such notification for the recipient
        """
        if not await self.repository.mark_read(notification_id, self.recipient_id):
            raise NotFoundException("Notification not found")
        await self.repository.commit()

        held = self._notifications.get(notification_id)
        if held is not None and not held.is_read:
            self._notifications.upsert(held.model_copy(update={"is_read": True}))

    def apply_change_event(self, event: ChangeEvent) -> bool:
        """
        Apply a notification change addressed to the recipient.

        Returns:
            True if local state changed
        """
        if event.entity is not EntityKind.NOTIFICATION:
            return False
        if event.kind is ChangeKind.DELETE:
            return self._notifications.remove(event.record_id) is not None

        record = NotificationRecord.model_validate(event.payload)
        if record.recipient_id != self.recipient_id:
            return False
        if event.kind is ChangeKind.INSERT:
            return self.handle_new_notification(record)
        return self._notifications.upsert(record)
