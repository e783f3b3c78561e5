"""Notification repository - database operations for notifications."""

from typing import Any
from uuid import UUID

from sqlalchemy import insert, select, update

from mawaid.models.notifications import notifications
from mawaid.repositories.base import BaseRepository
from mawaid.schemas.notifications import NotificationRecord


class NotificationRepository(BaseRepository):
    """Repository for notification database operations."""

    async def insert_many(self, rows: list[dict[str, Any]]) -> list[NotificationRecord]:
        """Insert notification rows and return them as stored."""
        if not rows:
            return []
        result = await self.db.execute(insert(notifications).values(rows).returning(notifications))
        return [NotificationRecord.model_validate(dict(row._mapping)) for row in result]

    async def list_for_recipient(self, recipient_id: UUID) -> list[NotificationRecord]:
        """Notifications of a recipient, newest first."""
        result = await self.db.execute(
            select(notifications)
            .where(notifications.c.recipient_id == recipient_id)
            .order_by(notifications.c.created_at.desc())
        )
        return [NotificationRecord.model_validate(dict(row._mapping)) for row in result]

    async def mark_read(self, notification_id: UUID, recipient_id: UUID) -> bool:
        """
        Mark a notification as read.

        Args:
            notification_id: Notification ID
            recipient_id: Owner, for access control

        Returns:
            True if updated, False if not found
        """
        result = await self.db.execute(
            update(notifications)
            .where(
                notifications.c.id == notification_id,
                notifications.c.recipient_id == recipient_id,
            )
            .values(is_read=True)
        )
        return result.rowcount > 0
