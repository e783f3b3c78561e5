"""Realtime session wiring the change feed to a user's projections."""

from types import TracebackType
from uuid import UUID

import structlog

from mawaid.realtime.appointment_state import AppointmentStateReconciler
from mawaid.realtime.change_feed import ChangeFeed, Subscription
from mawaid.realtime.notification_state import NotificationProjection
from mawaid.schemas.events import ChangeEvent

logger = structlog.get_logger(__name__)


class RealtimeSession:
    """
    Subscriptions of one authenticated user.

    ``start`` registers the handlers and resyncs both projections; ``stop``
    removes exactly the handlers it registered.
    """

    def __init__(
        self,
        feed: ChangeFeed,
        appointments: AppointmentStateReconciler,
        notifications: NotificationProjection,
        user_id: UUID,
    ):
        self.feed = feed
        self.appointments = appointments
        self.notifications = notifications
        self.user_id = user_id
        self._subscriptions: list[Subscription] = []

    @property
    def is_active(self) -> bool:
        return bool(self._subscriptions)

    def _is_own_notification(self, event: ChangeEvent) -> bool:
        return str(event.payload.get("recipient_id")) == str(self.user_id)

    async def start(self) -> None:
        """Subscribe and resync. Calling it on a started session does nothing."""
        if self.is_active:
            return
        self._subscriptions = [
            self.feed.on("appointments", self.appointments.apply_change_event),
            self.feed.on("appointment_suggestions", self.appointments.apply_change_event),
            self.feed.on(
                "notifications",
                self.notifications.apply_change_event,
                event="INSERT",
                predicate=self._is_own_notification,
            ),
        ]
        try:
            await self.appointments.fetch_all()
            await self.notifications.fetch_notifications()
        except Exception:
            self.stop()
            raise
        logger.info("realtime_session_started", user_id=str(self.user_id))

    def stop(self) -> None:
        """Remove this session's handlers from the feed."""
        for subscription in self._subscriptions:
            self.feed.remove(subscription)
        self._subscriptions = []
        logger.info("realtime_session_stopped", user_id=str(self.user_id))

    async def __aenter__(self) -> "RealtimeSession":
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.stop()
