"""Push delivery for newly inserted notifications (Web Push and FCM)."""

import json
from typing import Any

import structlog
from firebase_admin import messaging
from pydantic import ValidationError
from pywebpush import WebPushException, webpush

from mawaid.config import Settings, settings
from mawaid.core.exceptions import InvalidPushSubscriptionException, PushDeliveryException
from mawaid.repositories.profiles import ProfileRepository
from mawaid.schemas.notifications import (
    NotificationRecord,
    PushDeliveryResult,
    PushPayload,
    WebPushSubscription,
)

logger = structlog.get_logger(__name__)

# Push service answers meaning the subscription no longer exists
GONE_STATUS_CODES = frozenset({404, 410})


def parse_push_token(raw: str) -> dict[str, Any] | str:
    """
    Decode a stored push token.

    Args:
        raw: Stored value

    Returns:
        The decoded Web Push subscription object, or the platform token string

    Raises:
        InvalidPushSubscriptionException: If the value is JSON but malformed
    """
    token = raw.strip()
    if not token.startswith("{"):
        return token
    try:
        data = json.loads(token)
    except json.JSONDecodeError:
        raise InvalidPushSubscriptionException() from None
    if not isinstance(data, dict):
        raise InvalidPushSubscriptionException()
    return data


def validate_subscription(data: dict[str, Any]) -> WebPushSubscription:
    """Validate a decoded Web Push subscription."""
    try:
        return WebPushSubscription.model_validate(data)
    except ValidationError:
        raise InvalidPushSubscriptionException() from None


def build_payload(record: NotificationRecord) -> PushPayload:
    """Device payload for a notification."""
    return PushPayload(
        title=record.title,
        body=record.body,
        data={"appointmentId": str(record.appointment_id) if record.appointment_id else None},
    )


class PushService:
    """Deliver a notification to the recipient's stored push subscription."""

    def __init__(self, profiles: ProfileRepository, config: Settings = settings):
        """Initialize service with the profile repository and settings."""
        self.profiles = profiles
        self.config = config

    async def deliver(self, record: NotificationRecord) -> PushDeliveryResult:
        """
        Deliver a notification.

        Args:
            record: The inserted notification row

        Returns:
            ``skipped`` when there is nothing to deliver to, ``expired`` when the
            subscription is gone (the stored token is cleared), ``success``
            otherwise

        Raises:
            InvalidPushSubscriptionException: If the stored token is malformed JSON
            PushDeliveryException: If delivery fails for another reason
        """
        stored = await self.profiles.get_push_token(record.recipient_id)
        if not stored:
            return PushDeliveryResult(skipped=True)

        token = parse_push_token(stored)
        payload = build_payload(record)

        if isinstance(token, dict):
            if not token.get("endpoint"):
                return PushDeliveryResult(skipped=True, reason="no endpoint")
            gone = self._send_web_push(validate_subscription(token), payload)
        else:
            gone = self._send_platform_push(token, payload)

        if gone:
            await self.profiles.set_push_token(record.recipient_id, None)
            await self.profiles.commit()
            logger.info(
                "push_subscription_expired",
                recipient_id=str(record.recipient_id),
                notification_id=str(record.id),
            )
            return PushDeliveryResult(expired=True)

        logger.info(
            "push_notification_sent",
            recipient_id=str(record.recipient_id),
            notification_id=str(record.id),
        )
        return PushDeliveryResult(success=True)

    def _send_web_push(self, subscription: WebPushSubscription, payload: PushPayload) -> bool:
        """Send through the Web Push protocol; returns True when the subscription is gone."""
        try:
            webpush(
                subscription_info=subscription.model_dump(),
                data=payload.model_dump_json(),
                vapid_private_key=self.config.vapid_private_key,
                vapid_claims={"sub": self.config.vapid_subject},
                ttl=self.config.push_ttl_seconds,
            )
        except WebPushException as e:
            status_code = e.response.status_code if e.response is not None else None
            if status_code in GONE_STATUS_CODES:
                return True
            logger.error("web_push_failed", error=str(e), status_code=status_code)
            raise PushDeliveryException(str(e)) from e
        return False

    def _send_platform_push(self, token: str, payload: PushPayload) -> bool:
        """Send through FCM; returns True when the token is no longer registered."""
        message = messaging.Message(
            token=token,
            notification=messaging.Notification(title=payload.title, body=payload.body),
            data={k: v for k, v in payload.data.items() if v is not None},
            android=messaging.AndroidConfig(
                priority="high",
                ttl=self.config.push_ttl_seconds,
            ),
        )
        try:
            messaging.send(message)
        except messaging.UnregisteredError:
            return True
        except Exception as e:
            logger.error("platform_push_failed", error=str(e))
            raise PushDeliveryException(str(e)) from e
        return False
