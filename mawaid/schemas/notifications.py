"""Notification and push schemas."""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field


class NotificationType(str, Enum):
    """Domain events that produce a notification."""

    NEW_APPOINTMENT = "new_appointment"
    APPOINTMENT_CONFIRMED = "appointment_confirmed"
    APPOINTMENT_REJECTED = "appointment_rejected"
    ALTERNATIVE_SUGGESTED = "alternative_suggested"
    SUGGESTION_ACCEPTED = "suggestion_accepted"
    SUGGESTION_REJECTED = "suggestion_rejected"
    APPOINTMENT_CANCELLED = "appointment_cancelled"
    MINISTRY_AUTO_CONFIRMED = "ministry_auto_confirmed"


class NotificationRecord(BaseModel):
    """A notification row."""

    id: UUID
    recipient_id: UUID
    type: NotificationType
    title: str
    body: str
    appointment_id: UUID | None = None
    is_read: bool = False
    created_at: datetime

    model_config = {"from_attributes": True}


class PushTokenUpdate(BaseModel):
    """Schema for storing or clearing the caller's push token."""

    push_token: str | None = Field(
        None,
        description="Web Push subscription JSON or a platform push token; null clears it",
    )


class WebPushKeys(BaseModel):
    """Keys of a Web Push subscription."""

    p256dh: str = Field(..., min_length=1)
    auth: str = Field(..., min_length=1)


class WebPushSubscription(BaseModel):
    """A browser push subscription as serialized by PushSubscription.toJSON()."""

    endpoint: str = Field(..., min_length=1)
    keys: WebPushKeys


class PushWebhookRequest(BaseModel):
    """Body posted by the database webhook on notification insert."""

    record: NotificationRecord


class PushPayload(BaseModel):
    """Payload delivered to the device."""

    title: str
    body: str
    data: dict[str, str | None]


class PushDeliveryResult(BaseModel):
    """Outcome reported back to the webhook caller."""

    success: bool | None = None
    skipped: bool | None = None
    expired: bool | None = None
    reason: str | None = None
