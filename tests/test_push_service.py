"""Tests for push delivery."""

import json
from unittest.mock import MagicMock, patch
from uuid import uuid4

import pytest
from firebase_admin import messaging
from pywebpush import WebPushException

from mawaid.core.exceptions import InvalidPushSubscriptionException, PushDeliveryException
from mawaid.schemas.notifications import NotificationRecord, NotificationType
from mawaid.schemas.profiles import UserRole
from mawaid.services.push_service import PushService, parse_push_token
from tests.conftest import FakeStore

SUBSCRIPTION = {
    "endpoint": "https://push.example.com/send/abc123",
    "keys": {
        "p256dh": "BNcRdreALRFXTkOOUHK1EtK2wtaz5Ry4YfYCA_0QTpQtUbVlUls",
        "auth": "tBHItJI5svbpez7KI4CCXg",
    },
}


def notification_for(store: FakeStore, recipient_id) -> NotificationRecord:
    return NotificationRecord(
        id=uuid4(),
        recipient_id=recipient_id,
        type=NotificationType.APPOINTMENT_CONFIRMED,
        title="Appointment confirmed",
        body="Board meeting on 2026-11-02 10:00 has been confirmed",
        appointment_id=uuid4(),
        created_at=store.now(),
    )


def gone(status_code: int) -> WebPushException:
    return WebPushException("Push failed", response=MagicMock(status_code=status_code))


@pytest.mark.asyncio
async def test_no_token_is_skipped(store: FakeStore, push_service: PushService) -> None:
    profile = store.add_profile(UserRole.COORDINATOR)

    result = await push_service.deliver(notification_for(store, profile.id))

    assert result.skipped is True
    assert result.success is None


@pytest.mark.asyncio
async def test_subscription_without_endpoint_is_skipped(
    store: FakeStore, push_service: PushService
) -> None:
    profile = store.add_profile(UserRole.COORDINATOR, push_token=json.dumps({"keys": {}}))

    result = await push_service.deliver(notification_for(store, profile.id))

    assert result.skipped is True
    assert result.reason == "no endpoint"


@pytest.mark.asyncio
async def test_malformed_json_token_is_rejected(
    store: FakeStore, push_service: PushService
) -> None:
    profile = store.add_profile(UserRole.COORDINATOR, push_token='{"endpoint": ')

    with pytest.raises(InvalidPushSubscriptionException) as exc_info:
        await push_service.deliver(notification_for(store, profile.id))
    assert exc_info.value.status_code == 400
    assert exc_info.value.message == "Invalid push token"


@pytest.mark.asyncio
@patch("mawaid.services.push_service.webpush")
async def test_web_push_payload(
    mock_webpush: MagicMock, store: FakeStore, push_service: PushService
) -> None:
    profile = store.add_profile(UserRole.COORDINATOR, push_token=json.dumps(SUBSCRIPTION))
    record = notification_for(store, profile.id)

    result = await push_service.deliver(record)

    assert result.success is True
    kwargs = mock_webpush.call_args.kwargs
    assert kwargs["subscription_info"] == SUBSCRIPTION
    assert kwargs["ttl"] == 86400
    assert kwargs["vapid_claims"]["sub"].startswith("mailto:")
    assert json.loads(kwargs["data"]) == {
        "title": record.title,
        "body": record.body,
        "data": {"appointmentId": str(record.appointment_id)},
    }


@pytest.mark.asyncio
@pytest.mark.parametrize("status_code", [404, 410])
@patch("mawaid.services.push_service.webpush")
async def test_gone_subscription_clears_token(
    mock_webpush: MagicMock, status_code: int, store: FakeStore, push_service: PushService
) -> None:
    mock_webpush.side_effect = gone(status_code)
    profile = store.add_profile(UserRole.COORDINATOR, push_token=json.dumps(SUBSCRIPTION))

    result = await push_service.deliver(notification_for(store, profile.id))

    assert result.expired is True
    assert store.profiles[profile.id].push_token is None
    assert store.commits == 1


@pytest.mark.asyncio
@patch("mawaid.services.push_service.webpush")
async def test_other_web_push_failure_is_an_error(
    mock_webpush: MagicMock, store: FakeStore, push_service: PushService
) -> None:
    mock_webpush.side_effect = gone(500)
    profile = store.add_profile(UserRole.COORDINATOR, push_token=json.dumps(SUBSCRIPTION))

    with pytest.raises(PushDeliveryException):
        await push_service.deliver(notification_for(store, profile.id))
    assert store.profiles[profile.id].push_token is not None


@pytest.mark.asyncio
@patch("mawaid.services.push_service.messaging.send")
async def test_platform_token_goes_through_fcm(
    mock_send: MagicMock, store: FakeStore, push_service: PushService
) -> None:
    mock_send.return_value = "projects/test/messages/1"
    profile = store.add_profile(UserRole.MANAGER, push_token="fcm-device-token")
    record = notification_for(store, profile.id)

    result = await push_service.deliver(record)

    assert result.success is True
    message = mock_send.call_args.args[0]
    assert message.token == "fcm-device-token"
    assert message.data == {"appointmentId": str(record.appointment_id)}
    assert message.notification.title == record.title


@pytest.mark.asyncio
@patch("mawaid.services.push_service.messaging.send")
async def test_unregistered_platform_token_is_cleared(
    mock_send: MagicMock, store: FakeStore, push_service: PushService
) -> None:
    mock_send.side_effect = messaging.UnregisteredError("Requested entity was not found.")
    profile = store.add_profile(UserRole.MANAGER, push_token="fcm-device-token")

    result = await push_service.deliver(notification_for(store, profile.id))

    assert result.expired is True
    assert store.profiles[profile.id].push_token is None


def test_parse_push_token() -> None:
    assert parse_push_token("  fcm-token ") == "fcm-token"
    assert parse_push_token(json.dumps(SUBSCRIPTION)) == SUBSCRIPTION
    with pytest.raises(InvalidPushSubscriptionException):
        parse_push_token("{not json")
