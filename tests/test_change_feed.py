"""Tests for the change feed and realtime session."""

import json
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest

from mawaid.realtime.appointment_state import AppointmentStateReconciler
from mawaid.realtime.change_feed import ChangeFeed, PostgresChangeFeed
from mawaid.realtime.notification_state import NotificationProjection
from mawaid.realtime.session import RealtimeSession
from mawaid.schemas.appointments import AppointmentStatus
from mawaid.schemas.notifications import NotificationRecord, NotificationType
from tests.conftest import FakeStore, at


def message(event_type: str, table: str, row: dict) -> dict:
    return {
        "eventType": event_type,
        "table": table,
        "new": None if event_type == "DELETE" else row,
        "old": row if event_type == "DELETE" else None,
    }


@pytest.mark.asyncio
async def test_dispatch_filters_by_table_event_and_predicate() -> None:
    feed = ChangeFeed()
    seen = []
    feed.on("appointments", lambda e: seen.append(("any", e.kind.value)))
    feed.on("appointments", lambda e: seen.append(("insert", e.kind.value)), event="INSERT")
    feed.on(
        "notifications",
        lambda e: seen.append(("mine", e.record_id)),
        predicate=lambda e: e.payload.get("recipient_id") == "me",
    )

    await feed.dispatch(message("UPDATE", "appointments", {"id": "a1"}))
    await feed.dispatch(message("INSERT", "appointments", {"id": "a2"}))
    await feed.dispatch(message("INSERT", "notifications", {"id": "n1", "recipient_id": "you"}))
    await feed.dispatch(message("INSERT", "notifications", {"id": "n2", "recipient_id": "me"}))

    assert seen == [
        ("any", "UPDATE"),
        ("any", "INSERT"),
        ("insert", "INSERT"),
        ("mine", "n2"),
    ]


@pytest.mark.asyncio
async def test_failing_handler_does_not_stop_the_others() -> None:
    feed = ChangeFeed()
    seen = []

    def broken(event):
        raise RuntimeError("boom")

    async def recorder(event):
        seen.append(event.record_id)

    feed.on("appointments", broken)
    feed.on("appointments", recorder)

    delivered = await feed.dispatch(message("INSERT", "appointments", {"id": "a1"}))

    assert delivered == 1
    assert seen == ["a1"]


@pytest.mark.asyncio
async def test_malformed_messages_are_ignored() -> None:
    feed = ChangeFeed()
    handler = MagicMock()
    feed.on("appointments", handler)

    assert await feed.dispatch({"eventType": "INSERT", "table": "appointments", "new": None}) == 0
    assert await feed.dispatch({"eventType": "TRUNCATE", "table": "appointments"}) == 0
    handler.assert_not_called()


def test_remove_subscription() -> None:
    feed = ChangeFeed()
    subscription = feed.on("appointments", MagicMock())

    assert feed.handler_count == 1
    assert feed.remove(subscription) is True
    assert feed.remove(subscription) is False
    assert feed.handler_count == 0


@pytest.mark.asyncio
async def test_session_applies_feed_events_and_leaves_no_handlers(
    store: FakeStore,
    manager,
    appointment_repository,
    notification_repository,
) -> None:
    existing = store.add_appointment(at(9), at(10))
    feed = ChangeFeed()
    appointments = AppointmentStateReconciler(appointment_repository)
    notifications = NotificationProjection(notification_repository, manager.id)

    async with RealtimeSession(feed, appointments, notifications, manager.id) as session:
        assert session.is_active
        assert feed.handler_count == 3
        assert [a.id for a in appointments.appointments] == [existing.id]

        updated = existing.model_copy(
            update={"status": AppointmentStatus.CANCELLED, "updated_at": store.now()}
        )
        await feed.dispatch(message("UPDATE", "appointments", updated.model_dump(mode="json")))

        mine = NotificationRecord(
            id=uuid4(),
            recipient_id=manager.id,
            type=NotificationType.APPOINTMENT_CANCELLED,
            title="Appointment cancelled",
            body="Existing has been cancelled",
            created_at=store.now(),
        )
        row = mine.model_dump(mode="json")
        await feed.dispatch(message("INSERT", "notifications", row))
        await feed.dispatch(message("INSERT", "notifications", row))
        other = {**row, "id": str(existing.id), "recipient_id": str(existing.created_by)}
        await feed.dispatch(message("INSERT", "notifications", other))

    assert feed.handler_count == 0
    assert appointments.get(existing.id).status is AppointmentStatus.CANCELLED
    assert notifications.unread_count == 1


@pytest.mark.asyncio
async def test_session_start_failure_removes_handlers(
    store: FakeStore, manager, appointment_repository
) -> None:
    feed = ChangeFeed()
    notifications = MagicMock(spec=NotificationProjection)
    notifications.fetch_notifications = AsyncMock(side_effect=ConnectionError("down"))
    session = RealtimeSession(
        feed, AppointmentStateReconciler(appointment_repository), notifications, manager.id
    )

    with pytest.raises(ConnectionError):
        await session.start()

    assert feed.handler_count == 0


@pytest.mark.asyncio
@patch("mawaid.realtime.change_feed.asyncpg.connect", new_callable=AsyncMock)
async def test_postgres_feed_listens_and_cleans_up(mock_connect: AsyncMock) -> None:
    connection = MagicMock()
    connection.add_listener = AsyncMock()
    connection.remove_listener = AsyncMock()
    connection.close = AsyncMock()
    connection.is_closed.return_value = False
    mock_connect.return_value = connection

    feed = PostgresChangeFeed("postgresql://localhost/test", "table_changes")
    seen = []
    feed.on("appointments", lambda e: seen.append(e.record_id))

    await feed.connect()
    connection.add_listener.assert_awaited_once_with("table_changes", feed._on_notify)

    payload = json.dumps(message("INSERT", "appointments", {"id": "a1"}))
    feed._on_notify(connection, 1, "table_changes", payload)
    feed._on_notify(connection, 1, "table_changes", "not json")
    await feed._queue.join()
    assert seen == ["a1"]

    await feed.close()
    connection.remove_listener.assert_awaited_once_with("table_changes", feed._on_notify)
    connection.close.assert_awaited_once()
    assert feed.handler_count == 0


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "raw",
    [[], "not an object", 7, {"eventType": "INSERT", "table": ["appointments"]}],
)
async def test_dispatch_ignores_messages_that_are_not_feed_objects(raw) -> None:
    feed = ChangeFeed()
    handler = MagicMock()
    feed.on("appointments", handler)

    assert await feed.dispatch(raw) == 0
    handler.assert_not_called()


@pytest.mark.asyncio
@patch("mawaid.realtime.change_feed.asyncpg.connect", new_callable=AsyncMock)
async def test_postgres_feed_survives_bad_messages(mock_connect: AsyncMock) -> None:
    connection = MagicMock()
    connection.add_listener = AsyncMock()
    connection.remove_listener = AsyncMock()
    connection.close = AsyncMock()
    connection.is_closed.return_value = False
    mock_connect.return_value = connection

    feed = PostgresChangeFeed("postgresql://localhost/test", "table_changes")
    seen = []
    feed.on("appointments", lambda e: seen.append(e.record_id))
    await feed.connect()

    feed._on_notify(connection, 1, "table_changes", "[]")
    with patch.object(feed, "dispatch", AsyncMock(side_effect=RuntimeError("boom"))):
        feed._queue.put_nowait(message("INSERT", "appointments", {"id": "a0"}))
        await feed._queue.join()
    feed._on_notify(
        connection, 1, "table_changes", json.dumps(message("INSERT", "appointments", {"id": "a1"}))
    )
    await feed._queue.join()

    assert seen == ["a1"]
    assert not feed._worker.done()
    await feed.close()
