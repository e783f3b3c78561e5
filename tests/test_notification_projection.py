"""Tests for the notification projection."""

from uuid import UUID, uuid4

import pytest

from mawaid.core.exceptions import NotFoundException
from mawaid.realtime.notification_state import NotificationProjection
from mawaid.schemas.events import ChangeEvent
from mawaid.schemas.notifications import NotificationRecord, NotificationType
from mawaid.schemas.profiles import ProfileRecord
from tests.conftest import FakeNotificationRepository, FakeStore


def make_notification(
    store: FakeStore,
    recipient_id: UUID,
    is_read: bool = False,
    notification_id: UUID | None = None,
) -> NotificationRecord:
    record = NotificationRecord(
        id=notification_id or uuid4(),
        recipient_id=recipient_id,
        type=NotificationType.NEW_APPOINTMENT,
        title="New appointment request",
        body="Board meeting is waiting for review",
        is_read=is_read,
        created_at=store.now(),
    )
    store.notifications[record.id] = record
    return record


def insert_event(record: NotificationRecord) -> ChangeEvent:
    return ChangeEvent.from_feed(
        {
            "eventType": "INSERT",
            "table": "notifications",
            "new": record.model_dump(mode="json"),
            "old": None,
        }
    )


@pytest.fixture
def projection(
    notification_repository: FakeNotificationRepository,
    manager: ProfileRecord,
) -> NotificationProjection:
    return NotificationProjection(notification_repository, manager.id)


@pytest.mark.asyncio
async def test_fetch_counts_unread(store: FakeStore, manager, projection) -> None:
    make_notification(store, manager.id)
    make_notification(store, manager.id, is_read=True)
    newest = make_notification(store, manager.id)
    make_notification(store, uuid4())

    records = await projection.fetch_notifications()

    assert len(records) == 3
    assert records[0].id == newest.id
    assert projection.unread_count == 2


def test_duplicate_insert_is_counted_once(store: FakeStore, manager, projection) -> None:
    """The same insert delivered twice leaves one entry and one unread."""
    record = make_notification(store, manager.id)
    event = insert_event(record)

    assert projection.apply_change_event(event) is True
    assert projection.apply_change_event(event) is False

    assert [n.id for n in projection.notifications] == [record.id]
    assert projection.unread_count == 1


def test_new_notification_is_listed_first(store: FakeStore, manager, projection) -> None:
    older = make_notification(store, manager.id)
    newer = make_notification(store, manager.id)

    projection.handle_new_notification(older)
    projection.handle_new_notification(newer)

    assert [n.id for n in projection.notifications] == [newer.id, older.id]


@pytest.mark.asyncio
async def test_mark_as_read_decrements_by_exactly_one(
    store: FakeStore, manager, projection
) -> None:
    first = make_notification(store, manager.id)
    make_notification(store, manager.id)
    await projection.fetch_notifications()

    await projection.mark_as_read(first.id)
    assert projection.unread_count == 1

    await projection.mark_as_read(first.id)
    assert projection.unread_count == 1
    assert store.notifications[first.id].is_read is True


@pytest.mark.asyncio
async def test_mark_as_read_never_goes_below_zero(store: FakeStore, manager, projection) -> None:
    record = make_notification(store, manager.id, is_read=True)
    await projection.fetch_notifications()

    await projection.mark_as_read(record.id)

    assert projection.unread_count == 0


@pytest.mark.asyncio
async def test_mark_as_read_failure_keeps_local_state(
    store: FakeStore, manager, projection
) -> None:
    record = make_notification(store, manager.id)
    await projection.fetch_notifications()
    store.fail_mark_read = True

    with pytest.raises(ConnectionError):
        await projection.mark_as_read(record.id)

    assert projection.unread_count == 1


@pytest.mark.asyncio
async def test_mark_as_read_of_foreign_notification(store: FakeStore, projection) -> None:
    record = make_notification(store, uuid4())

    with pytest.raises(NotFoundException):
        await projection.mark_as_read(record.id)


def test_unread_update_does_not_undo_read(store: FakeStore, manager, projection) -> None:
    record = make_notification(store, manager.id)
    projection.handle_new_notification(record.model_copy(update={"is_read": True}))

    event = ChangeEvent.from_feed(
        {
            "eventType": "UPDATE",
            "table": "notifications",
            "new": record.model_dump(mode="json"),
            "old": record.model_dump(mode="json"),
        }
    )

    assert projection.apply_change_event(event) is False
    assert projection.unread_count == 0


def test_foreign_and_deleted_notifications(store: FakeStore, manager, projection) -> None:
    foreign = make_notification(store, uuid4())
    own = make_notification(store, manager.id)

    assert projection.apply_change_event(insert_event(foreign)) is False
    projection.apply_change_event(insert_event(own))

    delete = ChangeEvent.from_feed(
        {"eventType": "DELETE", "table": "notifications", "new": None, "old": {"id": str(own.id)}}
    )
    assert projection.apply_change_event(delete) is True
    assert projection.apply_change_event(delete) is False
    assert projection.unread_count == 0
