from collections.abc import AsyncGenerator
from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import UUID, uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from mawaid.core.security import issue_token
from mawaid.dependencies import (
    get_appointment_service,
    get_notification_service,
    get_push_service,
)
from mawaid.main import app
from mawaid.schemas.appointments import (
    INACTIVE_STATUSES,
    AppointmentFilters,
    AppointmentRecord,
    AppointmentStatus,
    AppointmentType,
    SuggestionRecord,
)
from mawaid.schemas.conflicts import ConflictQueryResult
from mawaid.schemas.notifications import NotificationRecord
from mawaid.schemas.profiles import ProfileRecord, UserRole
from mawaid.services.appointment_service import AppointmentService
from mawaid.services.notification_service import NotificationService
from mawaid.services.push_service import PushService

DAY = datetime(2026, 11, 2, tzinfo=UTC)


def at(hour: int, minute: int = 0) -> datetime:
    """A time on the test day."""
    return DAY + timedelta(hours=hour, minutes=minute)


class FakeStore:
    """In-memory rows shared by the fake repositories."""

    def __init__(self):
        self.profiles: dict[UUID, ProfileRecord] = {}
        self.appointments: dict[UUID, AppointmentRecord] = {}
        self.suggestions: dict[UUID, SuggestionRecord] = {}
        self.notifications: dict[UUID, NotificationRecord] = {}
        self.commits = 0
        self.locks = 0
        self.fail_overlap = False
        self.fail_mark_read = False
        self._clock = DAY - timedelta(days=30)

    def now(self) -> datetime:
        """Strictly increasing timestamps, like rows written one after another."""
        self._clock += timedelta(seconds=1)
        return self._clock

    def add_profile(self, role: UserRole, push_token: str | None = None) -> ProfileRecord:
        now = self.now()
        profile = ProfileRecord(
            id=uuid4(),
            role=role,
            full_name=f"Test {role.value}",
            push_token=push_token,
            created_at=now,
            updated_at=now,
        )
        self.profiles[profile.id] = profile
        return profile

    def add_appointment(
        self,
        start: datetime,
        end: datetime,
        type: AppointmentType = AppointmentType.PATIENT,
        status: AppointmentStatus = AppointmentStatus.CONFIRMED,
        created_by: UUID | None = None,
        title: str = "Existing",
    ) -> AppointmentRecord:
        now = self.now()
        record = AppointmentRecord(
            id=uuid4(),
            title=title,
            type=type,
            status=status,
            start_time=start,
            end_time=end,
            created_by=created_by or uuid4(),
            created_at=now,
            updated_at=now,
        )
        self.appointments[record.id] = record
        return record


class FakeAppointmentRepository:
    def __init__(self, store: FakeStore):
        self.store = store

    async def lock_schedule(self) -> None:
        self.store.locks += 1

    async def find_overlapping(
        self,
        start_time: datetime,
        end_time: datetime,
        exclude_id: UUID | None = None,
    ) -> list[ConflictQueryResult]:
        if self.store.fail_overlap:
            raise ConnectionError("store unavailable")
        rows = [
            a
            for a in self.store.appointments.values()
            if a.start_time < end_time
            and a.end_time > start_time
            and a.status not in INACTIVE_STATUSES
            and a.id != exclude_id
        ]
        rows.sort(key=lambda a: (a.start_time, str(a.id)))
        return [ConflictQueryResult.model_validate(a.model_dump()) for a in rows]

    async def get(self, appointment_id: UUID) -> AppointmentRecord | None:
        return self.store.appointments.get(appointment_id)

    async def list_appointments(
        self,
        filters: AppointmentFilters | None = None,
    ) -> list[AppointmentRecord]:
        rows = list(self.store.appointments.values())
        if filters is not None:
            if filters.status:
                rows = [a for a in rows if a.status == filters.status]
            if filters.from_date:
                rows = [a for a in rows if a.end_time > filters.from_date]
            if filters.to_date:
                rows = [a for a in rows if a.start_time < filters.to_date]
        return sorted(rows, key=lambda a: (a.start_time, str(a.id)))

    async def insert(self, values: dict[str, Any]) -> AppointmentRecord:
        now = self.store.now()
        record = AppointmentRecord.model_validate(
            {"id": uuid4(), "created_at": now, "updated_at": now, **values}
        )
        self.store.appointments[record.id] = record
        return record

    async def update(self, appointment_id: UUID, values: dict[str, Any]) -> AppointmentRecord:
        current = self.store.appointments[appointment_id]
        # Same stamp as trigger_appointments_touch_updated_at
        updated_at = max(self.store.now(), current.updated_at + timedelta(microseconds=1))
        record = AppointmentRecord.model_validate(
            {**current.model_dump(), **values, "updated_at": updated_at}
        )
        self.store.appointments[appointment_id] = record
        return record

    async def get_suggestion(self, suggestion_id: UUID) -> SuggestionRecord | None:
        return self.store.suggestions.get(suggestion_id)

    async def list_active_suggestions(self, appointment_id: UUID) -> list[SuggestionRecord]:
        rows = [
            s
            for s in self.store.suggestions.values()
            if s.appointment_id == appointment_id and s.is_active
        ]
        return sorted(rows, key=lambda s: s.created_at, reverse=True)

    async def insert_suggestion(self, values: dict[str, Any]) -> SuggestionRecord:
        active = await self.list_active_suggestions(values["appointment_id"])
        # Mirrors uq_appointment_suggestions_active
        assert not active, "a second active suggestion violates the unique index"
        record = SuggestionRecord.model_validate(
            {"id": uuid4(), "is_active": True, "created_at": self.store.now(), **values}
        )
        self.store.suggestions[record.id] = record
        return record

    async def deactivate_suggestions(self, appointment_id: UUID) -> int:
        count = 0
        for s in list(self.store.suggestions.values()):
            if s.appointment_id == appointment_id and s.is_active:
                self.store.suggestions[s.id] = s.model_copy(update={"is_active": False})
                count += 1
        return count

    async def commit(self) -> None:
        self.store.commits += 1


class FakeProfileRepository:
    def __init__(self, store: FakeStore):
        self.store = store

    async def get(self, profile_id: UUID) -> ProfileRecord | None:
        return self.store.profiles.get(profile_id)

    async def list_ids_by_role(self, role: UserRole) -> list[UUID]:
        return [p.id for p in self.store.profiles.values() if p.role == role]

    async def get_push_token(self, profile_id: UUID) -> str | None:
        profile = self.store.profiles.get(profile_id)
        return profile.push_token if profile else None

    async def set_push_token(self, profile_id: UUID, push_token: str | None) -> bool:
        profile = self.store.profiles.get(profile_id)
        if profile is None:
            return False
        self.store.profiles[profile_id] = profile.model_copy(update={"push_token": push_token})
        return True

    async def commit(self) -> None:
        self.store.commits += 1


class FakeNotificationRepository:
    def __init__(self, store: FakeStore):
        self.store = store

    async def insert_many(self, rows: list[dict[str, Any]]) -> list[NotificationRecord]:
        created = []
        for row in rows:
            record = NotificationRecord.model_validate(
                {"id": uuid4(), "is_read": False, "created_at": self.store.now(), **row}
            )
            self.store.notifications[record.id] = record
            created.append(record)
        return created

    async def list_for_recipient(self, recipient_id: UUID) -> list[NotificationRecord]:
        rows = [n for n in self.store.notifications.values() if n.recipient_id == recipient_id]
        return sorted(rows, key=lambda n: n.created_at, reverse=True)

    async def mark_read(self, notification_id: UUID, recipient_id: UUID) -> bool:
        if self.store.fail_mark_read:
            raise ConnectionError("store unavailable")
        record = self.store.notifications.get(notification_id)
        if record is None or record.recipient_id != recipient_id:
            return False
        self.store.notifications[notification_id] = record.model_copy(update={"is_read": True})
        return True

    async def commit(self) -> None:
        self.store.commits += 1


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def coordinator(store: FakeStore) -> ProfileRecord:
    return store.add_profile(UserRole.COORDINATOR)


@pytest.fixture
def manager(store: FakeStore) -> ProfileRecord:
    return store.add_profile(UserRole.MANAGER)


@pytest.fixture
def appointment_repository(store: FakeStore) -> FakeAppointmentRepository:
    return FakeAppointmentRepository(store)


@pytest.fixture
def profile_repository(store: FakeStore) -> FakeProfileRepository:
    return FakeProfileRepository(store)


@pytest.fixture
def notification_repository(store: FakeStore) -> FakeNotificationRepository:
    return FakeNotificationRepository(store)


@pytest.fixture
def notification_service(
    notification_repository: FakeNotificationRepository,
    profile_repository: FakeProfileRepository,
) -> NotificationService:
    return NotificationService(notification_repository, profile_repository)


@pytest.fixture
def appointment_service(
    appointment_repository: FakeAppointmentRepository,
    profile_repository: FakeProfileRepository,
    notification_service: NotificationService,
) -> AppointmentService:
    return AppointmentService(appointment_repository, profile_repository, notification_service)


@pytest.fixture
def push_service(profile_repository: FakeProfileRepository) -> PushService:
    return PushService(profile_repository)


@pytest_asyncio.fixture
async def client(
    appointment_service: AppointmentService,
    notification_service: NotificationService,
    push_service: PushService,
) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client backed by the in-memory store."""
    app.dependency_overrides[get_appointment_service] = lambda: appointment_service
    app.dependency_overrides[get_notification_service] = lambda: notification_service
    app.dependency_overrides[get_push_service] = lambda: push_service

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


def headers_for(profile: ProfileRecord) -> dict:
    token = issue_token(profile.id, ttl=timedelta(minutes=30))
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def coordinator_headers(coordinator: ProfileRecord) -> dict:
    """Authentication headers for the coordinator."""
    return headers_for(coordinator)


@pytest.fixture
def manager_headers(manager: ProfileRecord) -> dict:
    """Authentication headers for the manager."""
    return headers_for(manager)
