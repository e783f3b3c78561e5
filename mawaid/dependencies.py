"""FastAPI dependencies."""

import secrets
from typing import Annotated
from uuid import UUID

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from mawaid.config import settings
from mawaid.core.security import read_profile_id
from mawaid.database import get_db
from mawaid.repositories.appointments import AppointmentRepository
from mawaid.repositories.notifications import NotificationRepository
from mawaid.repositories.profiles import ProfileRepository
from mawaid.services.appointment_service import AppointmentService
from mawaid.services.notification_service import NotificationService
from mawaid.services.push_service import PushService

bearer = HTTPBearer()


async def get_current_user_id(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(bearer)],
) -> UUID:
    """
    Resolve the caller's profile id from the bearer token.

    Raises:
        HTTPException: 401 when the token is expired, tampered with or has no usable ``sub``
    """
    profile_id = read_profile_id(credentials.credentials)
    if profile_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return profile_id


async def verify_webhook_secret(
    x_webhook_secret: Annotated[str | None, Header()] = None,
) -> None:
    """Reject webhook calls that do not carry the shared secret."""
    if x_webhook_secret is None or not secrets.compare_digest(
        x_webhook_secret, settings.push_webhook_secret
    ):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid webhook secret",
        )


def get_notification_service(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> NotificationService:
    return NotificationService(NotificationRepository(db), ProfileRepository(db))


def get_appointment_service(
    db: Annotated[AsyncSession, Depends(get_db)],
    notifications: Annotated[NotificationService, Depends(get_notification_service)],
) -> AppointmentService:
    return AppointmentService(AppointmentRepository(db), ProfileRepository(db), notifications)


def get_push_service(db: Annotated[AsyncSession, Depends(get_db)]) -> PushService:
    return PushService(ProfileRepository(db))


# Type aliases for dependency injection
CurrentUserId = Annotated[UUID, Depends(get_current_user_id)]
Appointments = Annotated[AppointmentService, Depends(get_appointment_service)]
Notifications = Annotated[NotificationService, Depends(get_notification_service)]
Push = Annotated[PushService, Depends(get_push_service)]
