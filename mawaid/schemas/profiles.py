"""Profile schemas."""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel


class UserRole(str, Enum):
    """Role of a profile."""

    COORDINATOR = "coordinator"
    MANAGER = "manager"


class ProfileRecord(BaseModel):
    """A profile row."""

    id: UUID
    role: UserRole
    full_name: str
    push_token: str | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
