"""Conflict check schemas."""

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import AwareDatetime, BaseModel, Field, field_validator

from mawaid.schemas.appointments import AppointmentStatus, AppointmentType


class ConflictOutcome(str, Enum):
    """Classification of a proposed interval."""

    NONE = "none"
    WARNING = "warning"
    BLOCK = "block"
    # The overlap query failed; nothing is known about the slot
    INDETERMINATE = "indeterminate"


class ConflictQueryResult(BaseModel):
    """An existing appointment overlapping a candidate interval."""

    id: UUID
    title: str
    type: AppointmentType
    status: AppointmentStatus
    start_time: datetime
    end_time: datetime

    model_config = {"from_attributes": True}


class ConflictCheckRequest(BaseModel):
    """Schema for a conflict check."""

    start_time: AwareDatetime
    end_time: AwareDatetime
    exclude_id: UUID | None = None

    @field_validator("end_time")
    @classmethod
    def validate_end_time(cls, v: datetime, info: Any) -> datetime:
        """Validate end time is after start time."""
        start = info.data.get("start_time")
        if start is not None and v <= start:
            raise ValueError("End time must be after start time")
        return v


class ConflictCheckResult(BaseModel):
    """Outcome of evaluating a candidate interval."""

    outcome: ConflictOutcome
    has_ministry_conflict: bool = False
    has_warning_conflict: bool = False
    conflicts: list[ConflictQueryResult] = Field(default_factory=list)

    @property
    def allows_booking(self) -> bool:
        """Whether a booking may go ahead (possibly after acknowledgment)."""
        return self.outcome in (ConflictOutcome.NONE, ConflictOutcome.WARNING)

    @property
    def requires_acknowledgment(self) -> bool:
        return self.outcome is ConflictOutcome.WARNING

    def conflicts_payload(self) -> list[dict[str, Any]]:
        """Conflicts as JSON-ready dicts for error details."""
        return [c.model_dump(mode="json") for c in self.conflicts]
