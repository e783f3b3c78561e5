"""Appointment schemas for request/response validation."""

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import AwareDatetime, BaseModel, Field, field_validator, model_validator


class AppointmentType(str, Enum):
    """Appointment type enumeration."""

    MINISTRY = "ministry"
    PATIENT = "patient"
    EXTERNAL = "external"


class AppointmentStatus(str, Enum):
    """Appointment status enumeration."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"
    SUGGESTED = "suggested"
    CANCELLED = "cancelled"


# Statuses that never take part in an overlap
INACTIVE_STATUSES = (AppointmentStatus.CANCELLED, AppointmentStatus.REJECTED)


class ReviewDecision(str, Enum):
    """Manager review decision."""

    CONFIRM = "confirm"
    REJECT = "reject"


class AppointmentBase(BaseModel):
    """Base appointment schema with common fields."""

    title: str = Field(..., min_length=1, max_length=200)
    type: AppointmentType
    start_time: AwareDatetime
    end_time: AwareDatetime
    location: str | None = Field(None, max_length=300)
    notes: str | None = Field(None, max_length=1000)

    @field_validator("end_time")
    @classmethod
    def validate_end_time(cls, v: datetime, info: Any) -> datetime:
        """Validate end time is after start time."""
        start = info.data.get("start_time")
        if start is not None and v <= start:
            raise ValueError("End time must be after start time")
        return v


class AppointmentCreate(AppointmentBase):
    """Schema for creating a new appointment."""

    acknowledge_conflicts: bool = Field(
        default=False,
        description="Proceed even though the slot overlaps non-blocking appointments",
    )


class AppointmentUpdate(BaseModel):
    """Schema for updating an existing appointment."""

    title: str | None = Field(None, min_length=1, max_length=200)
    start_time: AwareDatetime | None = None
    end_time: AwareDatetime | None = None
    location: str | None = Field(None, max_length=300)
    notes: str | None = Field(None, max_length=1000)
    acknowledge_conflicts: bool = False

    @model_validator(mode="after")
    def validate_interval(self) -> "AppointmentUpdate":
        """Validate end time is after start time when both are given."""
        if self.start_time and self.end_time and self.end_time <= self.start_time:
            raise ValueError("End time must be after start time")
        return self


class AppointmentReview(BaseModel):
    """Schema for a manager's review."""

    decision: ReviewDecision


class AppointmentRecord(BaseModel):
    """An appointment row as stored and as delivered by the change feed."""

    id: UUID
    title: str
    type: AppointmentType
    status: AppointmentStatus
    start_time: datetime
    end_time: datetime
    location: str | None = None
    notes: str | None = None
    created_by: UUID
    reviewed_by: UUID | None = None
    reviewed_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class AppointmentFilters(BaseModel):
    """Schema for appointment filtering."""

    status: AppointmentStatus | None = None
    from_date: AwareDatetime | None = None
    to_date: AwareDatetime | None = None


class SuggestionCreate(BaseModel):
    """Schema for proposing an alternative time."""

    suggested_start: AwareDatetime
    suggested_end: AwareDatetime
    message: str | None = Field(None, max_length=1000)

    @field_validator("suggested_end")
    @classmethod
    def validate_suggested_end(cls, v: datetime, info: Any) -> datetime:
        """Validate suggested end is after suggested start."""
        start = info.data.get("suggested_start")
        if start is not None and v <= start:
            raise ValueError("Suggested end must be after suggested start")
        return v


class SuggestionRecord(BaseModel):
    """An appointment suggestion row."""

    id: UUID
    appointment_id: UUID
    suggested_by: UUID
    suggested_start: datetime
    suggested_end: datetime
    message: str | None = None
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}
