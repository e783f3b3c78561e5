"""Appointments and suggestions tables using SQLAlchemy Core."""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    ForeignKey,
    Index,
    Table,
    Text,
    text,
)
from sqlalchemy.dialects.postgresql import TIMESTAMP, UUID

from mawaid.models.base import metadata

appointments = Table(
    "appointments",
    metadata,
    Column(
        "id",
        UUID(as_uuid=True),
        primary_key=True,
        server_default=text("gen_random_uuid()"),
    ),
    Column("title", Text, nullable=False),
    Column("type", Text, nullable=False),
    Column("status", Text, nullable=False, server_default="pending"),
    # Half-open interval [start_time, end_time)
    Column("start_time", TIMESTAMP(timezone=True), nullable=False),
    Column("end_time", TIMESTAMP(timezone=True), nullable=False),
    Column("location", Text, nullable=True),
    Column("notes", Text, nullable=True),
    # Ownership / review
    Column(
        "created_by",
        UUID(as_uuid=True),
        ForeignKey("profiles.id", ondelete="RESTRICT"),
        nullable=False,
    ),
    Column(
        "reviewed_by",
        UUID(as_uuid=True),
        ForeignKey("profiles.id", ondelete="SET NULL"),
        nullable=True,
    ),
    Column("reviewed_at", TIMESTAMP(timezone=True), nullable=True),
    # Audit fields
    Column("created_at", TIMESTAMP(timezone=True), nullable=False, server_default=text("NOW()")),
    Column("updated_at", TIMESTAMP(timezone=True), nullable=False, server_default=text("NOW()")),
    CheckConstraint(
        "type IN ('ministry', 'patient', 'external')",
        name="appointments_type_check",
    ),
    CheckConstraint(
        "status IN ('pending', 'confirmed', 'rejected', 'suggested', 'cancelled')",
        name="appointments_status_check",
    ),
    CheckConstraint("start_time < end_time", name="appointments_interval_check"),
    Index("idx_appointments_interval", "start_time", "end_time"),
    Index("idx_appointments_created_by", "created_by"),
)

appointment_suggestions = Table(
    "appointment_suggestions",
    metadata,
    Column(
        "id",
        UUID(as_uuid=True),
        primary_key=True,
        server_default=text("gen_random_uuid()"),
    ),
    Column(
        "appointment_id",
        UUID(as_uuid=True),
        ForeignKey("appointments.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column(
        "suggested_by",
        UUID(as_uuid=True),
        ForeignKey("profiles.id", ondelete="RESTRICT"),
        nullable=False,
    ),
    Column("suggested_start", TIMESTAMP(timezone=True), nullable=False),
    Column("suggested_end", TIMESTAMP(timezone=True), nullable=False),
    Column("message", Text, nullable=True),
    Column("is_active", Boolean, nullable=False, server_default=text("true")),
    Column("created_at", TIMESTAMP(timezone=True), nullable=False, server_default=text("NOW()")),
    CheckConstraint(
        "suggested_start < suggested_end",
        name="appointment_suggestions_interval_check",
    ),
    # At most one active suggestion per appointment
    Index(
        "uq_appointment_suggestions_active",
        "appointment_id",
        unique=True,
        postgresql_where=text("is_active"),
    ),
)
