"""Notifications table using SQLAlchemy Core."""

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

notifications = Table(
    "notifications",
    metadata,
    Column(
        "id",
        UUID(as_uuid=True),
        primary_key=True,
        server_default=text("gen_random_uuid()"),
    ),
    Column(
        "recipient_id",
        UUID(as_uuid=True),
        ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("type", Text, nullable=False),
    Column("title", Text, nullable=False),
    Column("body", Text, nullable=False),
    Column(
        "appointment_id",
        UUID(as_uuid=True),
        ForeignKey("appointments.id", ondelete="SET NULL"),
        nullable=True,
    ),
    Column("is_read", Boolean, nullable=False, server_default=text("false")),
    Column("created_at", TIMESTAMP(timezone=True), nullable=False, server_default=text("NOW()")),
    CheckConstraint(
        "type IN ('new_appointment', 'appointment_confirmed', 'appointment_rejected', "
        "'alternative_suggested', 'suggestion_accepted', 'suggestion_rejected', "
        "'appointment_cancelled', 'ministry_auto_confirmed')",
        name="notifications_type_check",
    ),
    Index(
        "idx_notifications_recipient_created",
        "recipient_id",
        "created_at",
        postgresql_ops={"created_at": "DESC"},
    ),
)
