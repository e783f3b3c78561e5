"""Profiles table model using SQLAlchemy Core."""

from sqlalchemy import CheckConstraint, Column, Table, Text, text
from sqlalchemy.dialects.postgresql import TIMESTAMP, UUID

from mawaid.models.base import metadata

profiles = Table(
    "profiles",
    metadata,
    # Same id as the auth provider's user
    Column("id", UUID(as_uuid=True), primary_key=True),
    Column("role", Text, nullable=False),
    Column("full_name", Text, nullable=False),
    # Web Push subscription JSON or a platform push token
    Column("push_token", Text, nullable=True),
    Column("created_at", TIMESTAMP(timezone=True), nullable=False, server_default=text("NOW()")),
    Column("updated_at", TIMESTAMP(timezone=True), nullable=False, server_default=text("NOW()")),
    CheckConstraint("role IN ('coordinator', 'manager')", name="profiles_role_check"),
)
