"""Profile repository - database operations for profiles and push tokens."""

from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy import select, update

from mawaid.models.profiles import profiles
from mawaid.repositories.base import BaseRepository
from mawaid.schemas.profiles import ProfileRecord, UserRole


class ProfileRepository(BaseRepository):
    """Repository for profile database operations."""

    async def get(self, profile_id: UUID) -> ProfileRecord | None:
        """Get a profile by ID."""
        result = await self.db.execute(select(profiles).where(profiles.c.id == profile_id))
        row = result.fetchone()
        return ProfileRecord.model_validate(dict(row._mapping)) if row else None

    async def list_ids_by_role(self, role: UserRole) -> list[UUID]:
        """IDs of every profile holding a role."""
        result = await self.db.execute(select(profiles.c.id).where(profiles.c.role == role.value))
        return [row.id for row in result]

    async def get_push_token(self, profile_id: UUID) -> str | None:
        """Stored push token of a profile, if any."""
        result = await self.db.execute(
            select(profiles.c.push_token).where(profiles.c.id == profile_id)
        )
        return result.scalar_one_or_none()

    async def set_push_token(self, profile_id: UUID, push_token: str | None) -> bool:
        """Store or clear a profile's push token."""
        result = await self.db.execute(
            update(profiles)
            .where(profiles.c.id == profile_id)
            .values(push_token=push_token, updated_at=datetime.now(UTC))
        )
        return result.rowcount > 0
