"""Shared repository plumbing."""

from sqlalchemy.ext.asyncio import AsyncSession


class BaseRepository:
    """Repository bound to one session; callers decide when to commit."""

    def __init__(self, db: AsyncSession):
        """Initialize repository with database session."""
        self.db = db

    async def commit(self) -> None:
        """Commit the unit of work."""
        await self.db.commit()
