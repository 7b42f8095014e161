"""Platform connection repository."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from mvstudio.db.models.connection import PlatformConnectionRow
from mvstudio.repositories.base import BaseRepository


class PlatformConnectionRepository(BaseRepository[PlatformConnectionRow]):
    def __init__(self, session: AsyncSession):
        super().__init__(session, PlatformConnectionRow)

    async def get_for_user(self, user_id: str, platform: str) -> PlatformConnectionRow | None:
        stmt = select(PlatformConnectionRow).where(
            PlatformConnectionRow.user_id == user_id,
            PlatformConnectionRow.platform == platform,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_for_user(self, user_id: str) -> list[PlatformConnectionRow]:
        return await self.list_by_field("user_id", user_id)
