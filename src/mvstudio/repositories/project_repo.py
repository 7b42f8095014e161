"""Project repository."""

from sqlalchemy import exists, select
from sqlalchemy.ext.asyncio import AsyncSession

from mvstudio.db.models.job import JobRow
from mvstudio.db.models.project import ProjectRow
from mvstudio.repositories.base import BaseRepository


class ProjectRepository(BaseRepository[ProjectRow]):
    def __init__(self, session: AsyncSession):
        super().__init__(session, ProjectRow)

    async def get(self, project_id: str) -> ProjectRow | None:
        return await self.get_by_id("project_id", project_id)

    async def get_owned(self, project_id: str, owner_id: str) -> ProjectRow | None:
        stmt = select(ProjectRow).where(
            ProjectRow.project_id == project_id,
            ProjectRow.owner_id == owner_id,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_for_owner(self, owner_id: str) -> list[ProjectRow]:
        stmt = (
            select(ProjectRow)
            .where(ProjectRow.owner_id == owner_id)
            .order_by(ProjectRow.created_at.desc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def has_jobs(self, project_id: str) -> bool:
        stmt = select(exists().where(JobRow.project_id == project_id))
        result = await self.session.execute(stmt)
        return bool(result.scalar())
