"""Project ownership checks gating every job operation."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from mvstudio.db.models.project import ProjectRow
from mvstudio.errors.exceptions import NotAuthorizedError
from mvstudio.repositories.project_repo import ProjectRepository

logger = logging.getLogger(__name__)


async def assert_ownership(session: AsyncSession, user_id: str, project_id: str) -> ProjectRow:
    """Return the project if ``user_id`` owns it.

    A missing project and someone else's project raise the same error, so the
    caller cannot probe for project ids it does not own.
    """
    project = await ProjectRepository(session).get_owned(project_id, user_id)
    if project is None:
        logger.info("Ownership check failed: user=%s project=%s", user_id, project_id)
        raise NotAuthorizedError(f"Not authorized for project '{project_id}'")
    return project
