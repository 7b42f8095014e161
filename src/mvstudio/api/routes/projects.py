"""Project CRUD API routes."""

import logging

from fastapi import APIRouter, Response

from mvstudio.dependencies import CurrentUser, DBSession
from mvstudio.errors.exceptions import ConflictError, InvalidInputError
from mvstudio.models.enums import ProjectStatus
from mvstudio.models.project import Project, ProjectCreate, ProjectUpdate
from mvstudio.repositories.project_repo import ProjectRepository
from mvstudio.services.access_guard import assert_ownership
from mvstudio.services.id_generator import new_project_id

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Projects"])


def _project_out(row) -> dict:
    return Project.model_validate(row).model_dump(mode="json")


@router.post("/projects", status_code=201)
async def create_project(body: ProjectCreate, user: CurrentUser, db: DBSession) -> dict:
    repo = ProjectRepository(db)
    row = await repo.create(
        project_id=new_project_id(),
        owner_id=user["sub"],
        title=body.title,
        description=body.description,
        status=str(ProjectStatus.DRAFT),
    )
    await db.commit()
    logger.info("Project %s created by %s", row.project_id, user["sub"])
    return _project_out(row)


@router.get("/projects")
async def list_projects(user: CurrentUser, db: DBSession) -> list[dict]:
    rows = await ProjectRepository(db).list_for_owner(user["sub"])
    return [_project_out(r) for r in rows]


@router.get("/projects/{project_id}")
async def get_project(project_id: str, user: CurrentUser, db: DBSession) -> dict:
    row = await assert_ownership(db, user["sub"], project_id)
    return _project_out(row)


@router.patch("/projects/{project_id}")
async def update_project(project_id: str, body: ProjectUpdate, user: CurrentUser, db: DBSession) -> dict:
    row = await assert_ownership(db, user["sub"], project_id)
    changes = body.model_dump(mode="json", exclude_unset=True)
    if "title" in changes and changes["title"] is None:
        raise InvalidInputError("title cannot be cleared")
    if changes:
        await ProjectRepository(db).update(row, **changes)
        await db.commit()
        await db.refresh(row)
    return _project_out(row)


@router.delete("/projects/{project_id}", status_code=204)
async def delete_project(project_id: str, user: CurrentUser, db: DBSession) -> Response:
    """Delete a project that has never had a job; jobs are kept as an audit trail."""
    repo = ProjectRepository(db)
    row = await assert_ownership(db, user["sub"], project_id)
    if await repo.has_jobs(project_id):
        raise ConflictError(
            f"Project '{project_id}' has jobs and cannot be deleted",
            {"project_id": project_id},
        )
    await repo.delete(row)
    await db.commit()
    logger.info("Project %s deleted", project_id)
    return Response(status_code=204)
