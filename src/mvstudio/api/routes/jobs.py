"""Job status and listing routes shared by every domain."""

from fastapi import APIRouter, Query

from mvstudio.db.models.job import JobRow
from mvstudio.dependencies import CurrentUser, Orchestrator
from mvstudio.models.enums import JobDomain
from mvstudio.models.job import JobOut

router = APIRouter(tags=["Jobs"])


def serialize_job(row: JobRow) -> dict:
    return JobOut.model_validate(row).model_dump(mode="json")


@router.get("/projects/{project_id}/jobs")
async def list_project_jobs(
    project_id: str,
    user: CurrentUser,
    orchestrator: Orchestrator,
    domain: JobDomain | None = Query(None),
) -> list[dict]:
    rows = await orchestrator.list_jobs_for_parent(user["sub"], project_id, domain)
    return [serialize_job(r) for r in rows]


@router.get("/jobs/{job_id}")
async def poll_job(job_id: str, user: CurrentUser, orchestrator: Orchestrator) -> dict:
    """Return the job, refreshing it from its provider while it is still running."""
    row = await orchestrator.poll_job(user["sub"], job_id)
    return serialize_job(row)
