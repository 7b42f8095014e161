"""Video generation routes."""

from fastapi import APIRouter, Header

from mvstudio.api.routes.jobs import serialize_job
from mvstudio.dependencies import CurrentUser, Orchestrator, TraceId
from mvstudio.models.job import VideoJobRequest

router = APIRouter(tags=["Videos"])


@router.post("/projects/{project_id}/videos", status_code=201)
async def generate_video(
    project_id: str,
    body: VideoJobRequest,
    user: CurrentUser,
    orchestrator: Orchestrator,
    trace_id: TraceId,
    idempotency_key: str | None = Header(None, alias="Idempotency-Key", max_length=256),
) -> dict:
    row = await orchestrator.submit_job(
        user["sub"], project_id, body, idempotency_key=idempotency_key, trace_id=trace_id
    )
    return serialize_job(row)
