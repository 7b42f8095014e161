"""Music generation routes."""

from fastapi import APIRouter, Header

from mvstudio.api.routes.jobs import serialize_job
from mvstudio.dependencies import CurrentUser, Orchestrator, Registry, TraceId
from mvstudio.errors.exceptions import InvalidInputError
from mvstudio.models.enums import MusicProvider
from mvstudio.models.job import MusicJobRequest, StemsOut, StemsRequest
from mvstudio.providers.adapters.musicgpt import MusicGPTAdapter

router = APIRouter(tags=["Music"])


@router.post("/projects/{project_id}/music", status_code=201)
async def generate_music(
    project_id: str,
    body: MusicJobRequest,
    user: CurrentUser,
    orchestrator: Orchestrator,
    trace_id: TraceId,
    idempotency_key: str | None = Header(None, alias="Idempotency-Key", max_length=256),
) -> dict:
    row = await orchestrator.submit_job(
        user["sub"], project_id, body, idempotency_key=idempotency_key, trace_id=trace_id
    )
    return serialize_job(row)


@router.post("/music/stems")
async def separate_stems(body: StemsRequest, user: CurrentUser, registry: Registry) -> dict:
    """Split an existing track into vocals and instrumental (synchronous)."""
    adapter = registry.get(MusicProvider.MUSICGPT)
    if not isinstance(adapter, MusicGPTAdapter):
        raise InvalidInputError("Stem separation is not available")
    stems = await adapter.separate_stems(str(body.audio_url))
    return StemsOut(**stems).model_dump()
