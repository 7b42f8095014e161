"""Job orchestrator tests: submit, poll and reconcile against fake adapters."""

import asyncio
from datetime import timedelta

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from conftest import ALICE, BOB
from fakes import FakeAdapter
from mvstudio.db.base import Base, utcnow
from mvstudio.db.models.job import JobRow
from mvstudio.errors.exceptions import (
    ConflictError,
    InvalidInputError,
    NotAuthorizedError,
    NotFoundError,
    ProviderAuthError,
    ProviderUnavailableError,
)
from mvstudio.models.enums import JobDomain, JobStatus
from mvstudio.models.job import MusicJobRequest, PublicationJobRequest, VideoJobRequest
from mvstudio.providers.normalized import PollResult, SubmitResult
from mvstudio.providers.registry import ProviderRegistry
from mvstudio.repositories.connection_repo import PlatformConnectionRepository
from mvstudio.repositories.job_repo import JobRepository
from mvstudio.repositories.project_repo import ProjectRepository
from mvstudio.services.orchestrator import JobOrchestrator


def music(provider="suno", prompt="upbeat pop song", **kwargs) -> MusicJobRequest:
    return MusicJobRequest(provider=provider, prompt=prompt, **kwargs)


def publication(platform="youtube") -> PublicationJobRequest:
    return PublicationJobRequest(
        platform=platform,
        title="Night drive (official video)",
        video_url="https://cdn.example.com/v.mp4",
    )


async def _count_jobs(db_session) -> int:
    result = await db_session.execute(select(func.count()).select_from(JobRow))
    return result.scalar_one()


@pytest.fixture
def orchestrator(db_session, registry):
    return JobOrchestrator(db_session, registry)


@pytest.mark.asyncio
async def test_scenario_music_job_completes_after_polling(orchestrator, registry, project):
    suno = registry.get("suno")

    job = await orchestrator.submit_job(ALICE, project.project_id, music())
    assert job.status == "processing"
    assert job.cost_cents == 2
    assert job.external_id is not None
    assert job.completed_at is None
    assert suno.submit_calls[0].params["prompt"] == "upbeat pop song"

    polled = await orchestrator.poll_job(ALICE, job.job_id)
    assert polled.status == "processing"

    suno.poll_results.append(
        PollResult(status=JobStatus.COMPLETED, result_payload={"audio_url": "https://x/a.mp3"})
    )
    polled = await orchestrator.poll_job(ALICE, job.job_id)
    assert polled.status == "completed"
    assert polled.result_payload["audio_url"] == "https://x/a.mp3"
    assert polled.completed_at is not None
    completed_at = polled.completed_at

    again = await orchestrator.poll_job(ALICE, job.job_id)
    assert again.completed_at == completed_at
    assert len(suno.poll_calls) == 2


@pytest.mark.asyncio
async def test_job_is_pending_while_provider_is_called(orchestrator, registry, project, db_session):
    seen = {}
    suno = registry.get("suno")
    original_submit = suno.submit

    async def spy(request):
        row = await JobRepository(db_session).get(request.job_id, fresh=True)
        seen["status"] = row.status
        return await original_submit(request)

    suno.submit = spy
    await orchestrator.submit_job(ALICE, project.project_id, music())
    assert seen["status"] == "pending"


@pytest.mark.asyncio
async def test_scenario_foreign_project_is_rejected_without_a_job(orchestrator, registry, project, db_session):
    with pytest.raises(NotAuthorizedError):
        await orchestrator.submit_job(BOB, project.project_id, music())
    with pytest.raises(NotAuthorizedError):
        await orchestrator.submit_job(ALICE, "proj_doesnotexist", music())

    assert await _count_jobs(db_session) == 0
    assert registry.get("suno").submit_calls == []


@pytest.mark.asyncio
async def test_scenario_transport_failure_persists_failed_job(orchestrator, registry, project, db_session):
    registry.get("suno").submit_error = ProviderUnavailableError("suno", "suno request timed out")

    with pytest.raises(ProviderUnavailableError) as exc_info:
        await orchestrator.submit_job(ALICE, project.project_id, music())

    job_id = exc_info.value.details["job_id"]
    job = await JobRepository(db_session).get(job_id, fresh=True)
    assert job.status == "failed"
    assert job.error_info == {"code": "PROVIDER_UNAVAILABLE", "message": "suno request timed out"}
    assert job.result_payload is None
    assert job.completed_at is not None


@pytest.mark.asyncio
async def test_unexpected_adapter_crash_fails_job_and_propagates(orchestrator, registry, project, db_session):
    registry.get("suno").submit_error = RuntimeError("boom")

    with pytest.raises(RuntimeError):
        await orchestrator.submit_job(ALICE, project.project_id, music())

    jobs = await JobRepository(db_session).list_by_project(project.project_id)
    assert [j.status for j in jobs] == ["failed"]
    assert jobs[0].error_info["code"] == "INTERNAL_ERROR"


@pytest.mark.asyncio
async def test_business_rejection_is_a_failed_job_not_an_error(orchestrator, registry, project):
    registry.get("suno").submit_results.append(SubmitResult.rejected("content policy violation"))

    job = await orchestrator.submit_job(ALICE, project.project_id, music())
    assert job.status == "failed"
    assert job.error_info == {"code": "PROVIDER_REJECTED", "message": "content policy violation"}
    assert job.external_id is None


@pytest.mark.asyncio
async def test_immediate_completion_goes_straight_to_terminal(orchestrator, registry, project):
    registry.get("suno").submit_results.append(
        SubmitResult(external_id="song_1", status=JobStatus.COMPLETED, result_payload={"audio_url": "https://x/b.mp3"})
    )

    job = await orchestrator.submit_job(ALICE, project.project_id, music())
    assert job.status == "completed"
    assert job.external_id == "song_1"
    assert job.result_payload == {"audio_url": "https://x/b.mp3"}


@pytest.mark.asyncio
async def test_terminal_poll_never_calls_adapter(orchestrator, registry, project):
    suno = registry.get("suno")
    suno.submit_results.append(SubmitResult.rejected("quota exceeded"))
    job = await orchestrator.submit_job(ALICE, project.project_id, music())

    for _ in range(3):
        polled = await orchestrator.poll_job(ALICE, job.job_id)
        assert polled.status == "failed"
    assert suno.poll_calls == []


@pytest.mark.asyncio
async def test_poll_adapter_error_leaves_job_untouched(orchestrator, registry, project):
    suno = registry.get("suno")
    job = await orchestrator.submit_job(ALICE, project.project_id, music())
    updated_at = job.updated_at

    suno.poll_error = ProviderUnavailableError("suno", "suno returned HTTP 503")
    with pytest.raises(ProviderUnavailableError):
        await orchestrator.poll_job(ALICE, job.job_id)

    suno.poll_error = None
    row = await orchestrator.poll_job(ALICE, job.job_id)
    assert row.status == "processing"
    assert row.updated_at == updated_at


@pytest.mark.asyncio
async def test_poll_moves_pending_to_processing(orchestrator, registry, project, db_session):
    await JobRepository(db_session).create(
        job_id="job_pending000000001",
        project_id=project.project_id,
        domain="music",
        provider="suno",
        input_params={"prompt": "upbeat pop song"},
        status="pending",
        external_id="ext_pending",
        cost_cents=2,
    )
    await db_session.commit()

    row = await orchestrator.poll_job(ALICE, "job_pending000000001")
    assert row.status == "processing"


@pytest.mark.asyncio
async def test_poll_without_external_id_waits_for_submission(orchestrator, registry, project, db_session):
    await JobRepository(db_session).create(
        job_id="job_inflight00000001",
        project_id=project.project_id,
        domain="music",
        provider="suno",
        input_params={"prompt": "upbeat pop song"},
        status="pending",
        cost_cents=2,
    )
    await db_session.commit()

    row = await orchestrator.poll_job(ALICE, "job_inflight00000001")
    assert row.status == "pending"
    assert registry.get("suno").poll_calls == []


@pytest.mark.asyncio
async def test_poll_fails_submission_that_never_returned(db_session, registry, project):
    orchestrator = JobOrchestrator(db_session, registry, submit_deadline_seconds=60)
    await JobRepository(db_session).create(
        job_id="job_abandoned0000001",
        project_id=project.project_id,
        domain="music",
        provider="suno",
        input_params={"prompt": "upbeat pop song"},
        status="pending",
        cost_cents=2,
        created_at=utcnow() - timedelta(minutes=5),
    )
    await db_session.commit()

    row = await orchestrator.poll_job(ALICE, "job_abandoned0000001")
    assert row.status == "failed"
    assert row.error_info["code"] == "SUBMISSION_INTERRUPTED"
    assert row.completed_at is not None
    assert registry.get("suno").poll_calls == []


@pytest.mark.asyncio
async def test_cancelled_submission_fails_the_job(orchestrator, registry, project, db_session):
    suno = registry.get("suno")
    suno.submit_error = asyncio.CancelledError()

    with pytest.raises(asyncio.CancelledError):
        await orchestrator.submit_job(ALICE, project.project_id, music())

    jobs = await JobRepository(db_session).list_by_project(project.project_id)
    assert len(jobs) == 1
    row = await orchestrator.poll_job(ALICE, jobs[0].job_id)
    assert row.status == "failed"
    assert row.error_info["code"] == "SUBMISSION_INTERRUPTED"
    assert row.external_id is None
    assert suno.poll_calls == []


@pytest.mark.asyncio
async def test_poll_by_other_user_is_rejected_without_adapter_call(orchestrator, registry, project):
    job = await orchestrator.submit_job(ALICE, project.project_id, music())
    with pytest.raises(NotAuthorizedError):
        await orchestrator.poll_job(BOB, job.job_id)
    assert registry.get("suno").poll_calls == []


@pytest.mark.asyncio
async def test_poll_missing_job(orchestrator):
    with pytest.raises(NotFoundError):
        await orchestrator.poll_job(ALICE, "job_missing")


@pytest.mark.asyncio
async def test_cost_is_fixed_per_provider(orchestrator, project):
    first = await orchestrator.submit_job(ALICE, project.project_id, music())
    second = await orchestrator.submit_job(ALICE, project.project_id, music(prompt="a slow piano ballad"))
    musicgpt = await orchestrator.submit_job(ALICE, project.project_id, music(provider="musicgpt"))
    video = await orchestrator.submit_job(
        ALICE, project.project_id, VideoJobRequest(provider="kling", prompt="neon city at night")
    )
    assert (first.cost_cents, second.cost_cents) == (2, 2)
    assert musicgpt.cost_cents == 3
    assert video.cost_cents == 1500


@pytest.mark.asyncio
async def test_unregistered_provider_is_invalid_input(db_session, project):
    registry = ProviderRegistry()
    registry.register(FakeAdapter("suno", JobDomain.MUSIC))
    orchestrator = JobOrchestrator(db_session, registry)

    with pytest.raises(InvalidInputError):
        await orchestrator.submit_job(ALICE, project.project_id, VideoJobRequest(provider="runway", prompt="rain"))
    assert await _count_jobs(db_session) == 0


@pytest.mark.asyncio
async def test_input_params_snapshot_excludes_provider(orchestrator, project):
    job = await orchestrator.submit_job(
        ALICE, project.project_id, music(genre="pop", mood="happy", instrumental=True)
    )
    assert job.provider == "suno"
    assert job.domain == "music"
    assert job.input_params == {
        "prompt": "upbeat pop song",
        "genre": "pop",
        "mood": "happy",
        "instrumental": True,
        "need_stems": False,
    }


@pytest.mark.asyncio
async def test_idempotency_key_replays_the_same_job(orchestrator, registry, project):
    first = await orchestrator.submit_job(ALICE, project.project_id, music(), idempotency_key="req-1")
    second = await orchestrator.submit_job(ALICE, project.project_id, music(), idempotency_key="req-1")
    other = await orchestrator.submit_job(ALICE, project.project_id, music(), idempotency_key="req-2")

    assert first.job_id == second.job_id
    assert other.job_id != first.job_id
    assert len(registry.get("suno").submit_calls) == 2


@pytest.mark.asyncio
async def test_idempotency_key_race_returns_the_winner(orchestrator, registry, project, monkeypatch):
    winner = await orchestrator.submit_job(ALICE, project.project_id, music(), idempotency_key="req-race")

    real_lookup = JobRepository.get_by_idempotency_key
    calls = {"n": 0}

    async def miss_once(self, project_id, key):
        calls["n"] += 1
        if calls["n"] == 1:
            return None
        return await real_lookup(self, project_id, key)

    monkeypatch.setattr(JobRepository, "get_by_idempotency_key", miss_once)
    loser = await orchestrator.submit_job(ALICE, project.project_id, music(), idempotency_key="req-race")

    assert loser.job_id == winner.job_id
    assert len(registry.get("suno").submit_calls) == 1


@pytest.mark.asyncio
async def test_idempotency_key_of_another_domain_is_conflict(orchestrator, registry, project, db_session):
    first = await orchestrator.submit_job(ALICE, project.project_id, music(), idempotency_key="req-shared")

    with pytest.raises(ConflictError) as exc_info:
        await orchestrator.submit_job(
            ALICE,
            project.project_id,
            VideoJobRequest(provider="kling", prompt="neon city at night"),
            idempotency_key="req-shared",
        )
    assert exc_info.value.details["job_id"] == first.job_id
    assert registry.get("kling").submit_calls == []
    assert await _count_jobs(db_session) == 1


@pytest.mark.asyncio
async def test_trace_id_is_recorded(orchestrator, project):
    job = await orchestrator.submit_job(ALICE, project.project_id, music(), trace_id="trc_abc")
    assert job.trace_id == "trc_abc"


@pytest.mark.asyncio
async def test_list_jobs_for_parent(orchestrator, project):
    music_job = await orchestrator.submit_job(ALICE, project.project_id, music())
    video_job = await orchestrator.submit_job(
        ALICE, project.project_id, VideoJobRequest(provider="runway", prompt="rain on glass")
    )

    all_jobs = await orchestrator.list_jobs_for_parent(ALICE, project.project_id)
    assert [j.job_id for j in all_jobs] == [music_job.job_id, video_job.job_id]

    videos = await orchestrator.list_jobs_for_parent(ALICE, project.project_id, JobDomain.VIDEO)
    assert [j.job_id for j in videos] == [video_job.job_id]

    with pytest.raises(NotAuthorizedError):
        await orchestrator.list_jobs_for_parent(BOB, project.project_id)


@pytest.mark.asyncio
async def test_publication_requires_stored_connection(orchestrator, registry, project, db_session):
    with pytest.raises(InvalidInputError):
        await orchestrator.submit_job(ALICE, project.project_id, publication())
    assert await _count_jobs(db_session) == 0
    assert registry.get("youtube").submit_calls == []


@pytest.mark.asyncio
async def test_publication_uses_owner_credentials(orchestrator, registry, project, db_session):
    connections = PlatformConnectionRepository(db_session)
    await connections.create(
        connection_id="conn_alice_youtube",
        user_id=ALICE,
        platform="youtube",
        access_token="ya29.alice",
        refresh_token="1//refresh",
    )
    await db_session.commit()
    youtube = registry.get("youtube")

    job = await orchestrator.submit_job(ALICE, project.project_id, publication())
    assert job.cost_cents == 0
    assert youtube.submit_calls[0].credentials.access_token == "ya29.alice"
    assert youtube.submit_calls[0].params["video_url"] == "https://cdn.example.com/v.mp4"

    await orchestrator.poll_job(ALICE, job.job_id)
    assert youtube.poll_calls[0][1].access_token == "ya29.alice"

    # token revoked between submit and poll
    row = await connections.get_for_user(ALICE, "youtube")
    await connections.delete(row)
    await db_session.commit()
    with pytest.raises(ProviderAuthError):
        await orchestrator.poll_job(ALICE, job.job_id)
    stored = await JobRepository(db_session).get(job.job_id, fresh=True)
    assert stored.status == "processing"


@pytest.fixture
async def file_session_factory(tmp_path):
    """File-backed SQLite so each session gets its own connection."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'race.db'}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


class _RacingAdapter(FakeAdapter):
    """Both pollers see a terminal result before either one writes it."""

    def __init__(self):
        super().__init__("suno", JobDomain.MUSIC)
        self.barrier = asyncio.Barrier(2)

    async def poll(self, external_id, credentials=None):
        index = len(self.poll_calls)
        self.poll_calls.append((external_id, credentials))
        await asyncio.wait_for(self.barrier.wait(), timeout=5)
        return PollResult(status=JobStatus.COMPLETED, result_payload={"audio_url": f"https://x/{index}.mp3"})


@pytest.mark.asyncio
async def test_concurrent_polls_write_terminal_state_once(file_session_factory, monkeypatch):
    async with file_session_factory() as session:
        await ProjectRepository(session).create(project_id="proj_race", owner_id=ALICE, title="Race", status="draft")
        await JobRepository(session).create(
            job_id="job_race",
            project_id="proj_race",
            domain="music",
            provider="suno",
            input_params={"prompt": "upbeat pop song"},
            status="processing",
            external_id="ext_race",
            cost_cents=2,
        )
        await session.commit()

    registry = ProviderRegistry()
    registry.register(_RacingAdapter())

    writes = {"n": 0}
    real_update = JobRepository.update_terminal

    async def counting_update(self, *args, **kwargs):
        row = await real_update(self, *args, **kwargs)
        writes["n"] += 1
        return row

    monkeypatch.setattr(JobRepository, "update_terminal", counting_update)

    async def poll_once():
        async with file_session_factory() as session:
            row = await JobOrchestrator(session, registry).poll_job(ALICE, "job_race")
            return row.status, row.result_payload, row.completed_at

    first, second = await asyncio.gather(poll_once(), poll_once())

    assert writes["n"] == 1
    assert first == second
    assert first[0] == "completed"
