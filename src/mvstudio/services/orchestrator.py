"""Job orchestrator: the submit / poll / reconcile state machine.

One orchestrator serves every domain. The provider named on the request picks
the adapter out of the registry; everything else (ownership, cost, the
pending record, the terminal write) is identical for music, video and
publication jobs.

Status only moves forward::

    pending -> processing -> completed | failed
    pending ------------------> completed | failed

Terminal writes go through ``JobRepository.update_terminal``, a conditional
UPDATE. When two pollers race, the first write wins and the loser re-reads
the stored result instead of applying its own.

A submission that never returns (the request was cancelled, or the process
died) leaves a pending job with no provider id. Cancellation fails the job on
the way out; anything left pending past the submit deadline is failed by the
next poll.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import timedelta, timezone

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from mvstudio.db.base import utcnow
from mvstudio.db.models.job import JobRow
from mvstudio.errors.exceptions import (
    ConflictError,
    InvalidInputError,
    InvalidTransitionError,
    NotFoundError,
    ProviderAuthError,
    ProviderError,
)
from mvstudio.logging_config import bind_job_context
from mvstudio.models.enums import TERMINAL_STATUSES, JobDomain, JobStatus
from mvstudio.models.job import JobRequest
from mvstudio.providers.adapters.base import ProviderAdapter
from mvstudio.providers.normalized import StatusReport, SubmitRequest, UserCredentials
from mvstudio.providers.pricing import compute_cost
from mvstudio.providers.registry import ProviderRegistry
from mvstudio.repositories.connection_repo import PlatformConnectionRepository
from mvstudio.repositories.job_repo import JobRepository
from mvstudio.services.access_guard import assert_ownership
from mvstudio.services.id_generator import new_job_id

logger = logging.getLogger(__name__)

INTERRUPTED = "SUBMISSION_INTERRUPTED"


class JobOrchestrator:
    def __init__(
        self,
        session: AsyncSession,
        registry: ProviderRegistry,
        submit_deadline_seconds: float = 1800.0,
    ):
        self.session = session
        self.registry = registry
        self.submit_deadline = timedelta(seconds=submit_deadline_seconds)
        self.jobs = JobRepository(session)
        self.connections = PlatformConnectionRepository(session)

    async def submit_job(
        self,
        user_id: str,
        project_id: str,
        request: JobRequest,
        idempotency_key: str | None = None,
        trace_id: str | None = None,
    ) -> JobRow:
        """Create a job and hand it to its provider.

        The pending row is committed before the adapter is called, so a
        crash or provider outage never leaves a vendor-side job without a
        local record.

        Raises:
            NotAuthorizedError: caller does not own the project.
            InvalidInputError: unknown provider, wrong domain, or a publish
                job with no stored platform connection.
            ConflictError: the idempotency key belongs to a job of another
                domain.
            ProviderError: the adapter failed; the job is already marked
                ``failed`` and its id is in ``details``.
        """
        project = await assert_ownership(self.session, user_id, project_id)

        if idempotency_key:
            existing = await self.jobs.get_by_idempotency_key(project_id, idempotency_key)
            if existing is not None:
                logger.info("Idempotent replay of job %s (key=%s)", existing.job_id, idempotency_key)
                return _replayed(existing, request)

        adapter = self.registry.resolve(request.provider_name, request.domain)
        credentials = None
        if adapter.requires_user_credentials:
            credentials = await self._credentials_for(project.owner_id, adapter)
            if credentials is None:
                raise InvalidInputError(
                    f"No {adapter.provider} connection stored for this account",
                    {"platform": adapter.provider},
                )

        cost_cents = compute_cost(adapter.provider)
        params = request.input_params()
        job_id = new_job_id()

        try:
            await self.jobs.create(
                job_id=job_id,
                project_id=project_id,
                domain=str(request.domain),
                provider=adapter.provider,
                input_params=params,
                status=str(JobStatus.PENDING),
                cost_cents=cost_cents,
                idempotency_key=idempotency_key,
                trace_id=trace_id,
            )
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            if not idempotency_key:
                raise
            # a concurrent request with the same key committed first
            winner = await self.jobs.get_by_idempotency_key(project_id, idempotency_key)
            if winner is None:
                raise
            logger.info("Idempotency key %s raced; returning job %s", idempotency_key, winner.job_id)
            return _replayed(winner, request)

        bind_job_context(job_id, adapter.provider)
        logger.info("Job %s created (domain=%s provider=%s cost=%d)", job_id, request.domain, adapter.provider, cost_cents)

        submit_request = SubmitRequest(
            job_id=job_id,
            provider=adapter.provider,
            params=params,
            credentials=credentials,
        )
        try:
            result = await adapter.submit(submit_request)
        except ProviderError as exc:
            logger.warning("Submission of job %s failed: %s", job_id, exc.message)
            await self._finish(job_id, JobStatus.FAILED, error_info={"code": exc.code, "message": exc.message})
            raise exc.with_job(job_id)
        except asyncio.CancelledError:
            logger.warning("Submission of job %s was cancelled", job_id)
            await asyncio.shield(
                self._finish(
                    job_id,
                    JobStatus.FAILED,
                    error_info={"code": INTERRUPTED, "message": f"{adapter.provider} submission was interrupted"},
                )
            )
            raise
        except Exception:
            logger.exception("Adapter %s crashed submitting job %s", adapter.provider, job_id)
            await self._finish(
                job_id,
                JobStatus.FAILED,
                error_info={"code": "INTERNAL_ERROR", "message": f"{adapter.provider} adapter error"},
            )
            raise

        if result.is_terminal:
            return await self._finish_from_report(job_id, result, external_id=result.external_id)

        await self.jobs.record_submission(job_id, result.external_id, result.status)
        await self.session.commit()
        logger.info("Job %s submitted (external_id=%s status=%s)", job_id, result.external_id, result.status)
        return await self.jobs.get(job_id, fresh=True)

    async def poll_job(self, user_id: str, job_id: str) -> JobRow:
        """Refresh a job from its provider and reconcile any terminal state.

        Terminal jobs are returned as stored without contacting the provider.
        A job whose submission never returned is failed once the submit
        deadline has passed. Adapter errors propagate and leave the job
        untouched.

        Raises:
            NotFoundError: no such job.
            NotAuthorizedError: caller does not own the job's project.
            ProviderError: the provider could not be reached or rejected
                the credentials.
        """
        job = await self.jobs.get(job_id, fresh=True)
        if job is None:
            raise NotFoundError("Job", job_id)
        project = await assert_ownership(self.session, user_id, job.project_id)

        if job.status in TERMINAL_STATUSES:
            return job
        if job.external_id is None:
            if self._submission_expired(job):
                logger.warning("Job %s never received a provider id; failing it", job_id)
                return await self._finish(
                    job_id,
                    JobStatus.FAILED,
                    error_info={"code": INTERRUPTED, "message": "Submission did not complete in time"},
                )
            # submission has not returned yet
            return job

        bind_job_context(job_id, job.provider)
        adapter = self.registry.get(job.provider)
        credentials = None
        if adapter.requires_user_credentials:
            credentials = await self._credentials_for(project.owner_id, adapter)
            if credentials is None:
                raise ProviderAuthError(adapter.provider, f"No {adapter.provider} connection stored for this account")

        result = await adapter.poll(job.external_id, credentials)

        if result.is_terminal:
            return await self._finish_from_report(job_id, result)
        if result.status == JobStatus.PROCESSING and job.status == JobStatus.PENDING:
            await self.jobs.mark_processing(job_id)
            await self.session.commit()
            return await self.jobs.get(job_id, fresh=True)
        return job

    async def list_jobs_for_parent(
        self,
        user_id: str,
        project_id: str,
        domain: JobDomain | None = None,
    ) -> list[JobRow]:
        await assert_ownership(self.session, user_id, project_id)
        return await self.jobs.list_by_project(project_id, str(domain) if domain else None)

    def _submission_expired(self, job: JobRow) -> bool:
        created_at = job.created_at
        if created_at.tzinfo is None:
            # SQLite hands back naive UTC
            created_at = created_at.replace(tzinfo=timezone.utc)
        return utcnow() - created_at > self.submit_deadline

    async def _credentials_for(self, owner_id: str, adapter: ProviderAdapter) -> UserCredentials | None:
        connection = await self.connections.get_for_user(owner_id, adapter.provider)
        if connection is None:
            return None
        return UserCredentials(
            access_token=connection.access_token,
            refresh_token=connection.refresh_token,
            account_id=connection.account_id,
        )

    async def _finish_from_report(
        self,
        job_id: str,
        report: StatusReport,
        external_id: str | None = None,
    ) -> JobRow:
        return await self._finish(
            job_id,
            report.status,
            result_payload=report.result_payload if report.status == JobStatus.COMPLETED else None,
            error_info=report.error_info if report.status == JobStatus.FAILED else None,
            external_id=external_id,
        )

    async def _finish(
        self,
        job_id: str,
        status: JobStatus,
        result_payload: dict | None = None,
        error_info: dict | None = None,
        external_id: str | None = None,
    ) -> JobRow:
        """Apply a terminal state, or return the one another writer stored first."""
        try:
            row = await self.jobs.update_terminal(
                job_id,
                status,
                result_payload=result_payload,
                error_info=error_info,
                external_id=external_id,
            )
        except InvalidTransitionError as exc:
            await self.session.rollback()
            logger.info("Job %s already %s; keeping the first terminal write", job_id, exc.current_status)
            return await self.jobs.get(job_id, fresh=True)

        await self.session.commit()
        logger.info("Job %s reached %s", job_id, status)
        return row


def _replayed(existing: JobRow, request: JobRequest) -> JobRow:
    if existing.domain != str(request.domain):
        raise ConflictError(
            "Idempotency-Key was already used for a different kind of job",
            {"job_id": existing.job_id, "domain": existing.domain},
        )
    return existing
