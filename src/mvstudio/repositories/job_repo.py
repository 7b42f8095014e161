"""Job repository.

After creation a job only changes through the conditional UPDATEs below.
Each one names the statuses it may move from in its WHERE clause, so status
can only move forward and the terminal write happens at most once per job
even when several pollers race on the same row.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from mvstudio.db.base import utcnow
from mvstudio.db.models.job import JobRow
from mvstudio.errors.exceptions import InvalidTransitionError, NotFoundError
from mvstudio.models.enums import NON_TERMINAL_STATUSES, JobStatus
from mvstudio.repositories.base import BaseRepository

_NON_TERMINAL = [str(s) for s in NON_TERMINAL_STATUSES]


class JobRepository(BaseRepository[JobRow]):
    def __init__(self, session: AsyncSession):
        super().__init__(session, JobRow)

    async def get(self, job_id: str, *, fresh: bool = False) -> JobRow | None:
        return await self.get_by_id("job_id", job_id, fresh=fresh)

    async def get_by_idempotency_key(self, project_id: str, idempotency_key: str) -> JobRow | None:
        stmt = select(JobRow).where(
            JobRow.project_id == project_id,
            JobRow.idempotency_key == idempotency_key,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_by_project(self, project_id: str, domain: str | None = None) -> list[JobRow]:
        stmt = select(JobRow).where(JobRow.project_id == project_id)
        if domain is not None:
            stmt = stmt.where(JobRow.domain == domain)
        stmt = stmt.order_by(JobRow.created_at.asc(), JobRow.job_id.asc())
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def record_submission(self, job_id: str, external_id: str | None, status: JobStatus) -> bool:
        """Store the provider's job id and apply a non-terminal status.

        Only applies while the job is still ``pending``. Returns whether the
        row changed.
        """
        if status not in NON_TERMINAL_STATUSES:
            raise ValueError(f"record_submission cannot apply terminal status '{status}'")
        changed = await self.update_where(
            JobRow.job_id == job_id,
            JobRow.status == JobStatus.PENDING,
            external_id=external_id,
            status=str(status),
            updated_at=utcnow(),
        )
        return changed > 0

    async def mark_processing(self, job_id: str) -> bool:
        """Move ``pending`` to ``processing``; a no-op from any other status."""
        changed = await self.update_where(
            JobRow.job_id == job_id,
            JobRow.status == JobStatus.PENDING,
            status=str(JobStatus.PROCESSING),
            updated_at=utcnow(),
        )
        return changed > 0

    async def update_terminal(
        self,
        job_id: str,
        status: JobStatus,
        result_payload: dict | None = None,
        error_info: dict | None = None,
        external_id: str | None = None,
    ) -> JobRow:
        """Apply the first and only terminal transition for a job.

        Raises:
            InvalidTransitionError: the job is already terminal.
            NotFoundError: the job does not exist.
        """
        if status == JobStatus.COMPLETED:
            if error_info is not None:
                raise ValueError("completed jobs cannot carry error_info")
            values = {"result_payload": result_payload or {}}
        elif status == JobStatus.FAILED:
            if result_payload is not None:
                raise ValueError("failed jobs cannot carry result_payload")
            values = {"error_info": error_info or {"code": "PROVIDER_FAILED", "message": "Job failed"}}
        else:
            raise ValueError(f"'{status}' is not a terminal status")

        if external_id is not None:
            values["external_id"] = external_id

        now = utcnow()
        changed = await self.update_where(
            JobRow.job_id == job_id,
            JobRow.status.in_(_NON_TERMINAL),
            status=str(status),
            completed_at=now,
            updated_at=now,
            **values,
        )
        if changed == 0:
            current = await self.get(job_id, fresh=True)
            if current is None:
                raise NotFoundError("Job", job_id)
            raise InvalidTransitionError(job_id, current.status)

        return await self.get(job_id, fresh=True)
