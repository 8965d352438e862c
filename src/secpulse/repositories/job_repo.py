"""Job repository."""

from sqlalchemy.ext.asyncio import AsyncSession

from secpulse.db.models.job import JobRow
from secpulse.models.enums import JobStatus
from secpulse.repositories.base import BaseRepository
from secpulse.timeutils import utcnow


class JobRepository(BaseRepository):
    def __init__(self, session: AsyncSession):
        super().__init__(session, JobRow)

    async def get(self, job_id: str) -> JobRow | None:
        return await self.get_by_id("job_id", job_id)

    async def set_status(self, job_id: str, status: JobStatus, **fields) -> JobRow | None:
        """Move a job to ``status``, stamping updated_at. Returns None if the job is gone."""
        job = await self.get(job_id)
        if job is None:
            return None
        return await self.update(job, status=status.value, updated_at=utcnow(), **fields)
