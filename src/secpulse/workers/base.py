"""Base worker interface for async job processing."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from secpulse.logging_config import bind_job_context, clear_context
from secpulse.models.enums import JobStatus
from secpulse.repositories.job_repo import JobRepository

if TYPE_CHECKING:
    from secpulse.sync.context import SyncContext

logger = logging.getLogger(__name__)


class BaseWorker(ABC):
    """Abstract base class for job workers."""

    max_retries: int = 0

    @abstractmethod
    async def process(self, job_id: str, payload: dict, ctx: SyncContext) -> dict:
        """Process a job and return a JSON-serializable result summary."""
        ...

    async def execute(self, job_id: str, job_type: str, payload: dict, ctx: SyncContext) -> JobStatus:
        """Execute the full job lifecycle: running -> process -> succeeded/failed.

        A failure is re-queued while ``_retry_count < max_retries``; otherwise
        the job is marked failed and left for the next scheduled tick.
        """
        payload = payload or {}
        retry_count = payload.get("_retry_count", 0)
        bind_job_context(job_id, job_type)
        try:
            async with ctx.session_factory() as session:
                job = await JobRepository(session).set_status(job_id, JobStatus.RUNNING)
                if job is None:
                    logger.warning("Job %s not found, dropping message", job_id)
                    return JobStatus.FAILED
                trace_id = job.trace_id
                await session.commit()

            status = JobStatus.SUCCEEDED
            result = None
            errors = None
            try:
                result = await self.process(job_id, payload, ctx)
                logger.info("Job %s succeeded (type=%s)", job_id, job_type)
            except Exception as exc:
                errors = [
                    {
                        "code": "WORKER_ERROR",
                        "message": str(exc),
                        "trace_id": trace_id,
                        "timestamp": datetime.now(timezone.utc).isoformat(),
                        "retry_count": retry_count,
                    }
                ]
                logger.exception("Job %s failed (type=%s, retry=%d)", job_id, job_type, retry_count)
                status = JobStatus.QUEUED if retry_count < self.max_retries else JobStatus.FAILED

            async with ctx.session_factory() as session:
                job = await JobRepository(session).set_status(job_id, status, result=result, errors=errors)
                if job is not None:
                    await session.commit()

            if status == JobStatus.QUEUED:
                await ctx.queue.push(job_type, job_id, {**payload, "_retry_count": retry_count + 1})
            return status
        finally:
            clear_context()
