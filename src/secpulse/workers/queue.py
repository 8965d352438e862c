"""Job queue management using Redis or in-process fallback."""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from secpulse.id_generator import generate_id
from secpulse.models.enums import JobStatus, JobType
from secpulse.models.job import JobStatusModel
from secpulse.repositories.job_repo import JobRepository

logger = logging.getLogger(__name__)

KEY_PREFIX = "secpulse:jobs:"


def queue_key(job_type: str) -> str:
    return f"{KEY_PREFIX}{job_type}"


class JobQueue:
    """Named-job queue. Every job is also recorded as a ``jobs`` row.

    Messages go to one Redis list per job type when Redis is configured,
    otherwise to a single in-process ``asyncio.Queue``.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], redis=None):
        self.session_factory = session_factory
        self.redis = redis
        self._local: asyncio.Queue[tuple[str, dict]] = asyncio.Queue()

    async def enqueue(
        self,
        job_type: JobType | str,
        payload: dict | None = None,
        trace_id: str | None = None,
    ) -> JobStatusModel:
        """Create a job record and hand the job to consumers.

        Returns a JobStatusModel with status='queued'.
        """
        job_type = JobType(job_type)
        job_id = generate_id("job_")
        trace_id = trace_id or generate_id("trc_")
        now = datetime.now(timezone.utc)

        async with self.session_factory() as session:
            await JobRepository(session).create(
                job_id=job_id,
                job_type=job_type.value,
                status=JobStatus.QUEUED.value,
                payload=payload or {},
                trace_id=trace_id,
                result=None,
                errors=None,
            )
            await session.commit()

        await self.push(job_type.value, job_id, payload or {})
        logger.info("Enqueued %s job %s", job_type.value, job_id)

        return JobStatusModel(
            job_id=job_id,
            status=JobStatus.QUEUED,
            job_type=job_type,
            payload=payload or {},
            trace_id=trace_id,
            created_at=now,
            updated_at=now,
        )

    async def push(self, job_type: str, job_id: str, payload: dict) -> None:
        message = {"job_id": job_id, "payload": payload}
        if self.redis is not None:
            await self.redis.rpush(queue_key(job_type), json.dumps(message))
        else:
            await self._local.put((job_type, message))

    async def pop(self, timeout: float = 1.0) -> tuple[str, dict] | None:
        """Wait up to *timeout* seconds for the next job. Returns (job_type, message) or None."""
        if self.redis is not None:
            keys = [queue_key(t.value) for t in JobType]
            item = await self.redis.blpop(keys, timeout=max(1, int(timeout)))
            if item is None:
                return None
            key, raw = item
            return key.removeprefix(KEY_PREFIX), json.loads(raw)

        try:
            return await asyncio.wait_for(self._local.get(), timeout=timeout)
        except asyncio.TimeoutError:
            return None

    def pending_local(self) -> int:
        """Jobs waiting in the in-process queue."""
        return self._local.qsize()
