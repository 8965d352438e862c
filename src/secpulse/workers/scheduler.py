"""Background scheduler that enqueues sync and housekeeping jobs on fixed timetables."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import timedelta
from typing import TYPE_CHECKING

from secpulse.models.enums import JobType
from secpulse.timeutils import utcnow

if TYPE_CHECKING:
    from secpulse.config import Settings
    from secpulse.sync.context import SyncContext

logger = logging.getLogger(__name__)


def _no_payload() -> dict:
    return {}


@dataclass
class Timetable:
    """Enqueue *job_type* every *interval_seconds* with a freshly built payload."""

    job_type: JobType
    interval_seconds: int
    payload: Callable[[], dict] = field(default=_no_payload)


def incident_window(seconds: int) -> Callable[[], dict]:
    """Payload factory covering the last *seconds* of incidents."""

    def build() -> dict:
        return {"since": (utcnow() - timedelta(seconds=seconds)).isoformat()}

    return build


def default_timetables(settings: Settings) -> list[Timetable]:
    return [
        Timetable(
            JobType.SYNC_INCIDENTS,
            settings.incident_sync_interval_seconds,
            incident_window(settings.incident_sync_interval_seconds),
        ),
        Timetable(JobType.SYNC_ASSETS, settings.asset_sync_interval_seconds),
        Timetable(JobType.CALCULATE_METRICS, settings.metrics_interval_seconds),
        Timetable(JobType.CLEANUP_OLD_DATA, settings.cleanup_interval_seconds),
    ]


class SyncScheduler:
    """Runs one independent timer loop per timetable.

    Each tick only enqueues; queue consumers do the work, so a slow job never
    delays another timetable. Failed jobs are not retried here; the next tick
    requests the same operation again.
    """

    def __init__(self, ctx: SyncContext, timetables: list[Timetable] | None = None):
        self.ctx = ctx
        self.timetables = timetables if timetables is not None else default_timetables(ctx.settings)
        self._tasks: list[asyncio.Task] = []

    @property
    def running(self) -> bool:
        return any(not t.done() for t in self._tasks)

    async def run_initial_sync(self) -> list[str]:
        """Enqueue a lookback incident sync, an asset sync and a metrics rollup."""
        lookback = self.ctx.settings.initial_lookback_hours * 3600
        jobs = [
            (JobType.SYNC_INCIDENTS, incident_window(lookback)()),
            (JobType.SYNC_ASSETS, {}),
            (JobType.CALCULATE_METRICS, {}),
        ]
        job_ids = []
        for job_type, payload in jobs:
            job = await self.ctx.queue.enqueue(job_type, payload, trace_id="scheduler_initial")
            job_ids.append(job.job_id)
        logger.info("Initial sync enqueued (%d jobs)", len(job_ids))
        return job_ids

    async def tick(self, timetable: Timetable) -> str | None:
        """Enqueue one run of *timetable*. Returns the job id, or None if skipped."""
        redis = self.ctx.redis
        if redis is not None:
            # Distributed lock via Redis SET NX so only one instance enqueues per tick
            lock_key = f"secpulse:scheduler:lock:{timetable.job_type.value}"
            ttl = max(1, timetable.interval_seconds - 1)
            locked = await redis.set(lock_key, "1", nx=True, ex=ttl)
            if not locked:
                logger.debug("Timetable %s already locked by another instance", timetable.job_type.value)
                return None

        job = await self.ctx.queue.enqueue(
            timetable.job_type,
            timetable.payload(),
            trace_id=f"scheduler_{timetable.job_type.value}",
        )
        return job.job_id

    async def _run_timetable(self, timetable: Timetable) -> None:
        logger.info(
            "Timetable %s started (interval=%ds)",
            timetable.job_type.value,
            timetable.interval_seconds,
        )
        while True:
            try:
                await asyncio.sleep(timetable.interval_seconds)
                job_id = await self.tick(timetable)
                if job_id:
                    logger.info("Scheduled %s job %s", timetable.job_type.value, job_id)
            except asyncio.CancelledError:
                logger.info("Timetable %s stopped", timetable.job_type.value)
                break
            except Exception as exc:
                logger.exception("Scheduler error for %s: %s", timetable.job_type.value, exc)

    async def start(self, initial_sync: bool = True) -> None:
        if self.running:
            return
        if initial_sync:
            try:
                await self.run_initial_sync()
            except Exception as exc:
                logger.exception("Initial sync could not be enqueued: %s", exc)
        self._tasks = [
            asyncio.create_task(self._run_timetable(t), name=f"secpulse-timetable-{t.job_type.value}")
            for t in self.timetables
        ]

    async def stop(self) -> None:
        for task in self._tasks:
            task.cancel()
        for task in self._tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._tasks = []
        logger.info("Sync scheduler stopped")
