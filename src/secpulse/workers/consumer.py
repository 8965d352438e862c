"""Queue consumer tasks that execute jobs to completion."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from secpulse.workers.registry import get_worker

if TYPE_CHECKING:
    from secpulse.sync.context import SyncContext

logger = logging.getLogger(__name__)


async def process_next(ctx: SyncContext, timeout: float = 1.0) -> bool:
    """Pop and run one job. Returns False if the queue stayed empty for *timeout*."""
    item = await ctx.queue.pop(timeout=timeout)
    if item is None:
        return False

    job_type, message = item
    worker = get_worker(job_type)
    if worker is None:
        logger.warning("No worker registered for job type %s (job=%s)", job_type, message.get("job_id"))
        return True

    await worker.execute(message["job_id"], job_type, message.get("payload") or {}, ctx)
    return True


async def run_consumer(ctx: SyncContext, name: str) -> None:
    """Background task that executes queued jobs until cancelled."""
    logger.info("Job consumer %s started", name)
    while True:
        try:
            await process_next(ctx)
        except asyncio.CancelledError:
            logger.info("Job consumer %s stopped", name)
            break
        except Exception as exc:
            logger.exception("Job consumer %s error: %s", name, exc)
            await asyncio.sleep(1)


def start_consumers(ctx: SyncContext, concurrency: int) -> list[asyncio.Task]:
    return [
        asyncio.create_task(run_consumer(ctx, f"consumer-{n}"), name=f"secpulse-consumer-{n}")
        for n in range(concurrency)
    ]
