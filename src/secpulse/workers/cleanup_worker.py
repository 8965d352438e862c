"""Retention cleanup worker."""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import TYPE_CHECKING

from secpulse.repositories.connector_repo import SyncLogRepository
from secpulse.repositories.incident_repo import IncidentRepository
from secpulse.repositories.metrics_repo import MetricsHistoryRepository
from secpulse.timeutils import utcnow
from secpulse.workers.base import BaseWorker

if TYPE_CHECKING:
    from secpulse.sync.context import SyncContext

logger = logging.getLogger(__name__)


class CleanupOldDataWorker(BaseWorker):
    """Delete closed incidents, metrics history and sync logs past retention.

    Open incidents are never deleted, whatever their age.
    """

    max_retries = 1

    async def process(self, job_id: str, payload: dict, ctx: SyncContext) -> dict:
        now = utcnow()
        data_cutoff = now - timedelta(days=ctx.settings.data_retention_days)
        log_cutoff = now - timedelta(days=ctx.settings.sync_log_retention_days)

        async with ctx.session_factory() as session:
            counts = {
                "incidents_deleted": await IncidentRepository(session).delete_resolved_before(data_cutoff),
                "metrics_deleted": await MetricsHistoryRepository(session).delete_older_than(data_cutoff),
                "sync_logs_deleted": await SyncLogRepository(session).delete_older_than(log_cutoff),
            }
            await session.commit()

        logger.info(
            "Data cleanup completed: %d incidents, %d metrics, %d sync logs deleted",
            counts["incidents_deleted"],
            counts["metrics_deleted"],
            counts["sync_logs_deleted"],
        )
        return counts
