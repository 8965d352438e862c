"""Workers that fan a sync out to every registered connector."""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import TYPE_CHECKING

from secpulse.cache import ASSET_PATTERNS, SOC_PATTERNS, invalidate_patterns
from secpulse.models.sync import SyncResult
from secpulse.timeutils import parse_timestamp, utcnow
from secpulse.workers.base import BaseWorker

if TYPE_CHECKING:
    from secpulse.sync.context import SyncContext

logger = logging.getLogger(__name__)


def summarize(results: dict[str, SyncResult]) -> dict:
    """Per-connector counters, suitable for the job result column."""
    return {
        "connectors": {
            connector_id: {
                "success": r.success,
                "items_processed": r.items_processed,
                "items_created": r.items_created,
                "items_updated": r.items_updated,
                "error_count": r.error_count,
                "duration_ms": r.duration_ms,
            }
            for connector_id, r in results.items()
        },
        "failed": sorted(cid for cid, r in results.items() if not r.success),
    }


class SyncIncidentsWorker(BaseWorker):
    """Pull incidents from all connectors.

    Payload: ``since`` (ISO-8601). Defaults to the configured initial lookback.
    """

    async def process(self, job_id: str, payload: dict, ctx: SyncContext) -> dict:
        raw_since = payload.get("since")
        if raw_since:
            since = parse_timestamp(raw_since)
        else:
            since = utcnow() - timedelta(hours=ctx.settings.initial_lookback_hours)

        logger.info("Starting incident sync (since=%s)", since.isoformat())
        results = await ctx.manager.sync_all_incidents(since)
        await invalidate_patterns(ctx.redis, *SOC_PATTERNS)
        return summarize(results)


class SyncAssetsWorker(BaseWorker):
    async def process(self, job_id: str, payload: dict, ctx: SyncContext) -> dict:
        logger.info("Starting asset sync")
        results = await ctx.manager.sync_all_assets()
        await invalidate_patterns(ctx.redis, *ASSET_PATTERNS)
        return summarize(results)
