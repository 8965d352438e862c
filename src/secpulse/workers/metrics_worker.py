"""Metrics rollup worker. Recomputes SOC aggregates and appends a history snapshot."""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Iterable
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from secpulse.cache import METRICS_PATTERNS, invalidate_patterns
from secpulse.db.models.asset import AssetRow
from secpulse.db.models.incident import IncidentRow
from secpulse.events.broadcast import METRICS_UPDATE
from secpulse.id_generator import generate_id
from secpulse.models.enums import Severity
from secpulse.repositories.asset_repo import AssetRepository
from secpulse.repositories.incident_repo import CLOSED_STATUSES, IncidentRepository
from secpulse.repositories.metrics_repo import MetricsHistoryRepository
from secpulse.timeutils import ensure_utc, utcnow
from secpulse.workers.base import BaseWorker

if TYPE_CHECKING:
    from secpulse.sync.context import SyncContext

logger = logging.getLogger(__name__)

METRICS_WINDOW = timedelta(days=30)
VOLUME_WINDOW = timedelta(hours=24)

_CLOSED = set(CLOSED_STATUSES)


def _mean_minutes(deltas: list[timedelta]) -> float | None:
    if not deltas:
        return None
    return round(sum(d.total_seconds() for d in deltas) / len(deltas) / 60, 2)


def _elapsed(start: datetime | None, end: datetime | None) -> timedelta | None:
    if start is None or end is None:
        return None
    return ensure_utc(end) - ensure_utc(start)


def compute_incident_metrics(incidents: Iterable[IncidentRow], now: datetime) -> dict[str, float | None]:
    """Aggregate incidents detected in the metrics window.

    Mean times are in minutes, measured from ``detected_at``: ``mtd`` to
    ingestion, ``mtr`` to first response, ``mtc`` to containment and ``mttr``
    to resolution. Metrics with no samples are None.
    """
    incidents = list(incidents)
    volume_start = now - VOLUME_WINDOW

    def deltas(attr: str) -> list[timedelta]:
        found = (_elapsed(i.detected_at, getattr(i, attr)) for i in incidents)
        return [d for d in found if d is not None]

    total = len(incidents)
    false_positives = sum(1 for i in incidents if i.false_positive)

    return {
        "active_incidents": float(sum(1 for i in incidents if i.status not in _CLOSED)),
        "critical_incidents": float(
            sum(1 for i in incidents if i.severity == Severity.CRITICAL.value and i.status not in _CLOSED)
        ),
        "mttr": _mean_minutes(deltas("resolved_at")),
        "mtd": _mean_minutes(deltas("created_at")),
        "mtr": _mean_minutes(deltas("responded_at")),
        "mtc": _mean_minutes(deltas("contained_at")),
        "alert_volume": float(sum(1 for i in incidents if ensure_utc(i.detected_at) >= volume_start)),
        "false_positive_rate": round(false_positives / total * 100, 2) if total else None,
    }


def department_incident_counts(
    incidents: Iterable[IncidentRow],
    assets_by_id: dict[str, AssetRow],
) -> dict[str, int]:
    """Distinct incidents per department of their affected assets."""
    counts: Counter[str] = Counter()
    for incident in incidents:
        departments = {
            assets_by_id[asset_id].department
            for asset_id in incident.affected_assets or []
            if asset_id in assets_by_id
        }
        counts.update(departments)
    return dict(counts)


class CalculateMetricsWorker(BaseWorker):
    async def process(self, job_id: str, payload: dict, ctx: SyncContext) -> dict:
        now = utcnow()
        async with ctx.session_factory() as session:
            incidents = await IncidentRepository(session).list_detected_since(now - METRICS_WINDOW)
            recent = [i for i in incidents if ensure_utc(i.detected_at) >= now - VOLUME_WINDOW]
            asset_ids = sorted({a for i in recent for a in (i.affected_assets or [])})
            assets = await AssetRepository(session).list_by_ids(asset_ids)

            metrics = compute_incident_metrics(incidents, now)
            departments = department_incident_counts(recent, {a.asset_id: a for a in assets})

            repo = MetricsHistoryRepository(session)
            stored = 0
            for name, value in metrics.items():
                if value is None:
                    continue
                await repo.create(
                    metric_id=generate_id("met_"),
                    metric_date=now,
                    metric_name=name,
                    metric_value=value,
                )
                stored += 1
            for department, count in departments.items():
                await repo.create(
                    metric_id=generate_id("met_"),
                    metric_date=now,
                    metric_name="department_incidents",
                    metric_value=float(count),
                    department=department,
                )
                stored += 1
            await session.commit()

        await ctx.broadcaster.publish(
            METRICS_UPDATE,
            {"metric_date": now.isoformat(), "metrics": metrics, "departments": departments},
        )
        await invalidate_patterns(ctx.redis, *METRICS_PATTERNS)
        logger.info("Metrics rollup stored %d values from %d incidents", stored, len(incidents))
        return {"metrics": metrics, "departments": departments, "stored": stored}
