"""Operational endpoints for connectors: status, health, reload and manual sync."""

from datetime import datetime

from fastapi import APIRouter, Query
from pydantic import BaseModel

from secpulse.connectors.config import ConnectorConfig
from secpulse.dependencies import Context, DBSession, TraceId
from secpulse.errors.exceptions import NotFoundError, ValidationError
from secpulse.models.enums import JobType
from secpulse.repositories.connector_repo import ConnectorConfigRepository, SyncLogRepository
from secpulse.timeutils import ensure_utc, utcnow

router = APIRouter(prefix="/connectors", tags=["Connectors"])


class SyncIncidentsRequest(BaseModel):
    since: datetime | None = None


def _connector_summary(config: ConnectorConfig, registered: bool) -> dict:
    return {
        "connector_id": config.id,
        "name": config.name,
        "type": config.type.value,
        "implementation": config.implementation,
        "base_url": config.base_url,
        "enabled": config.enabled,
        "sync_interval": config.sync_interval,
        "status": config.status.value,
        "last_sync": ensure_utc(config.last_sync).isoformat() if config.last_sync else None,
        "last_error": config.last_error,
        "registered": registered,
    }


@router.get("")
async def list_connectors(db: DBSession, ctx: Context) -> list[dict]:
    rows = await ConnectorConfigRepository(db).list_all()
    registered = ctx.manager.connectors
    return [_connector_summary(ConnectorConfig.from_row(r), r.connector_id in registered) for r in rows]


@router.get("/health")
async def connectors_health(ctx: Context) -> dict:
    results = await ctx.manager.test_all_connections()
    return {cid: health.model_dump(mode="json") for cid, health in results.items()}


@router.post("/reload")
async def reload_connectors(ctx: Context) -> dict:
    count = await ctx.manager.reload()
    return {"connectors": count, "registered": sorted(ctx.manager.connectors)}


@router.post("/sync/incidents", status_code=202)
async def trigger_incident_sync(
    ctx: Context,
    trace_id: TraceId,
    body: SyncIncidentsRequest | None = None,
) -> dict:
    payload = {}
    if body is not None and body.since is not None:
        since = ensure_utc(body.since)
        if since > utcnow():
            raise ValidationError("since must not be in the future", details={"since": since.isoformat()})
        payload["since"] = since.isoformat()
    job = await ctx.queue.enqueue(JobType.SYNC_INCIDENTS, payload, trace_id=trace_id)
    return job.model_dump(mode="json", exclude_none=True)


@router.post("/sync/assets", status_code=202)
async def trigger_asset_sync(ctx: Context, trace_id: TraceId) -> dict:
    job = await ctx.queue.enqueue(JobType.SYNC_ASSETS, {}, trace_id=trace_id)
    return job.model_dump(mode="json", exclude_none=True)


@router.get("/{connector_id}/sync-logs")
async def list_sync_logs(
    connector_id: str,
    db: DBSession,
    limit: int = Query(50, ge=1, le=500),
) -> list[dict]:
    if await ConnectorConfigRepository(db).get(connector_id) is None:
        raise NotFoundError("Connector", connector_id)

    logs = await SyncLogRepository(db).list_by_connector(connector_id, limit=limit)
    return [
        {
            "log_id": log.log_id,
            "connector_id": log.connector_id,
            "sync_type": log.sync_type,
            "status": log.status,
            "items_processed": log.items_processed,
            "items_created": log.items_created,
            "items_updated": log.items_updated,
            "error_count": log.error_count,
            "duration_ms": log.duration_ms,
            "sync_time": ensure_utc(log.created_at).isoformat(),
        }
        for log in logs
    ]
