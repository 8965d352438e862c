"""Persistence gateway used by connectors and the connector manager.

Every call opens its own session and commits before returning, so a sync run
reconciles item by item: a failed item rolls back only its own write.
"""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from secpulse.connectors.normalized import NormalizedAsset, NormalizedIncident
from secpulse.db.models.asset import AssetRow
from secpulse.db.models.connector import SyncLogRow
from secpulse.db.models.incident import IncidentRow
from secpulse.events.broadcast import (
    INCIDENT_UPDATE,
    NEW_INCIDENT,
    Broadcaster,
    NullBroadcaster,
)
from secpulse.id_generator import generate_id
from secpulse.models.enums import ConnectorStatus, SyncLogStatus, SyncType
from secpulse.models.sync import SyncResult
from secpulse.repositories.asset_repo import AssetRepository
from secpulse.repositories.connector_repo import ConnectorConfigRepository, SyncLogRepository
from secpulse.repositories.incident_repo import IncidentRepository
from secpulse.timeutils import utcnow

logger = logging.getLogger(__name__)


def incident_payload(row: IncidentRow) -> dict:
    """Normalized incident as broadcast to dashboards."""
    return {
        "incident_id": row.incident_id,
        "title": row.title,
        "severity": row.severity,
        "status": row.status,
        "source": row.source,
        "source_id": row.source_id,
        "detected_at": row.detected_at.isoformat() if row.detected_at else None,
        "resolved_at": row.resolved_at.isoformat() if row.resolved_at else None,
        "affected_assets": list(row.affected_assets or []),
    }


class PersistenceGateway:
    """Lookup, insert and field-scoped update primitives for the sync pipeline."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        broadcaster: Broadcaster | None = None,
    ):
        self.session_factory = session_factory
        self.broadcaster = broadcaster or NullBroadcaster()

    # ------------------------------------------------------------------
    # Incidents
    # ------------------------------------------------------------------

    async def find_incident(self, source: str, source_id: str) -> IncidentRow | None:
        async with self.session_factory() as session:
            return await IncidentRepository(session).get_by_source(source, source_id)

    async def insert_incident(
        self,
        incident: NormalizedIncident,
        affected_assets: list[str],
    ) -> IncidentRow:
        async with self.session_factory() as session:
            row = await IncidentRepository(session).create(
                incident_id=generate_id("inc_"),
                title=incident.title,
                description=incident.description,
                severity=incident.severity.value,
                status=incident.status.value,
                source=incident.source,
                source_id=incident.source_id,
                detected_at=incident.detected_at,
                resolved_at=incident.resolved_at,
                affected_assets=affected_assets,
                ioc_indicators=incident.ioc_indicators,
            )
            await session.commit()

        await self.broadcaster.publish(NEW_INCIDENT, incident_payload(row))
        return row

    async def update_incident(self, incident_id: str, fields: dict) -> IncidentRow | None:
        """Apply *fields* to an incident and bump ``updated_at`` even if *fields* is empty."""
        values = {k: (v.value if hasattr(v, "value") else v) for k, v in fields.items()}
        values["updated_at"] = utcnow()
        async with self.session_factory() as session:
            repo = IncidentRepository(session)
            row = await repo.get(incident_id)
            if row is None:
                return None
            await repo.update(row, **values)
            await session.commit()

        if fields:
            await self.broadcaster.publish(INCIDENT_UPDATE, incident_payload(row))
        return row

    # ------------------------------------------------------------------
    # Assets
    # ------------------------------------------------------------------

    async def find_asset(
        self,
        *,
        hostname: str | None = None,
        ip_address: str | None = None,
        name: str | None = None,
    ) -> AssetRow | None:
        async with self.session_factory() as session:
            return await AssetRepository(session).find_match(
                hostname=hostname, ip_address=ip_address, name=name
            )

    async def resolve_asset_ids(
        self,
        *,
        hostnames: list[str] | None = None,
        ips: list[str] | None = None,
        names: list[str] | None = None,
    ) -> list[str]:
        """Map incident asset hints to stored asset ids (first match per hint)."""
        found: list[str] = []
        async with self.session_factory() as session:
            repo = AssetRepository(session)
            lookups = (
                [{"hostname": h} for h in hostnames or []]
                + [{"ip_address": ip} for ip in ips or []]
                + [{"name": n} for n in names or []]
            )
            for lookup in lookups:
                row = await repo.find_match(**lookup)
                if row is not None and row.asset_id not in found:
                    found.append(row.asset_id)
        return found

    async def insert_asset(self, asset: NormalizedAsset) -> AssetRow:
        values = asset.model_dump(exclude={"source"}, exclude_none=True)
        if "criticality" in values:
            values["criticality"] = asset.criticality.value
        async with self.session_factory() as session:
            row = await AssetRepository(session).create(asset_id=generate_id("ast_"), **values)
            await session.commit()
        return row

    async def update_asset(self, asset_id: str, fields: dict) -> AssetRow | None:
        values = {k: (v.value if hasattr(v, "value") else v) for k, v in fields.items()}
        values["updated_at"] = utcnow()
        async with self.session_factory() as session:
            repo = AssetRepository(session)
            row = await repo.get(asset_id)
            if row is None:
                return None
            await repo.update(row, **values)
            await session.commit()
        return row

    # ------------------------------------------------------------------
    # Connector status and audit log
    # ------------------------------------------------------------------

    async def mark_connector_active(self, connector_id: str) -> None:
        async with self.session_factory() as session:
            await ConnectorConfigRepository(session).set_status(
                connector_id, ConnectorStatus.ACTIVE.value, last_sync=utcnow(), last_error=None
            )
            await session.commit()

    async def mark_connector_error(self, connector_id: str, message: str) -> None:
        async with self.session_factory() as session:
            await ConnectorConfigRepository(session).set_status(
                connector_id, ConnectorStatus.ERROR.value, last_sync=utcnow(), last_error=message
            )
            await session.commit()

    async def append_sync_log(
        self,
        connector_id: str,
        sync_type: SyncType,
        result: SyncResult,
    ) -> SyncLogRow:
        async with self.session_factory() as session:
            row = await SyncLogRepository(session).create(
                log_id=generate_id("sync_"),
                connector_id=connector_id,
                sync_type=sync_type.value,
                status=(SyncLogStatus.SUCCESS if result.success else SyncLogStatus.FAILED).value,
                items_processed=result.items_processed,
                items_created=result.items_created,
                items_updated=result.items_updated,
                error_count=result.error_count,
                duration_ms=result.duration_ms,
            )
            await session.commit()
        return row
