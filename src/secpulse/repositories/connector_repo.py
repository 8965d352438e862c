"""Repositories for connector configs and sync logs."""

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from secpulse.db.models.connector import ConnectorConfigRow, SyncLogRow
from secpulse.repositories.base import BaseRepository


class ConnectorConfigRepository(BaseRepository):
    def __init__(self, session: AsyncSession):
        super().__init__(session, ConnectorConfigRow)

    async def get(self, connector_id: str) -> ConnectorConfigRow | None:
        return await self.get_by_id("connector_id", connector_id)

    async def list_all(self) -> list[ConnectorConfigRow]:
        return await self.fetch_all(select(ConnectorConfigRow).order_by(ConnectorConfigRow.name))

    async def list_enabled(self) -> list[ConnectorConfigRow]:
        return await self.fetch_all(
            select(ConnectorConfigRow)
            .where(ConnectorConfigRow.enabled.is_(True))
            .order_by(ConnectorConfigRow.name)
        )

    async def set_status(
        self,
        connector_id: str,
        status: str,
        *,
        last_sync: datetime | None = None,
        last_error: str | None = None,
    ) -> ConnectorConfigRow | None:
        """Stamp the live status fields. ``last_sync`` is left alone when None."""
        row = await self.get(connector_id)
        if row is None:
            return None
        updates: dict = {"status": status, "last_error": last_error}
        if last_sync is not None:
            updates["last_sync"] = last_sync
        return await self.update(row, **updates)


class SyncLogRepository(BaseRepository):
    def __init__(self, session: AsyncSession):
        super().__init__(session, SyncLogRow)

    async def list_by_connector(self, connector_id: str, limit: int = 50) -> list[SyncLogRow]:
        """List recent sync logs for a connector, newest first."""
        return await self.fetch_all(
            select(SyncLogRow)
            .where(SyncLogRow.connector_id == connector_id)
            .order_by(SyncLogRow.created_at.desc())
            .limit(limit)
        )

    async def delete_older_than(self, cutoff: datetime) -> int:
        return await self.delete_where(SyncLogRow.created_at < cutoff)
