"""Incident repository."""

from datetime import datetime

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from secpulse.db.models.incident import IncidentRow
from secpulse.models.enums import IncidentStatus
from secpulse.repositories.base import BaseRepository

CLOSED_STATUSES = (IncidentStatus.RESOLVED.value, IncidentStatus.CLOSED.value)


class IncidentRepository(BaseRepository):
    def __init__(self, session: AsyncSession):
        super().__init__(session, IncidentRow)

    async def get(self, incident_id: str) -> IncidentRow | None:
        return await self.get_by_id("incident_id", incident_id)

    async def get_by_source(self, source: str, source_id: str) -> IncidentRow | None:
        """Look up by the reconciliation key. First row wins if duplicates slipped in."""
        stmt = (
            select(IncidentRow)
            .where(and_(IncidentRow.source == source, IncidentRow.source_id == source_id))
            .order_by(IncidentRow.created_at)
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def count_by_source(self, source: str, source_id: str) -> int:
        stmt = select(func.count()).where(
            and_(IncidentRow.source == source, IncidentRow.source_id == source_id)
        )
        return (await self.session.execute(stmt)).scalar_one()

    async def list_detected_since(self, since: datetime) -> list[IncidentRow]:
        return await self.fetch_all(select(IncidentRow).where(IncidentRow.detected_at >= since))

    async def delete_resolved_before(self, cutoff: datetime) -> int:
        """Drop closed-out incidents. Open incidents are kept regardless of age."""
        return await self.delete_where(
            IncidentRow.resolved_at < cutoff,
            IncidentRow.status.in_(CLOSED_STATUSES),
        )
