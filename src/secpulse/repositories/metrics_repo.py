"""Metrics history repository."""

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from secpulse.db.models.metrics import MetricsHistoryRow
from secpulse.repositories.base import BaseRepository


class MetricsHistoryRepository(BaseRepository):
    def __init__(self, session: AsyncSession):
        super().__init__(session, MetricsHistoryRow)

    async def list_by_name(self, metric_name: str, limit: int = 100) -> list[MetricsHistoryRow]:
        """Snapshots of one metric, newest first."""
        return await self.fetch_all(
            select(MetricsHistoryRow)
            .where(MetricsHistoryRow.metric_name == metric_name)
            .order_by(MetricsHistoryRow.metric_date.desc())
            .limit(limit)
        )

    async def delete_older_than(self, cutoff: datetime) -> int:
        return await self.delete_where(MetricsHistoryRow.metric_date < cutoff)
