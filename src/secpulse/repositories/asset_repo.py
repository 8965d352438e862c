"""Asset repository."""

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from secpulse.db.models.asset import AssetRow
from secpulse.repositories.base import BaseRepository


class AssetRepository(BaseRepository):
    def __init__(self, session: AsyncSession):
        super().__init__(session, AssetRow)

    async def get(self, asset_id: str) -> AssetRow | None:
        return await self.get_by_id("asset_id", asset_id)

    async def find_match(
        self,
        *,
        hostname: str | None = None,
        ip_address: str | None = None,
        name: str | None = None,
    ) -> AssetRow | None:
        """Best-effort identity match: any of name/hostname/IP, first match wins.

        Duplicate hostnames across departments are possible; the oldest row
        is returned so repeated runs keep touching the same record.
        """
        clauses = []
        if name:
            clauses.append(AssetRow.name == name)
            clauses.append(AssetRow.hostname == name)
        if hostname:
            clauses.append(AssetRow.hostname == hostname)
        if ip_address:
            clauses.append(AssetRow.ip_address == ip_address)
        if not clauses:
            return None
        stmt = select(AssetRow).where(or_(*clauses)).order_by(AssetRow.created_at).limit(1)
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def list_by_ids(self, asset_ids: list[str]) -> list[AssetRow]:
        if not asset_ids:
            return []
        return await self.fetch_all(select(AssetRow).where(AssetRow.asset_id.in_(asset_ids)))
