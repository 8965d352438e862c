"""ConnectorManager: builds connectors from stored configs and fans out sync runs."""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime

import httpx
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from secpulse.connectors import AVAILABLE_CONNECTORS, import_connector, resolve_implementation
from secpulse.connectors.base import BaseConnector
from secpulse.connectors.config import ConnectorConfig
from secpulse.errors.exceptions import UnknownConnectorError
from secpulse.logging_config import connector_context
from secpulse.models.enums import SyncType
from secpulse.models.sync import ConnectorHealth, SyncResult
from secpulse.repositories.connector_repo import ConnectorConfigRepository
from secpulse.sync.gateway import PersistenceGateway

logger = logging.getLogger(__name__)


class ConnectorManager:
    """Registry of live connectors keyed by config id.

    Different connectors run concurrently; runs against the same connector id
    are serialized. No failure inside a connector escapes the fan-out methods.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        gateway: PersistenceGateway,
        *,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.session_factory = session_factory
        self.gateway = gateway
        self.timeout = timeout
        self.transport = transport
        self._connectors: dict[str, BaseConnector] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    @property
    def connectors(self) -> dict[str, BaseConnector]:
        return dict(self._connectors)

    def get_connector(self, connector_id: str) -> BaseConnector | None:
        return self._connectors.get(connector_id)

    def create_connector(self, config: ConnectorConfig) -> BaseConnector:
        """Instantiate the implementation registered for *config*.

        Raises UnknownConnectorError when no implementation matches.
        """
        key = resolve_implementation(config.type, config.name, config.implementation)
        cls = import_connector(AVAILABLE_CONNECTORS[key])
        return cls(config, self.gateway, timeout=self.timeout, transport=self.transport)

    def register(self, connector: BaseConnector) -> None:
        self._connectors = {**self._connectors, connector.config.id: connector}
        self._locks.setdefault(connector.config.id, asyncio.Lock())

    async def initialize(self) -> int:
        """Build a connector for each enabled, recognized config and swap the registry in.

        The new registry replaces the old one in a single assignment, so a
        fan-out already in flight keeps the connectors it started with and a
        failed rebuild leaves the previous registry live.
        """
        async with self.session_factory() as session:
            rows = await ConnectorConfigRepository(session).list_enabled()

        connectors: dict[str, BaseConnector] = {}
        for row in rows:
            try:
                config = ConnectorConfig.from_row(row)
                connector = self.create_connector(config)
            except UnknownConnectorError as exc:
                logger.warning("Skipping connector %s: %s", row.connector_id, exc.message)
                continue
            except ValueError as exc:
                logger.warning("Skipping connector %s with invalid config: %s", row.connector_id, exc)
                continue
            connectors[config.id] = connector
            self._locks.setdefault(config.id, asyncio.Lock())
            logger.info(
                "Initialized %s connector %s (%s)",
                connector.display_name,
                config.name,
                config.id,
            )

        self._connectors = connectors
        logger.info("Connector manager initialized with %d connectors", len(connectors))
        return len(connectors)

    async def reload(self) -> int:
        """Rebuild the registry from stored configs.

        Raises whatever the config lookup raises; the previous connectors stay
        registered in that case.
        """
        try:
            return await self.initialize()
        except Exception:
            logger.exception("Connector reload failed, keeping %d registered connectors", len(self._connectors))
            raise

    # ------------------------------------------------------------------
    # Fan-out
    # ------------------------------------------------------------------

    async def sync_all_incidents(self, since: datetime | None = None) -> dict[str, SyncResult]:
        return await self._fan_out(SyncType.INCIDENTS, since)

    async def sync_all_assets(self) -> dict[str, SyncResult]:
        return await self._fan_out(SyncType.ASSETS)

    async def _fan_out(self, sync_type: SyncType, since: datetime | None = None) -> dict[str, SyncResult]:
        snapshot = list(self._connectors.items())
        results = await asyncio.gather(
            *(self._run_sync(cid, connector, sync_type, since) for cid, connector in snapshot)
        )
        outcome = {cid: result for (cid, _), result in zip(snapshot, results)}
        failed = sum(1 for r in results if not r.success)
        logger.info(
            "%s sync finished for %d connectors (%d failed)",
            sync_type.value.capitalize(),
            len(outcome),
            failed,
        )
        return outcome

    async def sync_connector(
        self,
        connector_id: str,
        sync_type: SyncType,
        since: datetime | None = None,
    ) -> SyncResult:
        """Run one sync against one registered connector and record a sync log for it."""
        connector = self._connectors.get(connector_id)
        if connector is None:
            logger.warning("Sync requested for unregistered connector %s", connector_id)
            return SyncResult.failed(f"Connector {connector_id} is not registered")
        return await self._run_sync(connector_id, connector, sync_type, since)

    async def _run_sync(
        self,
        connector_id: str,
        connector: BaseConnector,
        sync_type: SyncType,
        since: datetime | None,
    ) -> SyncResult:
        lock = self._locks.setdefault(connector_id, asyncio.Lock())

        with connector_context(connector_id):
            async with lock:
                started = time.monotonic()
                try:
                    if sync_type == SyncType.INCIDENTS:
                        result = await connector.sync_incidents(since)
                    else:
                        result = await connector.sync_assets()
                except Exception as exc:
                    duration_ms = int((time.monotonic() - started) * 1000)
                    message = f"{connector.display_name} {sync_type.value} sync raised: {exc}"
                    logger.error("Sync of connector %s failed: %s", connector_id, exc, exc_info=True)
                    result = SyncResult.failed(message, duration_ms=duration_ms)
                    await self._mark_error(connector_id, message)

                try:
                    await self.gateway.append_sync_log(connector_id, sync_type, result)
                except Exception:
                    logger.exception("Failed to write sync log for connector %s", connector_id)

        return result

    async def _mark_error(self, connector_id: str, message: str) -> None:
        try:
            await self.gateway.mark_connector_error(connector_id, message)
        except Exception:
            logger.exception("Failed to record error status for connector %s", connector_id)

    async def test_all_connections(self) -> dict[str, ConnectorHealth]:
        """Health-check every registered connector without waiting for in-flight syncs."""
        snapshot = list(self._connectors.items())
        results = await asyncio.gather(*(self._health(cid, connector) for cid, connector in snapshot))
        return {cid: health for (cid, _), health in zip(snapshot, results)}

    async def _health(self, connector_id: str, connector: BaseConnector) -> ConnectorHealth:
        try:
            return await connector.get_health()
        except Exception as exc:
            logger.error("Health check of connector %s raised: %s", connector_id, exc)
            return ConnectorHealth(
                healthy=False,
                message=str(exc) or "Unknown error",
                last_sync=connector.config.last_sync,
            )
