"""Abstract base class for security-tool connectors."""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from datetime import datetime, timedelta

import httpx

from secpulse.connectors.config import ConnectorConfig
from secpulse.connectors.normalized import NormalizedAsset, NormalizedIncident
from secpulse.errors.exceptions import ConnectorAuthError, ConnectorError
from secpulse.models.enums import ConnectorStatus
from secpulse.models.sync import ConnectorHealth, SyncResult
from secpulse.sync.gateway import PersistenceGateway
from secpulse.timeutils import utcnow

logger = logging.getLogger(__name__)

USER_AGENT = "SecPulse/1.0"


class BaseConnector(ABC):
    """Speaks one external system's protocol and reconciles its data into storage.

    Subclasses supply the transport details (``fetch_*``), the field mapping
    (``normalize_*``) and which stored fields a later sighting may change
    (``*_update_fields``). The reconciliation loop, error accounting and
    status stamping live here.
    """

    connector_key: str = "unknown"
    display_name: str = "Unknown"

    # Stored fields refreshed when an item is seen again.
    incident_update_fields: tuple[str, ...] = ("status",)
    asset_update_fields: tuple[str, ...] = ("last_scan",)
    # Also match stored assets whose name equals the reported name.
    match_assets_by_name: bool = False

    default_lookback = timedelta(hours=24)

    def __init__(
        self,
        config: ConnectorConfig,
        gateway: PersistenceGateway,
        *,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.config = config
        self.gateway = gateway
        self.timeout = timeout
        self._transport = transport

    # ------------------------------------------------------------------
    # HTTP plumbing
    # ------------------------------------------------------------------

    def client(self) -> httpx.AsyncClient:
        """Build an HTTP client bound to this connector's endpoint and credentials."""
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": USER_AGENT,
            **self.config.auth.get_headers(),
        }
        return httpx.AsyncClient(
            base_url=self.config.base_url.rstrip("/"),
            headers=headers,
            auth=self.config.auth.get_httpx_auth(),
            timeout=self.timeout,
            transport=self._transport,
            event_hooks={"request": [self._log_request], "response": [self._log_response]},
        )

    async def _log_request(self, request: httpx.Request) -> None:
        logger.debug("%s API request %s %s", self.config.name, request.method, request.url)

    async def _log_response(self, response: httpx.Response) -> None:
        level = logging.DEBUG if response.is_success else logging.WARNING
        logger.log(
            level,
            "%s API response %s for %s",
            self.config.name,
            response.status_code,
            response.request.url,
        )

    def check_response(self, response: httpx.Response) -> dict:
        """Raise for auth/HTTP errors and return the decoded JSON body."""
        if response.status_code in (401, 403):
            raise ConnectorAuthError(self.display_name, response.status_code)
        response.raise_for_status()
        try:
            return response.json()
        except ValueError as exc:
            raise ConnectorError(self.display_name, f"Non-JSON response from {self.display_name}") from exc

    async def probe(self, path: str, params: dict | None = None) -> bool:
        """GET *path* and report whether it answered 200. Expected failures return False."""
        try:
            async with self.client() as client:
                response = await client.get(path, params=params)
        except httpx.HTTPError as exc:
            logger.error("%s connection test failed: %s", self.display_name, exc)
            return False
        if response.status_code == 200:
            logger.info("%s connection test succeeded for %s", self.display_name, self.config.id)
            return True
        logger.warning(
            "%s connection test returned HTTP %s for %s",
            self.display_name,
            response.status_code,
            self.config.id,
        )
        return False

    # ------------------------------------------------------------------
    # Per-source hooks
    # ------------------------------------------------------------------

    @abstractmethod
    async def test_connection(self) -> bool:
        """Lightweight reachability/auth probe with no side effects."""
        ...

    @abstractmethod
    def fetch_incidents(self, client: httpx.AsyncClient, since: datetime) -> AsyncIterator[dict]:
        """Yield raw incident records created or changed at or after *since*."""
        ...

    @abstractmethod
    def normalize_incident(self, raw: dict) -> NormalizedIncident:
        ...

    @abstractmethod
    def fetch_assets(self, client: httpx.AsyncClient) -> AsyncIterator[dict]:
        """Yield every raw asset record in the remote inventory."""
        ...

    @abstractmethod
    def normalize_asset(self, raw: dict) -> NormalizedAsset:
        ...

    def describe_incident(self, raw: dict) -> str:
        return f"incident {raw.get('id', '<unknown>')}"

    def describe_asset(self, raw: dict) -> str:
        return f"asset {raw.get('name', '<unknown>')}"

    # ------------------------------------------------------------------
    # Sync operations
    # ------------------------------------------------------------------

    async def sync_incidents(self, since: datetime | None = None) -> SyncResult:
        """Pull incidents since *since* (default: last 24 hours) and reconcile them."""
        window_start = since or (utcnow() - self.default_lookback)
        return await self._run_sync(
            "incident",
            lambda client: self.fetch_incidents(client, window_start),
            self._reconcile_incident,
            self.describe_incident,
        )

    async def sync_assets(self) -> SyncResult:
        """Enumerate the full remote inventory and reconcile it."""
        return await self._run_sync(
            "asset",
            self.fetch_assets,
            self._reconcile_asset,
            self.describe_asset,
        )

    async def get_health(self) -> ConnectorHealth:
        try:
            healthy = await self.test_connection()
        except Exception as exc:
            logger.error("%s health check failed: %s", self.config.name, exc)
            return ConnectorHealth(
                healthy=False,
                message=str(exc) or "Unknown error",
                last_sync=self.config.last_sync,
            )
        return ConnectorHealth(
            healthy=healthy,
            message="Connector is healthy" if healthy else "Connection test failed",
            last_sync=self.config.last_sync,
        )

    async def _run_sync(self, kind: str, fetch, reconcile, describe) -> SyncResult:
        started = time.monotonic()
        result = SyncResult()

        try:
            async with self.client() as client:
                async for raw in fetch(client):
                    result.items_processed += 1
                    try:
                        created = await reconcile(raw)
                    except Exception as exc:
                        result.errors.append(f"Failed to process {describe(raw)}: {exc}")
                        logger.warning(
                            "Error processing %s %s", self.display_name, describe(raw), exc_info=True
                        )
                        continue
                    if created:
                        result.items_created += 1
                    else:
                        result.items_updated += 1
        except Exception as exc:
            message = f"{self.display_name} {kind} sync failed: {exc}"
            result.success = False
            result.errors.append(message)
            logger.error("%s", message)

        result.duration_ms = int((time.monotonic() - started) * 1000)
        await self._stamp_status(result)

        logger.info(
            "%s %s sync completed: success=%s processed=%d created=%d updated=%d errors=%d duration=%dms",
            self.display_name,
            kind,
            result.success,
            result.items_processed,
            result.items_created,
            result.items_updated,
            result.error_count,
            result.duration_ms,
        )
        return result

    async def _stamp_status(self, result: SyncResult) -> None:
        if result.success:
            await self.gateway.mark_connector_active(self.config.id)
            self.config.status = ConnectorStatus.ACTIVE
            self.config.last_error = None
        else:
            message = result.errors[-1]
            await self.gateway.mark_connector_error(self.config.id, message)
            self.config.status = ConnectorStatus.ERROR
            self.config.last_error = message
        self.config.last_sync = utcnow()

    async def _reconcile_incident(self, raw: dict) -> bool:
        """Insert or update one incident. Returns True when a new row was created."""
        incident = self.normalize_incident(raw)
        existing = await self.gateway.find_incident(incident.source, incident.source_id)
        if existing is not None:
            fields = {name: getattr(incident, name) for name in self.incident_update_fields}
            await self.gateway.update_incident(existing.incident_id, fields)
            return False

        asset_ids = await self.gateway.resolve_asset_ids(
            hostnames=incident.asset_hostnames,
            ips=incident.asset_ips,
            names=incident.asset_names,
        )
        await self.gateway.insert_incident(incident, asset_ids)
        return True

    async def _reconcile_asset(self, raw: dict) -> bool:
        """Insert or update one asset matched by hostname or IP. Returns True on insert."""
        asset = self.normalize_asset(raw)
        existing = await self.gateway.find_asset(
            hostname=asset.hostname,
            ip_address=asset.ip_address,
            name=asset.name if self.match_assets_by_name else None,
        )
        if existing is not None:
            fields = {
                name: getattr(asset, name)
                for name in self.asset_update_fields
                if getattr(asset, name) is not None
            }
            await self.gateway.update_asset(existing.asset_id, fields)
            return False

        await self.gateway.insert_asset(asset)
        return True
