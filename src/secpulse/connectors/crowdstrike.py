"""CrowdStrike Falcon EDR connector.

Detections and devices are both fetched in two steps: an id query with
offset pagination, then an entity-detail call per page of ids.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from datetime import datetime

import httpx

from secpulse.connectors.base import BaseConnector
from secpulse.connectors.normalization import normalize_status, severity_from_score
from secpulse.connectors.normalized import NormalizedAsset, NormalizedIncident
from secpulse.connectors.pagination import Page, next_offset, paginate
from secpulse.timeutils import parse_timestamp, utcnow

logger = logging.getLogger(__name__)

SOURCE = "crowdstrike"

# Entity-detail endpoints accept at most this many ids per call.
DETAIL_BATCH_SIZE = 100


class CrowdStrikeConnector(BaseConnector):
    connector_key = SOURCE
    display_name = "CrowdStrike"

    incident_update_fields = ("status",)
    asset_update_fields = ("edr_installed", "os", "last_scan")

    @property
    def page_size(self) -> int:
        return int(self.config.config.get("page_size", DETAIL_BATCH_SIZE))

    async def test_connection(self) -> bool:
        return await self.probe("/sensors/queries/sensors/v1", params={"limit": 1})

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def _query_ids(
        self,
        client: httpx.AsyncClient,
        path: str,
        params: dict,
    ) -> AsyncIterator[list[str]]:
        async def fetch_page(cursor, limit):
            offset = cursor or 0
            response = await client.get(path, params={**params, "limit": limit, "offset": offset})
            body = self.check_response(response)
            ids = body.get("resources") or []
            total = ((body.get("meta") or {}).get("pagination") or {}).get("total")
            return Page(items=ids, next_cursor=next_offset(offset, len(ids), limit, total))

        async for ids in paginate(fetch_page, page_size=self.page_size):
            yield ids

    async def _entities(self, client: httpx.AsyncClient, path: str, ids: list[str]) -> list[dict]:
        resources: list[dict] = []
        for start in range(0, len(ids), DETAIL_BATCH_SIZE):
            batch = ids[start : start + DETAIL_BATCH_SIZE]
            response = await client.post(path, json={"ids": batch})
            resources.extend(self.check_response(response).get("resources") or [])
        return resources

    async def fetch_incidents(self, client: httpx.AsyncClient, since: datetime) -> AsyncIterator[dict]:
        params = {
            "filter": f"created_timestamp:>='{since:%Y-%m-%dT%H:%M:%SZ}'",
            "sort": "created_timestamp.desc",
        }
        async for ids in self._query_ids(client, "/detects/queries/detects/v1", params):
            if not ids:
                continue
            for detection in await self._entities(client, "/detects/entities/summaries/GET/v1", ids):
                yield detection

    async def fetch_assets(self, client: httpx.AsyncClient) -> AsyncIterator[dict]:
        async for ids in self._query_ids(client, "/devices/queries/devices/v1", {}):
            if not ids:
                continue
            for device in await self._entities(client, "/devices/entities/devices/v1", ids):
                yield device

    # ------------------------------------------------------------------
    # Mapping
    # ------------------------------------------------------------------

    def normalize_incident(self, raw: dict) -> NormalizedIncident:
        behaviors = raw.get("behaviors") or []
        device = raw.get("device") or {}
        hostname = device.get("hostname")
        local_ip = device.get("local_ip")

        title = (behaviors[0].get("display_name") if behaviors else None) or "CrowdStrike Detection"
        description = "\n\n".join(b["description"] for b in behaviors if b.get("description"))

        return NormalizedIncident(
            source=SOURCE,
            source_id=raw["detection_id"],
            title=title,
            description=description,
            severity=severity_from_score(raw.get("max_severity")),
            status=normalize_status(raw.get("status")),
            detected_at=parse_timestamp(raw["created_timestamp"]),
            asset_hostnames=[hostname] if hostname else [],
            asset_ips=[local_ip] if local_ip else [],
            ioc_indicators={
                "hostname": hostname,
                "ip": local_ip,
                "tactics": [b.get("tactic") for b in behaviors],
                "techniques": [b.get("technique") for b in behaviors],
            },
        )

    def normalize_asset(self, raw: dict) -> NormalizedAsset:
        hostname = raw.get("hostname")
        local_ip = raw.get("local_ip")
        # Asset matching keys on hostname or IP.
        if not hostname and not local_ip:
            raise ValueError(f"device {raw.get('device_id')} reports neither hostname nor local IP")
        return NormalizedAsset(
            source=SOURCE,
            name=hostname or raw["device_id"],
            hostname=hostname,
            ip_address=local_ip,
            asset_type="workstation" if raw.get("platform_name") == "Windows" else "server",
            os=raw.get("os_version"),
            edr_installed=True,
            last_scan=utcnow(),
        )

    def describe_incident(self, raw: dict) -> str:
        return f"detection {raw.get('detection_id', '<unknown>')}"

    def describe_asset(self, raw: dict) -> str:
        return f"device {raw.get('hostname') or raw.get('device_id', '<unknown>')}"
