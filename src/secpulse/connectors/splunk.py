"""Splunk SIEM connector.

Splunk exposes data through asynchronous search jobs: a query is submitted,
the job is polled until ``isDone``, then results are paged out by offset.
A job that is not done within ``max_poll_attempts`` polls fails the run.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from datetime import datetime, timezone

import httpx

from secpulse.connectors.base import BaseConnector
from secpulse.connectors.normalization import normalize_severity
from secpulse.connectors.normalized import NormalizedAsset, NormalizedIncident
from secpulse.connectors.pagination import Page, next_offset, paginate
from secpulse.errors.exceptions import ConnectorError, SearchJobTimeoutError
from secpulse.models.enums import IncidentStatus
from secpulse.timeutils import parse_timestamp, utcnow

logger = logging.getLogger(__name__)

SOURCE = "splunk"

DEFAULT_POLL_INTERVAL = 1.0
DEFAULT_MAX_POLL_ATTEMPTS = 30
DEFAULT_RESULT_PAGE_SIZE = 1000

INCIDENT_SEARCH = (
    'search index={index} earliest={earliest} | where severity="high" OR severity="critical" '
    "| table _key, _time, severity, title, description, source, dest_ip, src_ip, user, host"
)
ASSET_SEARCH = "search index={index} | table host, ip, os, department | dedup host"


def parse_event_time(raw) -> datetime:
    """Splunk ``_time`` arrives as epoch seconds or as an ISO-8601 string."""
    try:
        return datetime.fromtimestamp(float(raw), tz=timezone.utc)
    except (TypeError, ValueError):
        return parse_timestamp(str(raw))


class SplunkConnector(BaseConnector):
    connector_key = SOURCE
    display_name = "Splunk"

    # Later sightings only bump updated_at.
    incident_update_fields = ()
    asset_update_fields = ("last_scan",)

    @property
    def poll_interval(self) -> float:
        return float(self.config.config.get("poll_interval", DEFAULT_POLL_INTERVAL))

    @property
    def max_poll_attempts(self) -> int:
        return int(self.config.config.get("max_poll_attempts", DEFAULT_MAX_POLL_ATTEMPTS))

    @property
    def page_size(self) -> int:
        return int(self.config.config.get("page_size", DEFAULT_RESULT_PAGE_SIZE))

    async def test_connection(self) -> bool:
        return await self.probe("/services/server/info", params={"output_mode": "json"})

    # ------------------------------------------------------------------
    # Search-job protocol
    # ------------------------------------------------------------------

    async def submit_search(self, client: httpx.AsyncClient, query: str) -> str:
        response = await client.post(
            "/services/search/jobs",
            data={"search": query, "output_mode": "json"},
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )
        sid = self.check_response(response).get("sid")
        if not sid:
            raise ConnectorError(self.display_name, "Splunk did not return a search job id")
        logger.debug("Submitted Splunk search job %s", sid)
        return sid

    async def wait_for_job(self, client: httpx.AsyncClient, sid: str) -> None:
        """Poll job status until done. Raises SearchJobTimeoutError past the attempt cap."""
        for attempt in range(1, self.max_poll_attempts + 1):
            await asyncio.sleep(self.poll_interval)
            response = await client.get(f"/services/search/jobs/{sid}", params={"output_mode": "json"})
            entries = self.check_response(response).get("entry") or []
            content = entries[0].get("content", {}) if entries else {}
            if content.get("dispatchState") == "FAILED":
                raise ConnectorError(self.display_name, f"Splunk search job {sid} failed")
            if content.get("isDone"):
                logger.debug("Splunk search job %s done after %d polls", sid, attempt)
                return
        raise SearchJobTimeoutError(self.display_name, sid, self.max_poll_attempts)

    async def search(self, client: httpx.AsyncClient, query: str) -> AsyncIterator[dict]:
        sid = await self.submit_search(client, query)
        await self.wait_for_job(client, sid)

        async def fetch_page(cursor, limit):
            offset = cursor or 0
            response = await client.get(
                f"/services/search/jobs/{sid}/results",
                params={"output_mode": "json", "count": limit, "offset": offset},
            )
            rows = self.check_response(response).get("results") or []
            return Page(items=rows, next_cursor=next_offset(offset, len(rows), limit))

        async for rows in paginate(fetch_page, page_size=self.page_size):
            for row in rows:
                yield row

    def fetch_incidents(self, client: httpx.AsyncClient, since: datetime) -> AsyncIterator[dict]:
        query = INCIDENT_SEARCH.format(
            index=self.config.config.get("incident_index", "security"),
            earliest=int(since.timestamp()),
        )
        return self.search(client, query)

    def fetch_assets(self, client: httpx.AsyncClient) -> AsyncIterator[dict]:
        query = ASSET_SEARCH.format(index=self.config.config.get("asset_index", "assets"))
        return self.search(client, query)

    # ------------------------------------------------------------------
    # Mapping
    # ------------------------------------------------------------------

    def normalize_incident(self, raw: dict) -> NormalizedIncident:
        source_id = raw.get("_key") or f"{raw['_time']}:{raw.get('host', '')}:{raw.get('title', '')}"
        dest_ip = raw.get("dest_ip")
        return NormalizedIncident(
            source=SOURCE,
            source_id=str(source_id),
            title=raw.get("title") or "Splunk Alert",
            description=raw.get("description") or "",
            severity=normalize_severity(raw.get("severity")),
            status=IncidentStatus.NEW,
            detected_at=parse_event_time(raw["_time"]),
            asset_ips=[dest_ip] if dest_ip else [],
            ioc_indicators={
                "src_ip": raw.get("src_ip"),
                "dest_ip": dest_ip,
                "user": raw.get("user"),
                "host": raw.get("host"),
            },
        )

    def normalize_asset(self, raw: dict) -> NormalizedAsset:
        host = raw["host"]
        return NormalizedAsset(
            source=SOURCE,
            name=host,
            hostname=host,
            ip_address=raw.get("ip") or None,
            os=raw.get("os") or "Unknown",
            department=raw.get("department") or "Unknown",
            last_scan=utcnow(),
        )

    def describe_incident(self, raw: dict) -> str:
        return f"alert {raw.get('_key', '<unknown>')}"

    def describe_asset(self, raw: dict) -> str:
        return f"asset {raw.get('host', '<unknown>')}"
