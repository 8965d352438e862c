"""ServiceNow Table API connector (incident ticketing and CMDB servers)."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from datetime import datetime

import httpx

from secpulse.connectors.base import BaseConnector
from secpulse.connectors.normalization import (
    normalize_criticality,
    severity_from_priority,
    status_from_state_code,
)
from secpulse.connectors.normalized import NormalizedAsset, NormalizedIncident
from secpulse.connectors.pagination import Page, next_offset, paginate
from secpulse.timeutils import parse_timestamp, utcnow

logger = logging.getLogger(__name__)

SOURCE = "servicenow"

INCIDENT_FIELDS = (
    "sys_id,number,short_description,description,priority,urgency,severity,"
    "state,assigned_to,opened_at,resolved_at,cmdb_ci"
)
CI_FIELDS = "sys_id,name,ip_address,dns_domain,os,classification,u_criticality,u_department,install_status"

# Installed or In Maintenance
ACTIVE_CI_QUERY = "install_status=1^ORinstall_status=3"


def _value(field):
    """Raw value of a Table API field, whether or not display values were requested."""
    if isinstance(field, dict):
        return field.get("value")
    return field


def _display(field):
    if isinstance(field, dict):
        return field.get("display_value") or field.get("value")
    return field


class ServiceNowConnector(BaseConnector):
    connector_key = SOURCE
    display_name = "ServiceNow"

    incident_update_fields = ("status", "resolved_at")
    asset_update_fields = ("criticality", "department", "os", "last_scan")
    match_assets_by_name = True

    @property
    def page_size(self) -> int:
        return int(self.config.config.get("page_size", 500))

    async def test_connection(self) -> bool:
        return await self.probe("/api/now/table/sys_user", params={"sysparm_limit": 1})

    async def _table(self, client: httpx.AsyncClient, table: str, params: dict) -> AsyncIterator[dict]:
        async def fetch_page(cursor, limit):
            offset = cursor or 0
            response = await client.get(
                f"/api/now/table/{table}",
                params={
                    **params,
                    "sysparm_display_value": "all",
                    "sysparm_exclude_reference_link": "true",
                    "sysparm_limit": limit,
                    "sysparm_offset": offset,
                },
            )
            body = self.check_response(response)
            records = body.get("result") or []
            total = response.headers.get("X-Total-Count")
            return Page(
                items=records,
                next_cursor=next_offset(offset, len(records), limit, int(total) if total else None),
            )

        async for records in paginate(fetch_page, page_size=self.page_size):
            for record in records:
                yield record

    def fetch_incidents(self, client: httpx.AsyncClient, since: datetime) -> AsyncIterator[dict]:
        query = (
            f"sys_updated_on>={since:%Y-%m-%d %H:%M:%S}"
            "^category=security^ORcategory=network^priority<=3^ORDERBYsys_created_on"
        )
        return self._table(client, "incident", {"sysparm_query": query, "sysparm_fields": INCIDENT_FIELDS})

    def fetch_assets(self, client: httpx.AsyncClient) -> AsyncIterator[dict]:
        query = f"{ACTIVE_CI_QUERY}^ORDERBYsys_created_on"
        return self._table(client, "cmdb_ci_server", {"sysparm_query": query, "sysparm_fields": CI_FIELDS})

    def normalize_incident(self, raw: dict) -> NormalizedIncident:
        number = _value(raw.get("number"))
        resolved_raw = _value(raw.get("resolved_at"))
        ci_name = _display(raw.get("cmdb_ci"))

        return NormalizedIncident(
            source=SOURCE,
            source_id=_value(raw["sys_id"]),
            title=_value(raw.get("short_description")) or f"ServiceNow Incident {number}",
            description=_value(raw.get("description")) or "",
            severity=severity_from_priority(_value(raw.get("priority"))),
            status=status_from_state_code(_value(raw.get("state"))),
            detected_at=parse_timestamp(_value(raw["opened_at"])),
            resolved_at=parse_timestamp(resolved_raw) if resolved_raw else None,
            asset_names=[ci_name] if ci_name else [],
        )

    def normalize_asset(self, raw: dict) -> NormalizedAsset:
        name = _value(raw["name"])
        return NormalizedAsset(
            source=SOURCE,
            name=name,
            hostname=name,
            ip_address=_value(raw.get("ip_address")) or None,
            asset_type=_value(raw.get("classification")) or "server",
            department=_value(raw.get("u_department")) or "Unknown",
            criticality=normalize_criticality(_value(raw.get("u_criticality"))),
            os=_value(raw.get("os")) or "Unknown",
            last_scan=utcnow(),
        )

    def describe_incident(self, raw: dict) -> str:
        return f"incident {_value(raw.get('number')) or _value(raw.get('sys_id'))}"

    def describe_asset(self, raw: dict) -> str:
        return f"CI {_value(raw.get('name'))}"
