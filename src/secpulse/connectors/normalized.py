"""Normalized data models: canonical intermediates between external tools and storage."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from secpulse.models.enums import IncidentStatus, Severity


class NormalizedIncident(BaseModel):
    """Incident/alert from any source (Splunk, CrowdStrike, ServiceNow).

    Connectors convert source records INTO this model. Severity and status are
    typed with closed enums so raw source vocabulary can never reach storage.
    """

    model_config = ConfigDict(extra="forbid")

    source: str
    source_id: str
    title: str
    description: str = ""
    severity: Severity
    status: IncidentStatus = IncidentStatus.NEW
    detected_at: datetime
    resolved_at: datetime | None = None
    # Hints used to link the incident to stored assets; not persisted as-is.
    asset_hostnames: list[str] = Field(default_factory=list)
    asset_ips: list[str] = Field(default_factory=list)
    asset_names: list[str] = Field(default_factory=list)
    ioc_indicators: dict | None = None


class NormalizedAsset(BaseModel):
    """Inventory record from any source.

    Fields left as None are "not reported by this source" and are neither
    written on insert (column defaults apply) nor on update.
    """

    model_config = ConfigDict(extra="forbid")

    source: str
    name: str
    hostname: str | None = None
    ip_address: str | None = None
    asset_type: str = "server"
    department: str | None = None
    criticality: Severity | None = None
    os: str | None = None
    edr_installed: bool | None = None
    av_installed: bool | None = None
    compliance_status: str | None = None
    last_scan: datetime | None = None
