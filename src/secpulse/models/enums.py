"""Closed vocabularies shared by connectors, storage and the API."""

from enum import StrEnum


class ConnectorType(StrEnum):
    SIEM = "siem"
    EDR = "edr"
    CMDB = "cmdb"
    TICKETING = "ticketing"
    VULNERABILITY_SCANNER = "vulnerability_scanner"


class ConnectorStatus(StrEnum):
    PENDING = "pending"
    ACTIVE = "active"
    ERROR = "error"


class AuthType(StrEnum):
    NONE = "none"
    BEARER = "bearer"
    BASIC = "basic"


class Severity(StrEnum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class IncidentStatus(StrEnum):
    NEW = "new"
    IN_PROGRESS = "in-progress"
    RESOLVED = "resolved"
    CLOSED = "closed"


class SyncType(StrEnum):
    INCIDENTS = "incidents"
    ASSETS = "assets"


class SyncLogStatus(StrEnum):
    SUCCESS = "success"
    FAILED = "failed"


class JobType(StrEnum):
    SYNC_INCIDENTS = "sync_incidents"
    SYNC_ASSETS = "sync_assets"
    CALCULATE_METRICS = "calculate_metrics"
    CLEANUP_OLD_DATA = "cleanup_old_data"


class JobStatus(StrEnum):
    QUEUED = "queued"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
