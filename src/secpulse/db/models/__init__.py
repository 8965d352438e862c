"""SQLAlchemy ORM models - import all to register with Base.metadata."""

from secpulse.db.models.asset import AssetRow
from secpulse.db.models.connector import ConnectorConfigRow, SyncLogRow
from secpulse.db.models.incident import IncidentRow
from secpulse.db.models.job import JobRow
from secpulse.db.models.metrics import MetricsHistoryRow

__all__ = [
    "AssetRow",
    "ConnectorConfigRow",
    "SyncLogRow",
    "IncidentRow",
    "JobRow",
    "MetricsHistoryRow",
]
