"""Connector configuration and sync log DB models."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from secpulse.db.base import Base, TimestampMixin


class ConnectorConfigRow(Base, TimestampMixin):
    """A configured external security-tool connector."""

    __tablename__ = "connector_configs"

    connector_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    connector_type: Mapped[str] = mapped_column(String(50), nullable=False)
    implementation: Mapped[str | None] = mapped_column(String(100), nullable=True)
    base_url: Mapped[str] = mapped_column(String(2000), nullable=False)
    auth_config: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    sync_interval: Mapped[int] = mapped_column(Integer, nullable=False, default=15)
    last_sync: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    status: Mapped[str] = mapped_column(String(50), nullable=False, default="pending")
    last_error: Mapped[str | None] = mapped_column(Text, nullable=True)
    config: Mapped[dict | None] = mapped_column(JSON, nullable=True)


class SyncLogRow(Base, TimestampMixin):
    """Append-only record of one connector sync run."""

    __tablename__ = "sync_logs"

    log_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    connector_id: Mapped[str] = mapped_column(
        String(128),
        ForeignKey("connector_configs.connector_id"),
        nullable=False,
        index=True,
    )
    sync_type: Mapped[str] = mapped_column(String(20), nullable=False)  # "incidents" or "assets"
    status: Mapped[str] = mapped_column(String(20), nullable=False)  # "success" or "failed"
    items_processed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    items_created: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    items_updated: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    error_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    duration_ms: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
