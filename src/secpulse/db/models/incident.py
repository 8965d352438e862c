"""Normalized incident table."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Index, JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from secpulse.db.base import Base, TimestampMixin


class IncidentRow(Base, TimestampMixin):
    __tablename__ = "incidents"
    # Lookup index only: reconciliation is read-then-write, not upsert-on-conflict.
    __table_args__ = (Index("ix_incidents_source_source_id", "source", "source_id"),)

    incident_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    severity: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    source: Mapped[str] = mapped_column(String(100), nullable=False)
    source_id: Mapped[str] = mapped_column(String(256), nullable=False)
    detected_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    responded_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    contained_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    false_positive: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    affected_assets: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    ioc_indicators: Mapped[dict | None] = mapped_column(JSON, nullable=True)
