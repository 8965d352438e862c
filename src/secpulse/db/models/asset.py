"""Normalized asset inventory table."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from secpulse.db.base import Base, TimestampMixin


class AssetRow(Base, TimestampMixin):
    __tablename__ = "assets"

    asset_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    asset_type: Mapped[str] = mapped_column(String(50), nullable=False, default="server")
    hostname: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    ip_address: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    department: Mapped[str] = mapped_column(String(100), nullable=False, default="Unknown")
    criticality: Mapped[str] = mapped_column(String(20), nullable=False, default="medium")
    os: Mapped[str] = mapped_column(String(200), nullable=False, default="Unknown")
    edr_installed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    av_installed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    compliance_status: Mapped[str] = mapped_column(String(50), nullable=False, default="unknown")
    last_scan: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
