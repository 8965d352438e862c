"""Metrics history snapshots written by the rollup job."""

from datetime import datetime

from sqlalchemy import DateTime, Float, String
from sqlalchemy.orm import Mapped, mapped_column

from secpulse.db.base import Base, TimestampMixin


class MetricsHistoryRow(Base, TimestampMixin):
    __tablename__ = "metrics_history"

    metric_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    metric_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    metric_name: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    metric_value: Mapped[float] = mapped_column(Float, nullable=False)
    department: Mapped[str | None] = mapped_column(String(100), nullable=True)
