"""Sync run outcome and connector health models."""

from datetime import datetime

from pydantic import BaseModel, Field


class SyncResult(BaseModel):
    """Outcome of exactly one sync invocation.

    Mutated only by the run that created it; written to a sync log and
    returned to the caller once the run finishes.
    """

    success: bool = True
    items_processed: int = 0
    items_created: int = 0
    items_updated: int = 0
    errors: list[str] = Field(default_factory=list)
    duration_ms: int = 0

    @property
    def error_count(self) -> int:
        return len(self.errors)

    @classmethod
    def failed(cls, message: str, duration_ms: int = 0) -> "SyncResult":
        return cls(success=False, errors=[message], duration_ms=duration_ms)


class ConnectorHealth(BaseModel):
    healthy: bool
    message: str
    last_sync: datetime | None = None
