"""Pydantic model for job status responses."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict

from secpulse.models.enums import JobStatus, JobType


class JobStatusModel(BaseModel):
    model_config = ConfigDict(extra="forbid")

    job_id: str
    status: JobStatus
    job_type: JobType
    payload: dict | None = None
    result: dict | None = None
    errors: list[dict] | None = None
    trace_id: str
    created_at: datetime
    updated_at: datetime
