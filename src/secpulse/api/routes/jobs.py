"""Job status polling endpoint."""

from fastapi import APIRouter

from secpulse.dependencies import DBSession
from secpulse.errors.exceptions import NotFoundError
from secpulse.models.job import JobStatusModel
from secpulse.repositories.job_repo import JobRepository

router = APIRouter(tags=["Jobs"])


@router.get("/jobs/{job_id}")
async def get_job_status(job_id: str, db: DBSession) -> dict:
    row = await JobRepository(db).get(job_id)
    if not row:
        raise NotFoundError("Job", job_id)

    return JobStatusModel(
        job_id=row.job_id,
        status=row.status,
        job_type=row.job_type,
        payload=row.payload,
        result=row.result,
        errors=row.errors,
        trace_id=row.trace_id,
        created_at=row.created_at,
        updated_at=row.updated_at,
    ).model_dump(mode="json", exclude_none=True)
