"""Job type to worker class lookup."""

from functools import cache

from secpulse.models.enums import JobType
from secpulse.workers.base import BaseWorker


@cache
def _workers() -> dict[str, type[BaseWorker]]:
    # Imported lazily: worker modules pull in the connector stack.
    from secpulse.workers.cleanup_worker import CleanupOldDataWorker
    from secpulse.workers.metrics_worker import CalculateMetricsWorker
    from secpulse.workers.sync_worker import SyncAssetsWorker, SyncIncidentsWorker

    return {
        JobType.SYNC_INCIDENTS.value: SyncIncidentsWorker,
        JobType.SYNC_ASSETS.value: SyncAssetsWorker,
        JobType.CALCULATE_METRICS.value: CalculateMetricsWorker,
        JobType.CLEANUP_OLD_DATA.value: CleanupOldDataWorker,
    }


def get_worker(job_type: str) -> BaseWorker | None:
    """Fresh worker instance for *job_type*, or None if nothing handles it."""
    cls = _workers().get(job_type)
    return cls() if cls else None
