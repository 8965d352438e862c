"""Job queue, worker lifecycle and housekeeping job tests."""

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from secpulse.db.models.asset import AssetRow
from secpulse.db.models.connector import SyncLogRow
from secpulse.db.models.incident import IncidentRow
from secpulse.db.models.metrics import MetricsHistoryRow
from secpulse.events.broadcast import METRICS_UPDATE
from secpulse.models.enums import JobStatus, JobType
from secpulse.models.sync import SyncResult
from secpulse.repositories.job_repo import JobRepository
from secpulse.repositories.metrics_repo import MetricsHistoryRepository
from secpulse.workers.base import BaseWorker
from secpulse.workers.cleanup_worker import CleanupOldDataWorker
from secpulse.workers.consumer import process_next
from secpulse.workers.metrics_worker import (
    CalculateMetricsWorker,
    compute_incident_metrics,
    department_incident_counts,
)
from secpulse.workers.registry import get_worker
from secpulse.workers.sync_worker import SyncIncidentsWorker

NOW = datetime.now(timezone.utc)


def incident(n: int, **fields) -> IncidentRow:
    values = {
        "incident_id": f"inc_{n}",
        "title": f"Incident {n}",
        "severity": "high",
        "status": "new",
        "source": "splunk",
        "source_id": f"alert-{n}",
        "detected_at": NOW - timedelta(hours=1),
        "affected_assets": [],
    }
    values.update(fields)
    return IncidentRow(**values)


async def job_row(session_factory, job_id):
    async with session_factory() as session:
        return await JobRepository(session).get(job_id)


class ExplodingWorker(BaseWorker):
    async def process(self, job_id, payload, ctx):
        raise RuntimeError("remote unavailable")


class TestQueue:
    async def test_enqueue_records_job_and_queues_message(self, sync_context, session_factory):
        job = await sync_context.queue.enqueue(JobType.SYNC_ASSETS, {"x": 1}, trace_id="trc_test")

        assert job.status is JobStatus.QUEUED
        row = await job_row(session_factory, job.job_id)
        assert row.status == "queued"
        assert row.trace_id == "trc_test"

        job_type, message = await sync_context.queue.pop(timeout=0.1)
        assert job_type == "sync_assets"
        assert message == {"job_id": job.job_id, "payload": {"x": 1}}

    async def test_pop_times_out_on_empty_queue(self, sync_context):
        assert await sync_context.queue.pop(timeout=0.01) is None

    def test_registry_covers_every_job_type(self):
        for job_type in JobType:
            assert get_worker(job_type.value) is not None
        assert get_worker("unknown") is None


class TestLifecycle:
    async def test_failure_without_retries_marks_failed(self, sync_context, session_factory):
        job = await sync_context.queue.enqueue(JobType.SYNC_INCIDENTS, {})
        await sync_context.queue.pop(timeout=0.1)

        status = await ExplodingWorker().execute(job.job_id, "sync_incidents", {}, sync_context)

        assert status is JobStatus.FAILED
        row = await job_row(session_factory, job.job_id)
        assert row.status == "failed"
        assert row.errors[0]["message"] == "remote unavailable"
        assert sync_context.queue.pending_local() == 0

    async def test_failure_with_retries_requeues(self, sync_context, session_factory):
        worker = ExplodingWorker()
        worker.max_retries = 1
        job = await sync_context.queue.enqueue(JobType.CLEANUP_OLD_DATA, {})
        await sync_context.queue.pop(timeout=0.1)

        status = await worker.execute(job.job_id, "cleanup_old_data", {}, sync_context)

        assert status is JobStatus.QUEUED
        _, message = await sync_context.queue.pop(timeout=0.1)
        assert message["payload"]["_retry_count"] == 1

        status = await worker.execute(job.job_id, "cleanup_old_data", message["payload"], sync_context)
        assert status is JobStatus.FAILED

    async def test_set_status_stamps_row_and_ignores_missing_job(self, sync_context, session_factory):
        job = await sync_context.queue.enqueue(JobType.SYNC_ASSETS, {})

        async with session_factory() as session:
            repo = JobRepository(session)
            row = await repo.set_status(job.job_id, JobStatus.SUCCEEDED, result={"connectors": {}})
            missing = await repo.set_status("job_gone", JobStatus.FAILED)
            await session.commit()

        assert missing is None
        assert row.status == "succeeded"
        stored = await job_row(session_factory, job.job_id)
        assert stored.status == "succeeded"
        assert stored.result == {"connectors": {}}
        assert stored.updated_at is not None

    async def test_consumer_runs_queued_job(self, sync_context, session_factory):
        job = await sync_context.queue.enqueue(JobType.CALCULATE_METRICS)

        assert await process_next(sync_context, timeout=0.1) is True

        row = await job_row(session_factory, job.job_id)
        assert row.status == "succeeded"
        assert row.result["stored"] >= 0

    async def test_sync_worker_passes_window_and_summarizes(self, sync_context):
        seen = {}

        async def fake_sync_all(since=None):
            seen["since"] = since
            return {"c1": SyncResult(items_processed=2, items_created=2), "c2": SyncResult.failed("down")}

        sync_context.manager.sync_all_incidents = fake_sync_all

        result = await SyncIncidentsWorker().process(
            "job_x", {"since": "2026-03-01T00:00:00+00:00"}, sync_context
        )

        assert seen["since"] == datetime(2026, 3, 1, tzinfo=timezone.utc)
        assert result["connectors"]["c1"]["items_created"] == 2
        assert result["failed"] == ["c2"]


class TestMetrics:
    def test_compute_incident_metrics(self):
        detected = NOW - timedelta(hours=2)
        rows = [
            SimpleNamespace(
                status="resolved",
                severity="critical",
                detected_at=detected,
                created_at=detected + timedelta(minutes=2),
                responded_at=detected + timedelta(minutes=10),
                contained_at=detected + timedelta(minutes=30),
                resolved_at=detected + timedelta(minutes=60),
                false_positive=True,
            ),
            SimpleNamespace(
                status="new",
                severity="critical",
                detected_at=NOW - timedelta(days=3),
                created_at=NOW - timedelta(days=3) + timedelta(minutes=4),
                responded_at=None,
                contained_at=None,
                resolved_at=None,
                false_positive=False,
            ),
        ]

        metrics = compute_incident_metrics(rows, NOW)

        assert metrics["active_incidents"] == 1
        assert metrics["critical_incidents"] == 1
        assert metrics["mttr"] == 60
        assert metrics["mtd"] == 3
        assert metrics["mtr"] == 10
        assert metrics["mtc"] == 30
        assert metrics["alert_volume"] == 1
        assert metrics["false_positive_rate"] == 50

    def test_no_incidents(self):
        metrics = compute_incident_metrics([], NOW)
        assert metrics["active_incidents"] == 0
        assert metrics["mttr"] is None
        assert metrics["false_positive_rate"] is None

    def test_department_counts_are_distinct_per_incident(self):
        assets = {
            "a1": SimpleNamespace(department="Finance"),
            "a2": SimpleNamespace(department="Finance"),
            "a3": SimpleNamespace(department="HR"),
        }
        rows = [
            SimpleNamespace(affected_assets=["a1", "a2"]),
            SimpleNamespace(affected_assets=["a3", "missing"]),
            SimpleNamespace(affected_assets=[]),
        ]
        assert department_incident_counts(rows, assets) == {"Finance": 1, "HR": 1}

    async def test_rollup_stores_snapshot_and_broadcasts(self, sync_context, session_factory, broadcaster):
        async with session_factory() as session:
            session.add(AssetRow(asset_id="a1", name="srv-1", department="Finance"))
            session.add(incident(1, affected_assets=["a1"], severity="critical"))
            session.add(incident(2, status="closed"))
            await session.commit()

        result = await CalculateMetricsWorker().process("job_m", {}, sync_context)

        assert result["metrics"]["active_incidents"] == 1
        assert result["departments"] == {"Finance": 1}
        async with session_factory() as session:
            repo = MetricsHistoryRepository(session)
            assert (await repo.list_by_name("active_incidents"))[0].metric_value == 1
            dept = await repo.list_by_name("department_incidents")
        assert [(m.department, m.metric_value) for m in dept] == [("Finance", 1)]
        assert len(broadcaster.of_type(METRICS_UPDATE)) == 1


class TestCleanup:
    async def test_deletes_only_expired_closed_data(self, sync_context, session_factory, add_connector):
        await add_connector("c1", "Splunk", "siem")
        old = NOW - timedelta(days=400)
        async with session_factory() as session:
            session.add(incident(1, status="resolved", detected_at=old, resolved_at=old))
            session.add(incident(2, status="new", detected_at=old))
            session.add(incident(3, status="closed", detected_at=NOW, resolved_at=NOW))
            session.add(
                MetricsHistoryRow(metric_id="m_old", metric_date=old, metric_name="mttr", metric_value=1.0)
            )
            session.add(
                MetricsHistoryRow(metric_id="m_new", metric_date=NOW, metric_name="mttr", metric_value=1.0)
            )
            session.add(
                SyncLogRow(
                    log_id="s_old",
                    connector_id="c1",
                    sync_type="incidents",
                    status="success",
                    created_at=NOW - timedelta(days=91),
                )
            )
            session.add(SyncLogRow(log_id="s_new", connector_id="c1", sync_type="incidents", status="success"))
            await session.commit()

        counts = await CleanupOldDataWorker().process("job_c", {}, sync_context)

        assert counts == {"incidents_deleted": 1, "metrics_deleted": 1, "sync_logs_deleted": 1}
        async with session_factory() as session:
            assert await session.get(IncidentRow, "inc_2") is not None
            assert await session.get(IncidentRow, "inc_3") is not None


@pytest.mark.parametrize("job_type", [JobType.SYNC_ASSETS, JobType.SYNC_INCIDENTS])
async def test_sync_jobs_succeed_with_no_connectors(job_type, sync_context, session_factory):
    job = await sync_context.queue.enqueue(job_type)

    await process_next(sync_context, timeout=0.1)

    row = await job_row(session_factory, job.job_id)
    assert row.status == "succeeded"
    assert row.result == {"connectors": {}, "failed": []}
