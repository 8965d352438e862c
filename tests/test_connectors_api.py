"""Connector operations API tests."""

from secpulse.errors.exceptions import ConnectorAuthError, SearchJobTimeoutError
from secpulse.models.enums import SyncType
from secpulse.models.sync import SyncResult
from secpulse.workers.consumer import process_next


async def test_list_shows_registration(client, add_connector, sync_context):
    await add_connector("c_siem", "Splunk Enterprise", "siem")
    await add_connector("c_vuln", "Qualys", "vulnerability_scanner")
    await sync_context.manager.initialize()

    response = await client.get("/api/v1/connectors")

    assert response.status_code == 200
    by_id = {c["connector_id"]: c for c in response.json()}
    assert by_id["c_siem"]["registered"] is True
    assert by_id["c_siem"]["status"] == "pending"
    assert by_id["c_vuln"]["registered"] is False


async def test_reload_registers_new_connectors(client, add_connector):
    await add_connector("c_edr", "CrowdStrike Falcon", "edr")
    await add_connector("c_off", "Splunk Dev", "siem", enabled=False)

    response = await client.post("/api/v1/connectors/reload")

    assert response.status_code == 200
    assert response.json() == {"connectors": 1, "registered": ["c_edr"]}


async def test_connector_health(client, add_connector, sync_context):
    await add_connector("c_siem", "Splunk Enterprise", "siem")
    await sync_context.manager.initialize()

    response = await client.get("/api/v1/connectors/health")

    assert response.status_code == 200
    assert response.json()["c_siem"]["healthy"] is True


async def test_manual_incident_sync_is_queued_then_runs(client, sync_context):
    response = await client.post(
        "/api/v1/connectors/sync/incidents",
        json={"since": "2026-03-01T00:00:00Z"},
        headers={"X-Trace-Id": "trc_manual"},
    )

    assert response.status_code == 202
    job = response.json()
    assert job["status"] == "queued"
    assert job["job_type"] == "sync_incidents"
    assert job["trace_id"] == "trc_manual"
    assert job["payload"] == {"since": "2026-03-01T00:00:00+00:00"}

    await process_next(sync_context, timeout=0.1)

    polled = await client.get(f"/api/v1/jobs/{job['job_id']}")
    assert polled.status_code == 200
    assert polled.json()["status"] == "succeeded"
    assert polled.json()["result"] == {"connectors": {}, "failed": []}


async def test_manual_asset_sync_without_body(client):
    response = await client.post("/api/v1/connectors/sync/assets")

    assert response.status_code == 202
    assert response.json()["job_type"] == "sync_assets"


async def test_sync_logs(client, add_connector, session_factory, sync_context):
    config = await add_connector("c_siem", "Splunk Enterprise", "siem")
    await sync_context.gateway.append_sync_log(
        config.id, SyncType.INCIDENTS, SyncResult(items_processed=4, items_created=3, items_updated=1)
    )

    response = await client.get("/api/v1/connectors/c_siem/sync-logs")

    assert response.status_code == 200
    (entry,) = response.json()
    assert entry["sync_type"] == "incidents"
    assert entry["status"] == "success"
    assert (entry["items_created"], entry["items_updated"]) == (3, 1)
    assert entry["sync_time"]


async def test_unknown_connector_logs_404(client):
    response = await client.get("/api/v1/connectors/nope/sync-logs")

    assert response.status_code == 404
    error = response.json()["error"]
    assert error["code"] == "NOT_FOUND"
    assert error["trace_id"] == response.headers["X-Trace-Id"]


async def test_unknown_job_404(client):
    response = await client.get("/api/v1/jobs/job_missing")

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "NOT_FOUND"


async def test_future_since_is_rejected(client, sync_context):
    response = await client.post("/api/v1/connectors/sync/incidents", json={"since": "2999-01-01T00:00:00Z"})

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"
    assert sync_context.queue.pending_local() == 0


async def test_malformed_since_uses_error_envelope(client, sync_context):
    response = await client.post("/api/v1/connectors/sync/incidents", json={"since": "yesterday"})

    assert response.status_code == 422
    error = response.json()["error"]
    assert error["code"] == "VALIDATION_ERROR"
    assert error["details"][0]["loc"][-1] == "since"
    assert error["trace_id"] == response.headers["X-Trace-Id"]
    assert sync_context.queue.pending_local() == 0


async def test_connector_error_names_the_connector(app, client):
    async def rejected():
        raise ConnectorAuthError("Splunk", 401)

    async def timed_out():
        raise SearchJobTimeoutError("Splunk", "sid-9", 30)

    app.add_api_route("/api/v1/_rejected", rejected)
    app.add_api_route("/api/v1/_timed_out", timed_out)

    response = await client.get("/api/v1/_rejected")
    assert response.status_code == 502
    error = response.json()["error"]
    assert error["code"] == "CONNECTOR_AUTH_ERROR"
    assert error["details"] == {"connector": "Splunk"}

    response = await client.get("/api/v1/_timed_out")
    error = response.json()["error"]
    assert error["code"] == "SEARCH_JOB_TIMEOUT"
    assert error["details"] == {"connector": "Splunk", "job_id": "sid-9", "attempts": 30}
