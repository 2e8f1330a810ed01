"""Submit over HTTP, render with a worker, download the deliverable."""

import pytest

from autoreel.jobs.worker import JobWorker
from autoreel.server.app import create_app

pytestmark = pytest.mark.integration

ACCOUNT = {"X-Account-Id": "acct-1"}


async def test_submit_render_download(
    aiohttp_client, db_path, db_conn, workspace, render_service, request_data, plan_data
):
    client = await aiohttp_client(create_app(db_path, workspace.root))

    created = await client.post(
        "/api/render-jobs",
        json={"request": request_data, "plan": plan_data},
        headers=ACCOUNT,
    )
    job_id = (await created.json())["id"]

    worker = JobWorker(
        db_conn, render_service, "worker-a", exit_when_idle=True, heartbeat_interval=60
    )
    assert worker.run() == 1

    resp = await client.get(f"/api/render-jobs/{job_id}", headers=ACCOUNT)
    status = await resp.json()
    assert status["status"] == "completed"
    assert status["progress"] == 100
    assert status["outputLocations"] == [f"/api/render-jobs/{job_id}/download"]
    assert status["completedAt"] is not None

    download = await client.get(status["outputLocations"][0], headers=ACCOUNT)
    assert download.status == 200
    assert await download.read() == b"segment-0:0:15|segment-1:60:15|segment-2:120:15"
