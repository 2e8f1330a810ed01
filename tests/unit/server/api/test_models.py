"""Tests for API response payloads."""

from autoreel.db import RenderJobStatus
from autoreel.server.api.models import RenderJobListResponse, RenderJobStatusResponse


def test_status_payload_is_camel_case(make_job):
    job = make_job(
        status=RenderJobStatus.FAILED,
        retry_count=2,
        last_error="Segment 2/3 (Demo) failed",
    )

    payload = RenderJobStatusResponse.from_job(job).to_dict()

    assert set(payload) == {
        "id",
        "status",
        "progress",
        "sourceReference",
        "title",
        "createdAt",
        "updatedAt",
        "completedAt",
        "outputLocations",
        "lastError",
        "retryCount",
    }
    assert payload["status"] == "failed"
    assert payload["retryCount"] == 2


def test_list_payload_total(make_job):
    jobs = [RenderJobStatusResponse.from_job(make_job()) for _ in range(3)]

    assert RenderJobListResponse(jobs=jobs).to_dict()["total"] == 3
