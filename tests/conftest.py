"""Shared test fixtures for autoreel."""

import json
import sqlite3
import uuid
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

import pytest

from autoreel.db import RenderJob, RenderJobStatus, insert_job, open_connection
from autoreel.db.schema import initialize_database
from autoreel.executor.interface import AdapterResult, SegmentRequest
from autoreel.jobs.services import RenderJobService
from autoreel.jobs.workspace import JobWorkspace
from autoreel.plan.models import RenderPlan, RenderRequest, freeze_job_config

# =============================================================================
# Database
# =============================================================================


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    """Path of an initialized, file-backed test database."""
    path = tmp_path / "jobs.db"
    conn = open_connection(path)
    try:
        initialize_database(conn)
    finally:
        conn.close()
    return path


@pytest.fixture
def db_conn(db_path: Path):
    """Connection to the test database."""
    conn = open_connection(db_path)
    yield conn
    conn.close()


# =============================================================================
# Submissions
# =============================================================================


@pytest.fixture
def request_data() -> dict[str, Any]:
    """A render request as a caller would submit it (camelCase)."""
    return {
        "sourceReference": "https://videos.example.com/watch?v=keynote",
        "tone": "bold",
        "highlightCount": 3,
        "highlightDurationSeconds": 15,
        "callToAction": "Follow for more",
    }


@pytest.fixture
def plan_data() -> dict[str, Any]:
    """A three-segment plan of 15 seconds each."""
    return {
        "aspectRatio": "9:16",
        "segments": [
            {
                "label": "Opening",
                "startSeconds": 0,
                "endSeconds": 15,
                "hook": "Why this matters",
            },
            {
                "label": "Demo",
                "startSeconds": 60,
                "endSeconds": 75,
                "hook": "Watch this",
                "overlayText": "Live demo: 2x faster",
            },
            {
                "label": "Close",
                "startSeconds": 120.4,
                "endSeconds": 135.4,
                "hook": "One more thing",
            },
        ],
    }


def build_job(
    request_data: dict[str, Any],
    plan_data: dict[str, Any],
    *,
    owner: str = "acct-1",
    status: RenderJobStatus = RenderJobStatus.QUEUED,
    created_at: str | None = None,
    **overrides: Any,
) -> RenderJob:
    request = RenderRequest.model_validate(request_data)
    plan = RenderPlan.model_validate(plan_data)
    now = created_at or datetime.now(timezone.utc).isoformat()
    fields: dict[str, Any] = {
        "id": str(uuid.uuid4()),
        "owner": owner,
        "source_reference": request.source_reference,
        "config_json": json.dumps(freeze_job_config(request, plan)),
        "status": status,
        "progress": 0,
        "created_at": now,
        "updated_at": now,
    }
    fields.update(overrides)
    return RenderJob(**fields)


@pytest.fixture
def insert_render_job(
    db_conn: sqlite3.Connection,
    request_data: dict[str, Any],
    plan_data: dict[str, Any],
) -> Callable[..., RenderJob]:
    """Insert a job directly; keyword arguments override RenderJob fields.

    Successive calls get increasing created_at values unless one is given.
    """
    base = datetime.now(timezone.utc) - timedelta(hours=1)
    counter = {"n": 0}

    def _insert(**overrides: Any) -> RenderJob:
        counter["n"] += 1
        overrides.setdefault(
            "created_at", (base + timedelta(seconds=counter["n"])).isoformat()
        )
        job = build_job(request_data, plan_data, **overrides)
        insert_job(db_conn, job)
        db_conn.commit()
        return job

    return _insert


# =============================================================================
# Fake adapters
# =============================================================================


class FakeFetcher:
    """Writes placeholder bytes instead of downloading."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.calls: list[str] = []

    def fetch(self, source_reference: str, destination: Path) -> AdapterResult:
        self.calls.append(source_reference)
        if self.fail:
            return AdapterResult(success=False, message="HTTP Error 404: Not Found")
        destination.write_bytes(b"source-video")
        return AdapterResult(success=True, output_path=destination)

    def resolve_title(self, source_reference: str) -> str | None:
        return "Keynote 2024"


class FakeTranscoder:
    """Writes one distinct payload per segment.

    fail_on maps a segment index to the number of times it should fail
    before succeeding (use a large number to fail forever).
    """

    def __init__(self, fail_on: dict[int, int] | None = None) -> None:
        self.fail_on = dict(fail_on or {})
        self.requests: list[SegmentRequest] = []

    def transcode(self, request: SegmentRequest) -> AdapterResult:
        self.requests.append(request)
        index = int(request.output_path.stem.rsplit("-", 1)[1]) - 1
        remaining = self.fail_on.get(index, 0)
        if remaining > 0:
            self.fail_on[index] = remaining - 1
            return AdapterResult(success=False, message="ffmpeg exit 1: codec error")
        payload = f"segment-{index}:{request.start_seconds}:{request.duration_seconds}"
        request.output_path.write_bytes(payload.encode())
        return AdapterResult(success=True, output_path=request.output_path)


class FakeConcatenator:
    """Joins segment payloads with a separator."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.calls: list[list[Path]] = []

    def concatenate(self, segments: list[Path], destination: Path) -> AdapterResult:
        self.calls.append(list(segments))
        if self.fail:
            return AdapterResult(success=False, message="concat filter failed")
        destination.write_bytes(b"|".join(p.read_bytes() for p in segments))
        return AdapterResult(success=True, output_path=destination)


@pytest.fixture
def workspace(tmp_path: Path) -> JobWorkspace:
    return JobWorkspace(tmp_path / "scratch")


@pytest.fixture
def fake_fetcher() -> FakeFetcher:
    return FakeFetcher()


@pytest.fixture
def fake_transcoder() -> FakeTranscoder:
    return FakeTranscoder()


@pytest.fixture
def fake_concatenator() -> FakeConcatenator:
    return FakeConcatenator()


@pytest.fixture
def render_service(
    workspace: JobWorkspace,
    fake_fetcher: FakeFetcher,
    fake_transcoder: FakeTranscoder,
    fake_concatenator: FakeConcatenator,
) -> RenderJobService:
    """RenderJobService wired to the fake adapters."""
    return RenderJobService(
        workspace, fake_fetcher, fake_transcoder, fake_concatenator
    )


@pytest.fixture
def make_job(
    request_data: dict[str, Any], plan_data: dict[str, Any]
) -> Callable[..., RenderJob]:
    """Build a RenderJob in memory from the current request and plan data."""

    def _make(**overrides: Any) -> RenderJob:
        return build_job(request_data, plan_data, **overrides)

    return _make
