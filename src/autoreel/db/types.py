"""Data type definitions for the autoreel database.

Records mirror table rows one-to-one. Structured columns are stored as JSON
text and exposed through read-only properties so callers never parse them
by hand.
"""

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any


class RenderJobStatus(Enum):
    """Status of a render job.

    State transitions:
        queued/retry → rendering   (worker claim)
        rendering → completed      (pipeline success)
        rendering → retry          (failure, attempts remaining)
        rendering → failed         (failure, attempts exhausted)
        completed/failed/retry → queued  (explicit retry request)

    Terminal states: completed, failed
    """

    QUEUED = "queued"
    RENDERING = "rendering"
    COMPLETED = "completed"
    FAILED = "failed"
    RETRY = "retry"

    @property
    def is_claimable(self) -> bool:
        return self in (RenderJobStatus.QUEUED, RenderJobStatus.RETRY)


@dataclass
class RenderJob:
    """Database record for render_jobs table."""

    id: str  # UUID v4
    owner: str
    source_reference: str
    config_json: str  # Frozen {"request": ..., "plan": ...}
    status: RenderJobStatus
    progress: int  # 0 - 100

    # Timing (all ISO-8601 UTC)
    created_at: str
    updated_at: str
    completed_at: str | None = None

    title: str | None = None

    # Worker tracking
    worker_id: str | None = None
    worker_heartbeat: str | None = None

    # Failure tracking
    retry_count: int = 0
    last_error: str | None = None
    last_error_at: str | None = None

    # Results
    output_locations_json: str = "[]"
    metadata_json: str | None = None  # Attempt-local, e.g. {"local_path": ...}

    @property
    def config(self) -> dict[str, Any]:
        return json.loads(self.config_json)

    @property
    def output_locations(self) -> list[str]:
        return json.loads(self.output_locations_json or "[]")

    @property
    def metadata(self) -> dict[str, Any] | None:
        if not self.metadata_json:
            return None
        return json.loads(self.metadata_json)


@dataclass(frozen=True)
class QueueStats:
    """Job counts per status."""

    queued: int = 0
    rendering: int = 0
    completed: int = 0
    failed: int = 0
    retry: int = 0

    @property
    def total(self) -> int:
        return self.queued + self.rendering + self.completed + self.failed + self.retry
