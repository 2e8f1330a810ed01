"""Render job queue, pipeline and worker.

Usage:
    from autoreel.jobs import JobWorker, claim_next_job, create_render_job
"""

from autoreel.jobs.exceptions import (
    ConcurrentModificationError,
    JobNotFoundError,
    JobTrackingError,
    PlanValidationError,
)
from autoreel.jobs.queue import (
    STARTED_PROGRESS,
    claim_next_job,
    count_claimable_jobs,
    fail_or_retry_job,
    finalize_job,
    get_active_worker_count,
    get_queue_stats,
    recover_stale_jobs,
    reset_job_to_queued,
    update_heartbeat,
    update_job_progress,
)
from autoreel.jobs.retry import (
    ConcatenationError,
    ErrorKind,
    FailureDecision,
    PlanError,
    RenderPipelineError,
    SourceFetchError,
    TranscodeError,
    classify_error,
    decide_failure,
)
from autoreel.jobs.services import RenderJobResult, RenderJobService
from autoreel.jobs.tracking import create_render_job, parse_submission, resolve_title
from autoreel.jobs.worker import JobWorker
from autoreel.jobs.workspace import JobWorkspace, download_location

__all__ = [
    "STARTED_PROGRESS",
    "ConcatenationError",
    "ConcurrentModificationError",
    "ErrorKind",
    "FailureDecision",
    "JobNotFoundError",
    "JobTrackingError",
    "JobWorker",
    "JobWorkspace",
    "PlanError",
    "PlanValidationError",
    "RenderJobResult",
    "RenderJobService",
    "RenderPipelineError",
    "SourceFetchError",
    "TranscodeError",
    "claim_next_job",
    "classify_error",
    "count_claimable_jobs",
    "create_render_job",
    "decide_failure",
    "download_location",
    "fail_or_retry_job",
    "finalize_job",
    "get_active_worker_count",
    "get_queue_stats",
    "parse_submission",
    "recover_stale_jobs",
    "reset_job_to_queued",
    "resolve_title",
    "update_heartbeat",
    "update_job_progress",
]
