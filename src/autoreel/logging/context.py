"""Worker context for structured logging.

Worker and job identity travel in contextvars so every log line emitted
while a job renders carries them without threading ids through calls.
"""

from __future__ import annotations

import contextvars
import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Generator

_worker_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "worker_id", default=None
)
_job_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "job_id", default=None
)


def set_worker_context(worker_id: str, job_id: str | None = None) -> None:
    """Set the current worker context."""
    _worker_id.set(worker_id)
    _job_id.set(job_id)


def clear_worker_context() -> None:
    """Clear the current worker context."""
    _worker_id.set(None)
    _job_id.set(None)


@contextmanager
def worker_context(
    worker_id: str, job_id: str | None = None
) -> Generator[None, None, None]:
    """Context manager for worker processing context.

    Sets worker context on entry and restores the previous one on exit.

    Example:
        with worker_context("autoreel-worker-123", job.id):
            logger.info("Rendering")  # Tagged [Wautoreel-worker-123:1a2b3c4d]
    """
    old_worker_id = _worker_id.get()
    old_job_id = _job_id.get()
    try:
        set_worker_context(worker_id, job_id)
        yield
    finally:
        _worker_id.set(old_worker_id)
        _job_id.set(old_job_id)


def get_worker_context() -> tuple[str | None, str | None]:
    """Get current worker context as (worker_id, job_id)."""
    return _worker_id.get(), _job_id.get()


class WorkerContextFilter(logging.Filter):
    """Logging filter that injects worker context into log records.

    Adds worker_id and job_id attributes for JSON output and a compact
    worker_tag such as "[Wworker-1:1a2b3c4d] " for text output.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        worker_id, job_id = get_worker_context()

        record.worker_id = worker_id
        record.job_id = job_id

        if worker_id:
            if job_id:
                record.worker_tag = f"[W{worker_id}:{job_id[:8]}] "
            else:
                record.worker_tag = f"[W{worker_id}] "
        else:
            record.worker_tag = ""

        return True  # Never filter out records
