"""Structured logging for autoreel.

Configurable text or JSON output with file rotation, plus worker context
tagging for log lines emitted while a job renders.
"""

from autoreel.logging.config import configure_logging
from autoreel.logging.context import (
    WorkerContextFilter,
    clear_worker_context,
    get_worker_context,
    set_worker_context,
    worker_context,
)
from autoreel.logging.handlers import JSONFormatter

__all__ = [
    "JSONFormatter",
    "WorkerContextFilter",
    "clear_worker_context",
    "configure_logging",
    "get_worker_context",
    "set_worker_context",
    "worker_context",
]
