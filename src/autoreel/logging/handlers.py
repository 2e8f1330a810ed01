"""JSON log formatting for autoreel."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any

# Attributes every LogRecord carries; anything else came from extra= or a filter
_RECORD_ATTRS = frozenset(logging.makeLogRecord({}).__dict__) | {
    "message",
    "asctime",
    "taskName",
}
# Set by WorkerContextFilter; ids are reported only when present
_CONTEXT_ATTRS = ("worker_id", "job_id")
_IGNORED_ATTRS = _RECORD_ATTRS | set(_CONTEXT_ATTRS) | {"worker_tag"}


class JSONFormatter(logging.Formatter):
    """One JSON object per line.

    Keys: timestamp (ISO-8601 UTC), level, message, logger, plus a context
    object with worker/job ids and any extra= fields, and the formatted
    exception when there is one.
    """

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        entry: dict[str, Any] = {
            "timestamp": created.isoformat(),
            "level": record.levelname,
            "message": record.getMessage(),
        }
        if record.name != "root":
            entry["logger"] = record.name

        context = {
            name: getattr(record, name)
            for name in _CONTEXT_ATTRS
            if getattr(record, name, None)
        }
        context.update(
            (key, value)
            for key, value in vars(record).items()
            if key not in _IGNORED_ATTRS and not key.startswith("_")
        )
        if context:
            entry["context"] = context
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)
