"""Shared helper functions for database queries."""

import sqlite3
from datetime import datetime, timezone

from autoreel.db.types import RenderJob, RenderJobStatus

# Column list shared by every SELECT on render_jobs
JOB_COLUMNS = """
    id, owner, source_reference, title, config_json, status, progress,
    worker_id, worker_heartbeat, retry_count, last_error, last_error_at,
    output_locations_json, metadata_json, created_at, updated_at, completed_at
"""


def utc_now_iso() -> str:
    """Return the current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")


def _escape_like_pattern(value: str) -> str:
    """Escape special characters in SQL LIKE patterns.

    Note:
        Queries using this must include ESCAPE '\\' clause.
    """
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _row_to_job(row: sqlite3.Row) -> RenderJob:
    """Convert a database row to RenderJob using named columns.

    Args:
        row: sqlite3.Row from a SELECT on render_jobs using JOB_COLUMNS.

    Returns:
        RenderJob instance populated from the row.
    """
    return RenderJob(
        id=row["id"],
        owner=row["owner"],
        source_reference=row["source_reference"],
        title=row["title"],
        config_json=row["config_json"],
        status=RenderJobStatus(row["status"]),
        progress=row["progress"],
        worker_id=row["worker_id"],
        worker_heartbeat=row["worker_heartbeat"],
        retry_count=row["retry_count"],
        last_error=row["last_error"],
        last_error_at=row["last_error_at"],
        output_locations_json=row["output_locations_json"],
        metadata_json=row["metadata_json"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
        completed_at=row["completed_at"],
    )
