"""Render job CRUD operations for the autoreel database.

State-changing operations used by workers live in autoreel.jobs.queue;
this module only inserts and reads rows.
"""

import sqlite3

from autoreel.db.types import RenderJob, RenderJobStatus

from .helpers import JOB_COLUMNS, _escape_like_pattern, _row_to_job


def insert_job(conn: sqlite3.Connection, job: RenderJob) -> str:
    """Insert a new render job record.

    Args:
        conn: Database connection.
        job: Job to insert.

    Returns:
        The ID of the inserted job.

    Note:
        This function does NOT commit. Caller must manage transactions.
    """
    conn.execute(
        """
        INSERT INTO render_jobs (
            id, owner, source_reference, title, config_json, status, progress,
            worker_id, worker_heartbeat, retry_count, last_error, last_error_at,
            output_locations_json, metadata_json,
            created_at, updated_at, completed_at
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (
            job.id,
            job.owner,
            job.source_reference,
            job.title,
            job.config_json,
            job.status.value,
            job.progress,
            job.worker_id,
            job.worker_heartbeat,
            job.retry_count,
            job.last_error,
            job.last_error_at,
            job.output_locations_json,
            job.metadata_json,
            job.created_at,
            job.updated_at,
            job.completed_at,
        ),
    )
    return job.id


def get_job(conn: sqlite3.Connection, job_id: str) -> RenderJob | None:
    """Get a job by ID.

    Args:
        conn: Database connection.
        job_id: Job UUID.

    Returns:
        RenderJob if found, None otherwise.
    """
    cursor = conn.execute(
        f"SELECT {JOB_COLUMNS} FROM render_jobs WHERE id = ?",  # nosec B608
        (job_id,),
    )
    row = cursor.fetchone()
    if row is None:
        return None
    return _row_to_job(row)


def get_job_for_owner(
    conn: sqlite3.Connection, job_id: str, owner: str
) -> RenderJob | None:
    """Get a job by ID, visible only to its owner.

    A job owned by someone else is reported as missing so callers cannot
    probe for other accounts' job ids.
    """
    cursor = conn.execute(
        f"SELECT {JOB_COLUMNS} FROM render_jobs WHERE id = ? AND owner = ?",  # nosec B608
        (job_id, owner),
    )
    row = cursor.fetchone()
    return _row_to_job(row) if row else None


def get_jobs_for_owner(
    conn: sqlite3.Connection,
    owner: str,
    status: RenderJobStatus | None = None,
    limit: int | None = None,
) -> list[RenderJob]:
    """Get an owner's jobs, oldest first.

    Args:
        conn: Database connection.
        owner: Account identifier.
        status: Optional status filter.
        limit: Maximum number of jobs to return.

    Returns:
        List of RenderJob objects.
    """
    query = f"SELECT {JOB_COLUMNS} FROM render_jobs WHERE owner = ?"  # nosec B608
    params: list = [owner]
    if status is not None:
        query += " AND status = ?"
        params.append(status.value)
    query += " ORDER BY created_at, rowid"
    if limit is not None:
        query += " LIMIT ?"
        params.append(limit)

    cursor = conn.execute(query, params)
    return [_row_to_job(row) for row in cursor.fetchall()]


def get_jobs_by_status(
    conn: sqlite3.Connection,
    status: RenderJobStatus | None = None,
    limit: int | None = None,
) -> list[RenderJob]:
    """Get jobs across all owners, optionally filtered by status.

    Args:
        conn: Database connection.
        status: Filter by status (None = all jobs).
        limit: Maximum number of jobs to return.

    Returns:
        List of RenderJob objects, oldest first.
    """
    query = f"SELECT {JOB_COLUMNS} FROM render_jobs"  # nosec B608
    params: list = []
    if status is not None:
        query += " WHERE status = ?"
        params.append(status.value)
    query += " ORDER BY created_at, rowid"
    if limit is not None:
        query += " LIMIT ?"
        params.append(limit)

    cursor = conn.execute(query, params)
    return [_row_to_job(row) for row in cursor.fetchall()]


def get_jobs_by_id_prefix(conn: sqlite3.Connection, prefix: str) -> list[RenderJob]:
    """Get jobs whose ID starts with the given prefix.

    Used by the CLI so operators can type the first few characters of a
    UUID. Special LIKE characters in the prefix match literally.

    Args:
        conn: Database connection.
        prefix: Leading characters of the job ID.

    Returns:
        List of matching RenderJob objects.
    """
    pattern = _escape_like_pattern(prefix) + "%"
    cursor = conn.execute(
        f"SELECT {JOB_COLUMNS} FROM render_jobs "  # nosec B608
        "WHERE id LIKE ? ESCAPE '\\' ORDER BY created_at, rowid",
        (pattern,),
    )
    return [_row_to_job(row) for row in cursor.fetchall()]
