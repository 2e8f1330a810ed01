"""Render job queue operations.

Every state change a worker or caller can make to a job lives here:
- Atomic job claiming with BEGIN IMMEDIATE transactions
- Monotonic progress updates guarded by the worker's claim
- Finalize, fail-or-retry, and explicit retry-reset transitions
- Heartbeats and stale claim recovery for crashed workers

Each mutation is guarded by the (status, worker_id) pair in its WHERE
clause, so an operation whose guard no longer matches changes nothing.
All functions commit their own transaction.
"""

import json
import logging
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone

from autoreel.db.connection import execute_with_retry, is_lock_error
from autoreel.db.queries import get_job, utc_now_iso
from autoreel.db.types import QueueStats, RenderJob, RenderJobStatus
from autoreel.jobs.exceptions import ConcurrentModificationError, JobNotFoundError
from autoreel.jobs.retry import DEFAULT_MAX_RETRIES, decide_failure

logger = logging.getLogger(__name__)

# Progress written at claim time so callers can tell a job was picked up
STARTED_PROGRESS = 5

# Jobs without heartbeat for this long are considered abandoned
DEFAULT_HEARTBEAT_TIMEOUT = 300  # 5 minutes

RESETTABLE_STATUSES = (
    RenderJobStatus.COMPLETED,
    RenderJobStatus.FAILED,
    RenderJobStatus.RETRY,
)
CLAIMABLE_STATUSES = tuple(status for status in RenderJobStatus if status.is_claimable)
_CLAIMABLE_VALUES = tuple(status.value for status in CLAIMABLE_STATUSES)
_CLAIMABLE_PLACEHOLDERS = ", ".join("?" for _ in CLAIMABLE_STATUSES)


@contextmanager
def _immediate_transaction(conn: sqlite3.Connection) -> Iterator[sqlite3.Connection]:
    conn.execute("BEGIN IMMEDIATE")
    try:
        yield conn
        conn.execute("COMMIT")
    except BaseException:
        try:
            conn.execute("ROLLBACK")
        except sqlite3.Error:
            pass  # Best effort rollback
        raise


def claim_next_job(conn: sqlite3.Connection, worker_id: str) -> RenderJob | None:
    """Atomically claim the oldest claimable job.

    A job is claimable when its status is queued or retry and no worker
    holds it. BEGIN IMMEDIATE takes the write lock before the SELECT, so
    two workers can never pick the same row.

    Args:
        conn: Database connection.
        worker_id: Identity of the claiming worker.

    Returns:
        The claimed RenderJob, or None if nothing is claimable or the
        database was locked by another writer.
    """
    now = utc_now_iso()

    try:
        with _immediate_transaction(conn):
            row = conn.execute(
                f"""
                SELECT id FROM render_jobs
                WHERE status IN ({_CLAIMABLE_PLACEHOLDERS}) AND worker_id IS NULL
                ORDER BY created_at ASC, rowid ASC
                LIMIT 1
                """,  # nosec B608 - placeholders are literal "?" markers
                _CLAIMABLE_VALUES,
            ).fetchone()

            if row is None:
                return None

            job_id = row[0]
            cursor = conn.execute(
                f"""
                UPDATE render_jobs
                SET status = 'rendering',
                    worker_id = ?,
                    worker_heartbeat = ?,
                    progress = ?,
                    last_error = NULL,
                    updated_at = ?
                WHERE id = ?
                    AND status IN ({_CLAIMABLE_PLACEHOLDERS})
                    AND worker_id IS NULL
                """,  # nosec B608 - placeholders are literal "?" markers
                (worker_id, now, STARTED_PROGRESS, now, job_id, *_CLAIMABLE_VALUES),
            )
            if cursor.rowcount == 0:
                return None
    except sqlite3.OperationalError as e:
        if is_lock_error(e):
            logger.warning("Lock contention while claiming job: %s", e)
            return None  # Caller polls again
        logger.error("Database operational error while claiming job: %s", e)
        raise

    logger.debug("Worker %s claimed job %s", worker_id, job_id)
    return get_job(conn, job_id)


def update_job_progress(
    conn: sqlite3.Connection,
    job_id: str,
    worker_id: str,
    progress: int,
) -> bool:
    """Raise a rendering job's progress.

    Progress never moves backwards within an attempt: a lower value than
    the stored one is ignored.

    Args:
        conn: Database connection.
        job_id: Job UUID.
        worker_id: Worker that must currently hold the claim.
        progress: New percentage, 0-100.

    Returns:
        True if the job is still claimed by this worker, False otherwise.

    Raises:
        ValueError: If progress is outside 0-100.
    """
    if not 0 <= progress <= 100:
        raise ValueError(f"progress must be between 0 and 100, got {progress}")

    def _update() -> int:
        cursor = conn.execute(
            """
            UPDATE render_jobs
            SET progress = MAX(progress, ?), updated_at = ?
            WHERE id = ? AND status = 'rendering' AND worker_id = ?
            """,
            (progress, utc_now_iso(), job_id, worker_id),
        )
        conn.commit()
        return cursor.rowcount

    return execute_with_retry(_update) > 0


def finalize_job(
    conn: sqlite3.Connection,
    job_id: str,
    worker_id: str,
    output_locations: list[str],
    local_path: str | None = None,
) -> bool:
    """Mark a rendering job completed and release its claim.

    Args:
        conn: Database connection.
        job_id: Job UUID.
        worker_id: Worker that must currently hold the claim.
        output_locations: Download references for the deliverable.
        local_path: Filesystem location of the deliverable, recorded in
            the job's attempt-local metadata.

    Returns:
        True if the job was finalized, False if this worker no longer
        holds the claim.

    Raises:
        ValueError: If output_locations is empty.
    """
    if not output_locations:
        raise ValueError("A completed job needs at least one output location")

    metadata_json = json.dumps({"local_path": local_path}) if local_path else None

    def _finalize() -> int:
        now = utc_now_iso()
        cursor = conn.execute(
            """
            UPDATE render_jobs
            SET status = 'completed',
                progress = 100,
                output_locations_json = ?,
                metadata_json = ?,
                last_error = NULL,
                worker_id = NULL,
                worker_heartbeat = NULL,
                completed_at = ?,
                updated_at = ?
            WHERE id = ? AND status = 'rendering' AND worker_id = ?
            """,
            (json.dumps(output_locations), metadata_json, now, now, job_id, worker_id),
        )
        conn.commit()
        return cursor.rowcount

    updated = execute_with_retry(_finalize) > 0
    if not updated:
        logger.warning(
            "Job %s was not finalized: worker %s no longer holds the claim",
            job_id,
            worker_id,
        )
    return updated


def fail_or_retry_job(
    conn: sqlite3.Connection,
    job_id: str,
    worker_id: str,
    error_message: str,
    max_retries: int = DEFAULT_MAX_RETRIES,
) -> RenderJobStatus | None:
    """Record a failed attempt and release the claim.

    The job moves to retry while attempts remain, otherwise to failed.
    Progress is left where the attempt stopped.

    Args:
        conn: Database connection.
        job_id: Job UUID.
        worker_id: Worker that must currently hold the claim.
        error_message: Human-readable failure stored as last_error.
        max_retries: Configured maximum number of retries.

    Returns:
        The job's new status, or None if this worker no longer holds the
        claim (nothing was changed).
    """

    def _fail() -> RenderJobStatus | None:
        with _immediate_transaction(conn):
            row = conn.execute(
                """
                SELECT retry_count FROM render_jobs
                WHERE id = ? AND status = 'rendering' AND worker_id = ?
                """,
                (job_id, worker_id),
            ).fetchone()
            if row is None:
                return None

            decision = decide_failure(row["retry_count"], max_retries)
            now = utc_now_iso()
            conn.execute(
                """
                UPDATE render_jobs
                SET status = ?,
                    retry_count = ?,
                    last_error = ?,
                    last_error_at = ?,
                    worker_id = NULL,
                    worker_heartbeat = NULL,
                    updated_at = ?
                WHERE id = ? AND status = 'rendering' AND worker_id = ?
                """,
                (
                    decision.status.value,
                    decision.retry_count,
                    error_message,
                    now,
                    now,
                    job_id,
                    worker_id,
                ),
            )
            return decision.status

    status = execute_with_retry(_fail)
    if status is None:
        logger.warning(
            "Failure for job %s was not recorded: worker %s no longer holds the claim",
            job_id,
            worker_id,
        )
    return status


def reset_job_to_queued(
    conn: sqlite3.Connection,
    job_id: str,
    owner: str | None = None,
) -> RenderJob:
    """Reset a job so it runs again from scratch.

    Allowed from completed, failed and retry. Resetting a job that is
    already queued returns it unchanged. The retry count is preserved so
    a manually retried job that keeps failing still ends up failed.

    Args:
        conn: Database connection.
        job_id: Job UUID.
        owner: When given, the job must belong to this owner.

    Returns:
        The job after the reset.

    Raises:
        JobNotFoundError: If the job doesn't exist for this owner.
        ConcurrentModificationError: If a worker is rendering the job.
    """
    with _immediate_transaction(conn):
        row = conn.execute(
            "SELECT status, owner FROM render_jobs WHERE id = ?", (job_id,)
        ).fetchone()
        if row is None or (owner is not None and row["owner"] != owner):
            raise JobNotFoundError(job_id, "retry")

        status = RenderJobStatus(row["status"])
        if status is RenderJobStatus.RENDERING:
            raise ConcurrentModificationError(
                job_id,
                f"Job {job_id} is currently rendering; wait for it to finish",
                status=status.value,
            )

        if status in RESETTABLE_STATUSES:
            placeholders = ", ".join("?" for _ in RESETTABLE_STATUSES)
            conn.execute(
                f"""
                UPDATE render_jobs
                SET status = 'queued',
                    progress = 0,
                    last_error = NULL,
                    worker_id = NULL,
                    worker_heartbeat = NULL,
                    output_locations_json = '[]',
                    metadata_json = NULL,
                    completed_at = NULL,
                    updated_at = ?
                WHERE id = ? AND status IN ({placeholders})
                """,  # nosec B608 - placeholders are literal "?" markers
                (utc_now_iso(), job_id, *(s.value for s in RESETTABLE_STATUSES)),
            )
            logger.info("Job %s reset from %s to queued", job_id, status.value)

    job = get_job(conn, job_id)
    if job is None:
        raise JobNotFoundError(job_id, "retry")
    return job


def update_heartbeat(conn: sqlite3.Connection, job_id: str, worker_id: str) -> bool:
    """Update a rendering job's heartbeat timestamp.

    Args:
        conn: Database connection.
        job_id: Job UUID.
        worker_id: Worker that must currently hold the claim.

    Returns:
        True if heartbeat updated, False if the claim is gone.
    """
    cursor = conn.execute(
        """
        UPDATE render_jobs
        SET worker_heartbeat = ?
        WHERE id = ? AND status = 'rendering' AND worker_id = ?
        """,
        (utc_now_iso(), job_id, worker_id),
    )
    conn.commit()
    return cursor.rowcount > 0


def recover_stale_jobs(
    conn: sqlite3.Connection,
    timeout_seconds: int = DEFAULT_HEARTBEAT_TIMEOUT,
    max_retries: int = DEFAULT_MAX_RETRIES,
) -> int:
    """Release claims held by workers that stopped heartbeating.

    An expired claim counts as a failed attempt, so a job whose worker
    keeps crashing still reaches failed instead of looping forever.

    Args:
        conn: Database connection.
        timeout_seconds: How long without heartbeat before recovery.
        max_retries: Configured maximum number of retries.

    Returns:
        Number of jobs recovered.
    """
    cutoff = (
        datetime.now(timezone.utc) - timedelta(seconds=timeout_seconds)
    ).isoformat(timespec="microseconds")

    recovered = 0
    with _immediate_transaction(conn):
        rows = conn.execute(
            """
            SELECT id, worker_id, retry_count FROM render_jobs
            WHERE status = 'rendering'
                AND (worker_heartbeat IS NULL OR worker_heartbeat < ?)
            """,
            (cutoff,),
        ).fetchall()

        now = utc_now_iso()
        for row in rows:
            decision = decide_failure(row["retry_count"], max_retries)
            message = (
                f"Worker {row['worker_id']} stopped responding; "
                f"claim expired after {timeout_seconds}s"
            )
            cursor = conn.execute(
                """
                UPDATE render_jobs
                SET status = ?,
                    retry_count = ?,
                    last_error = ?,
                    last_error_at = ?,
                    worker_id = NULL,
                    worker_heartbeat = NULL,
                    updated_at = ?
                WHERE id = ? AND status = 'rendering' AND worker_id = ?
                """,
                (
                    decision.status.value,
                    decision.retry_count,
                    message,
                    now,
                    now,
                    row["id"],
                    row["worker_id"],
                ),
            )
            recovered += cursor.rowcount

    if recovered > 0:
        logger.info("Recovered %d stale job(s)", recovered)

    return recovered


def count_claimable_jobs(conn: sqlite3.Connection) -> int:
    """Count jobs a worker could claim right now."""
    cursor = conn.execute(
        f"""
        SELECT COUNT(*) FROM render_jobs
        WHERE status IN ({_CLAIMABLE_PLACEHOLDERS}) AND worker_id IS NULL
        """,  # nosec B608 - placeholders are literal "?" markers
        _CLAIMABLE_VALUES,
    )
    return cursor.fetchone()[0]


def get_queue_stats(conn: sqlite3.Connection) -> QueueStats:
    """Get job counts per status.

    Args:
        conn: Database connection.

    Returns:
        QueueStats with one count per status.
    """
    cursor = conn.execute(
        "SELECT status, COUNT(*) AS count FROM render_jobs GROUP BY status"
    )
    counts = {row[0]: row[1] for row in cursor.fetchall()}
    return QueueStats(
        **{status.value: counts.get(status.value, 0) for status in RenderJobStatus}
    )


def get_active_worker_count(conn: sqlite3.Connection) -> int:
    """Count distinct workers currently holding a claim."""
    cursor = conn.execute(
        """
        SELECT COUNT(DISTINCT worker_id) FROM render_jobs
        WHERE status = 'rendering' AND worker_id IS NOT NULL
        """
    )
    return cursor.fetchone()[0] or 0
