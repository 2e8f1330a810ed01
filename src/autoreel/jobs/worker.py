"""Render worker: polls the queue and drives claimed jobs to completion.

- Explicit worker identity and poll interval, passed in at construction
- Stop signal (threading.Event) that also interrupts the idle wait
- Graceful shutdown on SIGTERM/SIGINT when running as a process
- Heartbeat thread so crashed workers' claims can be recovered
- A single error boundary per job: nothing a job raises stops the loop
"""

import logging
import signal
import sqlite3
import threading
import time
from pathlib import Path

from autoreel.db.connection import get_connection
from autoreel.db.types import RenderJob, RenderJobStatus
from autoreel.jobs.queue import (
    claim_next_job,
    count_claimable_jobs,
    fail_or_retry_job,
    finalize_job,
    recover_stale_jobs,
    update_heartbeat,
    update_job_progress,
)
from autoreel.jobs.retry import DEFAULT_MAX_RETRIES, classify_error, describe_error
from autoreel.jobs.services.render import RenderJobService
from autoreel.logging import worker_context

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 5.0
HEARTBEAT_INTERVAL = 30
MAX_HEARTBEAT_FAILURES = 3  # Stop the worker after this many consecutive failures


class JobWorker:
    """Worker that claims and renders jobs one at a time."""

    def __init__(
        self,
        conn: sqlite3.Connection,
        service: RenderJobService,
        worker_id: str,
        *,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        max_retries: int = DEFAULT_MAX_RETRIES,
        max_jobs: int | None = None,
        exit_when_idle: bool = False,
        heartbeat_interval: float = HEARTBEAT_INTERVAL,
        stale_timeout: int | None = None,
        stop_event: threading.Event | None = None,
        install_signal_handlers: bool = False,
    ) -> None:
        """Initialize the worker.

        Args:
            conn: Database connection used for claims and state changes.
            service: Pipeline that renders a claimed job.
            worker_id: Identity written into each claim.
            poll_interval: Seconds to wait when nothing is claimable.
            max_retries: Failures a job may accumulate before it is failed.
            max_jobs: Stop after this many jobs (None = unlimited).
            exit_when_idle: Stop as soon as the queue is empty.
            heartbeat_interval: Seconds between heartbeats while rendering.
            stale_timeout: When set, recover claims with no heartbeat for
                this many seconds before processing starts.
            stop_event: External stop signal; one is created if omitted.
            install_signal_handlers: Stop gracefully on SIGTERM/SIGINT.
        """
        if not worker_id:
            raise ValueError("worker_id cannot be empty")
        if poll_interval < 0:
            raise ValueError("poll_interval must be non-negative")

        self.conn = conn
        self.service = service
        self.worker_id = worker_id
        self.poll_interval = poll_interval
        self.max_retries = max_retries
        self.max_jobs = max_jobs
        self.exit_when_idle = exit_when_idle
        self.heartbeat_interval = heartbeat_interval
        self.stale_timeout = stale_timeout

        # The heartbeat thread opens its own connection to the same file
        # PRAGMA database_list returns (seq, name, file) tuples
        row = conn.execute("PRAGMA database_list").fetchone()
        self._db_path = Path(row[2]) if row and row[2] else None

        self._stop_event = stop_event or threading.Event()
        self._jobs_processed = 0
        self._current_job: RenderJob | None = None

        self._heartbeat_thread: threading.Thread | None = None
        self._heartbeat_stop = threading.Event()
        self._consecutive_heartbeat_failures = 0

        if install_signal_handlers:
            self._setup_signal_handlers()

    @property
    def jobs_processed(self) -> int:
        return self._jobs_processed

    def stop(self) -> None:
        """Request a graceful stop after the current job."""
        self._stop_event.set()

    def _setup_signal_handlers(self) -> None:
        signal.signal(signal.SIGTERM, self._signal_handler)
        signal.signal(signal.SIGINT, self._signal_handler)

    def _signal_handler(self, signum: int, frame) -> None:
        sig_name = signal.Signals(signum).name
        logger.info("Received %s, stopping after the current job...", sig_name)
        self.stop()

    def _should_continue(self) -> bool:
        if self._stop_event.is_set():
            return False
        if self.max_jobs is not None and self._jobs_processed >= self.max_jobs:
            logger.info("Reached max jobs limit (%d)", self.max_jobs)
            return False
        return True

    # -------------------------------------------------------------------------
    # Heartbeat
    # -------------------------------------------------------------------------

    def _start_heartbeat(self, job_id: str) -> None:
        """Start the heartbeat thread for a job.

        Uses a separate connection so a heartbeat commit can never land in
        the middle of a transaction on the main connection.
        """
        if self._db_path is None:
            logger.debug("Heartbeat disabled: database has no file path")
            return

        self._heartbeat_stop.clear()
        self._consecutive_heartbeat_failures = 0
        db_path = self._db_path

        def heartbeat_loop() -> None:
            with get_connection(db_path) as heartbeat_conn:
                while not self._heartbeat_stop.wait(self.heartbeat_interval):
                    try:
                        if not update_heartbeat(heartbeat_conn, job_id, self.worker_id):
                            logger.warning(
                                "Heartbeat for job %s found no claim", job_id
                            )
                        self._consecutive_heartbeat_failures = 0
                    except sqlite3.Error as e:
                        self._consecutive_heartbeat_failures += 1
                        logger.error(
                            "Heartbeat failed (%d/%d): %s",
                            self._consecutive_heartbeat_failures,
                            MAX_HEARTBEAT_FAILURES,
                            e,
                        )
                        failures = self._consecutive_heartbeat_failures
                        if failures >= MAX_HEARTBEAT_FAILURES:
                            logger.critical(
                                "Max heartbeat failures reached, requesting shutdown"
                            )
                            self.stop()
                            break

        self._heartbeat_thread = threading.Thread(
            target=heartbeat_loop,
            daemon=True,
            name=f"heartbeat-{job_id[:8]}",
        )
        self._heartbeat_thread.start()

    def _stop_heartbeat(self) -> None:
        self._heartbeat_stop.set()
        if self._heartbeat_thread is not None:
            self._heartbeat_thread.join(timeout=1.0)
            if self._heartbeat_thread.is_alive():
                logger.warning(
                    "Heartbeat thread %s did not stop within timeout",
                    self._heartbeat_thread.name,
                )
            self._heartbeat_thread = None

    # -------------------------------------------------------------------------
    # Job processing
    # -------------------------------------------------------------------------

    def _create_progress_callback(self, job: RenderJob):
        def callback(percent: int) -> None:
            try:
                if not update_job_progress(self.conn, job.id, self.worker_id, percent):
                    logger.warning(
                        "Progress update for job %s ignored: claim no longer held",
                        job.id,
                    )
            except sqlite3.Error as e:
                logger.warning("Failed to update job progress: %s", e)

        return callback

    def _record_failure(self, job: RenderJob, message: str) -> RenderJobStatus | None:
        try:
            status = fail_or_retry_job(
                self.conn, job.id, self.worker_id, message, self.max_retries
            )
        except sqlite3.Error as e:
            # The claim stays in place; stale recovery will release it
            logger.error("Could not record failure for job %s: %s", job.id, e)
            return None
        if status is not None:
            logger.info("Job %s marked %s", job.id, status.value)
        return status

    def process_job(self, job: RenderJob) -> RenderJobStatus | None:
        """Render a claimed job and record the outcome.

        Every exception raised while rendering is caught here and recorded
        as a failed attempt.

        Args:
            job: A job this worker has claimed.

        Returns:
            The job's new status, or None if it could not be recorded.
        """
        self._current_job = job
        started = time.monotonic()

        with worker_context(self.worker_id, job.id):
            self._start_heartbeat(job.id)
            try:
                logger.info("Processing job %s: %s", job.id, job.source_reference)
                result = self.service.process(
                    job, progress_callback=self._create_progress_callback(job)
                )

                if result.success and result.output_path is not None:
                    finalized = finalize_job(
                        self.conn,
                        job.id,
                        self.worker_id,
                        list(result.output_locations),
                        local_path=str(result.output_path),
                    )
                    if not finalized:
                        return None
                    self.service.cleanup(result)
                    logger.info(
                        "Job %s completed in %.1fs", job.id, time.monotonic() - started
                    )
                    return RenderJobStatus.COMPLETED

                return self._record_failure(
                    job, result.error_message or "Render failed without a message"
                )

            except Exception as e:
                logger.exception(
                    "Job %s failed with %s error", job.id, classify_error(e).value
                )
                return self._record_failure(job, describe_error(e))

            finally:
                self._stop_heartbeat()
                self._current_job = None
                self._jobs_processed += 1

    def run_once(self) -> bool:
        """Claim and process at most one job.

        Returns:
            True if a job was processed, False if nothing was claimable.
        """
        job = claim_next_job(self.conn, self.worker_id)
        if job is None:
            return False
        self.process_job(job)
        return True

    def run(self) -> int:
        """Run until stopped, the job limit is reached, or (in drain mode)
        the queue is empty.

        Returns:
            Number of jobs processed.
        """
        start_time = time.monotonic()
        self._jobs_processed = 0

        config_parts = [
            f"id={self.worker_id}",
            f"poll={self.poll_interval}s",
            f"max_retries={self.max_retries}",
        ]
        if self.max_jobs is not None:
            config_parts.append(f"max_jobs={self.max_jobs}")
        if self.exit_when_idle:
            config_parts.append("exit_when_idle")
        logger.info("Starting render worker: %s", ", ".join(config_parts))

        if self.stale_timeout is not None:
            recover_stale_jobs(self.conn, self.stale_timeout, self.max_retries)

        with worker_context(self.worker_id):
            while self._should_continue():
                try:
                    processed = self.run_once()
                except Exception:
                    logger.exception("Worker loop error; retrying after poll interval")
                    processed = False

                if processed:
                    continue
                if self.exit_when_idle:
                    # A claim lost to lock contention also returns nothing
                    if count_claimable_jobs(self.conn) == 0:
                        logger.info("Queue is empty")
                        break
                    logger.debug("Claim missed while jobs remain; polling again")
                self._stop_event.wait(self.poll_interval)

        logger.info(
            "Worker finished: %d job(s) in %.1f seconds",
            self._jobs_processed,
            time.monotonic() - start_time,
        )
        return self._jobs_processed
