"""Unit tests for JobWorker."""

import threading
from datetime import datetime, timedelta, timezone

import pytest

from autoreel.db import RenderJobStatus, get_job
from autoreel.jobs import worker as worker_module
from autoreel.jobs.worker import JobWorker


@pytest.fixture
def make_worker(db_conn, render_service):
    def _make(**kwargs) -> JobWorker:
        kwargs.setdefault("poll_interval", 0.01)
        kwargs.setdefault("exit_when_idle", True)
        kwargs.setdefault("heartbeat_interval", 3600)
        return JobWorker(db_conn, render_service, "worker-a", **kwargs)

    return _make


class TestJobWorkerInit:
    """Tests for constructor validation."""

    def test_rejects_empty_worker_id(self, db_conn, render_service):
        with pytest.raises(ValueError, match="worker_id"):
            JobWorker(db_conn, render_service, "")

    def test_rejects_negative_poll_interval(self, db_conn, render_service):
        with pytest.raises(ValueError, match="poll_interval"):
            JobWorker(db_conn, render_service, "w", poll_interval=-1)


class TestJobWorkerRun:
    """Tests for the claim-render-record loop."""

    def test_completes_job(self, make_worker, insert_render_job, db_conn, workspace):
        job = insert_render_job()

        processed = make_worker().run()

        assert processed == 1
        done = get_job(db_conn, job.id)
        assert done.status == RenderJobStatus.COMPLETED
        assert done.progress == 100
        assert done.worker_id is None
        assert done.output_locations == [f"/api/render-jobs/{job.id}/download"]
        assert done.metadata == {"local_path": str(workspace.result_path(job.id))}
        assert not workspace.segment_path(job.id, 0).exists()

    def test_records_progress_milestones(
        self, make_worker, insert_render_job, monkeypatch
    ):
        insert_render_job()
        recorded: list[int] = []
        original = worker_module.update_job_progress

        def spy(conn, job_id, worker_id, progress):
            recorded.append(progress)
            return original(conn, job_id, worker_id, progress)

        monkeypatch.setattr(worker_module, "update_job_progress", spy)

        make_worker().run()

        assert recorded == [10, 33, 57, 80, 95]

    def test_processes_in_fifo_order(
        self, make_worker, insert_render_job, fake_fetcher
    ):
        first = insert_render_job(source_reference="https://example.com/a")
        second = insert_render_job(source_reference="https://example.com/b")

        make_worker().run()

        assert fake_fetcher.calls == [first.source_reference, second.source_reference]

    def test_transient_failure_is_retried(
        self, make_worker, insert_render_job, db_conn, fake_transcoder, fake_fetcher
    ):
        job = insert_render_job()
        fake_transcoder.fail_on = {1: 1}
        worker = make_worker()

        assert worker.run_once()
        retried = get_job(db_conn, job.id)
        assert retried.status == RenderJobStatus.RETRY
        assert retried.retry_count == 1
        assert "Segment 2/3" in retried.last_error
        assert retried.progress == 33

        assert worker.run_once()
        done = get_job(db_conn, job.id)
        assert done.status == RenderJobStatus.COMPLETED
        assert done.retry_count == 1
        assert len(fake_fetcher.calls) == 1

    def test_persistent_failure_exhausts_retries(
        self, make_worker, insert_render_job, db_conn, fake_fetcher
    ):
        job = insert_render_job()
        fake_fetcher.fail = True

        processed = make_worker(max_retries=2).run()

        assert processed == 3
        failed = get_job(db_conn, job.id)
        assert failed.status == RenderJobStatus.FAILED
        assert failed.retry_count == 2
        assert "404" in failed.last_error
        assert failed.worker_id is None

    def test_unexpected_exception_is_recorded(
        self, make_worker, insert_render_job, db_conn, render_service, monkeypatch
    ):
        job = insert_render_job()

        def explode(job, progress_callback=None):
            raise KeyError("segments")

        monkeypatch.setattr(render_service, "process", explode)

        make_worker().run_once()

        retried = get_job(db_conn, job.id)
        assert retried.status == RenderJobStatus.RETRY
        assert retried.last_error.startswith("Unexpected error (KeyError)")

    def test_max_jobs_limit(self, make_worker, insert_render_job, db_conn):
        insert_render_job()
        insert_render_job()

        processed = make_worker(max_jobs=1).run()

        assert processed == 1
        stats = [j.status for j in _all_jobs(db_conn)]
        assert stats.count(RenderJobStatus.QUEUED) == 1

    def test_stop_event_prevents_claims(self, make_worker, insert_render_job, db_conn):
        job = insert_render_job()
        stop = threading.Event()
        stop.set()

        processed = make_worker(stop_event=stop, exit_when_idle=False).run()

        assert processed == 0
        assert get_job(db_conn, job.id).status == RenderJobStatus.QUEUED

    def test_idle_queue_exits(self, make_worker):
        assert make_worker().run() == 0

    def test_lock_contention_does_not_end_drain(
        self, make_worker, insert_render_job, db_conn, monkeypatch
    ):
        job = insert_render_job()
        real_claim = worker_module.claim_next_job
        misses = []

        def contended_claim(conn, worker_id):
            if not misses:
                misses.append(worker_id)
                return None
            return real_claim(conn, worker_id)

        monkeypatch.setattr(worker_module, "claim_next_job", contended_claim)

        processed = make_worker().run()

        assert misses == ["worker-a"]
        assert processed == 1
        assert get_job(db_conn, job.id).status == RenderJobStatus.COMPLETED

    def test_recovers_stale_claims_on_start(
        self, make_worker, insert_render_job, db_conn
    ):
        stale = (datetime.now(timezone.utc) - timedelta(hours=1)).isoformat()
        job = insert_render_job(
            status=RenderJobStatus.RENDERING,
            worker_id="crashed",
            worker_heartbeat=stale,
            progress=57,
        )

        make_worker(stale_timeout=60).run()

        done = get_job(db_conn, job.id)
        assert done.status == RenderJobStatus.COMPLETED
        assert done.retry_count == 1


def _all_jobs(conn):
    rows = conn.execute("SELECT id FROM render_jobs").fetchall()
    return [get_job(conn, row[0]) for row in rows]
