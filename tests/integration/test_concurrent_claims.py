"""Concurrent workers on one database file claim each job exactly once."""

import threading
from collections import Counter

import pytest

from autoreel.db import RenderJobStatus, get_jobs_by_status, open_connection
from autoreel.jobs.queue import claim_next_job, finalize_job

pytestmark = pytest.mark.integration

WORKER_COUNT = 4
JOB_COUNT = 20


def test_every_job_claimed_once(db_path, insert_render_job, db_conn):
    for _ in range(JOB_COUNT):
        insert_render_job()

    claims: list[tuple[str, str]] = []
    claims_lock = threading.Lock()
    start = threading.Barrier(WORKER_COUNT)

    def work(worker_id: str) -> None:
        conn = open_connection(db_path)
        try:
            start.wait()
            idle_polls = 0
            while idle_polls < 5:
                job = claim_next_job(conn, worker_id)
                if job is None:
                    # None also means the claim lost a lock race
                    idle_polls += 1
                    continue
                idle_polls = 0
                with claims_lock:
                    claims.append((job.id, worker_id))
                finalize_job(conn, job.id, worker_id, [f"/out/{job.id}"])
        finally:
            conn.close()

    threads = [
        threading.Thread(target=work, args=(f"worker-{i}",))
        for i in range(WORKER_COUNT)
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=60)

    counts = Counter(job_id for job_id, _ in claims)
    assert all(count == 1 for count in counts.values())
    assert len(counts) == JOB_COUNT
    completed = get_jobs_by_status(db_conn, RenderJobStatus.COMPLETED)
    assert len(completed) == JOB_COUNT
