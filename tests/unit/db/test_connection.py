"""Tests for connection helpers and DaemonConnectionPool."""

import sqlite3

import pytest

from autoreel.db import (
    DaemonConnectionPool,
    check_database_connectivity,
    execute_with_retry,
    get_job,
)


class TestExecuteWithRetry:
    """Tests for execute_with_retry()."""

    def test_retries_lock_errors(self):
        attempts = []

        def flaky():
            attempts.append(1)
            if len(attempts) < 3:
                raise sqlite3.OperationalError("database is locked")
            return "ok"

        assert execute_with_retry(flaky, base_delay=0.001) == "ok"
        assert len(attempts) == 3

    def test_other_errors_propagate(self):
        def broken():
            raise sqlite3.OperationalError("no such table: render_jobs")

        with pytest.raises(sqlite3.OperationalError, match="no such table"):
            execute_with_retry(broken, base_delay=0.001)

    def test_gives_up(self):
        def locked():
            raise sqlite3.OperationalError("database is busy")

        with pytest.raises(sqlite3.OperationalError):
            execute_with_retry(locked, max_retries=2, base_delay=0.001)


class TestConnectivity:
    """Tests for check_database_connectivity()."""

    def test_existing_database(self, db_path):
        assert check_database_connectivity(db_path) is True

    def test_missing_database(self, tmp_path):
        assert check_database_connectivity(tmp_path / "missing.db") is False


class TestDaemonConnectionPool:
    """Tests for DaemonConnectionPool."""

    def test_transaction_commits(self, db_path, insert_render_job):
        job = insert_render_job()
        pool = DaemonConnectionPool(db_path)
        try:
            with pool.transaction() as conn:
                conn.execute(
                    "UPDATE render_jobs SET title = 'Renamed' WHERE id = ?", (job.id,)
                )
            with pool.read_connection() as conn:
                assert get_job(conn, job.id).title == "Renamed"
        finally:
            pool.close()

    def test_transaction_rolls_back(self, db_path, insert_render_job):
        job = insert_render_job()
        pool = DaemonConnectionPool(db_path)
        try:
            with pytest.raises(RuntimeError):
                with pool.transaction() as conn:
                    conn.execute(
                        "UPDATE render_jobs SET title = 'Lost' WHERE id = ?", (job.id,)
                    )
                    raise RuntimeError("abort")
            with pool.read_connection() as conn:
                assert get_job(conn, job.id).title is None
        finally:
            pool.close()

    def test_closed_pool_rejects_use(self, db_path):
        pool = DaemonConnectionPool(db_path)
        pool.close()

        assert pool.is_closed
        with pytest.raises(RuntimeError, match="closed"):
            with pool.read_connection():
                pass
        with pytest.raises(RuntimeError, match="closed"):
            with pool.write_connection():
                pass
