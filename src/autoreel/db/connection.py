"""SQLite connections for autoreel.

Every connection gets the same pragmas (WAL, busy timeout, foreign keys)
and sqlite3.Row rows. CLI commands and workers hold one connection each;
the HTTP server goes through DaemonConnectionPool.
"""

from __future__ import annotations

import logging
import random
import sqlite3
import threading
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_DB_PATH = Path.home() / ".autoreel" / "jobs.db"

_PRAGMAS = (
    "PRAGMA foreign_keys = ON",
    # readers keep going while a worker holds the write lock
    "PRAGMA journal_mode = WAL",
    "PRAGMA synchronous = NORMAL",
    "PRAGMA busy_timeout = 10000",
    "PRAGMA temp_store = MEMORY",
)


def get_default_db_path() -> Path:
    """Return ~/.autoreel/jobs.db."""
    return DEFAULT_DB_PATH


def _connect(
    db_path: Path, timeout: float, *, shared: bool = False
) -> sqlite3.Connection:
    conn = sqlite3.connect(str(db_path), timeout=timeout, check_same_thread=not shared)
    for pragma in _PRAGMAS:
        conn.execute(pragma)
    conn.row_factory = sqlite3.Row
    return conn


def open_connection(db_path: Path, timeout: float = 30.0) -> sqlite3.Connection:
    """Open a configured connection; the caller closes it.

    The parent directory is created when missing.
    """
    db_path.parent.mkdir(parents=True, exist_ok=True)
    return _connect(db_path, timeout)


@contextmanager
def get_connection(
    db_path: Path | None = None, timeout: float = 30.0
) -> Iterator[sqlite3.Connection]:
    """Yield a configured connection and close it afterwards."""
    conn = open_connection(db_path or get_default_db_path(), timeout)
    try:
        yield conn
    finally:
        conn.close()


def is_lock_error(error: sqlite3.OperationalError) -> bool:
    """True when an OperationalError means another writer holds the lock."""
    message = str(error).casefold()
    return "locked" in message or "busy" in message


def execute_with_retry(
    func: Callable[[], T],
    max_retries: int = 5,
    base_delay: float = 0.1,
    max_delay: float = 5.0,
    jitter: float = 0.1,
) -> T:
    """Call func, backing off exponentially while the database is locked.

    Only lock contention is retried; any other OperationalError, or the
    last lock error once max_retries is spent, propagates to the caller.

    Args:
        func: Zero-argument callable doing the database work.
        max_retries: Retries after the first attempt.
        base_delay: First sleep in seconds; doubles up to max_delay.
        max_delay: Upper bound for a single sleep.
        jitter: Fractional random spread applied to each sleep.
    """
    delay = base_delay
    attempt = 0
    while True:
        try:
            result = func()
        except sqlite3.OperationalError as e:
            if not is_lock_error(e) or attempt >= max_retries:
                if attempt:
                    logger.warning(
                        "Giving up on locked database after %d attempts: %s",
                        attempt + 1,
                        e,
                    )
                raise
            pause = delay * (1 + random.uniform(-jitter, jitter))  # nosec B311
            attempt += 1
            logger.info(
                "Database locked, retry %d/%d in %.2fs: %s",
                attempt,
                max_retries,
                pause,
                e,
            )
            time.sleep(pause)
            delay = min(delay * 2, max_delay)
        else:
            if attempt:
                logger.info("Database operation succeeded after %d retries", attempt)
            return result


def check_database_connectivity(db_path: Path | None = None) -> bool:
    """Return True if the database file exists and answers a query."""
    path = db_path or get_default_db_path()
    if not path.exists():
        return False
    try:
        conn = sqlite3.connect(str(path), timeout=5.0)
    except sqlite3.Error:
        return False
    try:
        conn.execute("SELECT 1")
    except sqlite3.Error:
        return False
    finally:
        conn.close()
    return True


class DaemonConnectionPool:
    """Connections for the aiohttp server's worker threads.

    Reads get a fresh connection each so they never queue behind a write.
    Writes share one connection behind a lock, which serializes them inside
    the server process; SQLite serializes them against CLI workers.
    """

    def __init__(self, db_path: Path, timeout: float = 30.0) -> None:
        self.db_path = db_path
        self.timeout = timeout
        self._lock = threading.Lock()
        self._writer: sqlite3.Connection | None = None
        self._closed = False

    @property
    def is_closed(self) -> bool:
        return self._closed

    def _ensure_open(self) -> None:
        if self._closed:
            raise RuntimeError("Connection pool is closed")

    def _writer_connection(self) -> sqlite3.Connection:
        # Caller holds self._lock.
        self._ensure_open()
        if self._writer is not None:
            try:
                self._writer.execute("SELECT 1")
                return self._writer
            except (sqlite3.ProgrammingError, sqlite3.OperationalError) as e:
                logger.warning("Write connection unusable (%s), reopening", e)
                stale, self._writer = self._writer, None
                try:
                    stale.close()
                except sqlite3.Error:  # nosec B110
                    pass
        self._writer = _connect(self.db_path, self.timeout, shared=True)
        return self._writer

    @contextmanager
    def read_connection(self) -> Iterator[sqlite3.Connection]:
        """Yield a private connection for reads, closed on exit."""
        self._ensure_open()
        conn = _connect(self.db_path, self.timeout, shared=True)
        try:
            yield conn
        finally:
            conn.close()

    @contextmanager
    def write_connection(self) -> Iterator[sqlite3.Connection]:
        """Yield the shared write connection without opening a transaction.

        For queue operations that BEGIN and COMMIT on their own.
        """
        with self._lock:
            yield self._writer_connection()

    @contextmanager
    def transaction(self, timeout: float | None = None) -> Iterator[sqlite3.Connection]:
        """Run the block inside BEGIN IMMEDIATE on the shared write connection.

        Commits when the block finishes and rolls back when it raises. A
        transaction running past 80% of timeout is logged as slow.
        """
        threshold = (self.timeout if timeout is None else timeout) * 0.8
        started = time.monotonic()
        with self._lock:
            conn = self._writer_connection()
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except Exception:
                conn.execute("ROLLBACK")
                raise
            else:
                conn.execute("COMMIT")
            finally:
                elapsed = time.monotonic() - started
                if elapsed > threshold:
                    logger.warning("Slow transaction: %.2fs", elapsed)

    def close(self) -> None:
        """Close the write connection; later calls raise RuntimeError."""
        with self._lock:
            self._closed = True
            if self._writer is not None:
                writer, self._writer = self._writer, None
                writer.close()
