"""Database layer for autoreel.

Usage:
    from autoreel.db import get_connection, initialize_database, RenderJob
"""

from .connection import (
    DEFAULT_DB_PATH,
    DaemonConnectionPool,
    check_database_connectivity,
    execute_with_retry,
    get_connection,
    get_default_db_path,
    is_lock_error,
    open_connection,
)
from .queries import (
    get_job,
    get_job_for_owner,
    get_jobs_by_id_prefix,
    get_jobs_by_status,
    get_jobs_for_owner,
    insert_job,
    utc_now_iso,
)
from .schema import SCHEMA_VERSION, initialize_database
from .types import QueueStats, RenderJob, RenderJobStatus

__all__ = [
    "DEFAULT_DB_PATH",
    "DaemonConnectionPool",
    "QueueStats",
    "RenderJob",
    "RenderJobStatus",
    "SCHEMA_VERSION",
    "check_database_connectivity",
    "execute_with_retry",
    "get_connection",
    "get_default_db_path",
    "get_job",
    "get_job_for_owner",
    "get_jobs_by_id_prefix",
    "get_jobs_by_status",
    "get_jobs_for_owner",
    "initialize_database",
    "insert_job",
    "is_lock_error",
    "open_connection",
    "utc_now_iso",
]
