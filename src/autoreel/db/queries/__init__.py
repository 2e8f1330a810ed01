"""Query functions for the autoreel database."""

from .helpers import JOB_COLUMNS, utc_now_iso
from .jobs import (
    get_job,
    get_job_for_owner,
    get_jobs_by_id_prefix,
    get_jobs_by_status,
    get_jobs_for_owner,
    insert_job,
)

__all__ = [
    "JOB_COLUMNS",
    "get_job",
    "get_job_for_owner",
    "get_jobs_by_id_prefix",
    "get_jobs_by_status",
    "get_jobs_for_owner",
    "insert_job",
    "utc_now_iso",
]
