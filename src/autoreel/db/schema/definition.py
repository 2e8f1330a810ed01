"""Database schema definition for autoreel.

The render_jobs table is the single source of truth for job state. The
CHECK constraints mirror the lifecycle rules enforced by the queue
operations so a buggy writer fails loudly instead of corrupting state.
"""

import sqlite3

SCHEMA_VERSION = 1

SCHEMA_SQL = """
-- Schema version tracking
CREATE TABLE IF NOT EXISTS _meta (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS render_jobs (
    id TEXT PRIMARY KEY,                  -- UUID v4
    owner TEXT NOT NULL,                  -- account identifier
    source_reference TEXT NOT NULL,       -- URL or local path of the long-form source
    title TEXT,
    config_json TEXT NOT NULL,            -- {"request": {...}, "plan": {...}}, never mutated
    status TEXT NOT NULL DEFAULT 'queued',
    progress INTEGER NOT NULL DEFAULT 0,
    worker_id TEXT,
    worker_heartbeat TEXT,                -- ISO-8601 UTC
    retry_count INTEGER NOT NULL DEFAULT 0,
    last_error TEXT,
    last_error_at TEXT,                   -- ISO-8601 UTC
    output_locations_json TEXT NOT NULL DEFAULT '[]',
    metadata_json TEXT,
    created_at TEXT NOT NULL,             -- ISO-8601 UTC
    updated_at TEXT NOT NULL,             -- ISO-8601 UTC
    completed_at TEXT,                    -- ISO-8601 UTC
    CONSTRAINT valid_status CHECK (
        status IN ('queued', 'rendering', 'completed', 'failed', 'retry')
    ),
    CONSTRAINT valid_progress CHECK (progress >= 0 AND progress <= 100),
    CONSTRAINT valid_retry_count CHECK (retry_count >= 0),
    CONSTRAINT claim_matches_status CHECK (
        (status = 'rendering' AND worker_id IS NOT NULL)
        OR (status != 'rendering' AND worker_id IS NULL)
    )
);

CREATE INDEX IF NOT EXISTS idx_render_jobs_status_created
    ON render_jobs(status, created_at);
CREATE INDEX IF NOT EXISTS idx_render_jobs_owner ON render_jobs(owner, created_at);
"""


def create_schema(conn: sqlite3.Connection) -> None:
    """Create the database schema if it doesn't exist.

    Args:
        conn: An open database connection.
    """
    conn.executescript(SCHEMA_SQL)

    conn.execute(
        "INSERT OR IGNORE INTO _meta (key, value) VALUES ('schema_version', ?)",
        (str(SCHEMA_VERSION),),
    )
    # executescript() commits implicitly; this INSERT opens a new implicit
    # transaction that must be closed before claim_next_job can BEGIN.
    conn.commit()
