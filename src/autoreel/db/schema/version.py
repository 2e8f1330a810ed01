"""Read the schema version recorded in the _meta table."""

import sqlite3


def get_schema_version(conn: sqlite3.Connection) -> int | None:
    """Return the stored schema version, or None for a fresh database."""
    try:
        row = conn.execute(
            "SELECT value FROM _meta WHERE key = 'schema_version'"
        ).fetchone()
    except sqlite3.OperationalError:
        # no _meta table yet
        return None
    return None if row is None else int(row[0])
