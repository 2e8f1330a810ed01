"""Database initialization for autoreel."""

import logging
import sqlite3

from .definition import SCHEMA_VERSION, create_schema
from .version import get_schema_version

logger = logging.getLogger(__name__)


class SchemaVersionError(Exception):
    """Raised when the database was written by a newer autoreel."""


def initialize_database(conn: sqlite3.Connection) -> None:
    """Initialize the database with schema, creating tables if needed.

    Args:
        conn: An open database connection.

    Raises:
        SchemaVersionError: If the database schema is newer than this code.
    """
    current_version = get_schema_version(conn)

    if current_version is None:
        logger.debug("Creating schema version %d", SCHEMA_VERSION)
        create_schema(conn)
    elif current_version > SCHEMA_VERSION:
        raise SchemaVersionError(
            f"Database schema version {current_version} is newer than "
            f"supported version {SCHEMA_VERSION}"
        )
