"""Database schema management for autoreel.

Module organization:
- definition.py: Schema DDL and creation (SCHEMA_VERSION, SCHEMA_SQL, create_schema)
- version.py: Version query helper (get_schema_version)
- initialize.py: Database initialization (initialize_database)
"""

from .definition import SCHEMA_SQL, SCHEMA_VERSION, create_schema
from .initialize import SchemaVersionError, initialize_database
from .version import get_schema_version

__all__ = [
    "SCHEMA_SQL",
    "SCHEMA_VERSION",
    "SchemaVersionError",
    "create_schema",
    "get_schema_version",
    "initialize_database",
]
