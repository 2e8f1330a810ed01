"""CLI for autoreel."""

import atexit
import logging
import sqlite3
from pathlib import Path

import click

from autoreel.config import AutoReelConfig, get_config
from autoreel.db import initialize_database, open_connection
from autoreel.db.schema import SchemaVersionError
from autoreel.logging import configure_logging

_db_conn: sqlite3.Connection | None = None
_logging_configured: bool = False
_atexit_registered: bool = False

logger = logging.getLogger(__name__)


def _cleanup_db_connection() -> None:
    """Close the CLI's database connection on exit."""
    global _db_conn
    if _db_conn is not None:
        try:
            _db_conn.close()
        except sqlite3.Error:  # nosec B110 - nothing useful to do at exit
            pass
        _db_conn = None


def _get_db_connection(db_path: Path) -> sqlite3.Connection | None:
    """Get the database connection shared by subcommands.

    A module-level connection closed via atexit suits a CLI process that
    runs one command and exits. If the process is killed, WAL mode
    recovers on the next open.

    Returns:
        Database connection, or None if it cannot be opened.
    """
    global _db_conn, _atexit_registered

    if _db_conn is not None:
        return _db_conn

    try:
        conn = open_connection(db_path)
        initialize_database(conn)
    except (sqlite3.Error, OSError, SchemaVersionError) as e:
        logger.warning("Failed to open database %s: %s", db_path, e)
        return None

    _db_conn = conn
    if not _atexit_registered:
        atexit.register(_cleanup_db_connection)
        _atexit_registered = True
    return conn


def _configure_logging(config: AutoReelConfig) -> None:
    global _logging_configured
    if _logging_configured:
        return
    configure_logging(config.logging)
    _logging_configured = True


@click.group()
@click.version_option(package_name="autoreel")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Path to configuration file (default: ~/.autoreel/config.toml).",
)
@click.option(
    "--db",
    "db_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Path to the job database (default: ~/.autoreel/jobs.db).",
)
@click.option(
    "--log-level",
    type=click.Choice(["debug", "info", "warning", "error"], case_sensitive=False),
    default=None,
    help="Override log level (default: info).",
)
@click.option(
    "--log-file",
    type=click.Path(path_type=Path),
    default=None,
    help="Override log file path.",
)
@click.option(
    "--log-json",
    is_flag=True,
    default=False,
    help="Use JSON log format.",
)
@click.pass_context
def main(
    ctx: click.Context,
    config_path: Path | None,
    db_path: Path | None,
    log_level: str | None,
    log_file: Path | None,
    log_json: bool,
) -> None:
    """autoreel - Render highlight reels from long-form video."""
    ctx.ensure_object(dict)

    if "config" not in ctx.obj:
        try:
            ctx.obj["config"] = get_config(
                config_path,
                database_path=db_path,
                log_level=log_level,
                log_file=log_file,
                log_json=log_json or None,
            )
        except ValueError as e:
            raise click.ClickException(f"Invalid configuration: {e}") from e
    config: AutoReelConfig = ctx.obj["config"]

    _configure_logging(config)

    # Preserve a connection injected by tests
    if "db_conn" not in ctx.obj:
        ctx.obj["db_conn"] = _get_db_connection(config.database_path)


def _register_commands() -> None:
    from autoreel.cli.jobs import jobs_group
    from autoreel.cli.serve import serve_command

    main.add_command(jobs_group)
    main.add_command(serve_command)


_register_commands()
