"""HTTP application for `autoreel serve`.

Provides the aiohttp Application with the render job API and a health
check endpoint.
"""

from __future__ import annotations

import asyncio
import logging
import sqlite3
from dataclasses import asdict, dataclass
from pathlib import Path

from aiohttp import web

from autoreel import __version__
from autoreel.db.connection import DaemonConnectionPool
from autoreel.jobs.queue import get_active_worker_count, get_queue_stats
from autoreel.jobs.tracking import TitleResolver
from autoreel.jobs.workspace import JobWorkspace
from autoreel.server.api import setup_api_routes

logger = logging.getLogger(__name__)

HEALTH_CHECK_TIMEOUT = 5.0  # seconds
DEFAULT_DOWNLOAD_PREFIX = "auto-reel"


@dataclass
class HealthStatus:
    """Health check response payload."""

    status: str
    """Overall status: 'healthy', 'degraded', or 'unhealthy'."""

    database: str
    """Database connectivity: 'connected' or 'disconnected'."""

    uptime_seconds: float
    version: str
    shutting_down: bool = False

    jobs_queued: int = 0
    jobs_rendering: int = 0
    jobs_retry: int = 0
    jobs_failed: int = 0
    active_workers: int = 0

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)


def _collect_health(pool: DaemonConnectionPool) -> dict[str, int] | None:
    """Queue counts, or None if the database is unreachable."""
    try:
        with pool.read_connection() as conn:
            stats = get_queue_stats(conn)
            workers = get_active_worker_count(conn)
    except (sqlite3.Error, RuntimeError) as e:
        logger.warning("Database health check failed: %s", e)
        return None
    return {
        "jobs_queued": stats.queued,
        "jobs_rendering": stats.rendering,
        "jobs_retry": stats.retry,
        "jobs_failed": stats.failed,
        "active_workers": workers,
    }


async def health_handler(request: web.Request) -> web.Response:
    """Handle GET /health requests.

    Returns 200 when the database answers and the server is not shutting
    down, 503 otherwise.
    """
    lifecycle = request.app.get("lifecycle")
    pool: DaemonConnectionPool | None = request.app.get("connection_pool")

    metrics = None
    if pool is not None and not pool.is_closed:
        try:
            metrics = await asyncio.wait_for(
                asyncio.to_thread(_collect_health, pool),
                timeout=HEALTH_CHECK_TIMEOUT,
            )
        except asyncio.TimeoutError:
            logger.warning(
                "Database health check timed out after %.1fs", HEALTH_CHECK_TIMEOUT
            )

    shutting_down = lifecycle.is_shutting_down if lifecycle else False
    if shutting_down:
        status = "unhealthy"
    elif metrics is None:
        status = "degraded"
    else:
        status = "healthy"

    health = HealthStatus(
        status=status,
        database="connected" if metrics is not None else "disconnected",
        uptime_seconds=round(lifecycle.uptime_seconds, 1) if lifecycle else 0.0,
        version=__version__,
        shutting_down=shutting_down,
        **(metrics or {}),
    )
    http_status = 200 if status == "healthy" else 503
    return web.json_response(health.to_dict(), status=http_status)


async def _cleanup_connection_pool(app: web.Application) -> None:
    """Close the connection pool on shutdown."""
    pool: DaemonConnectionPool | None = app.get("connection_pool")
    if pool is not None:
        logger.debug("Closing database connection pool")
        pool.close()


def create_app(
    db_path: Path,
    temp_directory: Path,
    *,
    download_prefix: str = DEFAULT_DOWNLOAD_PREFIX,
    title_resolver: TitleResolver | None = None,
) -> web.Application:
    """Create and configure the aiohttp Application.

    Args:
        db_path: Path to an initialized database.
        temp_directory: Root of the per-job scratch directories, used to
            locate deliverables.
        download_prefix: Download filename prefix.
        title_resolver: Best-effort source title lookup for submissions
            without a title.

    Returns:
        Configured aiohttp Application.
    """
    app = web.Application()

    app["lifecycle"] = None  # Set by the serve command
    app["connection_pool"] = DaemonConnectionPool(db_path)
    app["workspace"] = JobWorkspace(temp_directory)
    app["download_prefix"] = download_prefix
    app["title_resolver"] = title_resolver
    app.on_cleanup.append(_cleanup_connection_pool)

    app.router.add_get("/health", health_handler)
    setup_api_routes(app)

    return app
