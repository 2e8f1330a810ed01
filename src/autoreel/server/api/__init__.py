"""JSON API for render jobs."""

from aiohttp import web

from autoreel.server.api.jobs import setup_job_routes


def setup_api_routes(app: web.Application) -> None:
    """Register all API routes."""
    setup_job_routes(app)


__all__ = ["setup_api_routes", "setup_job_routes"]
