"""Handler decorators for the render job API.

Usage:
    @shutdown_check_middleware
    @database_required_middleware
    @account_required
    async def handler(request: web.Request) -> web.Response:
        pool = request["connection_pool"]
        owner = request["account_id"]
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from functools import wraps

from aiohttp import web

from autoreel.db.connection import DaemonConnectionPool
from autoreel.server.api.errors import (
    DATABASE_UNAVAILABLE,
    SHUTTING_DOWN,
    UNAUTHORIZED,
    api_error,
)

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]

ACCOUNT_HEADER = "X-Account-Id"
MAX_ACCOUNT_ID_LENGTH = 128


def shutdown_check_middleware(handler: Handler) -> Handler:
    """Return 503 once graceful shutdown has started."""

    @wraps(handler)
    async def wrapper(request: web.Request) -> web.StreamResponse:
        lifecycle = request.app.get("lifecycle")
        if lifecycle is not None and lifecycle.is_shutting_down:
            return api_error(
                "Service is shutting down", code=SHUTTING_DOWN, status=503
            )
        return await handler(request)

    return wrapper


def database_required_middleware(handler: Handler) -> Handler:
    """Return 503 if no connection pool is available.

    Stores the pool in request["connection_pool"] for the handler.
    """

    @wraps(handler)
    async def wrapper(request: web.Request) -> web.StreamResponse:
        pool: DaemonConnectionPool | None = request.app.get("connection_pool")
        if pool is None or pool.is_closed:
            return api_error(
                "Database not available", code=DATABASE_UNAVAILABLE, status=503
            )
        request["connection_pool"] = pool
        return await handler(request)

    return wrapper


def account_required(handler: Handler) -> Handler:
    """Require the X-Account-Id header; the account owns the jobs it sees.

    Stores the account in request["account_id"] for the handler.
    """

    @wraps(handler)
    async def wrapper(request: web.Request) -> web.StreamResponse:
        account_id = request.headers.get(ACCOUNT_HEADER, "").strip()
        if not account_id:
            return api_error(
                f"Missing {ACCOUNT_HEADER} header", code=UNAUTHORIZED, status=401
            )
        if len(account_id) > MAX_ACCOUNT_ID_LENGTH:
            return api_error(
                f"{ACCOUNT_HEADER} header is too long", code=UNAUTHORIZED, status=401
            )
        request["account_id"] = account_id
        return await handler(request)

    return wrapper
