"""Error responses for the render job API.

Every error body is ``{"error": <message>, "code": <CODE>}``, with an
optional ``details`` entry. Callers branch on ``code``; ``error`` is for
people.
"""

from __future__ import annotations

from typing import Any

from aiohttp import web

# Request problems (400)
INVALID_JSON = "INVALID_JSON"
INVALID_PARAMETER = "INVALID_PARAMETER"
INVALID_ID_FORMAT = "INVALID_ID_FORMAT"
VALIDATION_FAILED = "VALIDATION_FAILED"

# Caller identity (401)
UNAUTHORIZED = "UNAUTHORIZED"

# Job state (404 / 409)
NOT_FOUND = "NOT_FOUND"
JOB_IN_PROGRESS = "JOB_IN_PROGRESS"
JOB_NOT_READY = "JOB_NOT_READY"
FILE_NOT_FOUND = "FILE_NOT_FOUND"

# Service availability (503)
SHUTTING_DOWN = "SHUTTING_DOWN"
DATABASE_UNAVAILABLE = "DATABASE_UNAVAILABLE"


def api_error(
    message: str,
    *,
    code: str,
    status: int = 400,
    details: Any = None,
) -> web.Response:
    """JSON error response with the given code and HTTP status."""
    payload: dict[str, Any] = {"error": message, "code": code}
    if details is not None:
        payload["details"] = details
    return web.json_response(payload, status=status)
