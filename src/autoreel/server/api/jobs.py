"""API handlers for render job endpoints.

Endpoints:
    POST /api/render-jobs - Submit a request and plan
    GET /api/render-jobs - List the caller's jobs
    GET /api/render-jobs/{job_id} - Get job status
    POST /api/render-jobs/{job_id}/retry - Re-queue a finished job
    GET /api/render-jobs/{job_id}/download - Download the deliverable

Every endpoint is scoped to the account in the X-Account-Id header;
another account's job is reported as not found.
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path

from aiohttp import web

from autoreel.core.validation import is_valid_uuid
from autoreel.db import RenderJobStatus, get_job_for_owner, get_jobs_for_owner
from autoreel.jobs.exceptions import (
    ConcurrentModificationError,
    JobNotFoundError,
    PlanValidationError,
)
from autoreel.jobs.queue import reset_job_to_queued
from autoreel.jobs.tracking import create_render_job, parse_submission, resolve_title
from autoreel.jobs.workspace import JobWorkspace
from autoreel.server.api.errors import (
    FILE_NOT_FOUND,
    INVALID_ID_FORMAT,
    INVALID_JSON,
    INVALID_PARAMETER,
    JOB_IN_PROGRESS,
    JOB_NOT_READY,
    NOT_FOUND,
    VALIDATION_FAILED,
    api_error,
)
from autoreel.server.api.models import RenderJobListResponse, RenderJobStatusResponse
from autoreel.server.middleware import (
    account_required,
    database_required_middleware,
    shutdown_check_middleware,
)

logger = logging.getLogger(__name__)

MAX_LIST_LIMIT = 500


def _job_id_or_error(request: web.Request) -> tuple[str | None, web.Response | None]:
    job_id = request.match_info["job_id"]
    if not is_valid_uuid(job_id):
        return None, api_error("Invalid job ID format", code=INVALID_ID_FORMAT)
    return job_id, None


def _job_not_found() -> web.Response:
    return api_error("Render job not found", code=NOT_FOUND, status=404)


@shutdown_check_middleware
@database_required_middleware
@account_required
async def api_create_render_job_handler(request: web.Request) -> web.Response:
    """Handle POST /api/render-jobs.

    Body: ``{"request": {...}, "plan": {...}}`` in camelCase.

    Returns:
        201 with the new job's status payload.
    """
    try:
        body = await request.json()
    except json.JSONDecodeError:
        return api_error("Request body must be valid JSON", code=INVALID_JSON)
    if not isinstance(body, dict):
        return api_error("Request body must be a JSON object", code=INVALID_JSON)

    request_data = body.get("request")
    plan_data = body.get("plan")
    if not isinstance(request_data, dict) or not isinstance(plan_data, dict):
        return api_error(
            "Body must contain 'request' and 'plan' objects", code=VALIDATION_FAILED
        )

    try:
        render_request, plan = parse_submission(request_data, plan_data)
    except PlanValidationError as e:
        return api_error(str(e), code=VALIDATION_FAILED)

    pool = request["connection_pool"]
    owner = request["account_id"]
    title_resolver = request.app.get("title_resolver")

    def _create():
        # Title lookup may hit the network; keep it outside the write lock
        title = resolve_title(render_request, title_resolver)
        resolved = (
            render_request.model_copy(update={"title": title})
            if title and not render_request.title
            else render_request
        )
        with pool.write_connection() as conn:
            return create_render_job(conn, owner, resolved, plan)

    job = await asyncio.to_thread(_create)
    return web.json_response(
        RenderJobStatusResponse.from_job(job).to_dict(), status=201
    )


@shutdown_check_middleware
@database_required_middleware
@account_required
async def api_list_render_jobs_handler(request: web.Request) -> web.Response:
    """Handle GET /api/render-jobs.

    Query parameters:
        status: Filter by status (queued, rendering, completed, failed, retry)
        limit: Maximum number of jobs (1-500)
    """
    status = None
    if "status" in request.query:
        try:
            status = RenderJobStatus(request.query["status"])
        except ValueError:
            return api_error(
                f"Invalid status value: '{request.query['status']}'",
                code=INVALID_PARAMETER,
            )

    limit = None
    if "limit" in request.query:
        try:
            limit = int(request.query["limit"])
        except ValueError:
            limit = 0
        if not 1 <= limit <= MAX_LIST_LIMIT:
            return api_error(
                f"limit must be between 1 and {MAX_LIST_LIMIT}",
                code=INVALID_PARAMETER,
            )

    pool = request["connection_pool"]
    owner = request["account_id"]

    def _query_jobs():
        with pool.read_connection() as conn:
            return get_jobs_for_owner(conn, owner, status=status, limit=limit)

    jobs = await asyncio.to_thread(_query_jobs)
    response = RenderJobListResponse(
        jobs=[RenderJobStatusResponse.from_job(job) for job in jobs]
    )
    return web.json_response(response.to_dict())


@shutdown_check_middleware
@database_required_middleware
@account_required
async def api_render_job_status_handler(request: web.Request) -> web.Response:
    """Handle GET /api/render-jobs/{job_id}."""
    job_id, error = _job_id_or_error(request)
    if error is not None:
        return error

    pool = request["connection_pool"]
    owner = request["account_id"]

    def _query_job():
        with pool.read_connection() as conn:
            return get_job_for_owner(conn, job_id, owner)

    job = await asyncio.to_thread(_query_job)
    if job is None:
        return _job_not_found()
    return web.json_response(RenderJobStatusResponse.from_job(job).to_dict())


@shutdown_check_middleware
@database_required_middleware
@account_required
async def api_retry_render_job_handler(request: web.Request) -> web.Response:
    """Handle POST /api/render-jobs/{job_id}/retry.

    Returns:
        ``{id, status, progress}`` after the reset, 404 if the job is not
        the caller's, or 409 JOB_IN_PROGRESS while a worker renders it.
    """
    job_id, error = _job_id_or_error(request)
    if error is not None:
        return error

    pool = request["connection_pool"]
    owner = request["account_id"]

    def _reset():
        with pool.write_connection() as conn:
            return reset_job_to_queued(conn, job_id, owner=owner)

    try:
        job = await asyncio.to_thread(_reset)
    except JobNotFoundError:
        return _job_not_found()
    except ConcurrentModificationError as e:
        return api_error(str(e), code=JOB_IN_PROGRESS, status=409)

    return web.json_response(
        {"id": job.id, "status": job.status.value, "progress": job.progress}
    )


def _deliverable_path(request: web.Request, job_id: str) -> Path:
    # Derived from the job id alone; metadata paths are per attempt
    workspace: JobWorkspace = request.app["workspace"]
    return workspace.result_path(job_id)


@shutdown_check_middleware
@database_required_middleware
@account_required
async def api_download_render_job_handler(
    request: web.Request,
) -> web.StreamResponse:
    """Handle GET /api/render-jobs/{job_id}/download.

    Streams the deliverable as an attachment named
    ``<prefix>-<job id>.mp4``.
    """
    job_id, error = _job_id_or_error(request)
    if error is not None:
        return error

    pool = request["connection_pool"]
    owner = request["account_id"]

    def _query_job():
        with pool.read_connection() as conn:
            return get_job_for_owner(conn, job_id, owner)

    job = await asyncio.to_thread(_query_job)
    if job is None:
        return _job_not_found()

    if job.status is not RenderJobStatus.COMPLETED:
        return api_error(
            f"Render job is {job.status.value}, not completed",
            code=JOB_NOT_READY,
            status=409,
        )

    path = _deliverable_path(request, job.id)
    if not path.is_file():
        logger.warning("Deliverable for job %s missing at %s", job.id, path)
        return api_error(
            "Rendered file is no longer available; retry the job to render it again",
            code=FILE_NOT_FOUND,
            status=404,
        )

    prefix = request.app["download_prefix"]
    return web.FileResponse(
        path,
        headers={
            "Content-Type": "video/mp4",
            "Content-Disposition": f'attachment; filename="{prefix}-{job.id}.mp4"',
        },
    )


def setup_job_routes(app: web.Application) -> None:
    """Register render job API routes."""
    app.router.add_post("/api/render-jobs", api_create_render_job_handler)
    app.router.add_get("/api/render-jobs", api_list_render_jobs_handler)
    app.router.add_get("/api/render-jobs/{job_id}", api_render_job_status_handler)
    app.router.add_post(
        "/api/render-jobs/{job_id}/retry", api_retry_render_job_handler
    )
    app.router.add_get(
        "/api/render-jobs/{job_id}/download", api_download_render_job_handler
    )
