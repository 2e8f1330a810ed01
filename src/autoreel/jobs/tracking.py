"""Render job submission.

Creating a job freezes the request and its plan into the job's config
in a single INSERT, so every later attempt works from the same snapshot.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import uuid
from collections.abc import Callable
from typing import Any

from pydantic import ValidationError

from autoreel.db import RenderJob, RenderJobStatus, insert_job, utc_now_iso
from autoreel.db.connection import execute_with_retry
from autoreel.jobs.exceptions import PlanValidationError
from autoreel.plan.models import RenderPlan, RenderRequest, freeze_job_config

logger = logging.getLogger(__name__)

TitleResolver = Callable[[str], str | None]


def _validate_non_empty(value: str | None, field: str) -> None:
    """Validate that a string field is not empty or whitespace-only.

    Raises:
        ValueError: If the value is None, empty, or whitespace-only.
    """
    if not value or not value.strip():
        raise ValueError(f"{field} cannot be empty")


def parse_submission(
    request_data: dict[str, Any], plan_data: dict[str, Any]
) -> tuple[RenderRequest, RenderPlan]:
    """Validate raw request and plan payloads.

    Raises:
        PlanValidationError: With the first validation problem found.
    """
    try:
        request = RenderRequest.model_validate(request_data)
        plan = RenderPlan.model_validate(plan_data)
    except ValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(part) for part in first["loc"]) or "body"
        raise PlanValidationError(f"{location}: {first['msg']}") from e
    return request, plan


def resolve_title(
    request: RenderRequest, title_resolver: TitleResolver | None
) -> str | None:
    """Title for a new job: the request's own, else a best-effort lookup."""
    if request.title:
        return request.title
    if title_resolver is None:
        return None
    try:
        return title_resolver(request.source_reference)
    except Exception as e:  # noqa: BLE001 - title lookup is best effort
        logger.info("Title lookup failed for %s: %s", request.source_reference, e)
        return None


def create_render_job(
    conn: sqlite3.Connection,
    owner: str,
    request: RenderRequest,
    plan: RenderPlan,
    *,
    title_resolver: TitleResolver | None = None,
) -> RenderJob:
    """Create a queued render job with its frozen config.

    Args:
        conn: Database connection.
        owner: Account identifier that owns the job.
        request: Validated render request.
        plan: Validated segment plan.
        title_resolver: Optional best-effort lookup of the source's title,
            used when the request carries none.

    Returns:
        The created RenderJob record.

    Raises:
        ValueError: If owner is empty.
    """
    _validate_non_empty(owner, "owner")

    title = resolve_title(request, title_resolver)
    now = utc_now_iso()
    job = RenderJob(
        id=str(uuid.uuid4()),
        owner=owner,
        source_reference=request.source_reference,
        title=title,
        config_json=json.dumps(freeze_job_config(request, plan)),
        status=RenderJobStatus.QUEUED,
        progress=0,
        created_at=now,
        updated_at=now,
    )

    def _insert() -> None:
        try:
            insert_job(conn, job)
            conn.commit()
        except sqlite3.Error:
            conn.rollback()
            raise

    execute_with_retry(_insert)
    logger.info(
        "Created render job %s (%d segment(s)) for %s",
        job.id,
        len(plan.segments),
        owner,
    )
    return job
