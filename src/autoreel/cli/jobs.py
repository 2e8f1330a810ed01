"""CLI commands for the render job queue."""

import json
import logging
import sqlite3
from pathlib import Path
from typing import Any

import click
import yaml

from autoreel.cli.formatting import format_job_row, get_status_color
from autoreel.config import AutoReelConfig
from autoreel.db import (
    RenderJob,
    RenderJobStatus,
    get_jobs_by_id_prefix,
    get_jobs_by_status,
    get_jobs_for_owner,
)
from autoreel.jobs.exceptions import (
    ConcurrentModificationError,
    JobNotFoundError,
    PlanValidationError,
)
from autoreel.jobs.queue import get_queue_stats, recover_stale_jobs, reset_job_to_queued
from autoreel.jobs.services import build_render_service, build_source_fetcher
from autoreel.jobs.tracking import create_render_job, parse_submission
from autoreel.jobs.worker import JobWorker

logger = logging.getLogger(__name__)

DEFAULT_OWNER = "local"
STATUS_CHOICES = [status.value for status in RenderJobStatus]


def _require_conn(ctx: click.Context) -> sqlite3.Connection:
    conn = ctx.obj.get("db_conn")
    if conn is None:
        raise click.ClickException("Failed to connect to database.")
    return conn


def _resolve_job(conn: sqlite3.Connection, job_id: str) -> RenderJob:
    """Find exactly one job by full ID or prefix."""
    matching = get_jobs_by_id_prefix(conn, job_id)
    if not matching:
        raise click.ClickException(f"Job not found: {job_id}")
    if len(matching) > 1:
        click.echo(f"Multiple jobs match '{job_id}':", err=True)
        for job in matching[:5]:
            click.echo(f"  {job.id[:8]} - {job.status.value}", err=True)
        if len(matching) > 5:
            click.echo(f"  ... and {len(matching) - 5} more", err=True)
        raise click.ClickException("Be more specific.")
    return matching[0]


def _load_submission_file(path: Path) -> dict[str, Any]:
    """Read a YAML or JSON submission file (JSON parses as YAML)."""
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise click.ClickException(f"Could not parse {path}: {e}") from e
    if not isinstance(data, dict):
        raise click.ClickException(f"{path} must contain a mapping")
    if not isinstance(data.get("request"), dict) or not isinstance(
        data.get("plan"), dict
    ):
        raise click.ClickException(f"{path} must contain 'request' and 'plan' mappings")
    return data


def _job_to_dict(job: RenderJob) -> dict[str, Any]:
    return {
        "id": job.id,
        "owner": job.owner,
        "status": job.status.value,
        "progress": job.progress,
        "source_reference": job.source_reference,
        "title": job.title,
        "retry_count": job.retry_count,
        "last_error": job.last_error,
        "last_error_at": job.last_error_at,
        "worker_id": job.worker_id,
        "worker_heartbeat": job.worker_heartbeat,
        "output_locations": job.output_locations,
        "created_at": job.created_at,
        "updated_at": job.updated_at,
        "completed_at": job.completed_at,
    }


@click.group("jobs")
def jobs_group() -> None:
    """Manage the render job queue.

    Jobs are created with 'jobs submit' and processed by 'jobs start'.

    \b
    Examples:
        autoreel jobs submit reel.yaml
        autoreel jobs list --status failed
        autoreel jobs start --drain
    """


@jobs_group.command("submit")
@click.argument(
    "submission_file", type=click.Path(exists=True, dir_okay=False, path_type=Path)
)
@click.option(
    "--owner",
    default=DEFAULT_OWNER,
    show_default=True,
    help="Account that owns the job.",
)
@click.option(
    "--lookup-title",
    is_flag=True,
    help="Look up the source title when the request has none.",
)
@click.option("--json", "json_output", is_flag=True, help="Output in JSON format.")
@click.pass_context
def submit_job(
    ctx: click.Context,
    submission_file: Path,
    owner: str,
    lookup_title: bool,
    json_output: bool,
) -> None:
    """Queue a render job from a YAML or JSON file.

    The file holds a 'request' mapping (sourceReference, tone, ...) and a
    'plan' mapping (aspectRatio, segments).
    """
    conn = _require_conn(ctx)
    config: AutoReelConfig = ctx.obj["config"]

    data = _load_submission_file(submission_file)
    try:
        request, plan = parse_submission(data["request"], data["plan"])
    except PlanValidationError as e:
        raise click.ClickException(f"Invalid submission: {e}") from e

    title_resolver = None
    if lookup_title:
        title_resolver = build_source_fetcher(config).resolve_title
    try:
        job = create_render_job(
            conn, owner, request, plan, title_resolver=title_resolver
        )
    except ValueError as e:
        raise click.ClickException(str(e)) from e

    if json_output:
        click.echo(json.dumps(_job_to_dict(job), indent=2))
    else:
        click.echo(f"Queued job {job.id} ({len(plan.segments)} segment(s))")


@jobs_group.command("list")
@click.option(
    "--status",
    "-s",
    type=click.Choice([*STATUS_CHOICES, "all"]),
    default="all",
    help="Filter by status.",
)
@click.option("--owner", default=None, help="Only show jobs owned by this account.")
@click.option(
    "--limit", "-l", type=click.IntRange(min=1), default=50, show_default=True
)
@click.option("--json", "json_output", is_flag=True, help="Output in JSON format.")
@click.pass_context
def list_jobs(
    ctx: click.Context,
    status: str,
    owner: str | None,
    limit: int,
    json_output: bool,
) -> None:
    """List render jobs, oldest first."""
    conn = _require_conn(ctx)
    status_filter = None if status == "all" else RenderJobStatus(status)

    if owner is not None:
        jobs = get_jobs_for_owner(conn, owner, status=status_filter, limit=limit)
    else:
        jobs = get_jobs_by_status(conn, status=status_filter, limit=limit)

    if json_output:
        click.echo(json.dumps([_job_to_dict(job) for job in jobs], indent=2))
        return

    if not jobs:
        click.echo("No jobs found.")
        return

    click.echo(f"{'ID':<10} {'STATUS':<11} {'SOURCE':<42} {'PROG':<6} {'CREATED':<20}")
    click.echo("-" * 92)
    for job in jobs:
        job_id, status_value, color, source, progress, created = format_job_row(job)
        # Pad before styling so ANSI codes don't break alignment
        status_colored = click.style(f"{status_value:<11}", fg=color)
        click.echo(
            f"{job_id:<10} {status_colored} {source:<42} {progress:<6} {created:<20}"
        )


@jobs_group.command("show")
@click.argument("job_id")
@click.option("--json", "json_output", is_flag=True, help="Output in JSON format.")
@click.pass_context
def show_job(ctx: click.Context, job_id: str, json_output: bool) -> None:
    """Show details of one job.

    JOB_ID can be the full UUID or a unique prefix.
    """
    conn = _require_conn(ctx)
    job = _resolve_job(conn, job_id)

    if json_output:
        data = _job_to_dict(job)
        data["config"] = job.config
        click.echo(json.dumps(data, indent=2))
        return

    status_colored = click.style(
        job.status.value.upper(), fg=get_status_color(job.status)
    )
    click.echo(f"\nJob: {job.id}")
    click.echo("-" * 50)
    click.echo(f"  Status:      {status_colored}")
    click.echo(f"  Progress:    {job.progress}%")
    click.echo(f"  Owner:       {job.owner}")
    click.echo(f"  Source:      {job.source_reference}")
    if job.title:
        click.echo(f"  Title:       {job.title}")
    segments = job.config.get("plan", {}).get("segments", [])
    click.echo(f"  Segments:    {len(segments)}")
    click.echo(f"  Retries:     {job.retry_count}")
    click.echo("")
    click.echo(f"  Created:     {job.created_at}")
    click.echo(f"  Updated:     {job.updated_at}")
    if job.completed_at:
        click.echo(f"  Completed:   {job.completed_at}")

    if job.status is RenderJobStatus.RENDERING:
        click.echo("")
        click.echo(f"  Worker:      {job.worker_id}")
        if job.worker_heartbeat:
            click.echo(f"  Heartbeat:   {job.worker_heartbeat}")

    if job.last_error:
        click.echo("")
        click.echo(f"  Error:       {click.style(job.last_error, fg='red')}")

    for location in job.output_locations:
        click.echo(f"  Output:      {location}")
    local_path = (job.metadata or {}).get("local_path")
    if local_path:
        click.echo(f"  File:        {local_path}")
    click.echo("")


@jobs_group.command("status")
@click.pass_context
def show_status(ctx: click.Context) -> None:
    """Show queue statistics."""
    conn = _require_conn(ctx)
    stats = get_queue_stats(conn)

    click.echo("Render Queue Status")
    click.echo("-" * 30)
    click.echo(f"  Queued:    {stats.queued:>5}")
    click.echo(f"  Rendering: {stats.rendering:>5}")
    click.echo(f"  Retry:     {stats.retry:>5}")
    click.echo(f"  Completed: {stats.completed:>5}")
    click.echo(f"  Failed:    {stats.failed:>5}")
    click.echo("-" * 30)
    click.echo(f"  Total:     {stats.total:>5}")


@jobs_group.command("retry")
@click.argument("job_id")
@click.pass_context
def retry_job_cmd(ctx: click.Context, job_id: str) -> None:
    """Re-queue a completed, failed or retrying job from scratch.

    JOB_ID can be the full UUID or a unique prefix.
    """
    conn = _require_conn(ctx)
    job = _resolve_job(conn, job_id)

    try:
        job = reset_job_to_queued(conn, job.id)
    except ConcurrentModificationError as e:
        raise click.ClickException(str(e)) from e
    except JobNotFoundError as e:
        raise click.ClickException(str(e)) from e

    click.echo(f"Requeued job {job.id[:8]} (status {job.status.value})")


@jobs_group.command("recover")
@click.option(
    "--timeout",
    type=click.IntRange(min=1),
    default=None,
    help="Seconds without heartbeat before a claim is stale "
    "(default: worker.stale_timeout).",
)
@click.pass_context
def recover_jobs(ctx: click.Context, timeout: int | None) -> None:
    """Release claims held by workers that stopped heartbeating.

    Each recovered job counts as a failed attempt.
    """
    conn = _require_conn(ctx)
    config: AutoReelConfig = ctx.obj["config"]

    count = recover_stale_jobs(
        conn,
        timeout_seconds=timeout or config.worker.stale_timeout,
        max_retries=config.worker.max_retries,
    )
    if count > 0:
        click.echo(f"Recovered {count} stale job(s).")
    else:
        click.echo("No stale jobs found.")


@jobs_group.command("start")
@click.option("--worker-id", default=None, help="Worker identity for claims.")
@click.option(
    "--max-jobs",
    "-n",
    type=click.IntRange(min=1),
    default=None,
    help="Stop after this many jobs.",
)
@click.option(
    "--poll-interval",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Seconds between polls when the queue is empty.",
)
@click.option("--drain", is_flag=True, help="Exit once the queue is empty.")
@click.pass_context
def start_worker(
    ctx: click.Context,
    worker_id: str | None,
    max_jobs: int | None,
    poll_interval: float | None,
    drain: bool,
) -> None:
    """Start a worker that renders queued jobs.

    The worker runs until SIGTERM/SIGINT, --max-jobs is reached, or (with
    --drain) the queue is empty. Stale claims are recovered on startup.
    """
    conn = _require_conn(ctx)
    config: AutoReelConfig = ctx.obj["config"]

    worker = JobWorker(
        conn,
        build_render_service(config),
        worker_id or config.worker.resolved_worker_id,
        poll_interval=poll_interval or config.worker.poll_interval,
        max_retries=config.worker.max_retries,
        max_jobs=max_jobs,
        exit_when_idle=drain,
        heartbeat_interval=config.worker.heartbeat_interval,
        stale_timeout=config.worker.stale_timeout,
        install_signal_handlers=True,
    )
    processed = worker.run()
    click.echo(f"Processed {processed} job(s).")
