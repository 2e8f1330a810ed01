"""Status colors and row formatting for CLI job listings."""

from autoreel.db import RenderJob, RenderJobStatus

JOB_STATUS_COLORS: dict[RenderJobStatus, str] = {
    RenderJobStatus.QUEUED: "yellow",
    RenderJobStatus.RENDERING: "blue",
    RenderJobStatus.COMPLETED: "green",
    RenderJobStatus.FAILED: "red",
    RenderJobStatus.RETRY: "magenta",
}

DEFAULT_STATUS_COLOR = "white"


def get_status_color(status: RenderJobStatus) -> str:
    """Get the terminal color for a job status (for click.style)."""
    return JOB_STATUS_COLORS.get(status, DEFAULT_STATUS_COLOR)


def truncate(text: str, width: int) -> str:
    """Shorten text to width, marking the cut with an ellipsis."""
    if len(text) <= width:
        return text
    return text[: width - 3] + "..."


def format_job_row(job: RenderJob) -> tuple[str, str, str, str, str, str]:
    """Format a job for table display.

    Returns:
        Tuple of (job_id, status_value, status_color, source, progress,
        created). Color is returned separately so ANSI codes don't affect
        column widths.
    """
    source = job.title or job.source_reference
    return (
        job.id[:8],
        job.status.value,
        get_status_color(job.status),
        truncate(source, 40),
        f"{job.progress}%",
        job.created_at[:19].replace("T", " "),
    )
