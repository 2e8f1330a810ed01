"""Failure classification and retry decisions for render jobs.

Every pipeline stage reports failure by raising a RenderPipelineError
subclass carrying an ErrorKind. The worker catches exactly once at its
loop boundary, classifies whatever it caught, and asks decide_failure()
what the job's next status is. decide_failure() is pure so the retry
policy can be tested without a database.
"""

import sqlite3
from dataclasses import dataclass
from enum import Enum

from autoreel.db.types import RenderJobStatus

DEFAULT_MAX_RETRIES = 2


class ErrorKind(Enum):
    """Classification of pipeline failures.

    Values:
        PLAN: Plan missing or empty when the pipeline started.
        SOURCE_FETCH: The source video could not be retrieved.
        TRANSCODE: A segment failed to transcode.
        CONCATENATION: Segment clips could not be merged.
        DATABASE: The job store was unavailable (locks, I/O).
        INTERNAL: Anything else raised inside the pipeline.
    """

    PLAN = "plan"
    SOURCE_FETCH = "source_fetch"
    TRANSCODE = "transcode"
    CONCATENATION = "concatenation"
    DATABASE = "database"
    INTERNAL = "internal"


class RenderPipelineError(Exception):
    """Base class for failures raised by the segment pipeline."""

    kind = ErrorKind.INTERNAL


class PlanError(RenderPipelineError):
    """The frozen plan is missing or has no segments."""

    kind = ErrorKind.PLAN


class SourceFetchError(RenderPipelineError):
    """The source fetcher could not produce the cached source file."""

    kind = ErrorKind.SOURCE_FETCH


class TranscodeError(RenderPipelineError):
    """A segment transcode failed.

    Attributes:
        segment_index: Zero-based index of the failing segment.
    """

    kind = ErrorKind.TRANSCODE

    def __init__(self, message: str, segment_index: int | None = None) -> None:
        self.segment_index = segment_index
        super().__init__(message)


class ConcatenationError(RenderPipelineError):
    """Merging the transcoded segments failed."""

    kind = ErrorKind.CONCATENATION


def classify_error(exception: BaseException) -> ErrorKind:
    """Classify an exception caught at the worker boundary.

    Examples:
        >>> classify_error(TranscodeError("ffmpeg exited 1"))
        <ErrorKind.TRANSCODE: 'transcode'>

        >>> classify_error(KeyError("segments"))
        <ErrorKind.INTERNAL: 'internal'>
    """
    if isinstance(exception, RenderPipelineError):
        return exception.kind
    if isinstance(exception, sqlite3.Error):
        return ErrorKind.DATABASE
    return ErrorKind.INTERNAL


def describe_error(exception: BaseException) -> str:
    """Build the human-readable last_error text for a caught exception."""
    kind = classify_error(exception)
    message = str(exception) or type(exception).__name__
    if kind is ErrorKind.INTERNAL:
        return f"Unexpected error ({type(exception).__name__}): {message}"
    return message


@dataclass(frozen=True)
class FailureDecision:
    """Outcome of a failed attempt.

    Attributes:
        status: RETRY when attempts remain, FAILED once they are exhausted.
        retry_count: Value to store on the job. Never exceeds max_retries.
    """

    status: RenderJobStatus
    retry_count: int

    @property
    def is_terminal(self) -> bool:
        return self.status is RenderJobStatus.FAILED


def decide_failure(retry_count: int, max_retries: int) -> FailureDecision:
    """Decide the next status after a failed attempt.

    A job may fail max_retries times and still be retried; the failure
    after that is terminal. The stored count is capped at max_retries, so
    a terminally failed job reports retry_count == max_retries.

    Args:
        retry_count: The job's retry count before this failure.
        max_retries: Configured maximum number of retries (>= 0).

    Returns:
        FailureDecision with the next status and count to store.

    Raises:
        ValueError: If either argument is negative.
    """
    if retry_count < 0 or max_retries < 0:
        raise ValueError("retry_count and max_retries must be non-negative")

    attempted = retry_count + 1
    if attempted > max_retries:
        return FailureDecision(RenderJobStatus.FAILED, max_retries)
    return FailureDecision(RenderJobStatus.RETRY, attempted)
