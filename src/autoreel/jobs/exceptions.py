"""Custom exceptions for render job tracking.

These errors are raised by the queue and submission operations and are
surfaced directly to callers. Pipeline failures live in
autoreel.jobs.retry instead, since they are recorded on the job rather
than raised to a caller.
"""


class JobTrackingError(Exception):
    """Base exception for job tracking errors."""


class JobNotFoundError(JobTrackingError):
    """Raised when a job doesn't exist (or belongs to another owner).

    Attributes:
        job_id: The ID of the job that was not found.
        operation: The operation that was attempted (e.g., "retry").
    """

    def __init__(self, job_id: str, operation: str) -> None:
        self.job_id = job_id
        self.operation = operation
        super().__init__(f"Cannot {operation} job {job_id}: not found")


class ConcurrentModificationError(JobTrackingError):
    """Raised when a job's state forbids the requested change.

    The typical case is a retry request for a job a worker is currently
    rendering. The caller has to wait; the operation is never retried
    automatically.

    Attributes:
        job_id: The ID of the job that was concurrently modified.
        status: The status the job was in when the conflict was detected.
    """

    def __init__(
        self, job_id: str, message: str | None = None, status: str | None = None
    ) -> None:
        self.job_id = job_id
        self.status = status
        default_msg = f"Job {job_id} was modified by another process"
        super().__init__(message or default_msg)


class PlanValidationError(JobTrackingError):
    """Raised when a submitted request or plan fails validation."""
