"""Response payloads for the render job API."""

from __future__ import annotations

from dataclasses import dataclass, field

from autoreel.db.types import RenderJob


@dataclass
class RenderJobStatusResponse:
    """Status of one render job as returned by the API."""

    id: str
    status: str
    progress: int
    source_reference: str
    title: str | None
    created_at: str
    updated_at: str
    completed_at: str | None
    last_error: str | None
    retry_count: int
    output_locations: list[str] = field(default_factory=list)

    @classmethod
    def from_job(cls, job: RenderJob) -> RenderJobStatusResponse:
        return cls(
            id=job.id,
            status=job.status.value,
            progress=job.progress,
            source_reference=job.source_reference,
            title=job.title,
            created_at=job.created_at,
            updated_at=job.updated_at,
            completed_at=job.completed_at,
            last_error=job.last_error,
            retry_count=job.retry_count,
            output_locations=job.output_locations,
        )

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization (camelCase keys)."""
        return {
            "id": self.id,
            "status": self.status,
            "progress": self.progress,
            "sourceReference": self.source_reference,
            "title": self.title,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "completedAt": self.completed_at,
            "outputLocations": self.output_locations,
            "lastError": self.last_error,
            "retryCount": self.retry_count,
        }


@dataclass
class RenderJobListResponse:
    """The caller's jobs, oldest first."""

    jobs: list[RenderJobStatusResponse]

    def to_dict(self) -> dict:
        return {
            "jobs": [job.to_dict() for job in self.jobs],
            "total": len(self.jobs),
        }
