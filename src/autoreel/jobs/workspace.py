"""Scratch storage layout for render jobs.

Every job gets a private directory named after its id:

    <root>/<job_id>/source.mp4       cached source, reused across attempts
    <root>/<job_id>/segment-<n>.mp4  per-segment clips, 1-based
    <root>/<job_id>/result.mp4       the deliverable

Paths are derived from the job id alone, so the download surface can find
the deliverable without trusting attempt-local metadata.
"""

import logging
import re
from pathlib import Path

logger = logging.getLogger(__name__)

_JOB_ID_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_-]*$")

SOURCE_FILENAME = "source.mp4"
RESULT_FILENAME = "result.mp4"


def download_location(job_id: str) -> str:
    """Return the download reference recorded on a completed job."""
    return f"/api/render-jobs/{job_id}/download"


class JobWorkspace:
    """Resolves per-job scratch paths under a root directory."""

    def __init__(self, root: Path) -> None:
        self.root = root

    def job_dir(self, job_id: str) -> Path:
        """Directory holding all files for one job.

        Raises:
            ValueError: If job_id could escape the root directory.
        """
        if not _JOB_ID_PATTERN.match(job_id):
            raise ValueError(f"Invalid job id for scratch storage: {job_id!r}")
        return self.root / job_id

    def ensure_job_dir(self, job_id: str) -> Path:
        path = self.job_dir(job_id)
        path.mkdir(parents=True, exist_ok=True)
        return path

    def source_path(self, job_id: str) -> Path:
        return self.job_dir(job_id) / SOURCE_FILENAME

    def segment_path(self, job_id: str, index: int) -> Path:
        """Path of the clip for the zero-based segment index."""
        return self.job_dir(job_id) / f"segment-{index + 1}.mp4"

    def result_path(self, job_id: str) -> Path:
        return self.job_dir(job_id) / RESULT_FILENAME

    def discard_partial_outputs(self, job_id: str) -> int:
        """Delete segment clips and deliverable left by an earlier attempt.

        The cached source is kept.

        Returns:
            Number of files removed.
        """
        job_dir = self.job_dir(job_id)
        if not job_dir.is_dir():
            return 0
        removed = 0
        for path in [*job_dir.glob("segment-*.mp4"), job_dir / RESULT_FILENAME]:
            if path.exists():
                path.unlink()
                removed += 1
        if removed:
            logger.debug(
                "Discarded %d stale output file(s) for job %s", removed, job_id
            )
        return removed

    def remove_segments(self, paths: list[Path]) -> list[Path]:
        """Best-effort delete of intermediate segment clips.

        Returns:
            Paths that could not be deleted. Missing files are not failures.
        """
        failed: list[Path] = []
        for path in paths:
            try:
                path.unlink(missing_ok=True)
            except OSError as e:
                logger.warning("Failed to delete segment %s: %s", path, e)
                failed.append(path)
        return failed
