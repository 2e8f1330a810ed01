"""Segment pipeline for render jobs.

RenderJobService turns a claimed job into a deliverable: fetch the source
once, transcode each plan segment in order, then concatenate. It knows
nothing about the database; progress is reported through a callback and
the outcome through RenderJobResult, so the worker owns every state
transition.
"""

import logging
import math
import shutil
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from autoreel.db.types import RenderJob
from autoreel.executor.interface import (
    Concatenator,
    SegmentRequest,
    SegmentTranscoder,
    SourceFetcher,
)
from autoreel.jobs.retry import (
    ConcatenationError,
    ErrorKind,
    PlanError,
    RenderPipelineError,
    SourceFetchError,
    TranscodeError,
)
from autoreel.jobs.workspace import JobWorkspace, download_location
from autoreel.plan.models import RenderPlan

logger = logging.getLogger(__name__)

SOURCE_READY_PROGRESS = 10
SEGMENTS_PROGRESS_SPAN = 70
CONCATENATED_PROGRESS = 95
MIN_SEGMENT_SECONDS = 5

ProgressCallback = Callable[[int], None]


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives."""
    return math.floor(value + 0.5)


def segment_progress(done: int, total: int) -> int:
    """Progress after `done` of `total` segments have been transcoded."""
    if total <= 0:
        raise ValueError("total must be positive")
    value = SOURCE_READY_PROGRESS + round_half_up(SEGMENTS_PROGRESS_SPAN * done / total)
    return max(SOURCE_READY_PROGRESS, min(CONCATENATED_PROGRESS, value))


def segment_window(start_seconds: float, end_seconds: float) -> tuple[int, int]:
    """Whole-second (start, duration) for a segment.

    Start is never negative and duration never shorter than
    MIN_SEGMENT_SECONDS.
    """
    start = max(0, round_half_up(start_seconds))
    duration = max(MIN_SEGMENT_SECONDS, round_half_up(end_seconds - start_seconds))
    return start, duration


def plan_from_config(config: dict[str, Any]) -> RenderPlan:
    """Load the frozen plan from a job's config snapshot.

    Raises:
        PlanError: If the plan is missing, empty, or invalid.
    """
    raw_plan = config.get("plan")
    if not raw_plan or not raw_plan.get("segments"):
        raise PlanError("Render plan missing or empty. Re-run plan generation.")
    try:
        return RenderPlan.model_validate(raw_plan)
    except ValidationError as e:
        raise PlanError(f"Render plan is invalid: {e.error_count()} error(s)") from e


@dataclass(frozen=True)
class RenderJobResult:
    """Result of processing a render job."""

    success: bool
    output_path: Path | None = None
    output_locations: tuple[str, ...] = ()
    segment_paths: tuple[Path, ...] = field(default_factory=tuple)
    error_kind: ErrorKind | None = None
    error_message: str | None = None


class RenderJobService:
    """Drives fetch, per-segment transcode and concatenation for one job."""

    def __init__(
        self,
        workspace: JobWorkspace,
        fetcher: SourceFetcher,
        transcoder: SegmentTranscoder,
        concatenator: Concatenator,
    ) -> None:
        self.workspace = workspace
        self.fetcher = fetcher
        self.transcoder = transcoder
        self.concatenator = concatenator

    def process(
        self,
        job: RenderJob,
        progress_callback: ProgressCallback | None = None,
    ) -> RenderJobResult:
        """Process a render job end-to-end.

        Pipeline failures are returned as a failed result carrying their
        ErrorKind. Anything else propagates to the caller.

        Args:
            job: The claimed job.
            progress_callback: Receives each new progress percentage.

        Returns:
            RenderJobResult with the deliverable path on success.
        """
        report = progress_callback or (lambda _pct: None)
        try:
            return self._run(job, report)
        except RenderPipelineError as e:
            logger.error("Job %s failed (%s): %s", job.id, e.kind.value, e)
            return RenderJobResult(
                success=False, error_kind=e.kind, error_message=str(e)
            )

    def _run(self, job: RenderJob, report: ProgressCallback) -> RenderJobResult:
        plan = plan_from_config(job.config)

        self.workspace.ensure_job_dir(job.id)
        self.workspace.discard_partial_outputs(job.id)

        source_path = self._ensure_source(job)
        report(SOURCE_READY_PROGRESS)

        segment_paths = self._transcode_segments(job, plan, source_path, report)

        result_path = self.workspace.result_path(job.id)
        self._concatenate(segment_paths, result_path)
        report(CONCATENATED_PROGRESS)

        logger.info("Job %s rendered %d segment(s)", job.id, len(segment_paths))
        return RenderJobResult(
            success=True,
            output_path=result_path,
            output_locations=(download_location(job.id),),
            segment_paths=tuple(segment_paths),
        )

    def _ensure_source(self, job: RenderJob) -> Path:
        source_path = self.workspace.source_path(job.id)
        if source_path.exists():
            logger.debug("Reusing cached source for job %s", job.id)
            return source_path

        result = self.fetcher.fetch(job.source_reference, source_path)
        if not result.success:
            raise SourceFetchError(result.message or "Source fetch failed")
        if not source_path.exists():
            raise SourceFetchError(
                f"Source fetch reported success but {source_path} is missing"
            )
        return source_path

    def _transcode_segments(
        self,
        job: RenderJob,
        plan: RenderPlan,
        source_path: Path,
        report: ProgressCallback,
    ) -> list[Path]:
        total = len(plan.segments)
        outputs: list[Path] = []
        for index, segment in enumerate(plan.segments):
            start, duration = segment_window(segment.start_seconds, segment.end_seconds)
            request = SegmentRequest(
                source_path=source_path,
                output_path=self.workspace.segment_path(job.id, index),
                start_seconds=start,
                duration_seconds=duration,
                overlay_text=segment.display_text,
                aspect_ratio=plan.aspect_ratio,
            )
            result = self.transcoder.transcode(request)
            if not result.success:
                raise TranscodeError(
                    f"Segment {index + 1}/{total} ({segment.label}) failed: "
                    f"{result.message}",
                    segment_index=index,
                )
            if not request.output_path.exists():
                raise TranscodeError(
                    f"Segment {index + 1}/{total} produced no output",
                    segment_index=index,
                )
            outputs.append(request.output_path)
            report(segment_progress(index + 1, total))
        return outputs

    def _concatenate(self, segment_paths: list[Path], result_path: Path) -> None:
        if len(segment_paths) == 1:
            try:
                shutil.copyfile(segment_paths[0], result_path)
            except OSError as e:
                raise ConcatenationError(f"Copying single segment failed: {e}") from e
            return

        result = self.concatenator.concatenate(segment_paths, result_path)
        if not result.success:
            raise ConcatenationError(result.message or "Concatenation failed")
        if not result_path.exists():
            raise ConcatenationError(
                f"Concatenation produced no output at {result_path}"
            )

    def cleanup(self, result: RenderJobResult) -> None:
        """Best-effort delete of the intermediate segment clips."""
        self.workspace.remove_segments(list(result.segment_paths))
