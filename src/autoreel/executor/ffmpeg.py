"""FFmpeg adapters for segment transcoding and concatenation.

Command construction is kept in pure functions (build_segment_command,
build_concat_command) so the exact ffmpeg invocation can be asserted in
tests without running ffmpeg. The adapter classes add tool resolution,
the write-then-move output pattern, and error reporting.
"""

import logging
import subprocess  # nosec B404 - only used for the TimeoutExpired type
from dataclasses import dataclass
from pathlib import Path

from autoreel.core.subprocess_utils import run_command, tail_lines
from autoreel.executor.interface import AdapterResult, SegmentRequest, require_tool

logger = logging.getLogger(__name__)

# Output canvas (width, height) per plan aspect ratio
CANVAS_SIZES: dict[str, tuple[int, int]] = {
    "9:16": (1080, 1920),
    "1:1": (1080, 1080),
}

DEFAULT_FONT_FAMILY = "Arial"


# Characters ffmpeg treats as syntax when splitting filter options, and
# when splitting the filtergraph itself
OPTION_SPECIALS = "\\':"
GRAPH_SPECIALS = "\\',;[]"


def _backslash_escape(text: str, specials: str) -> str:
    return "".join(f"\\{char}" if char in specials else char for char in text)


def sanitize_overlay_text(text: str) -> str:
    """Escape a drawtext option value for an unquoted -vf argument.

    ffmpeg unescapes the value twice: once when it splits the filtergraph
    and again when it splits the filter's key=value options. So the value
    is escaped for the option level first, then for the graph level.
    Newlines stay real newline characters, which drawtext renders as line
    breaks.
    """
    return _backslash_escape(_backslash_escape(text, OPTION_SPECIALS), GRAPH_SPECIALS)


@dataclass(frozen=True)
class EncodingSettings:
    """Encoder parameters shared by every segment of a job."""

    fps: int = 30
    preset: str = "veryfast"
    crf: int = 20
    font_path: Path | None = None
    font_size: int = 64


def build_video_filter(
    overlay_text: str,
    aspect_ratio: str,
    settings: EncodingSettings,
) -> str:
    """Build the -vf chain: fit, pad, frame rate, pixel format, text.

    Raises:
        ValueError: If aspect_ratio is not supported.
    """
    try:
        width, height = CANVAS_SIZES[aspect_ratio]
    except KeyError:
        raise ValueError(f"Unsupported aspect ratio: {aspect_ratio}") from None

    if settings.font_path is not None and settings.font_path.exists():
        font = f"fontfile={sanitize_overlay_text(str(settings.font_path))}"
    else:
        font = f"font={DEFAULT_FONT_FAMILY}"

    drawtext = ":".join(
        [
            f"drawtext={font}",
            f"text={sanitize_overlay_text(overlay_text)}",
            "expansion=none",
            "fontcolor=white",
            f"fontsize={settings.font_size}",
            "borderw=8",
            "bordercolor=#000000AA",
            "x=(w-text_w)/2",
            "y=h*0.75",
        ]
    )
    return ",".join(
        [
            f"scale={width}:{height}:force_original_aspect_ratio=decrease",
            f"pad={width}:{height}:({width}-iw)/2:({height}-ih)/2",
            f"fps={settings.fps}",
            "format=yuv420p",
            drawtext,
        ]
    )


def build_segment_command(
    ffmpeg: Path,
    request: SegmentRequest,
    settings: EncodingSettings,
    output_path: Path | None = None,
) -> list[str]:
    """Build the ffmpeg argv for one segment.

    Args:
        ffmpeg: Path to the ffmpeg executable.
        request: Segment to render.
        settings: Encoder parameters.
        output_path: Override for the output file (used for temp output).

    Returns:
        Argument list suitable for run_command().
    """
    target = output_path if output_path is not None else request.output_path
    return [
        str(ffmpeg),
        "-y",
        "-hide_banner",
        "-loglevel",
        "error",
        "-ss",
        str(request.start_seconds),
        "-i",
        str(request.source_path),
        "-t",
        str(request.duration_seconds),
        "-vf",
        build_video_filter(request.overlay_text, request.aspect_ratio, settings),
        "-c:v",
        "libx264",
        "-preset",
        settings.preset,
        "-crf",
        str(settings.crf),
        "-c:a",
        "aac",
        "-movflags",
        "+faststart",
        str(target),
    ]


def build_concat_command(
    ffmpeg: Path,
    segments: list[Path],
    output_path: Path,
    settings: EncodingSettings,
) -> list[str]:
    """Build the ffmpeg argv that joins segments with the concat filter.

    Segments are re-encoded rather than stream-copied so clips with
    slightly different timestamps still join cleanly.
    """
    if len(segments) < 2:
        raise ValueError("Concatenation needs at least two segments")

    cmd = [str(ffmpeg), "-y", "-hide_banner", "-loglevel", "error"]
    for segment in segments:
        cmd.extend(["-i", str(segment)])

    inputs = "".join(f"[{i}:v][{i}:a]" for i in range(len(segments)))
    cmd.extend(
        [
            "-filter_complex",
            f"{inputs}concat=n={len(segments)}:v=1:a=1[v][a]",
            "-map",
            "[v]",
            "-map",
            "[a]",
            "-c:v",
            "libx264",
            "-preset",
            settings.preset,
            "-crf",
            str(settings.crf),
            "-c:a",
            "aac",
            "-movflags",
            "+faststart",
            str(output_path),
        ]
    )
    return cmd


class FFmpegAdapterBase:
    """Shared tool resolution and run logic for ffmpeg adapters."""

    DEFAULT_TIMEOUT: int = 1800  # 30 minutes

    def __init__(
        self,
        settings: EncodingSettings | None = None,
        ffmpeg_path: Path | None = None,
        timeout: int | None = None,
    ) -> None:
        self.settings = settings or EncodingSettings()
        self._configured_path = ffmpeg_path
        self._tool_path: Path | None = None
        self._timeout = timeout if timeout is not None else self.DEFAULT_TIMEOUT

    @property
    def tool_path(self) -> Path:
        """Get path to ffmpeg, verifying availability.

        Raises:
            RuntimeError: If ffmpeg is not available.
        """
        if self._tool_path is None:
            self._tool_path = require_tool("ffmpeg", self._configured_path)
        return self._tool_path

    @staticmethod
    def temp_output_for(output_path: Path) -> Path:
        """Temp path next to the output, keeping the container extension."""
        return output_path.with_name(f".{output_path.stem}.tmp{output_path.suffix}")

    def _run(
        self, cmd: list[str], description: str, temp_path: Path, output_path: Path
    ) -> AdapterResult:
        """Run cmd writing to temp_path, then move it to output_path."""
        try:
            _, stderr, returncode = run_command(cmd, timeout=self._timeout)
        except subprocess.TimeoutExpired:
            temp_path.unlink(missing_ok=True)
            return AdapterResult(
                success=False,
                message=f"{description} timed out after {self._timeout}s",
            )
        except OSError as e:
            temp_path.unlink(missing_ok=True)
            return AdapterResult(success=False, message=f"{description} failed: {e}")

        if returncode != 0:
            temp_path.unlink(missing_ok=True)
            detail = tail_lines(stderr) or "no output"
            logger.error("%s failed (exit %d): %s", description, returncode, detail)
            return AdapterResult(
                success=False,
                message=f"{description} failed (ffmpeg exit {returncode}): {detail}",
            )

        if not temp_path.exists() or temp_path.stat().st_size == 0:
            temp_path.unlink(missing_ok=True)
            return AdapterResult(
                success=False, message=f"{description} produced no output"
            )

        temp_path.replace(output_path)
        return AdapterResult(success=True, message=description, output_path=output_path)


class FFmpegSegmentTranscoder(FFmpegAdapterBase):
    """Renders one highlight segment as a normalized clip with overlay text."""

    def transcode(self, request: SegmentRequest) -> AdapterResult:
        """Produce request.output_path from the cached source."""
        try:
            ffmpeg = self.tool_path
        except RuntimeError as e:
            return AdapterResult(success=False, message=str(e))

        temp_path = self.temp_output_for(request.output_path)
        try:
            cmd = build_segment_command(ffmpeg, request, self.settings, temp_path)
        except ValueError as e:
            return AdapterResult(success=False, message=str(e))

        logger.info(
            "Transcoding %s (start=%ds, duration=%ds)",
            request.output_path.name,
            request.start_seconds,
            request.duration_seconds,
        )
        description = f"Transcode of {request.output_path.name}"
        return self._run(cmd, description, temp_path, request.output_path)


class FFmpegConcatenator(FFmpegAdapterBase):
    """Joins transcoded segments, in order, into the deliverable."""

    def concatenate(self, segments: list[Path], destination: Path) -> AdapterResult:
        """Join segments into destination with the concat filter."""
        missing = [p.name for p in segments if not p.exists()]
        if missing:
            return AdapterResult(
                success=False, message=f"Missing segment file(s): {', '.join(missing)}"
            )

        try:
            ffmpeg = self.tool_path
        except RuntimeError as e:
            return AdapterResult(success=False, message=str(e))

        temp_path = self.temp_output_for(destination)
        try:
            cmd = build_concat_command(ffmpeg, segments, temp_path, self.settings)
        except ValueError as e:
            return AdapterResult(success=False, message=str(e))

        logger.info(
            "Concatenating %d segments into %s", len(segments), destination.name
        )
        return self._run(cmd, "Concatenation", temp_path, destination)
