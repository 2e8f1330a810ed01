"""Adapter protocols and tool resolution.

The render service only talks to these protocols, so tests can drive the
whole pipeline with in-memory fakes. Adapters report failure by returning
AdapterResult(success=False) rather than raising; the service turns a
failed result into the pipeline error for its stage.
"""

import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol


@dataclass(frozen=True)
class AdapterResult:
    """Result of an adapter operation."""

    success: bool
    """True if the operation succeeded."""

    message: str = ""
    """Human-readable message describing the result."""

    output_path: Path | None = None
    """File produced by the operation, if any."""


@dataclass(frozen=True)
class SegmentRequest:
    """Everything the transcoder needs to produce one clip."""

    source_path: Path
    output_path: Path
    start_seconds: int
    duration_seconds: int
    overlay_text: str
    aspect_ratio: str = "9:16"


class SourceFetcher(Protocol):
    """Retrieves the long-form source into local scratch storage."""

    def fetch(self, source_reference: str, destination: Path) -> AdapterResult:
        """Download or copy the source to destination."""
        ...


class SegmentTranscoder(Protocol):
    """Trims, normalizes and overlays text onto one segment."""

    def transcode(self, request: SegmentRequest) -> AdapterResult:
        """Produce request.output_path from request.source_path."""
        ...


class Concatenator(Protocol):
    """Merges transcoded segments into the deliverable."""

    def concatenate(self, segments: list[Path], destination: Path) -> AdapterResult:
        """Join segments, in order, into destination."""
        ...


def get_tool_path(tool_name: str, configured: Path | None = None) -> Path | None:
    """Get path to a tool, or None if not available.

    A configured path wins over the system PATH. A configured path that
    does not exist is treated as unavailable rather than falling back.

    Args:
        tool_name: Executable name, e.g. "ffmpeg".
        configured: Explicit path from configuration.

    Returns:
        Path to the tool or None if not available.
    """
    if configured is not None:
        return configured if configured.exists() else None
    found = shutil.which(tool_name)
    return Path(found) if found else None


def require_tool(tool_name: str, configured: Path | None = None) -> Path:
    """Get path to a required tool, raising an error if not available.

    Raises:
        RuntimeError: If the tool is not available.
    """
    path = get_tool_path(tool_name, configured)
    if path is None:
        where = f" at {configured}" if configured is not None else " on PATH"
        raise RuntimeError(
            f"Required tool not available: {tool_name} (not found{where})"
        )
    return path
