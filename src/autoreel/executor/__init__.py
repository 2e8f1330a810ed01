"""External tool adapters (yt-dlp, ffmpeg) behind narrow protocols."""

from .ffmpeg import (
    CANVAS_SIZES,
    EncodingSettings,
    FFmpegConcatenator,
    FFmpegSegmentTranscoder,
    build_concat_command,
    build_segment_command,
    build_video_filter,
    sanitize_overlay_text,
)
from .fetch import (
    LocalFileFetcher,
    RoutingSourceFetcher,
    YtDlpSourceFetcher,
    is_remote_reference,
)
from .interface import (
    AdapterResult,
    Concatenator,
    SegmentRequest,
    SegmentTranscoder,
    SourceFetcher,
    get_tool_path,
    require_tool,
)

__all__ = [
    "AdapterResult",
    "CANVAS_SIZES",
    "Concatenator",
    "EncodingSettings",
    "FFmpegConcatenator",
    "FFmpegSegmentTranscoder",
    "LocalFileFetcher",
    "RoutingSourceFetcher",
    "SegmentRequest",
    "SegmentTranscoder",
    "SourceFetcher",
    "YtDlpSourceFetcher",
    "build_concat_command",
    "build_segment_command",
    "build_video_filter",
    "get_tool_path",
    "is_remote_reference",
    "require_tool",
    "sanitize_overlay_text",
]
