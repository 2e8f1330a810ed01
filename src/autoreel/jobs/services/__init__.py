"""Job processing services."""

from .factory import (
    build_render_service,
    build_source_fetcher,
    encoding_settings_from_config,
)
from .render import (
    RenderJobResult,
    RenderJobService,
    plan_from_config,
    segment_progress,
    segment_window,
)

__all__ = [
    "RenderJobResult",
    "RenderJobService",
    "build_render_service",
    "build_source_fetcher",
    "encoding_settings_from_config",
    "plan_from_config",
    "segment_progress",
    "segment_window",
]
