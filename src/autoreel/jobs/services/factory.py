"""Build the render pipeline from configuration."""

from autoreel.config.models import AutoReelConfig
from autoreel.executor.ffmpeg import (
    EncodingSettings,
    FFmpegConcatenator,
    FFmpegSegmentTranscoder,
)
from autoreel.executor.fetch import RoutingSourceFetcher, YtDlpSourceFetcher
from autoreel.jobs.services.render import RenderJobService
from autoreel.jobs.workspace import JobWorkspace


def encoding_settings_from_config(config: AutoReelConfig) -> EncodingSettings:
    render = config.render
    return EncodingSettings(
        fps=render.fps,
        preset=render.preset,
        crf=render.crf,
        font_path=render.font_path,
        font_size=render.font_size,
    )


def build_source_fetcher(config: AutoReelConfig) -> RoutingSourceFetcher:
    """Fetcher that sends URLs to yt-dlp and paths to a local copy."""
    return RoutingSourceFetcher(
        remote=YtDlpSourceFetcher(ffmpeg_path=config.tools.ffmpeg)
    )


def build_render_service(config: AutoReelConfig) -> RenderJobService:
    """Wire the workspace, fetcher and ffmpeg adapters for a worker."""
    settings = encoding_settings_from_config(config)
    ffmpeg_path = config.tools.ffmpeg
    timeout = config.render.timeout
    return RenderJobService(
        workspace=JobWorkspace(config.render.temp_directory),
        fetcher=build_source_fetcher(config),
        transcoder=FFmpegSegmentTranscoder(settings, ffmpeg_path, timeout),
        concatenator=FFmpegConcatenator(settings, ffmpeg_path, timeout),
    )
