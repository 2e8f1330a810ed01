"""Tests for wiring the render pipeline from configuration."""

from pathlib import Path

from autoreel.config import AutoReelConfig, RenderConfig, ToolPathsConfig
from autoreel.executor import FFmpegConcatenator, FFmpegSegmentTranscoder
from autoreel.jobs.services import build_render_service, build_source_fetcher


def test_build_render_service(tmp_path):
    config = AutoReelConfig(
        tools=ToolPathsConfig(ffmpeg=Path("/opt/ffmpeg/bin/ffmpeg")),
        render=RenderConfig(
            temp_directory=tmp_path, crf=28, preset="fast", font_size=48, timeout=60
        ),
    )

    service = build_render_service(config)

    assert service.workspace.root == tmp_path
    assert isinstance(service.transcoder, FFmpegSegmentTranscoder)
    assert isinstance(service.concatenator, FFmpegConcatenator)
    settings = service.transcoder.settings
    assert (settings.crf, settings.preset, settings.font_size) == (28, "fast", 48)
    assert service.transcoder._timeout == 60


def test_source_fetcher_uses_configured_ffmpeg():
    config = AutoReelConfig(tools=ToolPathsConfig(ffmpeg=Path("/opt/ffmpeg")))

    fetcher = build_source_fetcher(config)

    assert fetcher.remote._options("out.mp4")["ffmpeg_location"] == "/opt/ffmpeg"
