"""Unit tests for source fetchers."""

import pytest

from autoreel.executor.fetch import (
    LocalFileFetcher,
    RoutingSourceFetcher,
    is_remote_reference,
    local_path_for,
)
from autoreel.executor.interface import AdapterResult, get_tool_path, require_tool


class TestReferenceParsing:
    """Tests for is_remote_reference() and local_path_for()."""

    @pytest.mark.parametrize(
        "reference,remote",
        [
            ("https://videos.example.com/watch?v=1", True),
            ("HTTP://example.com/a.mp4", True),
            ("file:///srv/media/talk.mp4", False),
            ("/srv/media/talk.mp4", False),
            ("ftp://example.com/a.mp4", False),
        ],
    )
    def test_is_remote(self, reference, remote):
        assert is_remote_reference(reference) is remote

    def test_file_url(self):
        assert str(local_path_for("file:///srv/my%20talk.mp4")) == "/srv/my talk.mp4"


class TestLocalFileFetcher:
    """Tests for LocalFileFetcher."""

    def test_copies_file(self, tmp_path):
        source = tmp_path / "talk.mp4"
        source.write_bytes(b"video")
        destination = tmp_path / "job" / "source.mp4"
        destination.parent.mkdir()

        result = LocalFileFetcher().fetch(str(source), destination)

        assert result.success
        assert destination.read_bytes() == b"video"
        assert list(destination.parent.iterdir()) == [destination]

    def test_missing_file(self, tmp_path):
        result = LocalFileFetcher().fetch(
            str(tmp_path / "missing.mp4"), tmp_path / "source.mp4"
        )

        assert not result.success
        assert "not found" in result.message

    def test_title_is_file_stem(self):
        assert LocalFileFetcher().resolve_title("/media/Keynote 2024.mp4") == (
            "Keynote 2024"
        )


class StubFetcher:
    def __init__(self, name: str) -> None:
        self.name = name
        self.calls: list[str] = []

    def fetch(self, source_reference, destination):
        self.calls.append(source_reference)
        return AdapterResult(success=True, message=self.name)

    def resolve_title(self, source_reference):
        return self.name


class TestRoutingSourceFetcher:
    """Tests for RoutingSourceFetcher."""

    def test_routes_by_scheme(self, tmp_path):
        remote, local = StubFetcher("remote"), StubFetcher("local")
        fetcher = RoutingSourceFetcher(remote=remote, local=local)

        fetcher.fetch("https://example.com/v", tmp_path / "a.mp4")
        fetcher.fetch("/media/talk.mp4", tmp_path / "b.mp4")

        assert remote.calls == ["https://example.com/v"]
        assert local.calls == ["/media/talk.mp4"]
        assert fetcher.resolve_title("https://example.com/v") == "remote"


class TestToolResolution:
    """Tests for get_tool_path() and require_tool()."""

    def test_configured_path_wins(self, tmp_path):
        tool = tmp_path / "ffmpeg"
        tool.write_text("")
        assert get_tool_path("ffmpeg", tool) == tool

    def test_missing_configured_path_does_not_fall_back(self, tmp_path):
        assert get_tool_path("sh", tmp_path / "sh") is None

    def test_require_tool_raises(self, tmp_path):
        with pytest.raises(RuntimeError, match="not found at"):
            require_tool("ffmpeg", tmp_path / "ffmpeg")
