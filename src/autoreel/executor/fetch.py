"""Source fetchers: yt-dlp for remote URLs, plain copy for local files.

Fetchers write to a temp name and rename on success, so an interrupted
fetch never leaves a half-written source.mp4 that a later attempt would
mistake for a cached copy.
"""

import logging
import shutil
from pathlib import Path
from urllib.parse import unquote, urlparse

import yt_dlp
from yt_dlp.utils import DownloadError

from autoreel.executor.interface import AdapterResult

logger = logging.getLogger(__name__)

REMOTE_SCHEMES = frozenset({"http", "https"})

YTDLP_FORMAT = "bestvideo[ext=mp4]+bestaudio[ext=m4a]/best[ext=mp4]/best"


def is_remote_reference(source_reference: str) -> bool:
    """Return True if the reference is an http(s) URL."""
    return urlparse(source_reference).scheme.casefold() in REMOTE_SCHEMES


def local_path_for(source_reference: str) -> Path:
    """Resolve a local path or file:// URL to a filesystem path."""
    parsed = urlparse(source_reference)
    if parsed.scheme == "file":
        return Path(unquote(parsed.path))
    return Path(source_reference).expanduser()


class YtDlpSourceFetcher:
    """Downloads remote sources with yt-dlp, merged into a single mp4."""

    def __init__(self, ffmpeg_path: Path | None = None) -> None:
        self._ffmpeg_path = ffmpeg_path

    def _options(self, outtmpl: str) -> dict:
        opts = {
            "format": YTDLP_FORMAT,
            "outtmpl": outtmpl,
            "merge_output_format": "mp4",
            "quiet": True,
            "no_warnings": True,
            "noprogress": True,
            "noplaylist": True,
        }
        if self._ffmpeg_path is not None:
            opts["ffmpeg_location"] = str(self._ffmpeg_path)
        return opts

    def fetch(self, source_reference: str, destination: Path) -> AdapterResult:
        """Download source_reference to destination."""
        temp_path = destination.with_name(f".{destination.stem}.download.mp4")
        logger.info("Downloading source %s", source_reference)
        try:
            with yt_dlp.YoutubeDL(self._options(str(temp_path))) as ydl:
                ydl.download([source_reference])
        except DownloadError as e:
            temp_path.unlink(missing_ok=True)
            return AdapterResult(success=False, message=f"Source download failed: {e}")

        if not temp_path.exists():
            return AdapterResult(
                success=False,
                message=f"Source download produced no file for {source_reference}",
            )
        temp_path.replace(destination)
        return AdapterResult(
            success=True, message="Source downloaded", output_path=destination
        )

    def resolve_title(self, source_reference: str) -> str | None:
        """Look up the source's title without downloading it.

        Best effort: any extraction failure yields None.
        """
        opts = {"quiet": True, "no_warnings": True, "skip_download": True}
        try:
            with yt_dlp.YoutubeDL(opts) as ydl:
                info = ydl.extract_info(source_reference, download=False)
        except DownloadError as e:
            logger.info("Could not resolve title for %s: %s", source_reference, e)
            return None
        if not info:
            return None
        return info.get("title") or None


class LocalFileFetcher:
    """Copies a local file (plain path or file:// URL) into scratch."""

    def fetch(self, source_reference: str, destination: Path) -> AdapterResult:
        """Copy the local source to destination."""
        source = local_path_for(source_reference)
        if not source.is_file():
            return AdapterResult(
                success=False, message=f"Source file not found: {source}"
            )

        temp_path = destination.with_name(f".{destination.stem}.copy.mp4")
        try:
            shutil.copyfile(source, temp_path)
        except OSError as e:
            temp_path.unlink(missing_ok=True)
            return AdapterResult(success=False, message=f"Source copy failed: {e}")
        temp_path.replace(destination)
        return AdapterResult(
            success=True, message="Source copied", output_path=destination
        )

    def resolve_title(self, source_reference: str) -> str | None:
        """Use the file name (without extension) as the title."""
        return local_path_for(source_reference).stem or None


class RoutingSourceFetcher:
    """Dispatches to the remote or local fetcher based on the reference."""

    def __init__(
        self,
        remote: YtDlpSourceFetcher | None = None,
        local: LocalFileFetcher | None = None,
    ) -> None:
        self.remote = remote or YtDlpSourceFetcher()
        self.local = local or LocalFileFetcher()

    def _select(self, source_reference: str) -> YtDlpSourceFetcher | LocalFileFetcher:
        return self.remote if is_remote_reference(source_reference) else self.local

    def fetch(self, source_reference: str, destination: Path) -> AdapterResult:
        return self._select(source_reference).fetch(source_reference, destination)

    def resolve_title(self, source_reference: str) -> str | None:
        return self._select(source_reference).resolve_title(source_reference)
