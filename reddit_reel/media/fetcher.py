"""Media fetcher backed by the yt-dlp command line tool."""

import logging
from pathlib import Path
from typing import Optional

from reddit_reel.errors import DependencyMissingError, FetchError, ProcessTimeoutError
from reddit_reel.media.process import YT_DLP, run_process

logger = logging.getLogger(__name__)


class YtDlpFetcher:
    """Downloads the video behind a post URL as a single mp4 file."""

    def __init__(self, timeout: Optional[float] = None, binary: str = YT_DLP):
        """
        Initialize the fetcher.

        Args:
            timeout: Deadline per download in seconds
            binary: yt-dlp executable
        """
        self.timeout = timeout
        self.binary = binary

    def build_args(self, url: str, destination: Path) -> list:
        return [
            self.binary,
            "--quiet",
            "--no-warnings",
            "--no-progress",
            "--no-playlist",
            "--output", str(destination),
            "--merge-output-format", "mp4",
            url,
        ]

    async def fetch(self, url: str, destination: Path) -> None:
        """
        Download ``url`` to ``destination``.

        Raises:
            FetchError: If yt-dlp fails, times out, or produces no file
        """
        item_id = destination.stem
        try:
            result = await run_process(self.build_args(url, destination), timeout=self.timeout)
        except (DependencyMissingError, ProcessTimeoutError) as e:
            raise FetchError(item_id, str(e)) from e

        if not result.ok:
            message = result.stderr.strip() or f"exit status {result.returncode}"
            raise FetchError(item_id, message)
        if not destination.is_file():
            raise FetchError(item_id, f"yt-dlp reported success but {destination} is missing")
