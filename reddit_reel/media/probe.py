"""Wrapper for retrieving media information using ffprobe."""

import json
import logging
from pathlib import Path
from typing import Optional

from reddit_reel.errors import DependencyMissingError, ProbeError, ProcessTimeoutError
from reddit_reel.media.process import FFPROBE, run_process
from reddit_reel.models.post import ProbeResult

logger = logging.getLogger(__name__)


class FfprobeProbe:
    """Reports audio presence and duration of a media file."""

    def __init__(self, timeout: Optional[float] = None, binary: str = FFPROBE):
        self.timeout = timeout
        self.binary = binary

    def build_args(self, path: Path) -> list:
        return [
            self.binary,
            "-v", "error",
            "-print_format", "json",
            "-show_streams",
            "-show_format",
            str(path),
        ]

    async def probe(self, path: Path) -> ProbeResult:
        """
        Probe ``path`` with ffprobe's JSON output.

        Raises:
            ProbeError: If ffprobe fails, times out, or returns unusable output
        """
        try:
            result = await run_process(self.build_args(path), timeout=self.timeout)
        except (DependencyMissingError, ProcessTimeoutError) as e:
            raise ProbeError(path, str(e)) from e

        if not result.ok:
            raise ProbeError(path, result.stderr.strip() or f"exit status {result.returncode}")

        try:
            payload = json.loads(result.stdout or "{}")
        except json.JSONDecodeError as e:
            raise ProbeError(path, "ffprobe returned invalid JSON") from e

        streams = payload.get("streams") or []
        has_audio = any(stream.get("codec_type") == "audio" for stream in streams)

        duration = None
        duration_value = (payload.get("format") or {}).get("duration")
        if duration_value not in (None, "", "N/A"):
            try:
                duration = float(duration_value)
            except (TypeError, ValueError):
                logger.debug(f"Ignoring non-numeric duration {duration_value!r} for {path}")

        return ProbeResult(has_audio=has_audio, duration=duration)
