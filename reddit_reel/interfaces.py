"""Protocols for the external capabilities the pipeline depends on.

Each capability wraps one outside system (Reddit, yt-dlp, ffprobe, ffmpeg) so
that the pipeline can be exercised with in-memory substitutes.
"""

from pathlib import Path
from typing import List, Optional, Protocol, Sequence

from reddit_reel.models.post import ContentItem, ProbeResult, SortMode, TimeWindow


class ContentSource(Protocol):
    """Ranked list of candidate posts."""

    async def fetch_candidates(
        self,
        source_filter: str,
        sort: SortMode,
        time: TimeWindow,
        page_size: int,
    ) -> List[ContentItem]:
        """
        Return candidates in the source's own ranking order.

        Args:
            source_filter: Subreddit expression, e.g. "aww" or "aww+videos"
            sort: Listing to read
            time: Time window (ignored by listings without one)
            page_size: Number of candidates to request
        """
        ...


class MediaFetcher(Protocol):
    """Materializes the media behind a URL into a local file."""

    async def fetch(self, url: str, destination: Path) -> None:
        """
        Download ``url`` to ``destination``.

        Raises:
            ReelError: On failure; no usable file is left at ``destination``
        """
        ...


class MediaProbe(Protocol):
    """Inspects a local media file."""

    async def probe(self, path: Path) -> ProbeResult:
        """
        Report whether ``path`` carries an audio stream, and its duration.

        Raises:
            ProbeError: If the file cannot be probed (distinct from "no audio")
        """
        ...


class EncoderInput(Protocol):
    """One encoder input: a source plus the options that precede it."""

    source: str
    options: Sequence[str]


class Encoder(Protocol):
    """Runs the encoder once over a set of inputs and a filter graph."""

    async def encode(
        self,
        inputs: Sequence[EncoderInput],
        filter_graph: str,
        output_mappings: Sequence[str],
        destination: Path,
        metadata: Optional[str] = None,
    ) -> None:
        """
        Encode ``inputs`` through ``filter_graph`` into ``destination``.

        Raises:
            EncodeError: With the encoder's diagnostics verbatim
        """
        ...
