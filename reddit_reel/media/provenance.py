"""Human-readable record of how a video was put together."""

from typing import Sequence

from reddit_reel import __version__
from reddit_reel.models.post import MediaAsset, SelectionCriteria

TOOL_NAME = "reddit-reel"


class ProvenanceGenerator:
    """Builds the text embedded in the output file's metadata."""

    def __init__(self, version: str = __version__):
        self.version = version

    def generate(self, criteria: SelectionCriteria, assets: Sequence[MediaAsset]) -> str:
        """
        Describe the tool version, the selection criteria and every included post.

        Posts are numbered from 1 in the order they appear in the video.
        """
        lines = [
            f"Created with {TOOL_NAME} {self.version}",
            f"Subreddit(s): r/{criteria.source_filter}",
            f"Sort: {criteria.sort.value}, time: {criteria.time.value}",
            "",
            "Included posts:",
        ]
        for rank, asset in enumerate(assets, start=1):
            lines.append(f"{rank}. {asset.item.title}")
            lines.append(f"   {asset.item.permalink}")
            lines.append(f"   {asset.item.url}")
        return "\n".join(lines)
