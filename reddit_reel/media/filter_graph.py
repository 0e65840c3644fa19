"""Filter graph that normalizes and concatenates the downloaded videos.

Every input video is scaled to fit the output box, letterboxed to exactly
that box and given a square sample aspect ratio, then all of them are joined
by a single concat filter. Inputs without an audio stream are paired with one
shared silent source, declared once as the last encoder input.

For N inputs the serialized graph looks like::

    [0:v]scale=640:360:force_original_aspect_ratio=decrease,pad=640:360:(ow-iw)/2:(oh-ih)/2,setsar=1[v0];
    [1:v]scale=640:360:force_original_aspect_ratio=decrease,pad=640:360:(ow-iw)/2:(oh-ih)/2,setsar=1[v1];
    [v0][0:a][v1][2:a]concat=n=2:v=1:a=1[v][a]

See https://ffmpeg.org/ffmpeg-filters.html#concat and
https://ffmpeg.org/ffmpeg-filters.html#anullsrc
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Sequence, Tuple

from reddit_reel.errors import NoUsableAssetsError
from reddit_reel.interfaces import MediaProbe
from reddit_reel.media.encoder import InputSpec
from reddit_reel.models.post import ContentItem, MediaAsset

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StreamLabel:
    """A labeled edge of the graph, e.g. ``[v0]`` or ``[2:a]``."""

    name: str

    @classmethod
    def of_input(cls, index: int, kind: str) -> "StreamLabel":
        return cls(f"{index}:{kind}")

    def __str__(self) -> str:
        return f"[{self.name}]"


@dataclass(frozen=True)
class Scale:
    """Shrink to fit within the box, keeping the aspect ratio."""

    width: int
    height: int

    def render(self) -> str:
        return f"scale={self.width}:{self.height}:force_original_aspect_ratio=decrease"


@dataclass(frozen=True)
class Pad:
    """Letterbox to exactly the box, centered."""

    width: int
    height: int

    def render(self) -> str:
        return f"pad={self.width}:{self.height}:(ow-iw)/2:(oh-ih)/2"


@dataclass(frozen=True)
class SetSar:
    ratio: str = "1"

    def render(self) -> str:
        return f"setsar={self.ratio}"


@dataclass(frozen=True)
class NormalizeChain:
    source: StreamLabel
    filters: Tuple[object, ...]
    output: StreamLabel

    def render(self) -> str:
        return f"{self.source}{','.join(f.render() for f in self.filters)}{self.output}"


@dataclass(frozen=True)
class SilentAudioSource:
    """The single synthetic silent input shared by every video without audio."""

    input_index: int
    sample_rate: int = 44100
    channel_layout: str = "stereo"
    # concat pads each segment to its video length, so any length will do
    duration: float = 0.1

    @property
    def output(self) -> StreamLabel:
        return StreamLabel.of_input(self.input_index, "a")

    def as_input(self) -> InputSpec:
        return InputSpec(
            source=f"anullsrc=r={self.sample_rate}:cl={self.channel_layout}",
            options=("-f", "lavfi", "-t", f"{self.duration:g}"),
        )


@dataclass(frozen=True)
class ConcatSegment:
    video: StreamLabel
    audio: StreamLabel


@dataclass(frozen=True)
class ConcatNode:
    segments: Tuple[ConcatSegment, ...]
    video_output: StreamLabel = StreamLabel("v")
    audio_output: StreamLabel = StreamLabel("a")

    def render(self) -> str:
        pairs = "".join(f"{s.video}{s.audio}" for s in self.segments)
        return f"{pairs}concat=n={len(self.segments)}:v=1:a=1{self.video_output}{self.audio_output}"


@dataclass(frozen=True)
class FilterGraph:
    """Normalization chains, the shared silent source and the concat node."""

    chains: Tuple[NormalizeChain, ...]
    silence: SilentAudioSource
    concat: ConcatNode
    assets: Tuple[MediaAsset, ...] = field(default=(), compare=False)

    def serialize(self) -> str:
        """Render the graph in ffmpeg's ``-filter_complex`` syntax."""
        statements = [chain.render() for chain in self.chains]
        statements.append(self.concat.render())
        return ";".join(statements)

    def inputs(self) -> List[InputSpec]:
        """Encoder inputs: every asset in order, then the silent source."""
        specs = [InputSpec(source=str(asset.path)) for asset in self.assets]
        specs.append(self.silence.as_input())
        return specs

    def output_mappings(self) -> List[str]:
        return [str(self.concat.video_output), str(self.concat.audio_output)]


class FilterGraphBuilder:
    """Probes downloaded files and synthesizes the filter graph for them."""

    def __init__(self, probe: MediaProbe, width: int, height: int, prometheus_exporter=None):
        """
        Initialize the builder.

        Args:
            probe: Media probe used to detect audio streams
            width: Output width in pixels
            height: Output height in pixels
            prometheus_exporter: Optional Prometheus exporter for metrics
        """
        self.probe = probe
        self.width = width
        self.height = height
        self.prometheus_exporter = prometheus_exporter

    async def probe_assets(self, downloads: Sequence[Tuple[ContentItem, Path]]) -> List[MediaAsset]:
        """
        Probe every downloaded file, in order.

        A single failure aborts: the graph cannot be built without knowing
        the audio layout of every input.

        Raises:
            ProbeError: From the first file that cannot be probed
        """
        assets = []
        for item, path in downloads:
            try:
                result = await self.probe.probe(path)
            except Exception:
                if self.prometheus_exporter:
                    self.prometheus_exporter.record_probe_failure()
                raise
            logger.debug(f"Probed {path}: audio={result.has_audio}, duration={result.duration}")
            assets.append(MediaAsset(item=item, path=path, has_audio=result.has_audio, duration=result.duration))
        return assets

    def compose(self, assets: Sequence[MediaAsset]) -> FilterGraph:
        """
        Build the graph for already probed assets.

        Raises:
            NoUsableAssetsError: If ``assets`` is empty
        """
        if not assets:
            raise NoUsableAssetsError("Cannot build a filter graph without any video")

        silence = SilentAudioSource(input_index=len(assets))
        chains = []
        segments = []
        for index, asset in enumerate(assets):
            video = StreamLabel(f"v{index}")
            chains.append(NormalizeChain(
                source=StreamLabel.of_input(index, "v"),
                filters=(Scale(self.width, self.height), Pad(self.width, self.height), SetSar()),
                output=video,
            ))
            audio = StreamLabel.of_input(index, "a") if asset.has_audio else silence.output
            segments.append(ConcatSegment(video=video, audio=audio))

        return FilterGraph(
            chains=tuple(chains),
            silence=silence,
            concat=ConcatNode(segments=tuple(segments)),
            assets=tuple(assets),
        )

    async def build(self, downloads: Sequence[Tuple[ContentItem, Path]]) -> FilterGraph:
        """Probe ``downloads`` and compose their graph."""
        return self.compose(await self.probe_assets(downloads))
