"""End-to-end pipeline: retrieve, select, download, probe, build and encode."""

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Awaitable, Callable, List, Optional, Tuple

from reddit_reel.collector.downloader import DownloadOrchestrator
from reddit_reel.collector.error_handler import NO_RETRY, RetryPolicy
from reddit_reel.collector.selector import PostSelector
from reddit_reel.config import Config
from reddit_reel.errors import FetchError, NoUsableAssetsError
from reddit_reel.interfaces import ContentSource, Encoder, MediaFetcher, MediaProbe
from reddit_reel.media.assembler import Assembler
from reddit_reel.media.cache import CacheManager
from reddit_reel.media.encoder import FfmpegEncoder
from reddit_reel.media.fetcher import YtDlpFetcher
from reddit_reel.media.filter_graph import FilterGraphBuilder
from reddit_reel.media.probe import FfprobeProbe
from reddit_reel.media.process import check_dependencies
from reddit_reel.media.provenance import ProvenanceGenerator
from reddit_reel.models.post import MAX_PAGE_SIZE, MediaAsset, SelectionCriteria

logger = logging.getLogger(__name__)


class PipelineState(str, Enum):
    IDLE = "idle"
    CACHE_WARMED = "cache_warmed"
    SELECTED = "selected"
    DOWNLOADED = "downloaded"
    PROBED = "probed"
    GRAPH_BUILT = "graph_built"
    ENCODED = "encoded"
    DONE = "done"
    FAILED = "failed"


@dataclass
class PipelineResult:
    """Outcome of a successful run."""

    output: Path
    assets: List[MediaAsset]
    provenance: str
    states: List[PipelineState] = field(default_factory=list)


class VideoPipeline:
    """
    Runs one compilation against a cache directory.

    The cache directory is locked for the whole run and swept of expired
    entries before and after it. Failures before the encode leave the
    pipeline in FAILED with the error propagated to the caller.
    """

    def __init__(
        self,
        criteria: SelectionCriteria,
        output_size: Tuple[int, int],
        cache: CacheManager,
        cache_keep_sec: float,
        source: ContentSource,
        fetcher: MediaFetcher,
        probe: MediaProbe,
        encoder: Encoder,
        workers: int = 1,
        retry_policy: Optional[RetryPolicy] = None,
        dependency_check: Optional[Callable[[], Awaitable[None]]] = check_dependencies,
        prometheus_exporter=None,
        show_progress: bool = False,
    ):
        self.criteria = criteria
        self.width, self.height = output_size
        self.cache = cache
        self.cache_keep_sec = cache_keep_sec
        self.source = source
        self.dependency_check = dependency_check
        self.prometheus_exporter = prometheus_exporter
        self.selector = PostSelector(criteria)
        self.orchestrator = DownloadOrchestrator(
            cache,
            fetcher,
            limit=criteria.limit,
            workers=workers,
            retry_policy=retry_policy or NO_RETRY,
            prometheus_exporter=prometheus_exporter,
            show_progress=show_progress,
        )
        self.builder = FilterGraphBuilder(probe, self.width, self.height, prometheus_exporter)
        self.assembler = Assembler(encoder, prometheus_exporter)
        self.provenance = ProvenanceGenerator()
        self.states: List[PipelineState] = []

    @classmethod
    def from_config(
        cls,
        config: Config,
        source: ContentSource,
        prometheus_exporter=None,
        show_progress: bool = False,
        dependency_check: Optional[Callable[[], Awaitable[None]]] = check_dependencies,
    ) -> "VideoPipeline":
        """
        Wire the pipeline to yt-dlp, ffprobe and ffmpeg; call config.validate() first.

        Pass ``dependency_check=None`` when the caller already ran the check.
        """
        retry_policy = RetryPolicy(
            max_retries=config.download.max_retries,
            initial_backoff=config.download.initial_backoff_sec,
            max_backoff=config.download.max_backoff_sec,
            backoff_factor=config.download.backoff_factor,
            retry_on=(FetchError,),
        )
        return cls(
            criteria=config.criteria(),
            output_size=config.output_dimensions,
            cache=CacheManager(config.cache_path, prometheus_exporter),
            cache_keep_sec=config.cache_keep_sec,
            source=source,
            fetcher=YtDlpFetcher(timeout=config.timeouts.fetch_sec),
            probe=FfprobeProbe(timeout=config.timeouts.probe_sec),
            encoder=FfmpegEncoder(timeout=config.timeouts.encode_sec),
            workers=config.download.workers,
            retry_policy=retry_policy,
            dependency_check=dependency_check,
            prometheus_exporter=prometheus_exporter,
            show_progress=show_progress,
        )

    @property
    def state(self) -> PipelineState:
        return self.states[-1] if self.states else PipelineState.IDLE

    def _transition(self, state: PipelineState) -> None:
        logger.debug(f"Pipeline state: {self.state.value} -> {state.value}")
        self.states.append(state)

    async def run(self, destination: Path) -> PipelineResult:
        """
        Compile the selected posts into ``destination``.

        Raises:
            DependencyMissingError: Before any cache or network activity
            CacheLockedError: If another run uses the cache directory
            NoUsableAssetsError: If no video could be downloaded
            ProbeError: If any downloaded video cannot be probed
            EncodeError: If the encoder fails (no output file is left behind)
        """
        destination = Path(destination)
        self.states = [PipelineState.IDLE]
        try:
            if self.dependency_check is not None:
                await self.dependency_check()

            self.cache.ensure_dir()
            with self.cache.lock():
                self.cache.sweep(self.cache_keep_sec)
                self._transition(PipelineState.CACHE_WARMED)
                try:
                    output, assets, provenance = await self._compile(destination)
                finally:
                    self.cache.sweep(self.cache_keep_sec)
                self._transition(PipelineState.CACHE_WARMED)
        except BaseException:
            self._transition(PipelineState.FAILED)
            raise

        self._transition(PipelineState.DONE)
        logger.info("Done.")
        return PipelineResult(output=output, assets=assets, provenance=provenance, states=list(self.states))

    async def _compile(self, destination: Path) -> Tuple[Path, List[MediaAsset], str]:
        criteria = self.criteria
        candidates = await self.source.fetch_candidates(
            criteria.source_filter, criteria.sort, criteria.time, MAX_PAGE_SIZE
        )

        eligible = list(self.selector.eligible(candidates))
        selected = self.selector.select(eligible)
        if self.prometheus_exporter:
            self.prometheus_exporter.record_selected(len(selected))
        self._transition(PipelineState.SELECTED)

        downloads = await self.orchestrator.download(eligible)
        self._transition(PipelineState.DOWNLOADED)
        if not downloads:
            raise NoUsableAssetsError(
                f"None of the {len(candidates)} candidates from r/{criteria.source_filter} could be downloaded"
            )

        assets = await self.builder.probe_assets(downloads)
        self._transition(PipelineState.PROBED)

        graph = self.builder.compose(assets)
        self._transition(PipelineState.GRAPH_BUILT)

        provenance = self.provenance.generate(criteria, assets)
        logger.info(f"Generating video {destination} from {len(assets)} posts ...")
        await self.assembler.assemble(graph, destination, provenance)
        self._transition(PipelineState.ENCODED)
        return destination, assets, provenance
