"""Download orchestration: turn selected posts into local media files."""

import asyncio
import logging
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import tqdm

from reddit_reel.collector.error_handler import NO_RETRY, RetryPolicy, call_with_backoff
from reddit_reel.errors import ReelError
from reddit_reel.interfaces import MediaFetcher
from reddit_reel.media.cache import CacheManager
from reddit_reel.models.post import ContentItem

logger = logging.getLogger(__name__)


class DownloadOrchestrator:
    """
    Downloads candidates in order until ``limit`` of them succeeded.

    Cached items are used as they are. A failed fetch skips the item and the
    next candidate takes its place. Downloads run on a bounded pool of
    workers; a worker only starts a fetch while the successes so far plus the
    fetches in flight are below ``limit``, so the result is always the first
    ``limit`` successes in candidate order.
    """

    def __init__(
        self,
        cache: CacheManager,
        fetcher: MediaFetcher,
        limit: int,
        workers: int = 1,
        retry_policy: RetryPolicy = NO_RETRY,
        prometheus_exporter=None,
        show_progress: bool = False,
    ):
        """
        Initialize the orchestrator.

        Args:
            cache: Media cache consulted before every fetch
            fetcher: Capability that downloads a URL to a path
            limit: Maximum number of successful downloads
            workers: Number of concurrent downloads
            retry_policy: Retry policy for failed fetches (none by default)
            prometheus_exporter: Optional Prometheus exporter for metrics
            show_progress: Whether to display a progress bar
        """
        self.cache = cache
        self.fetcher = fetcher
        self.limit = limit
        self.workers = max(1, workers)
        self.retry_policy = retry_policy
        self.prometheus_exporter = prometheus_exporter
        self.show_progress = show_progress

    async def download(self, items: Sequence[ContentItem]) -> List[Tuple[ContentItem, Path]]:
        """
        Materialize up to ``limit`` items.

        Args:
            items: Eligible candidates, best ranked first

        Returns:
            (item, local path) pairs for the successes, in candidate order
        """
        self.cache.ensure_dir()
        slots: List[Optional[Path]] = [None] * len(items)
        condition = asyncio.Condition()
        next_index = 0
        succeeded = 0
        in_flight = 0

        progress = tqdm.tqdm(
            total=min(self.limit, len(items)),
            desc="Downloading",
            unit="video",
            disable=not self.show_progress,
        )

        async def claim() -> Optional[int]:
            nonlocal next_index, in_flight
            async with condition:
                while succeeded < self.limit and next_index < len(items):
                    if succeeded + in_flight < self.limit:
                        index = next_index
                        next_index += 1
                        in_flight += 1
                        return index
                    await condition.wait()
                return None

        async def finish(index: int, path: Optional[Path]) -> None:
            nonlocal succeeded, in_flight
            async with condition:
                in_flight -= 1
                if path is not None:
                    slots[index] = path
                    succeeded += 1
                    progress.update(1)
                condition.notify_all()

        async def worker() -> None:
            while True:
                index = await claim()
                if index is None:
                    return
                path = None
                try:
                    path = await self._materialize(items[index])
                finally:
                    await finish(index, path)

        tasks = [asyncio.create_task(worker()) for _ in range(min(self.workers, len(items)))]
        try:
            await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise
        finally:
            progress.close()

        results = [(item, path) for item, path in zip(items, slots) if path is not None]
        if len(results) < self.limit:
            logger.warning(f"Downloaded {len(results)} of {self.limit} requested videos")
        return results

    async def _fetch_once(self, item: ContentItem, destination: Path) -> None:
        try:
            await self.fetcher.fetch(item.url, destination)
        except BaseException:
            self.cache.discard(item.id)
            raise

    async def _materialize(self, item: ContentItem) -> Optional[Path]:
        """Return the local path of ``item``, or None if it could not be fetched."""
        cached = self.cache.get(item.id)
        if cached is not None:
            logger.info(f"Already downloaded {item.id}, {item.url}")
            if self.prometheus_exporter:
                self.prometheus_exporter.record_download("cache_hit")
            return cached

        destination = self.cache.path_for(item.id)
        try:
            await call_with_backoff(self.retry_policy, self._fetch_once, item, destination)
        except ReelError as e:
            logger.warning(f"Skipping {item.id}: {str(e)}")
            if self.prometheus_exporter:
                self.prometheus_exporter.record_download("failed")
            return None

        try:
            self.cache.write_metadata(item)
        except OSError as e:
            logger.warning(f"Could not write metadata for {item.id}: {str(e)}")

        logger.info(f"Downloaded {item.id}, {item.url}")
        if self.prometheus_exporter:
            self.prometheus_exporter.record_download("fetched")
        return destination
