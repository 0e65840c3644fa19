"""Local media cache keyed by post id, with time-based eviction."""

import fcntl
import glob
import json
import logging
import os
import time
from pathlib import Path
from typing import Dict, List, Optional, Union

from reddit_reel.errors import CacheLockedError
from reddit_reel.models.mapping import item_to_record
from reddit_reel.models.post import ContentItem

logger = logging.getLogger(__name__)


class CacheLock:
    """
    Exclusive advisory lock on a cache directory for the duration of a run.

    Acquisition never blocks: if another process holds the lock,
    CacheLockedError is raised immediately.
    """

    def __init__(self, path: Path):
        self.path = path
        self._fd: Optional[int] = None

    def acquire(self) -> None:
        fd = os.open(self.path, os.O_RDWR | os.O_CREAT, 0o600)
        try:
            fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
        except OSError as e:
            os.close(fd)
            raise CacheLockedError(
                f"Cache directory {self.path.parent} is in use by another run"
            ) from e
        self._fd = fd
        logger.debug(f"Acquired cache lock {self.path}")

    def release(self) -> None:
        if self._fd is None:
            return
        try:
            fcntl.flock(self._fd, fcntl.LOCK_UN)
        finally:
            os.close(self._fd)
            self._fd = None
        logger.debug(f"Released cache lock {self.path}")

    def __enter__(self) -> "CacheLock":
        self.acquire()
        return self

    def __exit__(self, *exc_info) -> None:
        self.release()


class CacheManager:
    """
    Content-addressed media cache.

    Each post maps to exactly one media file, ``{cache_dir}/{item_id}.mp4``.
    The presence of that file is a cache hit: it is never re-validated
    against the remote source. A JSON record of the post is kept beside it.
    """

    MEDIA_EXT = "mp4"
    METADATA_EXT = "json"
    LOCK_NAME = ".lock"

    def __init__(self, cache_dir: Union[str, Path], prometheus_exporter=None):
        """
        Initialize the cache.

        Args:
            cache_dir: Directory holding cached media
            prometheus_exporter: Optional Prometheus exporter for metrics
        """
        self.cache_dir = Path(cache_dir)
        self.prometheus_exporter = prometheus_exporter

    def ensure_dir(self) -> None:
        self.cache_dir.mkdir(mode=0o700, parents=True, exist_ok=True)

    def lock(self) -> CacheLock:
        """Create (but do not acquire) the run lock for this directory."""
        return CacheLock(self.cache_dir / self.LOCK_NAME)

    def path_for(self, item_id: str) -> Path:
        return self.cache_dir / f"{item_id}.{self.MEDIA_EXT}"

    def metadata_path_for(self, item_id: str) -> Path:
        return self.cache_dir / f"{item_id}.{self.METADATA_EXT}"

    def get(self, item_id: str) -> Optional[Path]:
        """Return the cached media path for ``item_id``, or None on a miss."""
        path = self.path_for(item_id)
        if path.is_file():
            return path
        return None

    def write_metadata(self, item: ContentItem) -> Path:
        """Write the JSON record of ``item`` next to its media file."""
        path = self.metadata_path_for(item.id)
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(item_to_record(item), f, ensure_ascii=False)
        return path

    def discard(self, item_id: str) -> None:
        """
        Remove the media file of ``item_id`` and any partial download leftovers.

        Used after a failed or cancelled fetch so that no half-written file
        is mistaken for a cache hit later.
        """
        metadata_path = self.metadata_path_for(item_id)
        pattern = str(self.cache_dir / f"{glob.escape(item_id)}.*")
        for name in glob.glob(pattern):
            path = Path(name)
            if path == metadata_path:
                continue
            try:
                path.unlink()
                logger.debug(f"Removed partial file {path}")
            except FileNotFoundError:
                pass
            except OSError as e:
                logger.warning(f"Could not remove partial file {path}: {str(e)}")

    def sweep(self, keep_sec: float, now: Optional[float] = None) -> int:
        """
        Remove every entry whose modification time is at least ``keep_sec`` old.

        Eviction is best-effort: entries that cannot be inspected or removed
        are skipped silently.

        Args:
            keep_sec: Retention window in seconds
            now: Reference time (defaults to the current time)

        Returns:
            Number of entries removed
        """
        now = time.time() if now is None else now
        try:
            entries = list(os.scandir(self.cache_dir))
        except OSError:
            return 0

        removed = 0
        for entry in entries:
            if entry.name == self.LOCK_NAME:
                continue
            try:
                if not entry.is_file(follow_symlinks=False):
                    continue
                if now - entry.stat(follow_symlinks=False).st_mtime < keep_sec:
                    continue
                os.remove(entry.path)
            except OSError:
                continue
            removed += 1
            logger.debug(f"Evicted {entry.name} from cache")

        if removed:
            logger.info(f"Removed {removed} expired entries from {self.cache_dir}")
            if self.prometheus_exporter:
                self.prometheus_exporter.record_cache_evictions(removed)
        return removed

    def entries(self) -> List[Dict[str, object]]:
        """List cached media files with their size and age, oldest first."""
        now = time.time()
        listing = []
        for path in sorted(self.cache_dir.glob(f"*.{self.MEDIA_EXT}")):
            try:
                stat = path.stat()
            except OSError:
                continue
            listing.append({
                "id": path.stem,
                "size_bytes": stat.st_size,
                "age_sec": int(now - stat.st_mtime),
            })
        listing.sort(key=lambda entry: entry["age_sec"], reverse=True)
        return listing
