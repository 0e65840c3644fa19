"""Prometheus metrics for monitoring video compilation runs."""

import logging
import time
from typing import Optional

from prometheus_client import Counter, Gauge, Histogram, start_http_server

logger = logging.getLogger(__name__)

# Define metrics
CANDIDATES_RETRIEVED = Counter(
    "reddit_reel_candidates_retrieved_total",
    "Total number of candidate posts retrieved from Reddit",
)

POSTS_SELECTED = Counter(
    "reddit_reel_posts_selected_total",
    "Total number of posts that passed the selection policy",
)

DOWNLOADS = Counter(
    "reddit_reel_downloads_total",
    "Download attempts by outcome",
    ["outcome"],
)

CACHE_EVICTIONS = Counter(
    "reddit_reel_cache_evictions_total",
    "Number of expired cache entries removed",
)

PROBE_FAILURES = Counter(
    "reddit_reel_probe_failures_total",
    "Number of media files that could not be probed",
)

ASSETS_ENCODED = Gauge(
    "reddit_reel_assets_encoded",
    "Number of videos in the most recent output",
)

REQUEST_DURATION = Histogram(
    "reddit_reel_request_duration_seconds",
    "Duration of Reddit API requests in seconds",
    buckets=[0.1, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0],
)

ENCODE_DURATION = Histogram(
    "reddit_reel_encode_duration_seconds",
    "Duration of the final encode in seconds",
    buckets=[5.0, 15.0, 30.0, 60.0, 120.0, 300.0, 600.0, 1800.0, 3600.0],
)


class PrometheusExporter:
    """Prometheus metrics exporter for the video compiler."""

    def __init__(self, port: int = 8000):
        """
        Initialize the Prometheus exporter.

        Args:
            port: Port to expose metrics on
        """
        self.port = port
        self.server_started = False

    def start_server(self) -> None:
        """Start the Prometheus metrics server."""
        if not self.server_started:
            try:
                start_http_server(self.port)
                self.server_started = True
                logger.info(f"Started Prometheus metrics server on port {self.port}")
            except OSError as e:
                logger.error(f"Failed to start Prometheus metrics server: {str(e)}")

    def record_candidates(self, count: int) -> None:
        CANDIDATES_RETRIEVED.inc(count)

    def record_selected(self, count: int) -> None:
        POSTS_SELECTED.inc(count)

    def record_download(self, outcome: str) -> None:
        """
        Record a download attempt.

        Args:
            outcome: One of 'cache_hit', 'fetched', 'failed'
        """
        DOWNLOADS.labels(outcome=outcome).inc()

    def record_cache_evictions(self, count: int) -> None:
        CACHE_EVICTIONS.inc(count)

    def record_probe_failure(self) -> None:
        PROBE_FAILURES.inc()

    def observe_encode(self, duration_sec: float, asset_count: int) -> None:
        ENCODE_DURATION.observe(duration_sec)
        ASSETS_ENCODED.set(asset_count)

    def time_request(self) -> "RequestTimer":
        """
        Create a context manager for timing a Reddit API request.

        Returns:
            Context manager that records request duration
        """
        return RequestTimer()


class RequestTimer:
    """Context manager for timing API requests."""

    def __init__(self):
        self.start_time: Optional[float] = None

    def __enter__(self) -> "RequestTimer":
        self.start_time = time.time()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self.start_time is not None:
            REQUEST_DURATION.observe(time.time() - self.start_time)
