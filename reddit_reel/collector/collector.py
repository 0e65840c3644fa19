"""Retrieval of ranked candidate posts from Reddit listings."""

import logging
from contextlib import nullcontext
from typing import AsyncIterator, Callable, Dict, List

from asyncpraw.models import Submission, Subreddit
from asyncprawcore.exceptions import RequestException, ServerError

from reddit_reel.collector.error_handler import with_exponential_backoff
from reddit_reel.models.mapping import submissions_to_items
from reddit_reel.models.post import MAX_PAGE_SIZE, ContentItem, SortMode, TimeWindow
from reddit_reel.reddit_client import RedditClient

logger = logging.getLogger(__name__)

Listing = Callable[[Subreddit, TimeWindow, int], AsyncIterator[Submission]]


def _hot(subreddit: Subreddit, time: TimeWindow, limit: int) -> AsyncIterator[Submission]:
    return subreddit.hot(limit=limit)


def _top(subreddit: Subreddit, time: TimeWindow, limit: int) -> AsyncIterator[Submission]:
    return subreddit.top(time_filter=time.value, limit=limit)


def _rising(subreddit: Subreddit, time: TimeWindow, limit: int) -> AsyncIterator[Submission]:
    return subreddit.rising(limit=limit)


def _new(subreddit: Subreddit, time: TimeWindow, limit: int) -> AsyncIterator[Submission]:
    return subreddit.new(limit=limit)


def _controversial(subreddit: Subreddit, time: TimeWindow, limit: int) -> AsyncIterator[Submission]:
    return subreddit.controversial(time_filter=time.value, limit=limit)


LISTINGS: Dict[SortMode, Listing] = {
    SortMode.HOT: _hot,
    SortMode.TOP: _top,
    SortMode.RISING: _rising,
    SortMode.NEW: _new,
    SortMode.CONTROVERSIAL: _controversial,
}

_unhandled = set(SortMode) - set(LISTINGS)
if _unhandled:
    raise RuntimeError(f"No listing registered for sort modes: {sorted(m.value for m in _unhandled)}")


class PostCollector:
    """Reads one page of ranked posts from a subreddit listing."""

    def __init__(self, reddit_client: RedditClient, prometheus_exporter=None):
        """
        Initialize the post collector.

        Args:
            reddit_client: Initialized Reddit client
            prometheus_exporter: Optional Prometheus exporter for metrics
        """
        self.reddit_client = reddit_client
        self.prometheus_exporter = prometheus_exporter

    @with_exponential_backoff(max_retries=3, retry_on=(ServerError, RequestException))
    async def _list_submissions(
        self,
        source_filter: str,
        sort: SortMode,
        time: TimeWindow,
        limit: int,
    ) -> List[Submission]:
        subreddit = await self.reddit_client.get_subreddit(source_filter)
        timer = self.prometheus_exporter.time_request() if self.prometheus_exporter else None

        with timer if timer else nullcontext():
            submissions = []
            async for submission in LISTINGS[sort](subreddit, time, limit):
                submissions.append(submission)
            return submissions

    async def fetch_candidates(
        self,
        source_filter: str,
        sort: SortMode,
        time: TimeWindow,
        page_size: int = MAX_PAGE_SIZE,
    ) -> List[ContentItem]:
        """
        Fetch up to ``page_size`` posts in the listing's ranking order.

        Args:
            source_filter: Subreddit name, or several joined with "+"
            sort: Listing to read
            time: Time window, used by the top and controversial listings
            page_size: Number of posts to request (at most one listing page)

        Returns:
            Candidates as ContentItems, best ranked first
        """
        page_size = min(page_size, MAX_PAGE_SIZE)
        logger.info(f"Retrieving {sort.value} posts for subreddit(s) {source_filter} ...")

        submissions = await self._list_submissions(source_filter, sort, time, page_size)
        items = submissions_to_items(submissions)

        if self.prometheus_exporter:
            self.prometheus_exporter.record_candidates(len(items))

        logger.info(f"Retrieved {len(items)} candidates from r/{source_filter}")
        return items
