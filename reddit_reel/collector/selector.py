"""Inclusion policy for candidate posts."""

import logging
import re
from itertools import islice
from typing import Iterable, Iterator, List, Optional
from urllib.parse import urlparse

from reddit_reel.models.post import ContentItem, SelectionCriteria

logger = logging.getLogger(__name__)

# Still images cannot be turned into video segments
EXCLUDED_EXTENSIONS = re.compile(r"\.(png|jpe?g)$", re.IGNORECASE)


class PostSelector:
    """
    Filters candidates by policy without re-ranking them.

    A post is rejected if it has no URL, if it is NSFW and NSFW posts are
    not allowed, or if its URL points at a still image.
    """

    def __init__(self, criteria: SelectionCriteria):
        self.criteria = criteria

    def rejection_reason(self, item: ContentItem) -> Optional[str]:
        """Return why ``item`` is excluded, or None if it is eligible."""
        if not item.url:
            return "empty URL"
        if item.nsfw and not self.criteria.nsfw:
            return "tagged NSFW"
        if EXCLUDED_EXTENSIONS.search(urlparse(item.url).path):
            return "unsupported file"
        return None

    def eligible(self, candidates: Iterable[ContentItem]) -> Iterator[ContentItem]:
        """Yield every candidate that passes the policy, in source order."""
        for item in candidates:
            reason = self.rejection_reason(item)
            if reason:
                logger.debug(f"Skipping {item.id} ({reason}): {item.url}")
                continue
            yield item

    def select(self, candidates: Iterable[ContentItem]) -> List[ContentItem]:
        """
        Return the first ``limit`` eligible candidates, in source order.

        Fewer than ``limit`` results is not an error.
        """
        selected = list(islice(self.eligible(candidates), self.criteria.limit))
        if len(selected) < self.criteria.limit:
            logger.warning(
                f"Only {len(selected)} of {self.criteria.limit} requested posts pass the selection policy"
            )
        return selected
