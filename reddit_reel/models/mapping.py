"""Mapping functions to convert Reddit API objects to our data models."""

import logging
from typing import Any, Dict, List

from asyncpraw.models import Submission

from reddit_reel.models.post import ContentItem

logger = logging.getLogger(__name__)

REDDIT_BASE_URL = "https://www.reddit.com"


def absolute_permalink(permalink: str) -> str:
    """Return the permalink as a full URL (Reddit hands out site-relative paths)."""
    if permalink.startswith("/"):
        return REDDIT_BASE_URL + permalink
    return permalink


def submission_to_item(submission: Submission) -> ContentItem:
    """
    Convert an asyncpraw Submission object to a ContentItem.

    Args:
        submission: The Reddit submission object from asyncpraw

    Returns:
        An immutable ContentItem with the fields the pipeline needs
    """
    return ContentItem(
        id=submission.id,
        url=submission.url or "",
        title=submission.title or "",
        permalink=absolute_permalink(getattr(submission, "permalink", "") or ""),
        nsfw=bool(getattr(submission, "over_18", False)),
    )


def submissions_to_items(submissions: List[Submission]) -> List[ContentItem]:
    """
    Convert a list of asyncpraw Submission objects to ContentItems, keeping order.

    Submissions that cannot be converted are logged and dropped.
    """
    items = []

    for submission in submissions:
        try:
            items.append(submission_to_item(submission))
        except (AttributeError, TypeError) as e:
            logger.warning(f"Failed to convert submission {getattr(submission, 'id', '?')}: {str(e)}")

    return items


def item_to_record(item: ContentItem) -> Dict[str, Any]:
    """Serializable record of an item, written next to its cached media."""
    return {
        "id": item.id,
        "title": item.title,
        "url": item.url,
        "permalink": item.permalink,
        "nsfw": item.nsfw,
    }
