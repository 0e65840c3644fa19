"""Data models for posts, selection criteria and local media assets."""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional


class SortMode(str, Enum):
    """Reddit listing used to rank candidate posts."""

    HOT = "hot"
    TOP = "top"
    RISING = "rising"
    NEW = "new"
    CONTROVERSIAL = "controversial"


class TimeWindow(str, Enum):
    """Time filter for the listings that support one (top, controversial)."""

    HOUR = "hour"
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"
    ALL = "all"


# Largest page the Reddit listing endpoints return in one request
MAX_PAGE_SIZE = 100


@dataclass(frozen=True)
class ContentItem:
    """
    One ranked post considered for inclusion.

    The rank is implicit: it is the item's position in the list returned
    by the content source.
    """

    id: str
    url: str
    title: str
    permalink: str
    nsfw: bool = False


@dataclass(frozen=True)
class SelectionCriteria:
    """Which posts to retrieve and how many of them to keep."""

    source_filter: str
    sort: SortMode = SortMode.TOP
    time: TimeWindow = TimeWindow.WEEK
    limit: int = 10
    nsfw: bool = False


@dataclass(frozen=True)
class ProbeResult:
    """Properties of a local media file reported by the probe."""

    has_audio: bool
    duration: Optional[float] = None


@dataclass(frozen=True)
class MediaAsset:
    """A downloaded, probed media file belonging to exactly one post."""

    item: ContentItem
    path: Path
    has_audio: bool
    duration: Optional[float] = None
