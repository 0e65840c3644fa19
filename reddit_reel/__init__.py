"""Compile the top posts of a subreddit into a single video."""

__version__ = "0.1.0"
