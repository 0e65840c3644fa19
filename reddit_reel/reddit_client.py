"""asyncpraw client used to read subreddit listings."""

import logging
from typing import Optional

import asyncpraw
from asyncpraw.models import Subreddit

from reddit_reel.config import Config

logger = logging.getLogger(__name__)


class RedditClient:
    """
    Lazily created asyncpraw session.

    Listings of public subreddits only need application credentials, so the
    session is read-only unless a username and password are configured.
    """

    def __init__(self, config: Config):
        self.config = config
        self._reddit: Optional[asyncpraw.Reddit] = None

    def _credentials(self) -> dict:
        credentials = {
            "client_id": self.config.client_id,
            "client_secret": self.config.client_secret,
            "user_agent": self.config.user_agent,
        }
        if self.config.username and self.config.password:
            credentials["username"] = self.config.username
            credentials["password"] = self.config.password
        return credentials

    async def initialize(self) -> asyncpraw.Reddit:
        """
        Open the session (once).

        Raises:
            ValueError: If client id/secret are missing or the login is rejected
        """
        if self._reddit:
            return self._reddit

        if not (self.config.client_id and self.config.client_secret):
            raise ValueError("Missing Reddit API credentials")

        credentials = self._credentials()
        reddit = asyncpraw.Reddit(**credentials)
        if "username" not in credentials:
            reddit.read_only = True
            logger.info("Using read-only Reddit access")
        else:
            try:
                me = await reddit.user.me()
            except Exception as e:
                await reddit.close()
                logger.error(f"Reddit login as {self.config.username} failed: {str(e)}")
                raise ValueError(f"Reddit authentication failed: {str(e)}") from e
            logger.info(f"Logged in to Reddit as {me.name}")

        self._reddit = reddit
        return reddit

    async def get_subreddit(self, source_filter: str) -> Subreddit:
        """Resolve a subreddit expression; ``a+b`` reads several at once."""
        if not self._reddit:
            raise ValueError("Reddit client not initialized")
        return await self._reddit.subreddit(source_filter)

    async def close(self) -> None:
        if self._reddit:
            await self._reddit.close()
            self._reddit = None
