"""Tests for the mapping module."""

import unittest
from unittest.mock import MagicMock

from reddit_reel.models.mapping import (
    absolute_permalink,
    item_to_record,
    submission_to_item,
    submissions_to_items,
)


class TestMapping(unittest.TestCase):
    """Test cases for the mapping functions."""

    def setUp(self):
        self.submission = MagicMock()
        self.submission.id = "abc123"
        self.submission.url = "https://v.redd.it/abc123"
        self.submission.title = "Test Title"
        self.submission.permalink = "/r/videos/comments/abc123/test_title/"
        self.submission.over_18 = True

    def test_absolute_permalink(self):
        self.assertEqual(absolute_permalink("/r/a/"), "https://www.reddit.com/r/a/")
        self.assertEqual(absolute_permalink("https://redd.it/a"), "https://redd.it/a")

    def test_submission_to_item(self):
        item = submission_to_item(self.submission)

        self.assertEqual(item.id, "abc123")
        self.assertEqual(item.url, "https://v.redd.it/abc123")
        self.assertEqual(item.title, "Test Title")
        self.assertEqual(item.permalink, "https://www.reddit.com/r/videos/comments/abc123/test_title/")
        self.assertTrue(item.nsfw)

    def test_missing_url_becomes_empty(self):
        self.submission.url = None
        self.assertEqual(submission_to_item(self.submission).url, "")

    def test_submissions_to_items_drops_broken_submissions(self):
        broken = MagicMock(spec=["id"])
        broken.id = "broken"

        with self.assertLogs("reddit_reel.models.mapping", level="WARNING"):
            items = submissions_to_items([self.submission, broken])

        self.assertEqual([item.id for item in items], ["abc123"])

    def test_item_to_record(self):
        record = item_to_record(submission_to_item(self.submission))

        self.assertEqual(record, {
            "id": "abc123",
            "title": "Test Title",
            "url": "https://v.redd.it/abc123",
            "permalink": "https://www.reddit.com/r/videos/comments/abc123/test_title/",
            "nsfw": True,
        })


if __name__ == "__main__":
    unittest.main()
