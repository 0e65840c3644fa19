"""Tests for the yt-dlp fetcher, ffprobe probe and ffmpeg encoder."""

import asyncio
import json
import tempfile
import unittest
from pathlib import Path
from unittest.mock import AsyncMock, patch

from reddit_reel.errors import EncodeError, FetchError, ProbeError, ProcessTimeoutError
from reddit_reel.media.encoder import FfmpegEncoder, InputSpec
from reddit_reel.media.fetcher import YtDlpFetcher
from reddit_reel.media.probe import FfprobeProbe
from reddit_reel.media.process import ProcessResult


class TestYtDlpFetcher(unittest.TestCase):
    """Test cases for YtDlpFetcher."""

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.destination = Path(self.temp_dir.name) / "abc.mp4"
        self.fetcher = YtDlpFetcher(timeout=60)

    def tearDown(self):
        self.temp_dir.cleanup()

    def test_build_args(self):
        args = self.fetcher.build_args("https://v.redd.it/abc", self.destination)

        self.assertEqual(args[0], "yt-dlp")
        self.assertEqual(args[-1], "https://v.redd.it/abc")
        self.assertEqual(args[args.index("--output") + 1], str(self.destination))
        self.assertEqual(args[args.index("--merge-output-format") + 1], "mp4")

    @patch("reddit_reel.media.fetcher.run_process", new_callable=AsyncMock)
    def test_fetch_success(self, mock_run):
        async def download(args, timeout):
            self.destination.write_bytes(b"video")
            return ProcessResult(0, "", "")

        mock_run.side_effect = download

        asyncio.run(self.fetcher.fetch("https://v.redd.it/abc", self.destination))

        self.assertEqual(mock_run.await_args.kwargs["timeout"], 60)

    @patch("reddit_reel.media.fetcher.run_process", new_callable=AsyncMock)
    def test_fetch_failure(self, mock_run):
        mock_run.return_value = ProcessResult(1, "", "ERROR: Unsupported URL\n")

        with self.assertRaises(FetchError) as ctx:
            asyncio.run(self.fetcher.fetch("https://example.com/page", self.destination))

        self.assertEqual(ctx.exception.item_id, "abc")
        self.assertIn("Unsupported URL", str(ctx.exception))

    @patch("reddit_reel.media.fetcher.run_process", new_callable=AsyncMock)
    def test_fetch_without_output_file(self, mock_run):
        mock_run.return_value = ProcessResult(0, "", "")

        with self.assertRaises(FetchError):
            asyncio.run(self.fetcher.fetch("https://v.redd.it/abc", self.destination))

    @patch("reddit_reel.media.fetcher.run_process", new_callable=AsyncMock)
    def test_fetch_timeout(self, mock_run):
        mock_run.side_effect = ProcessTimeoutError("yt-dlp did not finish within 60s")

        with self.assertRaises(FetchError):
            asyncio.run(self.fetcher.fetch("https://v.redd.it/abc", self.destination))


class TestFfprobeProbe(unittest.TestCase):
    """Test cases for FfprobeProbe."""

    def setUp(self):
        self.probe = FfprobeProbe(timeout=30)
        self.path = Path("/cache/abc.mp4")

    @patch("reddit_reel.media.probe.run_process", new_callable=AsyncMock)
    def test_with_audio(self, mock_run):
        mock_run.return_value = ProcessResult(0, json.dumps({
            "streams": [{"codec_type": "video"}, {"codec_type": "audio"}],
            "format": {"duration": "12.345000"},
        }), "")

        result = asyncio.run(self.probe.probe(self.path))

        self.assertTrue(result.has_audio)
        self.assertAlmostEqual(result.duration, 12.345)
        self.assertEqual(mock_run.await_args.args[0][-1], "/cache/abc.mp4")

    @patch("reddit_reel.media.probe.run_process", new_callable=AsyncMock)
    def test_without_audio(self, mock_run):
        mock_run.return_value = ProcessResult(0, json.dumps({
            "streams": [{"codec_type": "video"}],
            "format": {"duration": "N/A"},
        }), "")

        result = asyncio.run(self.probe.probe(self.path))

        self.assertFalse(result.has_audio)
        self.assertIsNone(result.duration)

    @patch("reddit_reel.media.probe.run_process", new_callable=AsyncMock)
    def test_failure(self, mock_run):
        mock_run.return_value = ProcessResult(1, "", "abc.mp4: Invalid data found when processing input")

        with self.assertRaises(ProbeError) as ctx:
            asyncio.run(self.probe.probe(self.path))

        self.assertIn("Invalid data", str(ctx.exception))

    @patch("reddit_reel.media.probe.run_process", new_callable=AsyncMock)
    def test_invalid_json(self, mock_run):
        mock_run.return_value = ProcessResult(0, "not json", "")

        with self.assertRaises(ProbeError):
            asyncio.run(self.probe.probe(self.path))


class TestFfmpegEncoder(unittest.TestCase):
    """Test cases for FfmpegEncoder."""

    def setUp(self):
        self.encoder = FfmpegEncoder(timeout=600)
        self.inputs = [
            InputSpec("/cache/a.mp4"),
            InputSpec("anullsrc=r=44100:cl=stereo", ("-f", "lavfi", "-t", "0.1")),
        ]
        self.graph = "[0:v]setsar=1[v0];[v0][1:a]concat=n=1:v=1:a=1[v][a]"
        self.destination = Path("/out/video.mp4")

    def test_build_args(self):
        args = self.encoder.build_args(
            self.inputs, self.graph, ["[v]", "[a]"], self.destination, metadata="Created with reddit-reel"
        )

        self.assertEqual(args[:6], ["ffmpeg", "-y", "-nostdin", "-hide_banner", "-loglevel", "error"])
        self.assertEqual(
            args[6:14],
            ["-i", "/cache/a.mp4", "-f", "lavfi", "-t", "0.1", "-i", "anullsrc=r=44100:cl=stereo"],
        )
        self.assertEqual(args[args.index("-filter_complex") + 1], self.graph)
        self.assertEqual(args[-7:], [
            "-map", "[v]", "-map", "[a]",
            "-metadata", "comment=Created with reddit-reel",
            "/out/video.mp4",
        ])

    def test_build_args_without_metadata(self):
        args = self.encoder.build_args(self.inputs, self.graph, ["[v]", "[a]"], self.destination)
        self.assertNotIn("-metadata", args)

    @patch("reddit_reel.media.encoder.run_process", new_callable=AsyncMock)
    def test_encode_success(self, mock_run):
        mock_run.return_value = ProcessResult(0, "", "")

        asyncio.run(self.encoder.encode(self.inputs, self.graph, ["[v]", "[a]"], self.destination))

        self.assertEqual(mock_run.await_args.kwargs["timeout"], 600)

    @patch("reddit_reel.media.encoder.run_process", new_callable=AsyncMock)
    def test_diagnostics_fail_even_on_zero_exit(self, mock_run):
        mock_run.return_value = ProcessResult(0, "", "[concat @ 0x1] Input link parameters do not match\n")

        with self.assertRaises(EncodeError) as ctx:
            asyncio.run(self.encoder.encode(self.inputs, self.graph, ["[v]", "[a]"], self.destination))

        self.assertEqual(ctx.exception.diagnostics, "[concat @ 0x1] Input link parameters do not match")

    @patch("reddit_reel.media.encoder.run_process", new_callable=AsyncMock)
    def test_nonzero_exit(self, mock_run):
        mock_run.return_value = ProcessResult(1, "", "")

        with self.assertRaises(EncodeError) as ctx:
            asyncio.run(self.encoder.encode(self.inputs, self.graph, ["[v]", "[a]"], self.destination))

        self.assertEqual(ctx.exception.returncode, 1)

    @patch("reddit_reel.media.encoder.run_process", new_callable=AsyncMock)
    def test_timeout(self, mock_run):
        mock_run.side_effect = ProcessTimeoutError("ffmpeg did not finish within 600s")

        with self.assertRaises(EncodeError):
            asyncio.run(self.encoder.encode(self.inputs, self.graph, ["[v]", "[a]"], self.destination))


if __name__ == "__main__":
    unittest.main()
