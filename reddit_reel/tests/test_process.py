"""Tests for external process execution and the dependency check."""

import asyncio
import unittest
from unittest.mock import AsyncMock, MagicMock, patch

from reddit_reel.errors import DependencyMissingError, ProcessTimeoutError
from reddit_reel.media.process import ProcessResult, check_dependencies, run_process


def make_proc(returncode=0, stdout=b"", stderr=b""):
    proc = MagicMock()
    proc.returncode = returncode
    proc.communicate = AsyncMock(return_value=(stdout, stderr))
    proc.wait = AsyncMock(return_value=returncode)
    return proc


class TestRunProcess(unittest.TestCase):
    """Test cases for run_process."""

    @patch("asyncio.create_subprocess_exec", new_callable=AsyncMock)
    def test_captures_output(self, mock_exec):
        mock_exec.return_value = make_proc(0, b"out\n", b"")

        result = asyncio.run(run_process(["ffmpeg", "-version"], timeout=5))

        self.assertEqual(result, ProcessResult(returncode=0, stdout="out\n", stderr=""))
        self.assertTrue(result.ok)
        args, kwargs = mock_exec.call_args
        self.assertEqual(args, ("ffmpeg", "-version"))
        self.assertEqual(kwargs["stdin"], asyncio.subprocess.DEVNULL)

    @patch("asyncio.create_subprocess_exec", new_callable=AsyncMock)
    def test_missing_program(self, mock_exec):
        mock_exec.side_effect = FileNotFoundError("ffmpeg")

        with self.assertRaises(DependencyMissingError):
            asyncio.run(run_process(["ffmpeg", "-version"]))

    @patch("asyncio.create_subprocess_exec", new_callable=AsyncMock)
    def test_program_not_executable(self, mock_exec):
        mock_exec.side_effect = PermissionError(13, "Permission denied", "yt-dlp")

        with self.assertRaises(DependencyMissingError) as ctx:
            asyncio.run(run_process(["yt-dlp", "--version"]))

        self.assertIn("yt-dlp cannot be executed", str(ctx.exception))

    @patch("asyncio.create_subprocess_exec", new_callable=AsyncMock)
    def test_timeout_kills_process(self, mock_exec):
        proc = make_proc()
        proc.returncode = None

        async def hang():
            await asyncio.sleep(10)

        proc.communicate = MagicMock(side_effect=lambda: hang())
        mock_exec.return_value = proc

        with self.assertRaises(ProcessTimeoutError):
            asyncio.run(run_process(["yt-dlp", "https://v.redd.it/a"], timeout=0.01))

        proc.kill.assert_called_once()
        proc.wait.assert_awaited_once()


class TestCheckDependencies(unittest.TestCase):
    """Test cases for check_dependencies."""

    @patch("reddit_reel.media.process.run_process", new_callable=AsyncMock)
    def test_all_present(self, mock_run):
        mock_run.return_value = ProcessResult(0, "version 1\n", "")

        asyncio.run(check_dependencies())

        checked = [call.args[0][0] for call in mock_run.await_args_list]
        self.assertEqual(checked, ["ffmpeg", "ffprobe", "yt-dlp"])

    @patch("reddit_reel.media.process.run_process", new_callable=AsyncMock)
    def test_missing_tool_names_it(self, mock_run):
        mock_run.side_effect = [
            ProcessResult(0, "ffmpeg version 6\n", ""),
            ProcessResult(0, "ffprobe version 6\n", ""),
            DependencyMissingError("yt-dlp is not installed or not available in PATH"),
        ]

        with self.assertRaises(DependencyMissingError) as ctx:
            asyncio.run(check_dependencies())

        self.assertIn("yt-dlp", str(ctx.exception))
        self.assertIn("please install yt-dlp", str(ctx.exception))

    @patch("asyncio.create_subprocess_exec", new_callable=AsyncMock)
    def test_tool_without_execute_permission(self, mock_exec):
        mock_exec.side_effect = PermissionError(13, "Permission denied", "ffmpeg")

        with self.assertRaises(DependencyMissingError) as ctx:
            asyncio.run(check_dependencies())

        self.assertIn("ffmpeg check failed, please install ffmpeg", str(ctx.exception))

    @patch("reddit_reel.media.process.run_process", new_callable=AsyncMock)
    def test_broken_tool(self, mock_run):
        mock_run.return_value = ProcessResult(127, "", "error while loading shared libraries")

        with self.assertRaises(DependencyMissingError) as ctx:
            asyncio.run(check_dependencies())

        self.assertIn("ffmpeg", str(ctx.exception))


if __name__ == "__main__":
    unittest.main()
