"""Deadline-bounded execution of the external media tools."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from reddit_reel.errors import DependencyMissingError, ProcessTimeoutError

logger = logging.getLogger(__name__)

FFMPEG = "ffmpeg"
FFPROBE = "ffprobe"
YT_DLP = "yt-dlp"

# (binary, version arguments, install hint)
REQUIRED_TOOLS = (
    (FFMPEG, ("-version",), "please install ffmpeg"),
    (FFPROBE, ("-version",), "please install ffmpeg"),
    (YT_DLP, ("--version",), "please install yt-dlp"),
)

DEPENDENCY_CHECK_TIMEOUT_SEC = 30.0


@dataclass(frozen=True)
class ProcessResult:
    """Exit status and decoded output of a finished process."""

    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


async def _terminate(proc: asyncio.subprocess.Process) -> None:
    if proc.returncode is None:
        try:
            proc.kill()
        except ProcessLookupError:
            pass
        await proc.wait()


async def run_process(args: Sequence[str], timeout: Optional[float] = None) -> ProcessResult:
    """
    Run a process to completion and capture its output.

    The process is killed if the deadline passes or the calling task is
    cancelled; callers are responsible for removing whatever it wrote.

    Args:
        args: Program and arguments
        timeout: Deadline in seconds (None waits forever)

    Returns:
        ProcessResult with the exit status and output

    Raises:
        DependencyMissingError: If the program cannot be found or executed
        ProcessTimeoutError: If the deadline passes
    """
    logger.debug(f"Running: {' '.join(args)}")
    try:
        proc = await asyncio.create_subprocess_exec(
            *args,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError as e:
        raise DependencyMissingError(f"{args[0]} is not installed or not available in PATH") from e
    except OSError as e:
        raise DependencyMissingError(f"{args[0]} cannot be executed: {e}") from e

    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        await _terminate(proc)
        raise ProcessTimeoutError(f"{args[0]} did not finish within {timeout:.0f}s")
    except asyncio.CancelledError:
        await _terminate(proc)
        raise

    return ProcessResult(
        returncode=proc.returncode,
        stdout=stdout.decode("utf-8", errors="replace"),
        stderr=stderr.decode("utf-8", errors="replace"),
    )


async def check_dependencies() -> None:
    """
    Make sure every external tool the pipeline needs can be executed.

    Raises:
        DependencyMissingError: Naming the first tool that is missing or broken
    """
    for binary, version_args, hint in REQUIRED_TOOLS:
        try:
            result = await run_process([binary, *version_args], timeout=DEPENDENCY_CHECK_TIMEOUT_SEC)
        except (DependencyMissingError, ProcessTimeoutError) as e:
            raise DependencyMissingError(f"{binary} check failed, {hint}: {e}") from e
        if not result.ok:
            raise DependencyMissingError(
                f"{binary} check failed, {hint}: exit status {result.returncode}"
            )
        logger.debug(f"Found {binary}: {result.stdout.splitlines()[0] if result.stdout else 'ok'}")
