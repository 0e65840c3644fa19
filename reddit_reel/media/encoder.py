"""Encoder backed by ffmpeg."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from reddit_reel.errors import DependencyMissingError, EncodeError, ProcessTimeoutError
from reddit_reel.media.process import FFMPEG, run_process

logger = logging.getLogger(__name__)

METADATA_FIELD = "comment"


@dataclass(frozen=True)
class InputSpec:
    """One ``-i`` input with the options that must precede it."""

    source: str
    options: Tuple[str, ...] = ()

    def to_args(self) -> List[str]:
        return [*self.options, "-i", self.source]


class FfmpegEncoder:
    """
    Runs ffmpeg once over all inputs with a complex filter graph.

    ffmpeg runs at ``-loglevel error``, so anything it writes to stderr is a
    diagnostic and fails the encode even if the exit status is zero.
    """

    def __init__(self, timeout: Optional[float] = None, binary: str = FFMPEG):
        self.timeout = timeout
        self.binary = binary

    def build_args(
        self,
        inputs: Sequence[InputSpec],
        filter_graph: str,
        output_mappings: Sequence[str],
        destination: Path,
        metadata: Optional[str] = None,
    ) -> List[str]:
        args = [self.binary, "-y", "-nostdin", "-hide_banner", "-loglevel", "error"]
        for spec in inputs:
            args.extend(spec.to_args())
        args.extend(["-filter_complex", filter_graph])
        for mapping in output_mappings:
            args.extend(["-map", mapping])
        if metadata:
            args.extend(["-metadata", f"{METADATA_FIELD}={metadata}"])
        args.append(str(destination))
        return args

    async def encode(
        self,
        inputs: Sequence[InputSpec],
        filter_graph: str,
        output_mappings: Sequence[str],
        destination: Path,
        metadata: Optional[str] = None,
    ) -> None:
        """
        Encode ``inputs`` into ``destination``.

        Raises:
            EncodeError: On a nonzero exit status, any diagnostic output, or timeout
        """
        args = self.build_args(inputs, filter_graph, output_mappings, destination, metadata)
        try:
            result = await run_process(args, timeout=self.timeout)
        except (DependencyMissingError, ProcessTimeoutError) as e:
            raise EncodeError(str(e)) from e

        diagnostics = result.stderr.strip()
        if not result.ok or diagnostics:
            raise EncodeError(diagnostics or f"ffmpeg exited with status {result.returncode}", result.returncode)
