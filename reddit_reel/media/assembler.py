"""Final encode of the normalized, concatenated video."""

import asyncio
import logging
import time
from pathlib import Path
from typing import Optional

from reddit_reel.errors import EncodeError
from reddit_reel.interfaces import Encoder
from reddit_reel.media.filter_graph import FilterGraph

logger = logging.getLogger(__name__)


class Assembler:
    """Invokes the encoder once and guarantees no partial output survives a failure."""

    def __init__(self, encoder: Encoder, prometheus_exporter=None):
        self.encoder = encoder
        self.prometheus_exporter = prometheus_exporter

    async def assemble(self, graph: FilterGraph, destination: Path, provenance: Optional[str] = None) -> Path:
        """
        Encode ``graph`` into ``destination``.

        Args:
            graph: Filter graph built for the downloaded assets
            destination: Output file
            provenance: Optional text embedded as metadata

        Returns:
            The destination path

        Raises:
            EncodeError: If encoding fails; ``destination`` is removed first
        """
        destination = Path(destination)
        destination.parent.mkdir(parents=True, exist_ok=True)

        filter_expr = graph.serialize()
        logger.debug(f"Filter graph:\n{filter_expr}")

        started = time.monotonic()
        try:
            await self.encoder.encode(
                graph.inputs(),
                filter_expr,
                graph.output_mappings(),
                destination,
                metadata=provenance,
            )
        except (EncodeError, asyncio.CancelledError):
            self._remove_partial(destination)
            raise

        if self.prometheus_exporter:
            self.prometheus_exporter.observe_encode(time.monotonic() - started, len(graph.chains))
        return destination

    @staticmethod
    def _remove_partial(destination: Path) -> None:
        try:
            destination.unlink()
            logger.info(f"Removed incomplete output {destination}")
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.error(f"Could not remove incomplete output {destination}: {str(e)}")
