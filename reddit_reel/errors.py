"""Error types raised by the video pipeline."""

from pathlib import Path
from typing import Optional


class ReelError(Exception):
    """Base class for all pipeline errors."""


class ConfigurationError(ReelError):
    """Invalid user input or configuration; nothing has been run."""


class DependencyMissingError(ReelError):
    """A required external tool is not installed or not runnable."""


class CacheLockedError(ReelError):
    """Another run currently holds the cache directory."""


class ProcessTimeoutError(ReelError):
    """An external process did not finish before its deadline."""


class FetchError(ReelError):
    """A single item could not be materialized to a local file."""

    def __init__(self, item_id: str, message: str):
        super().__init__(f"Failed to fetch {item_id}: {message}")
        self.item_id = item_id


class NoUsableAssetsError(ReelError):
    """No downloaded asset is left to assemble."""


class ProbeError(ReelError):
    """Probing a local media file failed."""

    def __init__(self, path: Path, message: str):
        super().__init__(f"Failed to probe {path}: {message}")
        self.path = path


class EncodeError(ReelError):
    """The encoder failed; ``diagnostics`` holds its output verbatim."""

    def __init__(self, diagnostics: str, returncode: Optional[int] = None):
        super().__init__(diagnostics)
        self.diagnostics = diagnostics
        self.returncode = returncode
