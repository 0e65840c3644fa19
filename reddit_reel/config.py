"""Configuration handling for the Reddit video compiler."""

import os
import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import yaml
from dotenv import load_dotenv

from reddit_reel.errors import ConfigurationError
from reddit_reel.models.post import MAX_PAGE_SIZE, SelectionCriteria, SortMode, TimeWindow

DAY_SEC = 24 * 60 * 60

DURATION_UNITS = {
    "d": DAY_SEC,
    "w": 7 * DAY_SEC,
    "mo": 30 * DAY_SEC,
    "y": 365 * DAY_SEC,
}

_DURATION_PATTERN = re.compile(r"^(\d+)(d|w|mo|y)?$")
_SIZE_PATTERN = re.compile(r"^(\d+)x(\d+)$", re.IGNORECASE)

OUTPUT_SIZE_PRESETS = {
    "240p": (426, 240),
    "360p": (640, 360),
    "480p": (854, 480),
    "720p": (1280, 720),
    "1080p": (1920, 1080),
    "1440p": (2560, 1440),
    "2160p": (3840, 2160),
    "4k": (3840, 2160),
}


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def parse_duration(value: str) -> int:
    """
    Parse a retention duration into seconds.

    Accepts bare seconds ("10") or a number with one of the suffixes
    d (day), w (7 days), mo (30 days) or y (365 days).

    Raises:
        ConfigurationError: If the value cannot be parsed
    """
    match = _DURATION_PATTERN.match(str(value).strip().lower())
    if not match:
        raise ConfigurationError(
            f"Invalid duration: {value!r}. Expected seconds or a value like 2d, 1w, 3mo, 1y"
        )
    amount, unit = match.groups()
    return int(amount) * (DURATION_UNITS[unit] if unit else 1)


def parse_output_size(value: str) -> Tuple[int, int]:
    """
    Parse an output size given as a named preset (e.g. 720p) or WxH.

    Raises:
        ConfigurationError: If the value is neither a preset nor a valid WxH
    """
    text = str(value).strip().lower()
    if text in OUTPUT_SIZE_PRESETS:
        return OUTPUT_SIZE_PRESETS[text]
    match = _SIZE_PATTERN.match(text)
    if match:
        width, height = int(match.group(1)), int(match.group(2))
        if width > 0 and height > 0:
            return width, height
    presets = ", ".join(OUTPUT_SIZE_PRESETS)
    raise ConfigurationError(f"Invalid output size: {value!r}. Use WxH or one of: {presets}")


@dataclass
class DownloadConfig:
    """Download worker pool and fetch retry configuration."""

    workers: int = 4
    max_retries: int = 0
    initial_backoff_sec: float = 1.0
    max_backoff_sec: float = 30.0
    backoff_factor: float = 2.0


@dataclass
class TimeoutConfig:
    """Deadlines for the external tools, in seconds."""

    fetch_sec: float = 300.0
    probe_sec: float = 30.0
    encode_sec: float = 3600.0


@dataclass
class MonitoringConfig:
    """Monitoring configuration."""

    enable_prometheus: bool = False
    prometheus_port: int = 8000


@dataclass
class Config:
    """Application configuration combining environment variables and YAML config."""

    # Reddit API credentials from environment
    client_id: str = ""
    client_secret: str = ""
    username: str = ""
    password: str = ""
    user_agent: str = "reddit_reel/0.1"

    # YAML config values with defaults
    subreddit: str = ""
    sort: str = SortMode.TOP.value
    time: str = TimeWindow.WEEK.value
    limit: int = 10
    nsfw: bool = False
    output_size: str = "360p"
    cache_dir: str = "~/.cache/reddit_reel"
    cache_keep: str = "30d"
    log_file: Optional[str] = "logs/reddit_reel.log"
    download: DownloadConfig = field(default_factory=DownloadConfig)
    timeouts: TimeoutConfig = field(default_factory=TimeoutConfig)
    monitoring: MonitoringConfig = field(default_factory=MonitoringConfig)

    @classmethod
    def from_files(cls, config_path: Optional[str] = None, env_path: Optional[str] = None) -> "Config":
        """
        Load configuration from YAML file and environment variables.

        Args:
            config_path: Path to YAML configuration file (missing file means defaults)
            env_path: Optional path to .env file (defaults to .env in current directory)

        Returns:
            Config instance with merged configuration
        """
        if env_path:
            load_dotenv(env_path)
        else:
            load_dotenv()

        config = cls()
        config.client_id = os.getenv("REDDIT_CLIENT_ID", "")
        config.client_secret = os.getenv("REDDIT_CLIENT_SECRET", "")
        config.username = os.getenv("REDDIT_USERNAME", "")
        config.password = os.getenv("REDDIT_PASSWORD", "")
        config.user_agent = os.getenv("REDDIT_USER_AGENT", config.user_agent)

        if config_path and os.path.exists(config_path):
            with open(config_path, "r", encoding="utf-8") as file:
                yaml_config = yaml.safe_load(file)

            if yaml_config:
                config.apply(yaml_config)

        return config

    def apply(self, values: dict) -> None:
        """Overlay a mapping of settings (e.g. parsed YAML) onto this config."""
        nested = {
            "download": DownloadConfig,
            "timeouts": TimeoutConfig,
            "monitoring": MonitoringConfig,
        }
        for key, value in values.items():
            if key in nested:
                if isinstance(value, dict):
                    section = getattr(self, key)
                    for sub_key, sub_value in value.items():
                        if hasattr(section, sub_key):
                            setattr(section, sub_key, sub_value)
            elif hasattr(self, key):
                setattr(self, key, value)

    @property
    def cache_path(self) -> str:
        return os.path.expanduser(self.cache_dir)

    @property
    def cache_keep_sec(self) -> int:
        return parse_duration(self.cache_keep)

    @property
    def output_dimensions(self) -> Tuple[int, int]:
        return parse_output_size(self.output_size)

    def criteria(self) -> SelectionCriteria:
        """Build the selection criteria; call validate() first."""
        return SelectionCriteria(
            source_filter=self.subreddit,
            sort=SortMode(self.sort),
            time=TimeWindow(self.time),
            limit=int(self.limit),
            nsfw=self.nsfw,
        )

    def validate(self) -> List[str]:
        """
        Validate configuration and return a list of validation errors.

        Returns:
            List of validation error messages (empty if valid)
        """
        errors = []

        if not self.client_id:
            errors.append("Missing REDDIT_CLIENT_ID in environment")
        if not self.client_secret:
            errors.append("Missing REDDIT_CLIENT_SECRET in environment")

        if not self.subreddit:
            errors.append("No subreddit specified")

        if self.sort not in {mode.value for mode in SortMode}:
            errors.append(f"Invalid sort: {self.sort}")
        if self.time not in {window.value for window in TimeWindow}:
            errors.append(f"Invalid time: {self.time}")

        if not _is_int(self.limit) or not 1 <= self.limit <= MAX_PAGE_SIZE:
            errors.append(f"limit must be between 1 and {MAX_PAGE_SIZE}")

        if not isinstance(self.nsfw, bool):
            errors.append(f"nsfw must be true or false, got {self.nsfw!r}")

        for parse, value in ((parse_output_size, self.output_size), (parse_duration, self.cache_keep)):
            try:
                parse(value)
            except ConfigurationError as e:
                errors.append(str(e))

        if not _is_int(self.download.workers) or self.download.workers < 1:
            errors.append("download.workers must be at least 1")
        if not _is_int(self.download.max_retries) or self.download.max_retries < 0:
            errors.append("download.max_retries must not be negative")
        for name in ("initial_backoff_sec", "max_backoff_sec", "backoff_factor"):
            if not _is_number(getattr(self.download, name)):
                errors.append(f"download.{name} must be a number")

        for name in ("fetch_sec", "probe_sec", "encode_sec"):
            value = getattr(self.timeouts, name)
            if not _is_number(value) or value <= 0:
                errors.append(f"timeouts.{name} must be greater than 0")

        if not isinstance(self.monitoring.enable_prometheus, bool):
            errors.append("monitoring.enable_prometheus must be true or false")
        if not _is_int(self.monitoring.prometheus_port):
            errors.append("monitoring.prometheus_port must be an integer")

        return errors
