"""Command-line interface for the Reddit video compiler."""

import asyncio
import json
import logging
import logging.config
import sys
from pathlib import Path
from typing import Optional

import typer
from typing_extensions import Annotated

from reddit_reel.collector.collector import PostCollector
from reddit_reel.config import Config
from reddit_reel.errors import ConfigurationError, ReelError
from reddit_reel.media.cache import CacheManager
from reddit_reel.media.process import check_dependencies
from reddit_reel.models.post import SortMode, TimeWindow
from reddit_reel.monitoring.metrics import PrometheusExporter
from reddit_reel.pipeline import PipelineResult, VideoPipeline
from reddit_reel.reddit_client import RedditClient

app = typer.Typer(help="Reddit Reel - Create videos from your favorite subreddits")

logger = logging.getLogger(__name__)


def setup_logging(log_level: str = "INFO", log_file: Optional[str] = None) -> None:
    """
    Set up logging configuration.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional path of a rotating log file
    """
    handlers = {
        "console": {
            "class": "logging.StreamHandler",
            "level": log_level,
            "formatter": "standard",
            "stream": "ext://sys.stdout",
        },
    }
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "level": log_level,
            "formatter": "standard",
            "filename": log_file,
            "maxBytes": 10485760,  # 10 MB
            "backupCount": 5,
            "encoding": "utf8",
        }

    log_config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {
                "format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
            },
        },
        "handlers": handlers,
        "loggers": {
            "": {
                "handlers": list(handlers),
                "level": log_level,
                "propagate": True
            },
            "asyncio": {
                "level": "WARNING",
            },
            "asyncpraw": {
                "level": "WARNING",
            },
            "asyncprawcore": {
                "level": "WARNING",
            },
        }
    }

    logging.config.dictConfig(log_config)


def load_config(config_path: str, **overrides) -> Config:
    """
    Load the configuration and apply command line overrides.

    Options left at None keep the configured value.

    Raises:
        ConfigurationError: Listing every validation problem
    """
    config = Config.from_files(config_path)
    config.apply({key: value for key, value in overrides.items() if value is not None})
    errors = config.validate()
    if errors:
        raise ConfigurationError("; ".join(errors))
    return config


async def run_create(config: Config, output: Path, show_progress: bool = True) -> PipelineResult:
    """
    Compile a video from the configured subreddit into ``output``.

    Args:
        config: Validated configuration
        output: Destination video file
        show_progress: Whether to display a download progress bar
    """
    # No network or cache activity before every external tool is known to run
    await check_dependencies()

    prometheus_exporter = None
    if config.monitoring.enable_prometheus:
        prometheus_exporter = PrometheusExporter(port=config.monitoring.prometheus_port)
        prometheus_exporter.start_server()

    reddit_client = RedditClient(config)
    try:
        await reddit_client.initialize()
    except ValueError as e:
        raise ConfigurationError(f"Failed to initialize Reddit client: {str(e)}") from e

    try:
        collector = PostCollector(reddit_client, prometheus_exporter)
        pipeline = VideoPipeline.from_config(
            config,
            collector,
            prometheus_exporter=prometheus_exporter,
            show_progress=show_progress,
            dependency_check=None,
        )
        return await pipeline.run(output)
    finally:
        await reddit_client.close()


@app.command()
def create(
    output: Annotated[Path, typer.Argument(help="Output video file, e.g. out.mp4")],
    subreddit: Annotated[Optional[str], typer.Option("--subreddit", "-r", help="Subreddit(s) to use, combine with '+'")] = None,
    sort: Annotated[Optional[SortMode], typer.Option("--sort", "-s", help="Sort order of the posts")] = None,
    time: Annotated[Optional[TimeWindow], typer.Option("--time", "-t", help="Time window for top/controversial")] = None,
    limit: Annotated[Optional[int], typer.Option("--limit", "-l", help="Maximum number of videos (1-100)")] = None,
    nsfw: Annotated[Optional[bool], typer.Option("--nsfw/--no-nsfw", help="Include posts tagged NSFW")] = None,
    size: Annotated[Optional[str], typer.Option("--size", "-S", help="Output size, e.g. 720p or 1280x720")] = None,
    cache_dir: Annotated[Optional[str], typer.Option("--cache-dir", help="Directory for downloaded videos")] = None,
    cache_keep: Annotated[Optional[str], typer.Option("--cache-keep", help="Keep cached videos this long, e.g. 3600, 2d, 1w, 1mo, 1y")] = None,
    workers: Annotated[Optional[int], typer.Option("--workers", "-w", help="Concurrent downloads")] = None,
    config: Annotated[str, typer.Option("--config", "-c", help="Path to configuration file")] = "config.yaml",
    loglevel: Annotated[str, typer.Option("--loglevel", help="Logging level")] = "INFO",
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable verbose output")] = False,
) -> None:
    """
    Create a video from the top posts of one or more subreddits.
    """
    try:
        config_obj = load_config(
            config,
            subreddit=subreddit,
            sort=sort.value if sort else None,
            time=time.value if time else None,
            limit=limit,
            nsfw=nsfw,
            output_size=size,
            cache_dir=cache_dir,
            cache_keep=cache_keep,
        )
        if workers is not None:
            config_obj.download.workers = workers
            if workers < 1:
                raise ConfigurationError("download.workers must be at least 1")
    except ConfigurationError as e:
        typer.echo(f"Configuration error: {e}", err=True)
        raise typer.Exit(code=1)

    setup_logging("DEBUG" if verbose else loglevel, config_obj.log_file)
    logger.info(f"Creating {output} from r/{config_obj.subreddit} ({config_obj.sort}, {config_obj.time}, limit={config_obj.limit})")

    try:
        result = asyncio.run(run_create(config_obj, output, show_progress=sys.stderr.isatty()))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        raise typer.Exit(code=130)
    except ReelError as e:
        logger.critical(str(e))
        raise typer.Exit(code=1)

    logger.info(f"Wrote {result.output} with {len(result.assets)} videos")


@app.command()
def clean(
    cache_dir: Annotated[Optional[str], typer.Option("--cache-dir", help="Directory for downloaded videos")] = None,
    cache_keep: Annotated[Optional[str], typer.Option("--cache-keep", help="Remove entries older than this, e.g. 2d")] = None,
    config: Annotated[str, typer.Option("--config", "-c", help="Path to configuration file")] = "config.yaml",
) -> None:
    """
    Remove expired entries from the cache directory.
    """
    config_obj = Config.from_files(config)
    config_obj.apply({key: value for key, value in {"cache_dir": cache_dir, "cache_keep": cache_keep}.items() if value is not None})
    setup_logging("INFO")

    try:
        keep_sec = config_obj.cache_keep_sec
        cache = CacheManager(config_obj.cache_path)
        cache.ensure_dir()
        with cache.lock():
            removed = cache.sweep(keep_sec)
    except (ReelError, OSError) as e:
        logger.critical(str(e))
        raise typer.Exit(code=1)

    typer.echo(f"Removed {removed} expired entries from {config_obj.cache_path}")


@app.command("cache-info")
def cache_info(
    cache_dir: Annotated[Optional[str], typer.Option("--cache-dir", help="Directory for downloaded videos")] = None,
    config: Annotated[str, typer.Option("--config", "-c", help="Path to configuration file")] = "config.yaml",
) -> None:
    """
    Show what is in the cache directory as JSON.
    """
    config_obj = Config.from_files(config)
    if cache_dir is not None:
        config_obj.cache_dir = cache_dir

    entries = CacheManager(config_obj.cache_path).entries()
    typer.echo(json.dumps({
        "cache_dir": config_obj.cache_path,
        "entries": len(entries),
        "size_bytes": sum(entry["size_bytes"] for entry in entries),
        "items": entries,
    }, indent=2))


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
