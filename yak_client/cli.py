"""Command-line interface for the Yak client."""

import asyncio
import json
import logging
import logging.config
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, List, Optional

import typer
from typing_extensions import Annotated

from yak_client.api.client import YakApiClient
from yak_client.api.errors import ClientError
from yak_client.config import DEFAULT_LOG_FILE, Config
from yak_client.geo.geocoder import NominatimGeocoder
from yak_client.models.message import Location, MessageRecord
from yak_client.monitoring.metrics import PrometheusExporter
from yak_client.session import YakSession, new_identity

app = typer.Typer(help="Yak client - read nearby Yik Yak messages with their addresses")

logger = logging.getLogger(__name__)


def setup_logging(log_level: str = "INFO", log_file: str = DEFAULT_LOG_FILE) -> None:
    """
    Set up logging configuration.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Path of the rotating log file; parent directories are created
    """
    Path(log_file).parent.mkdir(parents=True, exist_ok=True)

    log_config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {
                "format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": log_level,
                "formatter": "standard",
                "stream": "ext://sys.stderr",
            },
            "file": {
                "class": "logging.handlers.RotatingFileHandler",
                "level": log_level,
                "formatter": "standard",
                "filename": log_file,
                "maxBytes": 10485760,  # 10 MB
                "backupCount": 5,
                "encoding": "utf8",
            },
        },
        "loggers": {
            "": {
                "handlers": ["console", "file"],
                "level": log_level,
                "propagate": True
            },
            "asyncio": {
                "level": "WARNING",
            },
            "aiohttp": {
                "level": "WARNING",
            },
        }
    }

    logging.config.dictConfig(log_config)


def load_config(config_path: str, log_level: Optional[str] = None) -> Config:
    """
    Load configuration, set up logging from it and validate it.

    Args:
        config_path: Path to the YAML configuration file
        log_level: Overrides the configured logging level when given

    Returns:
        The validated configuration; exits with status 1 if it is invalid
    """
    config = Config.from_files(config_path)
    # An empty log_file is reported by validate() below
    setup_logging((log_level or config.log_level).upper(), config.log_file or DEFAULT_LOG_FILE)
    validation_errors = config.validate()

    if validation_errors:
        for error in validation_errors:
            logger.error(f"Configuration error: {error}")
        typer.echo("Invalid configuration:", err=True)
        for error in validation_errors:
            typer.echo(f"  - {error}", err=True)
        raise typer.Exit(code=1)

    return config


def _json_default(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def format_feed(feed: List[MessageRecord]) -> str:
    """Render a feed as readable text."""
    lines = []
    for message in feed:
        when = message["timestamp"].isoformat() if message["timestamp"] else "unknown time"
        lines.append(f"[{message['id']}] {message['content']}")
        lines.append(
            f"    {message['like_count']} likes, {message['comment_count']} comments, {when}"
        )
        lines.append(f"    @ {message['address'] or 'address unavailable'}")
        for comment in message["comments"]:
            lines.append(f"    > {comment['content']} ({comment['like_count']} likes)")
    return "\n".join(lines)


async def run_feed(config: Config, user_id: Optional[str] = None) -> List[MessageRecord]:
    """
    Build the enriched feed for the configured location.

    Args:
        config: Validated configuration
        user_id: Identity to resume; a new one is created and registered if omitted

    Returns:
        The enriched feed
    """
    location = Location(float(config.latitude), float(config.longitude))
    exporter = None
    if config.monitoring.enable_prometheus:
        exporter = PrometheusExporter(config.monitoring.prometheus_port)
        exporter.start_server()

    async with YakApiClient(config.api, prometheus_exporter=exporter) as api, \
            NominatimGeocoder(config.geocoder) as geocoder:
        identity = user_id or config.user_id
        if identity:
            session = YakSession.resume(identity, location, api, geocoder, config.feed, exporter)
        else:
            session = YakSession.create(location, api, geocoder, config.feed, exporter)
            logger.info(f"Created new identity {session.identity}")

        try:
            return await session.list()
        finally:
            await session.wait_registered()


async def run_register(config: Config) -> Optional[str]:
    """Register a new identity and return it, or None if the server refused it."""
    location = Location(float(config.latitude), float(config.longitude))
    identity = new_identity()
    async with YakApiClient(config.api) as api:
        error = await api.register_identity(identity, location)
    return None if error else identity


@app.command()
def identity() -> None:
    """Print a new anonymous identity."""
    typer.echo(new_identity())


@app.command()
def register(
    config: Annotated[str, typer.Option("--config", "-c", help="Path to configuration file")] = "config.yaml",
    loglevel: Annotated[Optional[str], typer.Option("--loglevel", "-l", help="Logging level (defaults to log_level in the config)")] = None,
) -> None:
    """Register a new identity at the configured location."""
    cfg = load_config(config, loglevel)

    try:
        registered = asyncio.run(run_register(cfg))
    except ClientError as e:
        typer.echo(f"Registration failed: {e}", err=True)
        raise typer.Exit(code=1)

    if registered is None:
        typer.echo("Registration was rejected by the server", err=True)
        raise typer.Exit(code=1)
    typer.echo(registered)


@app.command()
def feed(
    config: Annotated[str, typer.Option("--config", "-c", help="Path to configuration file")] = "config.yaml",
    user_id: Annotated[Optional[str], typer.Option("--user-id", "-u", help="Identity from a previous session")] = None,
    as_json: Annotated[bool, typer.Option("--json", help="Print the feed as JSON")] = False,
    loglevel: Annotated[Optional[str], typer.Option("--loglevel", "-l", help="Logging level (defaults to log_level in the config)")] = None,
) -> None:
    """Show the five most recent nearby messages with address and comments."""
    cfg = load_config(config, loglevel)

    try:
        result = asyncio.run(run_feed(cfg, user_id))
    except ClientError as e:
        logger.error(f"Failed to fetch messages: {e}")
        typer.echo(f"Failed to fetch messages: {e}", err=True)
        raise typer.Exit(code=1)

    if as_json:
        typer.echo(json.dumps(result, default=_json_default, indent=2))
    else:
        typer.echo(format_feed(result))


def main() -> None:
    """Entry point for the command-line interface."""
    try:
        app()
    except KeyboardInterrupt:
        logger.info("Interrupted")
        sys.exit(130)


if __name__ == "__main__":
    main()
