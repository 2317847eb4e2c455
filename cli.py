"""Command line interface for ical-merge."""

import asyncio
import logging
import os
import sys
from pathlib import Path

import click
import uvicorn

from client.codec import serialize_events
from client.fetcher import CalendarFetcher
from models.config import ENV_PREFIX
from models.exceptions import CalendarNotFoundError, ConfigError
from models.merge import MergeEngine, MergeResult
from models.store import ConfigStore
from models.validation import ConfigSnapshot

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("config.json")

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def config_option(func):
    func = click.option(
        "--format",
        "config_format",
        type=click.Choice(["json", "yaml", "toml"]),
        default=None,
        help="Configuration syntax (default: from the file extension)",
    )(func)
    return click.option(
        "--config",
        "config_path",
        type=click.Path(dir_okay=False, path_type=Path),
        envvar=f"{ENV_PREFIX}CONFIG",
        default=DEFAULT_CONFIG_PATH,
        show_default=True,
        help="Path to the configuration file",
    )(func)


def _load_store(config_path: Path, config_format: str | None) -> ConfigStore:
    try:
        return ConfigStore.from_path(config_path, format=config_format)
    except ConfigError as exc:
        click.echo(f"Invalid configuration: {exc}", err=True)
        sys.exit(1)


async def _merge(snapshot: ConfigSnapshot, calendar_id: str) -> MergeResult:
    async with CalendarFetcher(timeout=snapshot.fetch_timeout) as fetcher:
        return await MergeEngine(snapshot, fetcher).merge_calendar(calendar_id)


def _merge_or_exit(store: ConfigStore, calendar_id: str) -> MergeResult:
    try:
        result = asyncio.run(_merge(store.snapshot(), calendar_id))
    except CalendarNotFoundError as exc:
        available = ", ".join(exc.available_calendars) or "(none)"
        click.echo(f"{exc}. Available calendars: {available}", err=True)
        sys.exit(1)

    for error in result.errors:
        click.echo(f"Source error: {error}", err=True)
    return result


@click.group()
@click.version_option(version="0.1.0")
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    envvar=f"{ENV_PREFIX}LOG_LEVEL",
    default="INFO",
    show_default=True,
    help="Root log level",
)
def cli(log_level: str) -> None:
    """ical-merge: merge, filter and rewrite iCalendar feeds."""
    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@cli.command()
@config_option
@click.option("--bind", "bind_address", default=None, help="Bind address (default: from config)")
@click.option("--port", type=int, default=None, help="Listen port (default: from config)")
@click.option(
    "--poll-interval",
    type=click.FloatRange(min=0, min_open=True),
    envvar=f"{ENV_PREFIX}POLL_INTERVAL",
    default=2.0,
    show_default=True,
    help="Seconds between config file polls",
)
@click.pass_context
def serve(
    ctx: click.Context,
    config_path: Path,
    config_format: str | None,
    bind_address: str | None,
    port: int | None,
    poll_interval: float,
) -> None:
    """Serve merged calendars over HTTP, reloading the config on change."""
    # Fail before binding the port if the configuration is unusable.
    store = _load_store(config_path, config_format)
    server = store.snapshot().configuration.server

    os.environ[f"{ENV_PREFIX}CONFIG"] = str(config_path)
    if config_format:
        os.environ[f"{ENV_PREFIX}CONFIG_FORMAT"] = config_format
    os.environ[f"{ENV_PREFIX}POLL_INTERVAL"] = str(poll_interval)
    os.environ[f"{ENV_PREFIX}LOG_LEVEL"] = ctx.parent.params["log_level"].upper()

    host = bind_address or server.bind_address
    listen_port = port or server.port
    click.echo(
        f"Serving {len(store.snapshot().calendars)} calendar(s) on http://{host}:{listen_port}"
    )
    uvicorn.run(
        "main:app",
        host=host,
        port=listen_port,
        log_level=ctx.parent.params["log_level"].lower(),
    )


@cli.command()
@click.argument("calendar_id")
@config_option
def events(calendar_id: str, config_path: Path, config_format: str | None) -> None:
    """Print one line per event of a merged calendar."""
    store = _load_store(config_path, config_format)
    result = _merge_or_exit(store, calendar_id)

    for event in result.events:
        click.echo(event.get_summary())
    click.echo(f"{len(result.events)} event(s), {len(result.errors)} source error(s)", err=True)


@cli.command()
@click.argument("calendar_id")
@config_option
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write the calendar to a file instead of stdout",
)
def ical(calendar_id: str, config_path: Path, config_format: str | None, output: Path | None) -> None:
    """Emit the merged calendar as iCalendar text."""
    store = _load_store(config_path, config_format)
    result = _merge_or_exit(store, calendar_id)
    body = serialize_events(result.events, name=calendar_id)

    if output is None:
        click.get_binary_stream("stdout").write(body)
        return
    output.write_bytes(body)
    click.echo(f"Wrote {len(result.events)} event(s) to {output}", err=True)


@cli.command()
@config_option
def check(config_path: Path, config_format: str | None) -> None:
    """Validate a configuration file and list its calendars."""
    store = _load_store(config_path, config_format)
    snapshot = store.snapshot()

    click.echo(f"Configuration OK: {len(snapshot.calendars)} calendar(s)")
    for calendar_id in snapshot.calendar_ids:
        calendar = snapshot.calendars[calendar_id]
        click.echo(f"  {calendar_id}")
        for source in calendar.sources:
            click.echo(f"    - {source.identifier}")


if __name__ == "__main__":
    cli()
