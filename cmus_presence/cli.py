# cmus_presence/cli.py
"""CLI commands for cmus-presence."""
import sys
import time
from pathlib import Path
from typing import Optional

import click
import structlog

from .config import (
    DEFAULT_POLL_INTERVAL_MS,
    DEFAULT_RETRY_INTERVAL_MS,
    MIN_STABLE_POLL_INTERVAL_MS,
    Config,
    ConfigError,
)

log = structlog.get_logger()


def _load_config(ctx: click.Context) -> Config:
    opts = ctx.obj
    try:
        config = Config.load(opts["config_path"])
    except ConfigError as e:
        raise click.ClickException(str(e)) from e

    if opts["main_thread_wait"] is not None:
        config.poll_interval_ms = opts["main_thread_wait"]
    if opts["unix_thread_wait"] is not None:
        config.retry_interval_ms = opts["unix_thread_wait"]
    if opts["socket_path"] is not None:
        config.socket_path = opts["socket_path"]
    config.verbose = config.verbose or opts["verbose"]
    config.strict = config.strict or opts["strict"]
    config.artwork = config.artwork or opts["artwork"]
    return config


def _socket_path(config: Config) -> Path:
    from .connection import resolve_socket_path

    return config.socket_path or resolve_socket_path()


def log_intervals(config: Config) -> None:
    if config.poll_interval_ms == DEFAULT_POLL_INTERVAL_MS:
        log.warning("poll_interval_default", ms=config.poll_interval_ms)
    else:
        log.info("poll_interval_custom", ms=config.poll_interval_ms)
        if config.poll_interval_ms < MIN_STABLE_POLL_INTERVAL_MS:
            log.warning(
                "poll_interval_may_desync",
                ms=config.poll_interval_ms,
                min_stable_ms=MIN_STABLE_POLL_INTERVAL_MS,
            )

    if config.retry_interval_ms == DEFAULT_RETRY_INTERVAL_MS:
        log.warning("retry_interval_default", ms=config.retry_interval_ms)
    else:
        log.info("retry_interval_custom", ms=config.retry_interval_ms)


@click.group(invoke_without_command=True)
@click.version_option(package_name="cmus-presence")
@click.option(
    "-m",
    "--main-thread-wait",
    type=click.IntRange(min=1),
    metavar="MS",
    help="Refresh rate of the main loop in milliseconds [default: 5000]",
)
@click.option(
    "-u",
    "--unix-thread-wait",
    type=click.IntRange(min=1),
    metavar="MS",
    help="Wait between attempts to reach the cmus socket in milliseconds [default: 15000]",
)
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output for debugging")
@click.option("--strict", is_flag=True, help="Exit on a malformed status reply instead of skipping it")
@click.option("--artwork", is_flag=True, help="Look up album art on iTunes for the large image")
@click.option(
    "--socket",
    "socket_path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Path to the cmus socket (overrides CMUS_SOCKET and XDG lookup)",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Config file [default: $XDG_CONFIG_HOME/cmus-presence/config.toml]",
)
@click.pass_context
def main(
    ctx: click.Context,
    main_thread_wait: Optional[int],
    unix_thread_wait: Optional[int],
    verbose: bool,
    strict: bool,
    artwork: bool,
    socket_path: Optional[Path],
    config_path: Optional[Path],
) -> None:
    """Show what cmus is playing on your Discord profile."""
    ctx.obj = {
        "main_thread_wait": main_thread_wait,
        "unix_thread_wait": unix_thread_wait,
        "verbose": verbose,
        "strict": strict,
        "artwork": artwork,
        "socket_path": socket_path,
        "config_path": config_path,
    }
    if ctx.invoked_subcommand is None:
        ctx.invoke(run)


@main.command()
@click.pass_context
def run(ctx: click.Context) -> None:
    """Poll cmus and publish the presence (default command)."""
    from .artwork import lookup_artwork
    from .connection import ConnectionManager
    from .discord_rpc import PresenceSink, SinkError
    from .log import configure_logging
    from .poll_loop import PollLoop
    from .protocol import ProtocolError

    config = _load_config(ctx)
    configure_logging(config.verbose)
    log_intervals(config)

    log.debug("starting")
    socket_path = _socket_path(config)
    log.debug("cmus_socket", path=str(socket_path))

    connection = ConnectionManager(socket_path, config.retry_interval)
    sink = PresenceSink(config.presence.client_id)
    loop = PollLoop(
        connection,
        sink,
        config,
        artwork_lookup=lookup_artwork if config.artwork else None,
    )

    try:
        loop.run()
    except KeyboardInterrupt:
        log.info("stopping")
        loop.stop()
        if sink.started:
            try:
                sink.clear_activity()
            except SinkError as e:
                log.warning("presence_clear_failed", error=str(e))
    except (SinkError, ProtocolError) as e:
        log.error("fatal", error=str(e))
        sys.exit(1)
    finally:
        connection.close()
        sink.close()


@main.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Query cmus once and print the activity that would be published."""
    from .activity import build_activity
    from .connection import ConnectionManager
    from .protocol import ProtocolError, parse_block

    config = _load_config(ctx)
    socket_path = _socket_path(config)
    connection = ConnectionManager(socket_path, config.retry_interval)

    try:
        connection.connect_once()
        raw = connection.request_status()
    except OSError as e:
        click.echo(f"cmus: not running ({socket_path}: {e})")
        sys.exit(1)
    finally:
        connection.close()

    try:
        record = parse_block(raw)
    except ProtocolError as e:
        click.echo(f"cmus: unexpected reply: {e}")
        sys.exit(1)

    payload = build_activity(record, int(time.time()), config.presence)
    click.echo(f"cmus: {record.status.display_name}")
    for key, value in payload.to_presence_kwargs().items():
        click.echo(f"  {key}: {value}")


@main.command("socket-path")
@click.pass_context
def socket_path_cmd(ctx: click.Context) -> None:
    """Print the cmus socket path that will be used."""
    click.echo(str(_socket_path(_load_config(ctx))))


@main.command("init-config")
@click.option("--force", is_flag=True, help="Overwrite an existing config file")
@click.pass_context
def init_config(ctx: click.Context, force: bool) -> None:
    """Write a config file with the default settings."""
    path = ctx.obj["config_path"] or Config.default_path()
    if path.exists() and not force:
        raise click.ClickException(f"{path} already exists (use --force to overwrite)")
    Config().save(path)
    click.echo(f"Wrote {path}")
