"""`autoreel serve`: run the render job HTTP API."""

import asyncio
import errno
import logging
import os
import signal
import sys
from pathlib import Path

import click
from aiohttp import web

from autoreel.config import AutoReelConfig
from autoreel.db import check_database_connectivity
from autoreel.jobs.services import build_source_fetcher
from autoreel.server.app import create_app
from autoreel.server.lifecycle import ServerLifecycle

logger = logging.getLogger(__name__)


async def run_server(config: AutoReelConfig, bind: str, port: int) -> int:
    """Run the HTTP server until SIGTERM/SIGINT.

    Returns:
        Exit code (0 for clean shutdown, 1 for bind errors).
    """
    lifecycle = ServerLifecycle(shutdown_timeout=config.server.shutdown_timeout)
    shutdown_event = asyncio.Event()
    loop = asyncio.get_running_loop()

    def handle_shutdown_signal(sig: signal.Signals) -> None:
        logger.info("Received %s, initiating graceful shutdown", sig.name)
        lifecycle.initiate_shutdown()
        shutdown_event.set()

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, handle_shutdown_signal, sig)

    app = create_app(
        Path(config.database_path),
        config.render.temp_directory,
        download_prefix=config.render.download_prefix,
        title_resolver=build_source_fetcher(config).resolve_title,
    )
    app["lifecycle"] = lifecycle

    runner = web.AppRunner(app, shutdown_timeout=config.server.shutdown_timeout)
    await runner.setup()
    try:
        site = web.TCPSite(runner, bind, port)
        await site.start()
        logger.info(
            "autoreel API listening on http://%s:%d (PID %d)", bind, port, os.getpid()
        )
        await shutdown_event.wait()
    except OSError as e:
        if e.errno == errno.EADDRINUSE:
            logger.error("Port %d is already in use", port)
        elif e.errno == errno.EADDRNOTAVAIL:
            logger.error("Cannot bind to address %s", bind)
        else:
            logger.error("Server error: %s", e)
        return 1
    finally:
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.remove_signal_handler(sig)
        await runner.cleanup()
        logger.info("autoreel API stopped")

    return 0


@click.command("serve")
@click.option(
    "--bind",
    type=str,
    default=None,
    help="Address to bind to (default: 127.0.0.1).",
)
@click.option(
    "--port",
    "-p",
    type=click.IntRange(1, 65535),
    default=None,
    help="Port to bind to (default: 8321).",
)
@click.pass_context
def serve_command(ctx: click.Context, bind: str | None, port: int | None) -> None:
    """Serve the render job HTTP API.

    Binds to localhost by default. Workers run separately with
    'autoreel jobs start'.
    """
    config: AutoReelConfig = ctx.obj["config"]
    server_bind = bind if bind is not None else config.server.bind
    server_port = port if port is not None else config.server.port

    if ctx.obj.get("db_conn") is None or not check_database_connectivity(
        config.database_path
    ):
        raise click.ClickException(f"Database not accessible: {config.database_path}")

    if server_port < 1024:
        logger.warning("Port %d is privileged and may require root", server_port)

    sys.exit(asyncio.run(run_server(config, server_bind, server_port)))
