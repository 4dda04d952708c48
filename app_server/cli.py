"""Command line entry point — serve, inspect and edit configuration.

Usage:
    app-server serve
    app-server --config ./config/config.json show-config
    app-server set-port 8080
"""

import json
import logging
from pathlib import Path
from typing import Optional

import click

from app_server.config import find_config_file, load_settings, update_config_port
from app_server.core.errors import ConfigFileError, ListenerBindError
from app_server.infrastructure.observability import setup_logging
from app_server.infrastructure.server import ServerController
from app_server.main import create_app

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("config.json")


@click.group()
@click.option(
    "--config", "config_file",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Config file to use instead of searching ./config.json, "
         "../config/config.json and ./config/config.json.",
)
@click.pass_context
def cli(ctx, config_file: Optional[Path]):
    """
    app-server: minimal HTTP API server.
    """
    ctx.obj = {"config_file": config_file}


@cli.command("serve")
@click.pass_context
def serve_cmd(ctx):
    """Start the HTTP server; Ctrl+C (or SIGTERM) stops it gracefully."""
    # Bootstrap logging so config file warnings are visible.
    setup_logging()
    settings = load_settings(ctx.obj["config_file"])
    setup_logging(settings.log.level, settings.log.format)

    controller = ServerController(create_app(settings), settings)
    try:
        result = controller.run()
    except ListenerBindError as e:
        logger.critical(e.message, extra={"error_code": e.code})
        ctx.exit(1)
    if result.timed_out:
        logger.warning("Server forced to close before in-flight requests finished")


@cli.command("show-config")
@click.pass_context
def show_config_cmd(ctx):
    """Print the effective configuration as JSON."""
    settings = load_settings(ctx.obj["config_file"])
    click.echo(json.dumps(settings.to_file_dict(), indent=2, ensure_ascii=False))


@cli.command("set-port")
@click.argument("port", type=click.IntRange(1, 65535))
@click.pass_context
def set_port_cmd(ctx, port: int):
    """Write PORT into the config file (created if missing)."""
    path = ctx.obj["config_file"] or find_config_file() or DEFAULT_CONFIG_PATH
    try:
        previous = update_config_port(path, port)
    except ConfigFileError as e:
        raise click.ClickException(e.message)
    if previous == port:
        click.echo(f"Port already {port} in {path}")
    else:
        click.echo(f"Port updated: {previous if previous is not None else '-'} -> {port} ({path})")


def main():
    cli(prog_name="app-server")


if __name__ == "__main__":
    main()
