"""Command-line interface for the Xray sidecar.

This module provides the entry points of the sidecar, handling:
- Configuration from environment variables and command-line overrides
- Rendering the Xray config template
- Starting the periodic Telegram reporter when configured
- Serving the status API and the Telegram webhook
- Launching and supervising the xray process

Example:
    # Run from command line:
    $ xray-sidecar run --webhook-port 8081
    $ xray-sidecar status
"""

import dataclasses
import os
from pathlib import Path

import typer
from loguru import logger
from rich.console import Console
from rich.table import Table

from xray_sidecar import __version__
from xray_sidecar.core.config import SidecarConfig, parse_address
from xray_sidecar.core.exceptions import SidecarError, StatsError
from xray_sidecar.core.lib import ApiServer, Reporter, StatsSource, TelegramNotifier, create_app
from xray_sidecar.core.supervisor import XraySupervisor
from xray_sidecar.core.template import (
    DEFAULT_OUTPUT_PATH,
    DEFAULT_TEMPLATE_PATH,
    render_config_file,
    template_values,
)
from xray_sidecar.core.utils.log_config import configure_logging
from xray_sidecar.core.utils.utils import format_bytes

console = Console()
app = typer.Typer(help="Companion process for Xray: config templating, supervision and traffic stats")


def load_config(
    webhook_host: str | None = None,
    webhook_port: int | None = None,
    stats_addr: str | None = None,
    report_interval: float | None = None,
    stats_timeout: float | None = None,
    notify_timeout: float | None = None,
) -> SidecarConfig:
    """Read the environment and apply command-line overrides.

    Options left at None keep the environment value. Credentials (`BOT_TOKEN`,
    `CHAT_ID`) are only read from the environment.
    """
    try:
        config = SidecarConfig.from_env()
        overrides: dict[str, object] = {}
        if webhook_host is not None:
            overrides["webhook_host"] = webhook_host
        if webhook_port is not None:
            overrides["webhook_port"] = webhook_port
        if stats_addr is not None:
            overrides["stats_host"], overrides["stats_port"] = parse_address(stats_addr)
        if report_interval is not None:
            overrides["report_interval"] = report_interval
        if stats_timeout is not None:
            overrides["stats_timeout"] = stats_timeout
        if notify_timeout is not None:
            overrides["notify_timeout"] = notify_timeout
        return dataclasses.replace(config, **overrides)
    except ValueError as e:
        console.print(f"[red]Invalid configuration: {e}")
        raise typer.Exit(code=1) from e


@app.callback(invoke_without_command=True)
def version_callback():
    """Show version information."""
    console.print(f"[cyan]Xray Sidecar v{__version__}[/cyan]")


@app.command(name="render")
def render(
    template: Path = typer.Option(DEFAULT_TEMPLATE_PATH, "--template", help="Config template path"),
    output: Path = typer.Option(DEFAULT_OUTPUT_PATH, "--output", help="Rendered config path"),
):
    """Render the Xray config from its template."""
    configure_logging(log_dir=None)
    try:
        render_config_file(template, output, template_values(os.environ))
    except SidecarError as e:
        console.print(f"[red]Error: {e}")
        raise typer.Exit(code=1) from e
    console.print(f"[green]Config written to {output}")


@app.command(name="status")
def status(
    stats_addr: str | None = typer.Option(None, "--stats-addr", help="Stats service host:port"),
    stats_timeout: float | None = typer.Option(
        None, "--stats-timeout", help="Seconds allowed for one stats query"
    ),
):
    """Print the current connection and traffic counters."""
    configure_logging(log_dir=None)
    config = load_config(stats_addr=stats_addr, stats_timeout=stats_timeout)
    try:
        info = StatsSource.from_config(config).snapshot()
    except StatsError as e:
        console.print(f"[red]Error getting stats: {e}")
        raise typer.Exit(code=1) from e

    table = Table(title=f"Xray stats ({config.stats_host}:{config.stats_port})", show_header=False)
    table.add_column("Property", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Active Connections", str(info.active_connections))
    table.add_row("Upload", format_bytes(info.upload_bytes))
    table.add_row("Download", format_bytes(info.download_bytes))
    table.add_row("Total", format_bytes(info.total_bytes))
    console.print(table)


@app.command(name="run")
def run(
    template: Path = typer.Option(DEFAULT_TEMPLATE_PATH, "--template", help="Config template path"),
    output: Path = typer.Option(DEFAULT_OUTPUT_PATH, "--output", help="Rendered config path"),
    webhook_host: str | None = typer.Option(None, "--webhook-host", help="HTTP listen address"),
    webhook_port: int | None = typer.Option(None, "--webhook-port", help="HTTP listen port"),
    stats_addr: str | None = typer.Option(None, "--stats-addr", help="Stats service host:port"),
    report_interval: float | None = typer.Option(
        None, "--report-interval", help="Seconds between Telegram reports"
    ),
    stats_timeout: float | None = typer.Option(
        None, "--stats-timeout", help="Seconds allowed for one stats query"
    ),
    notify_timeout: float | None = typer.Option(
        None, "--notify-timeout", help="Seconds allowed for one Telegram call"
    ),
    binary: str = typer.Option("xray", "--xray", help="xray executable"),
    debug: bool = typer.Option(
        default=False,
        help="Enable debug logging",
    ),
):
    """Render the config, start the HTTP surface and reporter, then run xray."""
    configure_logging(debug=debug)
    config = load_config(
        webhook_host, webhook_port, stats_addr, report_interval, stats_timeout, notify_timeout
    )

    try:
        render_config_file(template, output, template_values(os.environ))
    except SidecarError as e:
        logger.error(str(e))
        console.print(f"[red]Error: {e}")
        raise typer.Exit(code=1) from e

    stats_source = StatsSource.from_config(config)
    notifier = TelegramNotifier(timeout=config.notify_timeout)

    if config.notification_target is not None:
        Reporter(config, stats_source, notifier).start()
    else:
        logger.info("[Monitor] Telegram not configured, monitoring disabled")

    ApiServer(
        create_app(config, stats_source, notifier),
        config.webhook_host,
        config.webhook_port,
        log_level="debug" if debug else "info",
    ).start()

    supervisor = XraySupervisor(output, binary=binary)
    try:
        supervisor.start()
    except SidecarError as e:
        logger.error(str(e))
        console.print(f"[red]Error: {e}")
        raise typer.Exit(code=1) from e

    supervisor.install_signal_handlers()
    try:
        supervisor.wait()
    finally:
        supervisor.stop()


if __name__ == "__main__":
    app()
