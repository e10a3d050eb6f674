"""
CLI commands for the trade demo backend.

Operator checks for the startup configuration and the MongoDB connection.
"""

import asyncio
import os
import sys
from functools import wraps
from typing import Callable

import click
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from trade_demo_backend import __version__
from trade_demo_backend.config.environment import is_dev_mode
from trade_demo_backend.config.logging import configure_logging
from trade_demo_backend.config.settings import load_app_settings, load_mongo_settings
from trade_demo_backend.db.factory import MotorClientFactory
from trade_demo_backend.exceptions import ConfigurationError, DatabaseConnectionError

console = Console()


def async_command(f: Callable) -> Callable:
    """Decorator to run async functions in Click commands."""

    @wraps(f)
    def wrapper(*args, **kwargs):
        return asyncio.run(f(*args, **kwargs))

    return wrapper


def handle_errors(f: Callable) -> Callable:
    """Decorator to report database layer errors and exit non-zero."""

    @wraps(f)
    def wrapper(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except ConfigurationError as e:
            console.print(f"[red]Configuration error:[/red] {e}")
            sys.exit(2)
        except DatabaseConnectionError as e:
            console.print(f"[red]Connection error:[/red] {e}")
            sys.exit(1)

    return wrapper


@click.group()
@click.version_option(version=__version__, prog_name="trade-demo-db")
@click.option("--log-level", default="WARNING", show_default=True, help="Logging level.")
@handle_errors
def cli(log_level: str):
    """Trade Demo Backend - database tooling."""
    app_settings = load_app_settings()
    configure_logging(log_level, "console" if app_settings.dev_mode else app_settings.log_format)


@cli.command("env")
@handle_errors
def show_env():
    """Show the resolved MongoDB settings and dev-mode decision."""
    dev_mode = is_dev_mode(os.environ)
    settings = load_mongo_settings()

    table = Table(title="MongoDB Settings", box=box.ROUNDED)
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Dev mode", "yes" if dev_mode else "no")
    table.add_row("Endpoint", settings.endpoint)
    table.add_row("Database", settings.database)
    table.add_row("Username", settings.username or "-")
    table.add_row("Password", "********" if settings.password is not None else "-")
    table.add_row("Read preference", settings.read_preference)
    table.add_row("Write concern", settings.write_concern)
    table.add_row("Pool size", f"{settings.min_pool_size}-{settings.max_pool_size}")
    table.add_row("TLS", "enabled" if settings.tls_enabled else "disabled")

    console.print(table)


@cli.command("check")
@handle_errors
@async_command
async def check():
    """Connect to MongoDB and report its health (same as 'db status')."""
    await report_health()


@cli.group()
def db():
    """Database connection commands."""
    pass


@db.command("status")
@handle_errors
@async_command
async def db_status():
    """Connect to MongoDB and report its health."""
    await report_health()


async def report_health() -> None:
    """Build a factory, connect, print the health report and exit 1 if unhealthy."""
    async with MotorClientFactory() as factory:
        await factory.get_client()
        health = await factory.health_check()

    if health["healthy"]:
        console.print(
            Panel(
                f"[green]Connected[/green]\n"
                f"Server: MongoDB {health.get('server_version', 'unknown')}\n"
                f"Latency: {health.get('latency_ms', 'N/A')} ms",
                title="Database Status",
                border_style="green",
            )
        )
    else:
        console.print(
            Panel(
                f"[red]Unhealthy[/red]\nError: {health.get('error', 'Unknown')}",
                title="Database Status",
                border_style="red",
            )
        )
        sys.exit(1)


@db.command("collections")
@handle_errors
@async_command
async def db_collections():
    """List the collections of the configured database."""
    async with MotorClientFactory() as factory:
        client = await factory.get_client()
        names = await client[factory.settings.database].list_collection_names()

    table = Table(title=f"Collections in {factory.settings.database}", box=box.ROUNDED)
    table.add_column("Name", style="cyan")
    for name in sorted(names):
        table.add_row(name)

    console.print(table)
    console.print(f"{len(names)} collection(s) in {factory.settings.database}")


if __name__ == "__main__":
    cli()
