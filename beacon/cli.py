"""Beacon CLI - run a discovery server or send a probe from the command line."""

import asyncio
import logging
import sys

import click
import structlog
from pydantic import ValidationError
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from beacon import __version__
from beacon.core.domain.models import (
    BUFFER_SIZE,
    DEFAULT_BROADCAST_ADDRESS,
    DEFAULT_PORT,
    ENCODING,
    BeaconError,
    ClientConfiguration,
    ClientMessage,
    ServerConfiguration,
    ServerResponse,
)
from beacon.discovery.client import DiscoveryClient
from beacon.discovery.registry import ServerRegistry

console = Console()

LOG_LEVELS = ["debug", "info", "warning", "error"]


def configure_logging(level: str) -> None:
    """Only emit structlog events at or above the given level."""
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level.upper())
        ),
    )


def _print_validation_error(error: ValidationError) -> None:
    for item in error.errors():
        field = ".".join(str(part) for part in item["loc"]) or "configuration"
        console.print(f"[red]Error:[/red] {field}: {item['msg']}")


@click.group()
@click.version_option(version=__version__, prog_name="Beacon")
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS),
    default="warning",
    envvar="BEACON_LOG_LEVEL",
    show_default=True,
    help="Minimum level of log events",
)
def main(log_level: str) -> None:
    """Beacon - UDP broadcast discovery."""
    configure_logging(log_level)


@main.command()
@click.option("--port", "-p", type=int, default=DEFAULT_PORT, envvar="BEACON_PORT", show_default=True, help="UDP port to listen on")
@click.option("--response", "-r", required=True, help="Reply sent to accepted clients")
@click.option("--accept", "-a", multiple=True, help="Message to accept (repeatable); accepts everything if omitted")
@click.pass_context
def serve(ctx: click.Context, port: int, response: str, accept: tuple[str, ...]) -> None:
    """Answer broadcast probes until interrupted.

    Example:
        beacon serve --response "Hello Client" --accept "Hello Server"
    """
    accepted = frozenset(accept)

    def message_filter(text: str) -> bool:
        return not accepted or text in accepted

    try:
        configuration = ServerConfiguration(
            port=port,
            response_message=response,
            filter=message_filter,
        )
    except ValidationError as e:
        _print_validation_error(e)
        ctx.exit(2)

    console.print(Panel.fit(
        f"[bold green]Beacon server[/bold green]\n\n"
        f"Port: [cyan]{port}[/cyan]\n"
        f"Response: [cyan]{response}[/cyan]\n"
        f"Accepts: [cyan]{', '.join(sorted(accepted)) or 'everything'}[/cyan]",
        title="Beacon Serve",
    ))

    try:
        asyncio.run(_serve(configuration))
    except BeaconError as e:
        console.print(f"[red]Error:[/red] {e}")
        ctx.exit(1)
    except KeyboardInterrupt:
        console.print("[yellow]Stopped.[/yellow]")


async def _serve(configuration: ServerConfiguration) -> None:
    def on_received(message: ClientMessage) -> None:
        console.print(
            f"  [green]✓[/green] [cyan]{message.address}[/cyan] sent "
            f"'{message.message}', replied '{message.configuration.response_message}'"
        )

    async with ServerRegistry() as registry:
        registry.client_message_received.subscribe(on_received)
        await registry.start(configuration)
        await asyncio.Event().wait()


@main.command()
@click.option("--port", "-p", type=int, default=DEFAULT_PORT, envvar="BEACON_PORT", show_default=True, help="UDP port to broadcast on")
@click.option("--message", "-m", required=True, help="Probe message")
@click.option("--timeout", "-t", type=float, default=10.0, show_default=True, help="Seconds to wait for a reply")
@click.option("--broadcast-address", "-b", default=DEFAULT_BROADCAST_ADDRESS, show_default=True, help="Destination address of the probe")
@click.pass_context
def probe(ctx: click.Context, port: int, message: str, timeout: float, broadcast_address: str) -> None:
    """Broadcast one probe and print the first reply.

    Exits with status 1 if no server replied in time.

    Example:
        beacon probe --message "Hello Server" --timeout 3
    """
    try:
        configuration = ClientConfiguration(
            port=port,
            message=message,
            timeout=timeout,
            broadcast_address=broadcast_address,
        )
    except ValidationError as e:
        _print_validation_error(e)
        ctx.exit(2)

    try:
        response = asyncio.run(DiscoveryClient().probe(configuration))
    except OSError as e:
        console.print(f"[red]Error:[/red] could not send probe: {e}")
        ctx.exit(1)

    if response is None:
        console.print(f"[yellow]No reply within {timeout}s on port {port}.[/yellow]")
        ctx.exit(1)

    _print_response(response)


def _print_response(response: ServerResponse) -> None:
    table = Table(title="Server Response")
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Address", str(response.address))
    table.add_row("Port", str(response.configuration.port))
    table.add_row("Sent", response.configuration.message)
    table.add_row("Reply", response.message)

    console.print(table)


@main.command()
def info() -> None:
    """Show Beacon protocol information."""
    table = Table(title="Beacon Info")
    table.add_column("Component", style="cyan")
    table.add_column("Value", style="white")

    table.add_row("Version", __version__)
    table.add_row("Python", sys.version.split()[0])
    table.add_row("Transport", "UDP broadcast, unicast reply")
    table.add_row("Default port", str(DEFAULT_PORT))
    table.add_row("Broadcast address", DEFAULT_BROADCAST_ADDRESS)
    table.add_row("Encoding", ENCODING)
    table.add_row("Max datagram", f"{BUFFER_SIZE} bytes")

    console.print(table)


if __name__ == "__main__":
    main()
