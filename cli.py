"""
CLI for the WebSocket relay.

Provides commands for starting the relay server and for inspecting the
effective configuration.
"""

import typer
import uvicorn
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ws_relay import application
from ws_relay.exceptions import StartupValidationError
from ws_relay.logging import logger
from ws_relay.settings import Settings, app_settings
from ws_relay.startup_validation import run_all_validations

# Initialize Typer app with help text
typer_app = typer.Typer(
    name="ws-relay",
    help="WebSocket relay - broadcast every client message to the other clients",
    add_completion=False,
)
console = Console()


def _effective_settings(
    host: str | None, port: int | None, welcome: str | None = None
) -> Settings:
    update = {}
    if host is not None:
        update["RELAY_HOST"] = host
    if port is not None:
        update["RELAY_PORT"] = port
    if welcome is not None:
        update["WELCOME_MESSAGE"] = welcome
    return app_settings.model_copy(update=update)


@typer_app.command(name="serve")
def serve(
    host: str = typer.Option(
        None,
        "--host",
        help="Bind address (default: RELAY_HOST)"
    ),
    port: int = typer.Option(
        None,
        "--port",
        "-p",
        help="Bind port (default: RELAY_PORT)"
    ),
    welcome: str = typer.Option(
        None,
        "--welcome",
        help=(
            "Greeting sent to each new session "
            "(default: WELCOME_MESSAGE, no greeting when unset)"
        ),
    ),
):
    """
    Start the relay and listen until interrupted.

    Exits with status 1 if the configuration is invalid or the address is
    already in use.

    New sessions are not greeted unless --welcome or WELCOME_MESSAGE is
    set; pass --welcome "Welcome to the WebSocket server" for clients that
    wait for the classic greeting.

    Example:
        python cli.py serve --port 8080 --welcome "Welcome to the WebSocket server"
    """
    settings = _effective_settings(host, port, welcome)

    try:
        run_all_validations(settings)
    except StartupValidationError as e:
        logger.error(f"Relay startup failed: {e}")
        console.print(f"[red]✗ {e}[/red]")
        raise typer.Exit(code=1)

    console.print(
        Panel.fit(
            f"[bold cyan]Relay listening on "
            f"ws://{settings.RELAY_HOST}:{settings.RELAY_PORT}[/bold cyan]",
            border_style="cyan",
        )
    )

    # log_config=None keeps the handlers installed by ws_relay.logging
    uvicorn.run(
        application(settings),
        host=settings.RELAY_HOST,
        port=settings.RELAY_PORT,
        log_config=None,
    )


@typer_app.command(name="settings")
def show_settings():
    """
    Display the effective relay configuration.

    Values come from environment variables and the optional .env file.

    Example:
        BROADCAST_POLICY=ack python cli.py settings
    """
    table = Table(
        "Setting",
        "Value",
        title="Relay configuration",
        show_lines=True,
    )

    for name, value in app_settings.model_dump(mode="json").items():
        table.add_row(f"[cyan]{name}[/cyan]", str(value))

    console.print()
    console.print(table)
    console.print()


if __name__ == "__main__":
    typer_app()
