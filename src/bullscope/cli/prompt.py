"""Interactive Redis connection setup."""

from dataclasses import dataclass

from rich.prompt import IntPrompt, Prompt

from bullscope.cli._console import console, header, success, warning

DEFAULT_HOST = "localhost"
DEFAULT_PORT = 6379


@dataclass(frozen=True)
class ConnectionAnswers:
    host: str
    port: int
    password: str | None = None


def prompt_connection() -> ConnectionAnswers:
    """Ask for host, port and password when none were configured."""
    header("Redis Connection Setup")

    host = Prompt.ask("Redis Host", default=DEFAULT_HOST, console=console).strip()
    port = IntPrompt.ask("Redis Port", default=DEFAULT_PORT, console=console)
    if not 0 < port <= 65535:
        warning(f"Invalid port number. Using default {DEFAULT_PORT}.")
        port = DEFAULT_PORT

    password = Prompt.ask(
        "Redis Password [dim](empty for none)[/dim]",
        default="",
        show_default=False,
        password=True,
        console=console,
    )

    console.print()
    success(f"Connecting to {host or DEFAULT_HOST}:{port}...")
    console.print()

    return ConnectionAnswers(
        host=host or DEFAULT_HOST,
        port=port,
        password=password or None,
    )
