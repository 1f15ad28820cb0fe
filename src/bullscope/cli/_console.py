"""Shared console and formatting utilities."""

import logging
import os
from pathlib import Path

from rich.box import ROUNDED
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.text import Text

# Force colors unless explicitly disabled (NO_COLOR standard)
no_color = os.environ.get("NO_COLOR", "").lower() in ("1", "true", "yes")

console = Console(
    highlight=False,
    force_terminal=not no_color,
    no_color=no_color,
)


def header(title: str) -> None:
    """Print a minimal header."""
    console.print()
    console.print(f"[bold cyan]{title}[/bold cyan]")
    console.print()


def success(msg: str) -> None:
    """Print success message."""
    console.print(f"  [green]✓[/green] {msg}")


def warning(msg: str) -> None:
    """Print warning message."""
    console.print(f"  [yellow]![/yellow] {msg}")


def info(msg: str) -> None:
    """Print info message."""
    console.print(f"  [dim]→[/dim] {msg}")


def error_panel(msg: str, *, title: str = "Failed") -> None:
    """Print a styled error panel."""
    lines: list[Text] = []
    line = Text()
    line.append("✗ ", style="red bold")
    line.append(title, style="red")
    lines.append(line)
    lines.append(Text())
    lines.append(Text(msg, style="dim"))

    panel = Panel(
        Text("\n").join(lines),
        border_style="red dim",
        box=ROUNDED,
        padding=(0, 1),
        expand=False,
    )
    console.print(panel)


def setup_logging(verbose: bool = False, log_file: Path | None = None) -> None:
    """
    Configure logging for the bullscope CLI.

    With a log file, records go there in plain text so they never draw over
    the live dashboard. Otherwise they go through the rich console.
    """
    logging.getLogger("asyncio").setLevel(logging.WARNING)

    handler: logging.Handler
    if log_file is not None:
        handler = logging.FileHandler(log_file, encoding="utf-8")
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
    else:
        handler = RichHandler(
            console=console,
            show_time=False,
            show_path=False,
            rich_tracebacks=True,
            markup=False,
            keywords=[],
        )
        handler.setFormatter(logging.Formatter("%(message)s"))

    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(level=level, handlers=[handler], force=True)
    logging.getLogger("bullscope").setLevel(level)
