"""bullscope CLI."""

import asyncio
from pathlib import Path

import typer
from pydantic import ValidationError

from bullscope.cli._console import console, error_panel, info, setup_logging
from bullscope.cli.prompt import prompt_connection
from bullscope.config import has_redis_host_config, load_settings

app = typer.Typer(
    name="bullscope",
    help="Terminal dashboard for BullMQ queues in Redis.",
    rich_markup_mode="rich",
    add_completion=False,
)


def _version_callback(value: bool) -> None:
    if value:
        from bullscope import __version__

        console.print(f"[bold]bullscope[/bold] [dim]{__version__}[/dim]")
        raise typer.Exit()


def _format_validation_error(e: ValidationError) -> str:
    lines = []
    for err in e.errors():
        field = ".".join(str(part) for part in err["loc"]) or "settings"
        lines.append(f"{field}: {err['msg']}")
    return "\n".join(lines)


@app.command()
def main(
    redis_host: str | None = typer.Option(
        None, "--redis-host", help="Redis host [env: REDIS_HOST]"
    ),
    redis_port: int | None = typer.Option(
        None, "--redis-port", help="Redis port [env: REDIS_PORT]"
    ),
    redis_password: str | None = typer.Option(
        None, "--redis-password", help="Redis password [env: REDIS_PASSWORD]"
    ),
    redis_db: int | None = typer.Option(
        None, "--redis-db", help="Redis database number [env: REDIS_DB]"
    ),
    poll_interval: int | None = typer.Option(
        None, "--poll-interval", help="Poll interval in ms [env: POLL_INTERVAL]"
    ),
    queues: str | None = typer.Option(
        None,
        "--queues",
        help="Comma-separated queue names; skips discovery [env: QUEUE_NAMES]",
    ),
    prefix: str | None = typer.Option(
        None, "--prefix", help="BullMQ key prefix [env: BULLMQ_PREFIX]"
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging"),
    log_file: Path | None = typer.Option(
        None, "--log-file", help="Write logs to this file instead of the terminal"
    ),
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        callback=_version_callback,
        is_eager=True,
        help="Show version",
    ),
) -> None:
    """Monitor BullMQ queues, jobs and job schedulers."""
    setup_logging(verbose, log_file)

    if not has_redis_host_config(redis_host):
        answers = prompt_connection()
        redis_host = answers.host
        redis_port = answers.port
        redis_password = answers.password

    try:
        settings = load_settings(
            redis_host=redis_host,
            redis_port=redis_port,
            redis_password=redis_password,
            redis_db=redis_db,
            poll_interval=poll_interval,
            queue_names=queues,
            bullmq_prefix=prefix,
        )
    except ValidationError as e:
        error_panel(_format_validation_error(e), title="Configuration error")
        raise typer.Exit(1) from None

    info(f"Connecting to Redis at {settings.redis_host}:{settings.redis_port}...")

    from bullscope.ui.app import run_dashboard

    try:
        asyncio.run(run_dashboard(settings, console=console))
    except KeyboardInterrupt:
        pass
    except Exception as e:
        error_panel(str(e) or type(e).__name__, title="Failed to start application")
        raise typer.Exit(1) from None
