from __future__ import annotations

import importlib
import logging
from pathlib import Path
from typing import Any

import pytest
from typer.testing import CliRunner

from bullscope import __version__
from bullscope.cli import app
from bullscope.cli._console import setup_logging
from bullscope.cli.prompt import ConnectionAnswers
from bullscope.config import Settings

cli_module = importlib.import_module("bullscope.cli")
app_module = importlib.import_module("bullscope.ui.app")
prompt_module = importlib.import_module("bullscope.cli.prompt")

ENV_VARS = (
    "REDIS_HOST",
    "REDIS_PORT",
    "REDIS_PASSWORD",
    "REDIS_DB",
    "POLL_INTERVAL",
    "QUEUE_NAMES",
    "BULLMQ_PREFIX",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def captured(monkeypatch: pytest.MonkeyPatch) -> list[Settings]:
    """Replace the dashboard with a recorder of the settings it would get."""
    calls: list[Settings] = []

    async def fake_run_dashboard(settings: Settings, **_: Any) -> None:
        calls.append(settings)

    monkeypatch.setattr(app_module, "run_dashboard", fake_run_dashboard)
    monkeypatch.setattr(cli_module, "setup_logging", lambda *args, **kwargs: None)
    return calls


def test_cli_help_and_version() -> None:
    runner = CliRunner()

    help_result = runner.invoke(app, ["--help"])
    assert help_result.exit_code == 0
    assert "--redis-host" in help_result.output
    assert "--poll-interval" in help_result.output

    version_result = runner.invoke(app, ["--version"])
    assert version_result.exit_code == 0
    assert __version__ in version_result.output


def test_cli_options_reach_settings(captured: list[Settings]) -> None:
    result = CliRunner().invoke(
        app,
        [
            "--redis-host",
            "redis.internal",
            "--redis-port",
            "6380",
            "--redis-db",
            "3",
            "--poll-interval",
            "1000",
            "--queues",
            "emails,reports",
            "--prefix",
            "acme",
        ],
    )

    assert result.exit_code == 0, result.output
    [settings] = captured
    assert settings.redis_host == "redis.internal"
    assert settings.redis_port == 6380
    assert settings.redis_db == 3
    assert settings.poll_interval == 1000
    assert settings.queues == ["emails", "reports"]
    assert settings.bullmq_prefix == "acme"


def test_cli_falls_back_to_environment(
    captured: list[Settings], monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("REDIS_HOST", "from-env")
    monkeypatch.setenv("REDIS_PORT", "7001")

    result = CliRunner().invoke(app, ["--redis-port", "7002"])

    assert result.exit_code == 0, result.output
    [settings] = captured
    assert settings.redis_host == "from-env"
    assert settings.redis_port == 7002


def test_cli_prompts_when_no_host_configured(
    captured: list[Settings], monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(
        cli_module,
        "prompt_connection",
        lambda: ConnectionAnswers(host="prompted", port=6390, password="pw"),
    )

    result = CliRunner().invoke(app, ["--redis-db", "1"])

    assert result.exit_code == 0, result.output
    [settings] = captured
    assert settings.redis_host == "prompted"
    assert settings.redis_port == 6390
    assert settings.redis_password == "pw"
    assert settings.redis_db == 1


def test_cli_reports_invalid_configuration(captured: list[Settings]) -> None:
    result = CliRunner().invoke(app, ["--redis-host", "h", "--redis-port", "0"])

    assert result.exit_code == 1
    assert "Configuration error" in result.output
    assert "redis_port" in result.output
    assert captured == []


def test_cli_reports_startup_failure(monkeypatch: pytest.MonkeyPatch) -> None:
    async def broken(settings: Settings, **_: Any) -> None:
        raise RuntimeError("terminal unavailable")

    monkeypatch.setattr(app_module, "run_dashboard", broken)
    monkeypatch.setattr(cli_module, "setup_logging", lambda *args, **kwargs: None)

    result = CliRunner().invoke(app, ["--redis-host", "h"])

    assert result.exit_code == 1
    assert "terminal unavailable" in result.output


def test_setup_logging_writes_to_file(tmp_path: Path) -> None:
    log_file = tmp_path / "bullscope.log"

    setup_logging(verbose=True, log_file=log_file)
    try:
        logging.getLogger("bullscope.test").debug("poll finished")
        for handler in logging.getLogger().handlers:
            handler.flush()
    finally:
        for handler in logging.getLogger().handlers:
            handler.close()
        logging.basicConfig(handlers=[logging.NullHandler()], force=True)

    assert "poll finished" in log_file.read_text()
    assert logging.getLogger("bullscope").level == logging.DEBUG


def test_prompt_connection_falls_back_on_invalid_port(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    answers = {"Redis Host": " cache.local ", "Redis Password": ""}

    def ask_text(prompt: str, **_: Any) -> str:
        return next(value for label, value in answers.items() if prompt.startswith(label))

    monkeypatch.setattr(prompt_module.Prompt, "ask", ask_text)
    monkeypatch.setattr(prompt_module.IntPrompt, "ask", lambda *args, **kwargs: 70000)

    result = prompt_module.prompt_connection()

    assert result == ConnectionAnswers(host="cache.local", port=6379, password=None)
    output = capsys.readouterr().out
    assert "Redis Connection Setup" in output
    assert "Invalid port number" in output
    assert "Connecting to cache.local:6379" in output
