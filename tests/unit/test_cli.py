"""Tests for the relay CLI."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, MagicMock, patch

from click.testing import CliRunner

from src.cli import cli
from tests.conftest import CALLBACK_URL, PROCESS_JOB_URL, StubGenerator

BASE_ENV = {
    "GEMINI_API_KEY": "cli-secret-key",
    "JOB_DISPATCHER": "inline",
    "PROCESS_JOB_FUNCTION_URL": PROCESS_JOB_URL,
    "CLOUD_RUN_URL": "",
    "JOB_AUTH_TOKEN": "",
}


def _env(**overrides: str) -> dict[str, str]:
    env = dict(BASE_ENV)
    env.update(overrides)
    return env


def test_config_command_masks_secrets() -> None:
    result = CliRunner().invoke(cli, ["config"], env=_env())
    assert result.exit_code == 0
    data = json.loads(result.output)
    assert data["gemini_api_key"] == "***"
    assert data["dispatcher"] == "inline"
    assert "cli-secret-key" not in result.output


def test_invalid_environment_fails_cleanly() -> None:
    result = CliRunner().invoke(cli, ["config"], env=_env(WAIT_TIMEOUT_SECONDS="9"))
    assert result.exit_code != 0
    assert "Invalid configuration" in result.output


def test_ask_prints_structured_answer() -> None:
    with patch("src.cli.GeminiClient", return_value=StubGenerator()):
        result = CliRunner().invoke(cli, ["ask", "아기가 열이 나요"], env=_env())
    assert result.exit_code == 0
    data = json.loads(result.output)
    assert data["follow_up_questions"] == ["해열제 먹이는 법", "병원 가야 할 때"]


def test_ask_wait_prints_wait_text() -> None:
    generator = StubGenerator(wait='{"wait_text": "확인하고 있어요"}')
    with patch("src.cli.GeminiClient", return_value=generator):
        result = CliRunner().invoke(cli, ["ask", "--wait", "질문"], env=_env())
    assert result.exit_code == 0
    assert result.output.strip() == "확인하고 있어요"
    assert generator.answer_calls == 0


def test_ask_reports_generation_failure() -> None:
    with patch("src.cli.GeminiClient", return_value=StubGenerator(answer="{bad")):
        result = CliRunner().invoke(cli, ["ask", "질문"], env=_env())
    assert result.exit_code == 1
    assert "MalformedAnswer" in result.output


def test_enqueue_inline_runs_job_to_completion() -> None:
    callback_client = MagicMock()
    callback_client.deliver = AsyncMock()
    with patch("src.server.app.GeminiClient", return_value=StubGenerator()), \
            patch("src.server.app.CallbackClient", return_value=callback_client):
        result = CliRunner().invoke(cli, ["enqueue", "아기가 열이 나요", CALLBACK_URL], env=_env())

    assert result.exit_code == 0, result.output
    assert "via inline" in result.output
    callback_client.deliver.assert_awaited_once()
    assert callback_client.deliver.call_args.args[0] == CALLBACK_URL


def test_enqueue_without_job_url_fails() -> None:
    env = _env(PROCESS_JOB_FUNCTION_URL="")
    result = CliRunner().invoke(cli, ["enqueue", "질문", CALLBACK_URL], env=env)
    assert result.exit_code == 1
    assert "PROCESS_JOB_FUNCTION_URL" in result.output


def test_enqueue_cloud_tasks_without_queue_settings_fails() -> None:
    env = _env(JOB_DISPATCHER="cloud_tasks", GCP_PROJECT="", TASK_QUEUE_NAME="")
    result = CliRunner().invoke(cli, ["enqueue", "질문", CALLBACK_URL], env=env)
    assert result.exit_code == 1
    assert "ConfigurationError" in result.output


def test_serve_runs_app_factory() -> None:
    with patch("src.cli.uvicorn.run") as run:
        result = CliRunner().invoke(cli, ["serve"], env=_env(PORT="9090"))
    assert result.exit_code == 0
    run.assert_called_once_with(
        "src.server.app:create_app_from_env", factory=True, host="0.0.0.0", port=9090,
    )
