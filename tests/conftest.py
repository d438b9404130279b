"""Shared test fixtures for kakao-callback-relay."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.audit.logger import AuditLogger
from src.config import RelayConfig
from src.dispatch.base import JobDispatcher
from src.generation.models import Turn
from src.generation.prompts import SYSTEM_PROMPT_WAIT_MESSAGE
from src.skill.callback import CallbackClient

CALLBACK_URL = "https://bot-api.kakao.com/callback/abc123"
PROCESS_JOB_URL = "https://relay.example.run.app/api/process-job"

WELL_FORMED_ANSWER = json.dumps({
    "response_text": "아기 열은 이렇게 관리해요.\n\n🌡️ 열 재기\n• 겨드랑이로 재요",
    "follow_up_questions": ["해열제 먹이는 법", "병원 가야 할 때"],
}, ensure_ascii=False)


def rendered_text(payload: dict[str, Any]) -> str:
    """The simpleText of a rendered skill payload."""
    return payload["template"]["outputs"][0]["simpleText"]["text"]


def rendered_follow_ups(payload: dict[str, Any]) -> list[str]:
    """Quick-reply texts of a rendered skill payload, in order."""
    for output in payload["template"]["outputs"]:
        if "listCard" in output:
            return [item["messageText"] for item in output["listCard"]["items"]]
    return []


def read_audit_log(log_path: Path) -> list[dict[str, Any]]:
    """All events of an audit log file, oldest first."""
    if not log_path.exists():
        return []
    return [json.loads(line) for line in log_path.read_text().splitlines() if line]


def make_config(**kwargs: Any) -> RelayConfig:
    """Factory for RelayConfig with everything needed for the happy path."""
    defaults: dict[str, Any] = {
        "gemini_api_key": "test-key",
        "gcp_project": "test-project",
        "gcp_location": "asia-northeast3",
        "task_queue_name": "skill-jobs",
        "process_job_url": PROCESS_JOB_URL,
        "dispatcher": "inline",
        "wait_timeout": 0.5,
        "answer_timeout": 1.0,
    }
    defaults.update(kwargs)
    return RelayConfig(**defaults)


def make_skill_payload(
    utterance: str | None = "아기가 열이 나요",
    callback_url: str | None = CALLBACK_URL,
) -> dict[str, Any]:
    """Kakao i Open Builder skill request body (trimmed to what the relay reads)."""
    user_request: dict[str, Any] = {"timezone": "Asia/Seoul", "user": {"id": "u1"}}
    if utterance is not None:
        user_request["utterance"] = utterance
    if callback_url is not None:
        user_request["callbackUrl"] = callback_url
    return {"intent": {"name": "fallback"}, "userRequest": user_request}


def make_job_payload(**kwargs: Any) -> dict[str, Any]:
    defaults: dict[str, Any] = {"userInput": "아기가 열이 나요", "callbackUrl": CALLBACK_URL}
    defaults.update(kwargs)
    return defaults


def wait_json(text: str) -> str:
    return json.dumps({"wait_text": text}, ensure_ascii=False)


class StubGenerator:
    """TextGenerator double; answers wait and consult transcripts separately.

    Each of ``wait``/``answer`` is either the raw text to return or an
    exception to raise. ``*_delay`` sleeps before answering.
    """

    def __init__(
        self,
        wait: str | Exception = '{"wait_text": "잠시만요"}',
        answer: str | Exception = WELL_FORMED_ANSWER,
        wait_delay: float = 0.0,
        answer_delay: float = 0.0,
    ) -> None:
        self.wait = wait
        self.answer = answer
        self.wait_delay = wait_delay
        self.answer_delay = answer_delay
        self.calls: list[tuple[list[Turn], float, float]] = []
        self.cancelled = 0

    async def generate(self, transcript: list[Turn], temperature: float, timeout: float) -> str:
        self.calls.append((transcript, temperature, timeout))
        is_wait = transcript[0].text == SYSTEM_PROMPT_WAIT_MESSAGE
        delay = self.wait_delay if is_wait else self.answer_delay
        result = self.wait if is_wait else self.answer
        if delay:
            try:
                await asyncio.sleep(delay)
            except asyncio.CancelledError:
                self.cancelled += 1
                raise
        if isinstance(result, Exception):
            raise result
        return result

    @property
    def wait_calls(self) -> int:
        return sum(1 for t, _, _ in self.calls if t[0].text == SYSTEM_PROMPT_WAIT_MESSAGE)

    @property
    def answer_calls(self) -> int:
        return len(self.calls) - self.wait_calls


class RecordingDispatcher(JobDispatcher):
    """JobDispatcher double that records submissions or fails on demand."""

    name = "recording"

    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.submitted: list[tuple[Any, str, str | None]] = []

    async def submit(self, job: Any, target_url: str, job_id: str | None = None) -> None:
        if self.error is not None:
            raise self.error
        self.submitted.append((job, target_url, job_id))


@pytest.fixture
def mock_audit_logger() -> MagicMock:
    return MagicMock(spec=AuditLogger)


@pytest.fixture
def callback_client() -> AsyncMock:
    """CallbackClient double; ``deliver`` records calls and succeeds by default."""
    client = AsyncMock(spec=CallbackClient)
    client.deliver.return_value = None
    return client
