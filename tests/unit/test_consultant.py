"""Tests for the consultation generator: prompts, budgets and error mapping."""

from __future__ import annotations

import pytest

from src.generation.client import GenerationError, GenerationTimeout, MalformedAnswer
from src.generation.consultant import Consultant, build_transcript, preview
from src.generation.models import NoWaitMessage, Role, WaitMessage
from src.generation.prompts import (
    CONSULT_EXAMPLE_ANSWER,
    SYSTEM_PROMPT_HEALTH_CONSULT,
    SYSTEM_PROMPT_WAIT_MESSAGE,
)
from tests.conftest import StubGenerator, make_config, wait_json


def test_transcript_order() -> None:
    """Instruction, primed model answer, then the user turn."""
    turns = build_transcript("instruction", "example", "아기가 열이 나요")
    assert [t.role for t in turns] == [Role.USER, Role.MODEL, Role.USER]
    assert [t.text for t in turns] == ["instruction", "example", "아기가 열이 나요"]
    assert turns[0].to_content() == {"role": "user", "parts": [{"text": "instruction"}]}


def test_preview_truncates_long_text() -> None:
    """Log previews are capped with an ellipsis."""
    assert preview("짧은 질문") == "짧은 질문"
    assert preview("가" * 100, limit=10) == "가" * 10 + "…"


class TestAnswer:

    @pytest.mark.asyncio
    async def test_answer_uses_consult_prompt(self) -> None:
        """The answer call uses the consultation prompt and temperature."""
        generator = StubGenerator()
        consultant = Consultant(generator, make_config())

        answer = await consultant.answer("아기가 열이 나요")

        assert answer.follow_up_questions == ["해열제 먹이는 법", "병원 가야 할 때"]
        [(transcript, temperature, _)] = generator.calls
        assert transcript[0].text == SYSTEM_PROMPT_HEALTH_CONSULT
        assert transcript[1].text == CONSULT_EXAMPLE_ANSWER
        assert transcript[2].text == "아기가 열이 나요"
        assert temperature == 0.7

    @pytest.mark.asyncio
    async def test_malformed_output_raises(self) -> None:
        """Unparseable output is a MalformedAnswer."""
        consultant = Consultant(StubGenerator(answer="{oops"), make_config())
        with pytest.raises(MalformedAnswer):
            await consultant.answer("질문")

    @pytest.mark.asyncio
    async def test_timeout_raises_generation_timeout(self) -> None:
        """The answer budget cancels the in-flight call."""
        generator = StubGenerator(answer_delay=5.0)
        consultant = Consultant(generator, make_config(answer_timeout=0.05))
        with pytest.raises(GenerationTimeout):
            await consultant.answer("질문")
        assert generator.cancelled == 1

    @pytest.mark.asyncio
    async def test_generation_error_propagates(self) -> None:
        """Client errors reach the processor unchanged."""
        consultant = Consultant(StubGenerator(answer=GenerationError("503")), make_config())
        with pytest.raises(GenerationError):
            await consultant.answer("질문")

    @pytest.mark.asyncio
    async def test_timeout_does_not_leak_into_later_calls(self) -> None:
        """A finished call must leave no armed timer behind."""
        generator = StubGenerator(answer_delay=0.15)
        consultant = Consultant(generator, make_config(answer_timeout=0.3, wait_timeout=0.3))

        await consultant.answer("첫 질문")
        second = await consultant.answer("두번째 질문")

        assert second.response_text
        assert generator.cancelled == 0


class TestWaitMessage:

    @pytest.mark.asyncio
    async def test_wait_message_uses_wait_prompt(self) -> None:
        """The wait call uses its own prompt, temperature and budget."""
        generator = StubGenerator(wait=wait_json("확인 중이에요"))
        consultant = Consultant(generator, make_config(wait_timeout=2.5))

        result = await consultant.wait_message("아기가 열이 나요")

        assert result == WaitMessage("확인 중이에요")
        [(transcript, temperature, timeout)] = generator.calls
        assert transcript[0].text == SYSTEM_PROMPT_WAIT_MESSAGE
        assert temperature == 0.5
        assert timeout == 2.5

    @pytest.mark.asyncio
    async def test_timeout_returns_no_wait_message(self) -> None:
        """A slow wait call yields NoWaitMessage instead of raising."""
        generator = StubGenerator(wait_delay=5.0)
        consultant = Consultant(generator, make_config(wait_timeout=0.05))

        result = await consultant.wait_message("질문")

        assert isinstance(result, NoWaitMessage)
        assert "timed out" in result.reason

    @pytest.mark.asyncio
    async def test_any_exception_returns_no_wait_message(self) -> None:
        """Unexpected wait-call errors are contained."""
        consultant = Consultant(StubGenerator(wait=KeyError("candidates")), make_config())

        result = await consultant.wait_message("질문")

        assert isinstance(result, NoWaitMessage)
        assert "KeyError" in result.reason
