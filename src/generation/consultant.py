"""Consultation generation — main answer and best-effort wait message.

Owns the time budgets: each call runs under ``asyncio.timeout``, which
cancels the in-flight request when the budget elapses and disarms its timer
on every exit path.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from src.generation.client import (
    GenerationTimeout,
    MalformedAnswer,
    ProvisionalGenerationError,
    TextGenerator,
)
from src.generation.models import (
    NoWaitMessage,
    ParseFailure,
    Role,
    StructuredAnswer,
    Turn,
    WaitMessage,
    WaitMessageResult,
)
from src.generation.parser import parse_answer, parse_wait_message
from src.generation.prompts import (
    CONSULT_EXAMPLE_ANSWER,
    CONSULT_TEMPERATURE,
    SYSTEM_PROMPT_HEALTH_CONSULT,
    SYSTEM_PROMPT_WAIT_MESSAGE,
    WAIT_EXAMPLE_ANSWER,
    WAIT_TEMPERATURE,
)

if TYPE_CHECKING:
    from src.config import RelayConfig

logger = logging.getLogger(__name__)


def build_transcript(instruction: str, example_answer: str, utterance: str) -> list[Turn]:
    """Instruction turn, primed model turn, then the live user turn."""
    return [
        Turn(role=Role.USER, text=instruction),
        Turn(role=Role.MODEL, text=example_answer),
        Turn(role=Role.USER, text=utterance),
    ]


def preview(text: str, limit: int = 40) -> str:
    """Shortened utterance for log lines."""
    return text if len(text) <= limit else f"{text[:limit]}…"


class Consultant:
    """Runs the two generation calls with their own prompts and budgets."""

    def __init__(self, generator: TextGenerator, config: RelayConfig) -> None:
        self._generator = generator
        self._config = config

    async def answer(self, utterance: str) -> StructuredAnswer:
        """Generate the full consultation answer.

        Raises GenerationTimeout, GenerationError or MalformedAnswer.
        """
        budget = self._config.answer_timeout
        transcript = build_transcript(
            SYSTEM_PROMPT_HEALTH_CONSULT, CONSULT_EXAMPLE_ANSWER, utterance,
        )
        try:
            async with asyncio.timeout(budget):
                raw = await self._generator.generate(transcript, CONSULT_TEMPERATURE, budget)
        except TimeoutError as exc:
            raise GenerationTimeout(f"Answer generation timed out after {budget:g}s") from exc

        result = parse_answer(raw)
        if isinstance(result, ParseFailure):
            raise MalformedAnswer(result.reason)
        return result.answer

    async def wait_message(self, utterance: str) -> WaitMessageResult:
        """Generate a provisional message; never raises."""
        try:
            return await self._request_wait_message(utterance)
        except ProvisionalGenerationError as exc:
            logger.warning("Wait message unavailable for %r: %s", preview(utterance), exc)
            return NoWaitMessage(str(exc))

    async def _request_wait_message(self, utterance: str) -> WaitMessage:
        budget = self._config.wait_timeout
        transcript = build_transcript(SYSTEM_PROMPT_WAIT_MESSAGE, WAIT_EXAMPLE_ANSWER, utterance)
        try:
            async with asyncio.timeout(budget):
                raw = await self._generator.generate(transcript, WAIT_TEMPERATURE, budget)
        except TimeoutError as exc:
            raise ProvisionalGenerationError(f"timed out after {budget:g}s") from exc
        except Exception as exc:  # any failure here only costs the dynamic text
            raise ProvisionalGenerationError(f"{type(exc).__name__}: {exc}") from exc

        result = parse_wait_message(raw)
        if isinstance(result, NoWaitMessage):
            raise ProvisionalGenerationError(result.reason)
        return result
