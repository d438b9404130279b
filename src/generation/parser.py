"""Parse raw generation output into tagged results, once, at the boundary."""

from __future__ import annotations

import json
import re
from typing import Any

from src.generation.models import (
    AnswerParseResult,
    NoWaitMessage,
    ParsedAnswer,
    ParseFailure,
    StructuredAnswer,
    WaitMessage,
    WaitMessageResult,
)

MAX_FOLLOW_UPS = 2
MAX_WAIT_TEXT_CHARS = 150

_CODE_FENCE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL | re.IGNORECASE)


def _load_object(raw: str) -> dict[str, Any]:
    text = raw.strip()
    fenced = _CODE_FENCE.match(text)
    if fenced:
        text = fenced.group(1)
    data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError(f"expected a JSON object, got {type(data).__name__}")
    return data


def parse_answer(raw: str) -> AnswerParseResult:
    """Parse the consultation output ``{response_text, follow_up_questions}``.

    More than two follow-ups are cut to two; fewer (or none) are accepted.
    """
    try:
        data = _load_object(raw)
    except ValueError as exc:
        return ParseFailure(f"invalid JSON: {exc}")

    text = data.get("response_text")
    if not isinstance(text, str) or not text.strip():
        return ParseFailure("response_text missing or empty")

    questions = data.get("follow_up_questions")
    if questions is None:
        questions = []
    if not isinstance(questions, list) or not all(isinstance(q, str) for q in questions):
        return ParseFailure("follow_up_questions must be a list of strings")

    cleaned = [q for q in questions if q.strip()][:MAX_FOLLOW_UPS]
    return ParsedAnswer(StructuredAnswer(response_text=text, follow_up_questions=cleaned))


def parse_wait_message(raw: str) -> WaitMessageResult:
    """Parse the provisional-message output ``{wait_text}``."""
    try:
        data = _load_object(raw)
    except ValueError as exc:
        return NoWaitMessage(f"invalid JSON: {exc}")

    text = data.get("wait_text")
    if not isinstance(text, str) or not text.strip():
        return NoWaitMessage("wait_text missing or empty")
    text = text.strip()
    if len(text) > MAX_WAIT_TEXT_CHARS:
        return NoWaitMessage(f"wait_text too long ({len(text)} chars)")
    return WaitMessage(text)
