"""Kakao i Open Builder skill response envelopes (version 2.0)."""

from __future__ import annotations

from typing import Any

SKILL_VERSION = "2.0"
FOLLOW_UP_HEADER = "💬 이런 것이 궁금해요"
SIMPLE_TEXT_MAX_CHARS = 1000

DEFAULT_WAIT_MESSAGE = (
    "네, 질문을 확인했어요. AI가 답변을 열심히 준비하고 있으니 잠시만 기다려주세요! 🤖"
)
APOLOGY_MESSAGE = "죄송합니다, AI 답변 생성 중 오류가 발생했어요. 잠시 후 다시 시도해주세요. 😥"
INVALID_REQUEST_MESSAGE = "잘못된 요청입니다."
CONFIGURATION_ERROR_MESSAGE = "서버 설정 오류입니다. (URL 미설정)"
DISPATCH_ERROR_MESSAGE = "시스템 오류로 작업을 시작하지 못했어요."


def simple_text_response(text: str, follow_ups: list[str] | None = None) -> dict[str, Any]:
    """Main text block plus an optional listCard of quick-reply suggestions."""
    if len(text) > SIMPLE_TEXT_MAX_CHARS:
        text = text[: SIMPLE_TEXT_MAX_CHARS - 1] + "…"
    outputs: list[dict[str, Any]] = [{"simpleText": {"text": text}}]
    questions = follow_ups or []
    if questions:
        outputs.append({
            "listCard": {
                "header": {"title": FOLLOW_UP_HEADER},
                "items": [
                    {"title": q, "action": "message", "messageText": q}
                    for q in questions
                ],
            },
        })
    return {"version": SKILL_VERSION, "template": {"outputs": outputs}}


def callback_wait_response(text: str) -> dict[str, Any]:
    """Synchronous ack telling the platform the answer will arrive by callback."""
    return {"version": SKILL_VERSION, "useCallback": True, "data": {"text": text}}

