"""Gemini generateContent client and the generation error taxonomy."""

from __future__ import annotations

import logging
from typing import Any, Protocol

import httpx

from src.config import RelayConfig
from src.generation.models import Turn

logger = logging.getLogger(__name__)


class GenerationError(Exception):
    """The generation call failed or returned an unusable envelope."""


class GenerationTimeout(GenerationError):
    """The generation call exceeded its time budget and was cancelled."""


class MalformedAnswer(GenerationError):
    """The generation output could not be parsed into a structured result."""


class ProvisionalGenerationError(Exception):
    """The best-effort wait-message call failed; never surfaced to callers."""


class TextGenerator(Protocol):
    """Anything that turns a transcript into a single text blob."""

    async def generate(
        self, transcript: list[Turn], temperature: float, timeout: float,
    ) -> str: ...


class GeminiClient:
    """Calls the Gemini ``generateContent`` REST endpoint over httpx."""

    def __init__(
        self,
        config: RelayConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config
        self._transport = transport

    async def generate(
        self, transcript: list[Turn], temperature: float, timeout: float,
    ) -> str:
        self._config.require("gemini_api_key")
        url = (
            f"{self._config.gemini_base_url.rstrip('/')}"
            f"/models/{self._config.gemini_model}:generateContent"
        )
        body: dict[str, Any] = {
            "contents": [turn.to_content() for turn in transcript],
            "generationConfig": {
                "temperature": temperature,
                "responseMimeType": "application/json",
            },
        }
        headers = {
            "x-goog-api-key": self._config.gemini_api_key or "",
            "Content-Type": "application/json",
        }

        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=timeout) as client:
                resp = await client.post(url, json=body, headers=headers)
        except httpx.TimeoutException as exc:
            raise GenerationTimeout(f"Gemini call timed out after {timeout:g}s") from exc
        except httpx.HTTPError as exc:
            raise GenerationError(f"Gemini transport error: {exc}") from exc

        if resp.status_code >= 400:
            raise GenerationError(f"Gemini API error ({resp.status_code}): {resp.text[:200]}")
        return _extract_text(resp)


def _extract_text(resp: httpx.Response) -> str:
    """Pull ``candidates[0].content.parts[0].text`` out of the response envelope."""
    try:
        data = resp.json()
        text = data["candidates"][0]["content"]["parts"][0]["text"]
    except (ValueError, KeyError, IndexError, TypeError) as exc:
        raise GenerationError("Gemini returned an invalid or empty response") from exc
    if not isinstance(text, str) or not text:
        raise GenerationError("Gemini returned an invalid or empty response")
    return text
