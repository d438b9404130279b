"""Data models for generation requests and their parsed results."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Role(str, Enum):
    USER = "user"
    MODEL = "model"


class Turn(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: Role
    text: str

    def to_content(self) -> dict[str, Any]:
        return {"role": self.role.value, "parts": [{"text": self.text}]}


class StructuredAnswer(BaseModel):
    """Parsed consultation answer: display text plus follow-up suggestions."""

    model_config = ConfigDict(frozen=True)

    response_text: str = Field(min_length=1)
    follow_up_questions: list[str] = Field(default_factory=list)


# --- Tagged parse results ---


@dataclass(frozen=True)
class ParsedAnswer:
    answer: StructuredAnswer


@dataclass(frozen=True)
class ParseFailure:
    reason: str


@dataclass(frozen=True)
class WaitMessage:
    text: str


@dataclass(frozen=True)
class NoWaitMessage:
    reason: str


AnswerParseResult = ParsedAnswer | ParseFailure
WaitMessageResult = WaitMessage | NoWaitMessage
