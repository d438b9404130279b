"""Data models for the skill intake and job processing phases."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError


class InvalidRequest(Exception):
    """Raised when a required inbound field is missing or empty."""

    def __init__(self, missing: list[str]) -> None:
        self.missing = missing
        super().__init__(f"Missing required fields: {', '.join(missing)}")


class ConsultationRequest(BaseModel):
    """One user question plus the capability to answer it later."""

    model_config = ConfigDict(frozen=True)

    utterance: str = Field(min_length=1)
    callback_url: str = Field(min_length=1)

    @classmethod
    def from_skill_payload(cls, body: Any) -> ConsultationRequest:
        """Build from a Kakao skill payload (``userRequest.utterance/callbackUrl``)."""
        user_request = body.get("userRequest") if isinstance(body, dict) else None
        if not isinstance(user_request, dict):
            user_request = {}
        return _build(
            cls,
            utterance=user_request.get("utterance"),
            callback_url=user_request.get("callbackUrl"),
            names=("userRequest.utterance", "userRequest.callbackUrl"),
        )


class Job(BaseModel):
    """Queue payload: exactly the request fields, in wire naming."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    user_input: str = Field(min_length=1, alias="userInput")
    callback_url: str = Field(min_length=1, alias="callbackUrl")

    @classmethod
    def from_request(cls, request: ConsultationRequest) -> Job:
        return cls(user_input=request.utterance, callback_url=request.callback_url)

    @classmethod
    def from_payload(cls, body: Any) -> Job:
        """Re-validate a job body received from the queue."""
        if not isinstance(body, dict):
            body = {}
        return _build(
            cls,
            user_input=body.get("userInput"),
            callback_url=body.get("callbackUrl"),
            names=("userInput", "callbackUrl"),
        )

    def to_request(self) -> ConsultationRequest:
        return ConsultationRequest(utterance=self.user_input, callback_url=self.callback_url)

    def to_wire(self) -> dict[str, str]:
        return self.model_dump(by_alias=True)


def _build(model: Any, names: tuple[str, str], **fields: object) -> Any:
    missing = [
        name for name, value in zip(names, fields.values(), strict=True)
        if not isinstance(value, str) or not value.strip()
    ]
    if missing:
        raise InvalidRequest(missing)
    try:
        return model(**fields)
    except ValidationError as exc:
        raise InvalidRequest(list(names)) from exc


@dataclass
class SkillResponse:
    """Intake result to return to the chat platform."""

    payload: dict[str, Any]
    status_code: int


@dataclass
class ProcessingOutcome:
    """Job result reported to the queue for its retry bookkeeping."""

    status_code: int
    detail: str
    delivered: bool = False
