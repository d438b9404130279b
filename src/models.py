"""Shared Pydantic data models for kakao-callback-relay."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, Field

# --- Enums ---


class AuditEventType(str, Enum):
    JOB_DISPATCHED = "job_dispatched"
    DISPATCH_FAILED = "dispatch_failed"
    JOB_REJECTED = "job_rejected"
    WAIT_MESSAGE = "wait_message"
    ANSWER_GENERATED = "answer_generated"
    GENERATION_FAILED = "generation_failed"
    CALLBACK_DELIVERED = "callback_delivered"
    CALLBACK_FAILED = "callback_failed"
    AUTH_FAILURE = "auth_failure"


class RiskLevel(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INFO = "info"


# --- Audit Models ---


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


class AuditEvent(BaseModel):
    timestamp: str = Field(default_factory=_now_iso)
    event_type: AuditEventType
    job_id: str | None = None
    action: str
    result: str  # "success" | "failure" | "fallback"
    risk_level: RiskLevel = RiskLevel.INFO
    details: dict[str, object] | None = None
