"""Intake handler — the synchronous phase of the skill callback protocol.

Validates the skill payload, optionally obtains a dynamic wait message
within its short budget, enqueues exactly one job and answers the platform
with a callback-pending ack. The wait-message call finishes (or times out)
before the job is submitted, and the ack is the last step.
"""

from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING, Any

from src.config import ConfigurationError, RelayConfig, WaitMessageStage
from src.dispatch.base import DispatchError
from src.generation.consultant import preview
from src.generation.models import WaitMessage
from src.models import AuditEvent, AuditEventType, RiskLevel
from src.skill.models import ConsultationRequest, InvalidRequest, Job, SkillResponse
from src.skill.render import (
    CONFIGURATION_ERROR_MESSAGE,
    DEFAULT_WAIT_MESSAGE,
    DISPATCH_ERROR_MESSAGE,
    INVALID_REQUEST_MESSAGE,
    callback_wait_response,
    simple_text_response,
)

if TYPE_CHECKING:
    from src.audit.logger import AuditLogger
    from src.dispatch.base import JobDispatcher
    from src.generation.consultant import Consultant

logger = logging.getLogger(__name__)


class IntakeHandler:
    """Handles one inbound skill webhook."""

    def __init__(
        self,
        consultant: Consultant,
        dispatcher: JobDispatcher,
        config: RelayConfig,
        audit_logger: AuditLogger | None = None,
    ) -> None:
        self._consultant = consultant
        self._dispatcher = dispatcher
        self._config = config
        self._audit = audit_logger

    async def handle(self, body: Any) -> SkillResponse:
        try:
            request = ConsultationRequest.from_skill_payload(body)
        except InvalidRequest as exc:
            logger.warning("Rejected skill request: %s", exc)
            return SkillResponse(simple_text_response(INVALID_REQUEST_MESSAGE, []), 400)

        try:
            self._config.require("process_job_url")
        except ConfigurationError as exc:
            logger.error("Cannot accept skill request: %s", exc)
            return SkillResponse(simple_text_response(CONFIGURATION_ERROR_MESSAGE, []), 500)

        job_id = uuid.uuid4().hex
        wait_text = await self._wait_text(request, job_id)

        job = Job.from_request(request)
        try:
            await self._dispatcher.submit(job, self._config.process_job_url or "", job_id=job_id)
        except (DispatchError, ConfigurationError) as exc:
            logger.error("Failed to publish job %s via %s: %s", job_id, self._dispatcher.name, exc)
            self._record(
                AuditEventType.DISPATCH_FAILED, job_id, "failure",
                risk_level=RiskLevel.HIGH, dispatcher=self._dispatcher.name,
                error=type(exc).__name__,
            )
            return SkillResponse(simple_text_response(DISPATCH_ERROR_MESSAGE, []), 500)

        logger.info("Accepted %r as job %s", preview(request.utterance), job_id)
        self._record(
            AuditEventType.JOB_DISPATCHED, job_id, "success", dispatcher=self._dispatcher.name,
        )
        return SkillResponse(callback_wait_response(wait_text), 200)

    async def _wait_text(self, request: ConsultationRequest, job_id: str) -> str:
        if self._config.wait_message_stage is not WaitMessageStage.INTAKE:
            return DEFAULT_WAIT_MESSAGE

        result = await self._consultant.wait_message(request.utterance)
        if isinstance(result, WaitMessage):
            self._record(AuditEventType.WAIT_MESSAGE, job_id, "success", stage="intake")
            return result.text
        self._record(
            AuditEventType.WAIT_MESSAGE, job_id, "fallback", stage="intake", reason=result.reason,
        )
        return DEFAULT_WAIT_MESSAGE

    def _record(
        self,
        event_type: AuditEventType,
        job_id: str | None,
        result: str,
        risk_level: RiskLevel = RiskLevel.INFO,
        **details: object,
    ) -> None:
        if self._audit:
            self._audit.record(AuditEvent(
                event_type=event_type,
                job_id=job_id,
                action="skill_intake",
                result=result,
                risk_level=risk_level,
                details=details or None,
            ))
