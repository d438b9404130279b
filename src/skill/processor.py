"""Job processor — the asynchronous phase of the skill callback protocol.

Invoked by the queue with a previously dispatched job. Runs the slow
generation call, renders the result and delivers it to the job's callback
URL. Every failure after validation is turned into the fixed apology message
on the same callback; the HTTP status returned to the queue only drives the
queue's own retry bookkeeping.

Queues deliver at least once, so a job may be processed (and its answer
delivered) more than once. Nothing here deduplicates.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from src.config import ConfigurationError, RelayConfig, WaitMessageStage
from src.generation.client import GenerationError
from src.generation.consultant import preview
from src.generation.models import WaitMessage
from src.models import AuditEvent, AuditEventType, RiskLevel
from src.skill.callback import CallbackDeliveryError
from src.skill.models import InvalidRequest, Job, ProcessingOutcome
from src.skill.render import APOLOGY_MESSAGE, simple_text_response

if TYPE_CHECKING:
    from src.audit.logger import AuditLogger
    from src.generation.consultant import Consultant
    from src.skill.callback import CallbackClient

logger = logging.getLogger(__name__)


class JobProcessor:
    """Turns one job into exactly one terminal callback delivery."""

    def __init__(
        self,
        consultant: Consultant,
        callback_client: CallbackClient,
        config: RelayConfig,
        audit_logger: AuditLogger | None = None,
    ) -> None:
        self._consultant = consultant
        self._callback = callback_client
        self._config = config
        self._audit = audit_logger

    async def process(self, payload: Any, job_id: str | None = None) -> ProcessingOutcome:
        try:
            job = Job.from_payload(payload)
        except InvalidRequest as exc:
            # No usable callback URL, so the user cannot be told
            logger.error("Rejected job %s: %s", job_id, exc)
            self._record(AuditEventType.JOB_REJECTED, job_id, "failure", missing=exc.missing)
            return ProcessingOutcome(
                status_code=400,
                detail="Invalid request: userInput and callbackUrl are required.",
            )

        logger.info("Processing job %s for %r", job_id, preview(job.user_input))

        if self._config.wait_message_stage is WaitMessageStage.PROCESSOR:
            await self._deliver_wait_message(job, job_id)

        try:
            answer = await self._consultant.answer(job.user_input)
            rendered = simple_text_response(answer.response_text, answer.follow_up_questions)
        except (GenerationError, ConfigurationError) as exc:
            logger.error("Generation failed for job %s (%s): %s", job_id, type(exc).__name__, exc)
            self._record(
                AuditEventType.GENERATION_FAILED, job_id, "failure",
                risk_level=RiskLevel.MEDIUM, error=type(exc).__name__,
            )
            return await self._deliver_apology(job, job_id)
        except Exception:  # any other failure still owes the user a reply
            logger.exception("Unexpected failure while generating answer for job %s", job_id)
            self._record(
                AuditEventType.GENERATION_FAILED, job_id, "failure",
                risk_level=RiskLevel.HIGH, error="unexpected",
            )
            return await self._deliver_apology(job, job_id)

        self._record(
            AuditEventType.ANSWER_GENERATED, job_id, "success",
            follow_ups=len(answer.follow_up_questions),
        )

        try:
            await self._callback.deliver(job.callback_url, rendered)
        except CallbackDeliveryError as exc:
            logger.error("Answer callback failed for job %s: %s", job_id, exc)
            self._record(
                AuditEventType.CALLBACK_FAILED, job_id, "failure",
                risk_level=RiskLevel.MEDIUM, kind="answer", status=exc.status_code,
            )
            return await self._deliver_apology(job, job_id)

        logger.info("Job %s processed and callback sent", job_id)
        self._record(AuditEventType.CALLBACK_DELIVERED, job_id, "success", kind="answer")
        return ProcessingOutcome(status_code=200, detail="Job processed successfully.", delivered=True)

    async def _deliver_apology(self, job: Job, job_id: str | None) -> ProcessingOutcome:
        try:
            await self._callback.deliver(job.callback_url, simple_text_response(APOLOGY_MESSAGE, []))
        except CallbackDeliveryError as exc:
            # Last channel to the user is gone
            logger.error("Failed to send error callback for job %s: %s", job_id, exc)
            self._record(
                AuditEventType.CALLBACK_FAILED, job_id, "failure",
                risk_level=RiskLevel.HIGH, kind="apology", status=exc.status_code,
            )
            return ProcessingOutcome(status_code=500, detail="Failed to process job.")

        self._record(AuditEventType.CALLBACK_DELIVERED, job_id, "fallback", kind="apology")
        return ProcessingOutcome(
            status_code=200, detail="Job failed; error message delivered.", delivered=True,
        )

    async def _deliver_wait_message(self, job: Job, job_id: str | None) -> None:
        """Intermediate callback with a dynamic wait message, when one is available."""
        result = await self._consultant.wait_message(job.user_input)
        if not isinstance(result, WaitMessage):
            self._record(AuditEventType.WAIT_MESSAGE, job_id, "fallback", stage="processor")
            return
        try:
            await self._callback.deliver(job.callback_url, simple_text_response(result.text, []))
        except CallbackDeliveryError as exc:
            logger.warning("Intermediate wait callback failed for job %s: %s", job_id, exc)
            self._record(AuditEventType.WAIT_MESSAGE, job_id, "failure", stage="processor")
            return
        self._record(AuditEventType.WAIT_MESSAGE, job_id, "success", stage="processor")

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
                action="process_job",
                result=result,
                risk_level=risk_level,
                details=details or None,
            ))
