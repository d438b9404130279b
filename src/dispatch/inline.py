"""In-process dispatcher for local development: runs the job as an asyncio task."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from src.dispatch.base import JobDispatcher
from src.skill.models import Job

if TYPE_CHECKING:
    from src.skill.processor import JobProcessor

logger = logging.getLogger(__name__)


class InlineDispatcher(JobDispatcher):
    """Schedules ``JobProcessor.process`` on the running event loop.

    There is no queue behind this dispatcher: a process restart drops
    pending jobs. ``target_url`` is ignored.
    """

    name = "inline"

    def __init__(self, processor: JobProcessor) -> None:
        self._processor = processor
        self._pending: set[asyncio.Task[object]] = set()

    async def submit(self, job: Job, target_url: str, job_id: str | None = None) -> None:
        task = asyncio.create_task(self._processor.process(job.to_wire(), job_id=job_id))
        # The loop keeps only weak references to tasks
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        logger.info("Scheduled job %s in-process", job_id)

    async def drain(self) -> None:
        """Wait for every scheduled job to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending))
