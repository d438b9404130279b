"""Job dispatcher interface — single-shot submission to an at-least-once queue."""

from __future__ import annotations

from abc import ABC, abstractmethod

from src.skill.models import Job

JOB_ID_HEADER = "X-Job-Id"


class DispatchError(Exception):
    """The queue collaborator refused or failed to accept the job."""


class JobDispatcher(ABC):
    """Submits a job for later invocation of ``target_url``.

    Implementations make exactly one submission attempt and never modify the
    job. Delivery semantics (at-least-once, retries) belong to the queue.
    """

    name: str = "base"

    @abstractmethod
    async def submit(self, job: Job, target_url: str, job_id: str | None = None) -> None:
        """Enqueue the job; raise DispatchError on any transport or auth failure."""


def task_headers(job_id: str | None, auth_token: str | None) -> dict[str, str]:
    """Headers the queue must replay when invoking the job endpoint."""
    headers = {"Content-Type": "application/json"}
    if job_id:
        headers[JOB_ID_HEADER] = job_id
    if auth_token:
        headers["Authorization"] = f"Bearer {auth_token}"
    return headers
