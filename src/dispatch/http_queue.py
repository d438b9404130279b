"""HTTP publish-by-URL queue dispatcher (QStash-style API).

The queue accepts ``POST {queue_url}/{destination}`` and later replays the
body to the destination. Headers meant for the destination are sent with the
``Upstash-Forward-`` prefix.
"""

from __future__ import annotations

import json
import logging

import httpx

from src.config import ConfigurationError, RelayConfig
from src.dispatch.base import DispatchError, JobDispatcher, task_headers
from src.skill.models import Job

logger = logging.getLogger(__name__)

_FORWARD_PREFIX = "Upstash-Forward-"


class HttpQueueDispatcher(JobDispatcher):
    """Publishes jobs to an HTTP message queue."""

    name = "http"

    def __init__(
        self,
        queue_url: str | None,
        queue_token: str | None,
        auth_token: str | None = None,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._queue_url = queue_url
        self._queue_token = queue_token
        self._auth_token = auth_token
        self._timeout = timeout
        self._transport = transport

    @classmethod
    def from_config(cls, config: RelayConfig) -> HttpQueueDispatcher:
        return cls(
            queue_url=config.job_queue_url,
            queue_token=config.job_queue_token,
            auth_token=config.job_auth_token,
            timeout=config.dispatch_timeout,
        )

    def build_headers(self, job_id: str | None) -> dict[str, str]:
        headers = {
            "Authorization": f"Bearer {self._queue_token}",
            "Content-Type": "application/json",
        }
        for key, value in task_headers(job_id, self._auth_token).items():
            if key != "Content-Type":
                headers[f"{_FORWARD_PREFIX}{key}"] = value
        return headers

    async def submit(self, job: Job, target_url: str, job_id: str | None = None) -> None:
        if not self._queue_url or not self._queue_token:
            raise ConfigurationError(["job_queue_url", "job_queue_token"])

        url = f"{self._queue_url.rstrip('/')}/{target_url}"
        body = json.dumps(job.to_wire(), ensure_ascii=False).encode()
        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=self._timeout) as client:
                resp = await client.post(url, content=body, headers=self.build_headers(job_id))
        except httpx.HTTPError as exc:
            raise DispatchError(f"Queue unavailable: {type(exc).__name__}") from exc

        if resp.status_code >= 400:
            raise DispatchError(f"Queue rejected job ({resp.status_code}): {resp.text[:200]}")
        logger.info("Published job %s to HTTP queue", job_id)
