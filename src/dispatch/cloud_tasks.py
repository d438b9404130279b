"""Google Cloud Tasks dispatcher (HTTP target tasks)."""

from __future__ import annotations

import json
import logging
from typing import Any

from google.api_core import exceptions as api_exceptions
from google.auth import exceptions as auth_exceptions
from google.cloud import tasks_v2

from src.config import ConfigurationError, RelayConfig
from src.dispatch.base import DispatchError, JobDispatcher, task_headers
from src.skill.models import Job

logger = logging.getLogger(__name__)


class CloudTasksDispatcher(JobDispatcher):
    """Creates one Cloud Tasks HTTP task per job."""

    name = "cloud_tasks"

    def __init__(
        self,
        project: str | None,
        location: str | None,
        queue: str | None,
        service_account_email: str | None = None,
        auth_token: str | None = None,
        client: Any | None = None,
        timeout: float = 10.0,
    ) -> None:
        self._project = project
        self._location = location
        self._queue = queue
        self._service_account_email = service_account_email
        self._auth_token = auth_token
        self._client = client
        self._timeout = timeout

    @classmethod
    def from_config(cls, config: RelayConfig) -> CloudTasksDispatcher:
        # Cloud Tasks sends the OIDC token in the Authorization header, so the
        # job endpoint could never see the shared token.
        if config.task_service_account and config.job_auth_token:
            raise ConfigurationError(
                ["task_service_account", "job_auth_token"],
                "TASK_SERVICE_ACCOUNT_EMAIL and JOB_AUTH_TOKEN cannot both be set "
                "for the cloud_tasks dispatcher",
            )
        return cls(
            project=config.gcp_project,
            location=config.gcp_location,
            queue=config.task_queue_name,
            service_account_email=config.task_service_account,
            auth_token=config.job_auth_token,
            timeout=config.dispatch_timeout,
        )

    def build_task(self, job: Job, target_url: str, job_id: str | None = None) -> dict[str, Any]:
        http_request: dict[str, Any] = {
            "http_method": tasks_v2.HttpMethod.POST,
            "url": target_url,
            "headers": task_headers(
                job_id, None if self._service_account_email else self._auth_token,
            ),
            "body": json.dumps(job.to_wire(), ensure_ascii=False).encode(),
        }
        if self._service_account_email:
            http_request["oidc_token"] = {
                "service_account_email": self._service_account_email,
            }
        return {"http_request": http_request}

    async def submit(self, job: Job, target_url: str, job_id: str | None = None) -> None:
        missing = [
            name for name, value in (
                ("gcp_project", self._project),
                ("gcp_location", self._location),
                ("task_queue_name", self._queue),
            ) if not value
        ]
        if missing:
            raise ConfigurationError(missing)

        task = self.build_task(job, target_url, job_id)
        try:
            if self._client is None:
                self._client = tasks_v2.CloudTasksAsyncClient()
            parent = self._client.queue_path(self._project, self._location, self._queue)
            created = await self._client.create_task(
                request={"parent": parent, "task": task}, timeout=self._timeout,
            )
        except (api_exceptions.GoogleAPIError, auth_exceptions.GoogleAuthError) as exc:
            raise DispatchError(f"Cloud Tasks submission failed: {exc}") from exc
        logger.info("Published job %s to Cloud Tasks as %s", job_id, getattr(created, "name", "?"))
