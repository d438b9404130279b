"""Relay configuration — built once from the environment, injected everywhere."""

from __future__ import annotations

import os
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

# Kakao drops the skill webhook after 5s; the wait call and the job submit
# both run before the ack and must fit inside ACK_BUDGET_SECONDS together.
MAX_WAIT_TIMEOUT_SECONDS = 4.0
ACK_BUDGET_SECONDS = 4.5

_ENV_NAMES: dict[str, str] = {
    "gemini_api_key": "GEMINI_API_KEY",
    "gemini_model": "GEMINI_MODEL",
    "gemini_base_url": "GEMINI_BASE_URL",
    "gcp_project": "GCP_PROJECT",
    "gcp_location": "GCP_LOCATION",
    "task_queue_name": "TASK_QUEUE_NAME",
    "process_job_url": "PROCESS_JOB_FUNCTION_URL or CLOUD_RUN_URL",
    "dispatcher": "JOB_DISPATCHER",
    "task_service_account": "TASK_SERVICE_ACCOUNT_EMAIL",
    "job_queue_url": "JOB_QUEUE_URL",
    "job_queue_token": "JOB_QUEUE_TOKEN",
    "job_auth_token": "JOB_AUTH_TOKEN",
    "wait_message_stage": "WAIT_MESSAGE_STAGE",
    "wait_timeout": "WAIT_TIMEOUT_SECONDS",
    "answer_timeout": "ANSWER_TIMEOUT_SECONDS",
    "callback_timeout": "CALLBACK_TIMEOUT_SECONDS",
    "dispatch_timeout": "DISPATCH_TIMEOUT_SECONDS",
    "audit_log_path": "AUDIT_LOG_PATH",
    "log_level": "LOG_LEVEL",
}

_SECRET_FIELDS = ("gemini_api_key", "job_auth_token", "job_queue_token")


class ConfigurationError(Exception):
    """Raised when a required configuration option is missing or invalid."""

    def __init__(self, missing: list[str], message: str | None = None) -> None:
        self.missing = missing
        if message is None:
            names = ", ".join(_ENV_NAMES.get(m, m) for m in missing)
            message = f"Missing required configuration: {names}"
        super().__init__(message)


class DispatcherKind(str, Enum):
    CLOUD_TASKS = "cloud_tasks"
    HTTP = "http"
    INLINE = "inline"


class WaitMessageStage(str, Enum):
    INTAKE = "intake"
    PROCESSOR = "processor"
    OFF = "off"


class RelayConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    gemini_api_key: str | None = None
    gemini_model: str = "gemini-2.5-flash"
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    gcp_project: str | None = None
    gcp_location: str | None = None
    task_queue_name: str | None = None
    process_job_url: str | None = None
    dispatcher: DispatcherKind = DispatcherKind.CLOUD_TASKS
    task_service_account: str | None = None
    job_queue_url: str | None = None
    job_queue_token: str | None = None
    job_auth_token: str | None = None
    wait_message_stage: WaitMessageStage = WaitMessageStage.INTAKE
    wait_timeout: float = Field(default=3.5, gt=0, le=MAX_WAIT_TIMEOUT_SECONDS)
    answer_timeout: float = Field(default=25.0, gt=0)
    callback_timeout: float = Field(default=10.0, gt=0)
    dispatch_timeout: float = Field(default=1.0, gt=0)
    audit_log_path: str | None = None
    log_level: str = "INFO"

    @model_validator(mode="after")
    def _check_ack_budget(self) -> RelayConfig:
        if self.wait_timeout + self.dispatch_timeout > ACK_BUDGET_SECONDS:
            raise ValueError(
                f"wait_timeout + dispatch_timeout must not exceed {ACK_BUDGET_SECONDS:g}s",
            )
        return self

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> RelayConfig:
        """Read configuration from environment variables.

        Only presence-independent validation happens here (types, enum
        values, timeout bounds). Missing required options are reported by
        ``require`` when a component actually needs them.
        """
        env = os.environ if environ is None else environ

        def opt(name: str) -> str | None:
            value = env.get(name, "").strip()
            return value or None

        # Functions deployments name the job endpoint directly; Cloud Run
        # deployments expose it under the service URL.
        process_job_url = opt("PROCESS_JOB_FUNCTION_URL")
        cloud_run_url = opt("CLOUD_RUN_URL")
        if process_job_url is None and cloud_run_url:
            process_job_url = f"{cloud_run_url.rstrip('/')}/api/process-job"

        raw: dict[str, object] = {
            "gemini_api_key": opt("GEMINI_API_KEY"),
            "gcp_project": opt("GCP_PROJECT"),
            "gcp_location": opt("GCP_LOCATION"),
            "task_queue_name": opt("TASK_QUEUE_NAME"),
            "process_job_url": process_job_url,
            "task_service_account": opt("TASK_SERVICE_ACCOUNT_EMAIL"),
            "job_queue_url": opt("JOB_QUEUE_URL"),
            "job_queue_token": opt("JOB_QUEUE_TOKEN"),
            "job_auth_token": opt("JOB_AUTH_TOKEN"),
            "audit_log_path": opt("AUDIT_LOG_PATH"),
        }
        optional_overrides = {
            "gemini_model": "GEMINI_MODEL",
            "gemini_base_url": "GEMINI_BASE_URL",
            "dispatcher": "JOB_DISPATCHER",
            "wait_message_stage": "WAIT_MESSAGE_STAGE",
            "wait_timeout": "WAIT_TIMEOUT_SECONDS",
            "answer_timeout": "ANSWER_TIMEOUT_SECONDS",
            "callback_timeout": "CALLBACK_TIMEOUT_SECONDS",
            "dispatch_timeout": "DISPATCH_TIMEOUT_SECONDS",
            "log_level": "LOG_LEVEL",
        }
        for field, env_name in optional_overrides.items():
            value = opt(env_name)
            if value is not None:
                raw[field] = value

        try:
            return cls.model_validate(raw)
        except ValidationError as exc:
            fields = [str(err["loc"][0]) for err in exc.errors() if err["loc"]]
            fields = fields or ["wait_timeout", "dispatch_timeout"]
            raise ConfigurationError(
                fields, f"Invalid configuration: {exc.error_count()} error(s) in {fields}",
            ) from exc

    def require(self, *fields: str) -> None:
        """Raise ConfigurationError if any of the named fields is unset."""
        missing = [f for f in fields if not getattr(self, f)]
        if missing:
            raise ConfigurationError(missing)

    def masked(self) -> dict[str, object]:
        """Config as JSON-safe dict with secrets masked."""
        data = self.model_dump(mode="json")
        for field in _SECRET_FIELDS:
            if data.get(field):
                data[field] = "***"
        return data
