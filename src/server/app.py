"""FastAPI application exposing the skill webhook and the job endpoint."""

from __future__ import annotations

import json
import logging

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from src.audit.logger import AuditLogger
from src.config import RelayConfig
from src.dispatch.base import JOB_ID_HEADER
from src.dispatch.factory import build_dispatcher
from src.generation.client import GeminiClient, TextGenerator
from src.generation.consultant import Consultant
from src.server.auth_middleware import JobAuthMiddleware
from src.skill.callback import CallbackClient
from src.skill.intake import IntakeHandler
from src.skill.processor import JobProcessor
from src.skill.render import INVALID_REQUEST_MESSAGE, simple_text_response

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=level.upper(), format=_LOG_FORMAT)
    # httpx logs full request URLs at INFO, which would leak callback URLs
    logging.getLogger("httpx").setLevel(logging.WARNING)


def build_components(
    config: RelayConfig,
    generator: TextGenerator | None = None,
    callback_transport: httpx.AsyncBaseTransport | None = None,
    audit_logger: AuditLogger | None = None,
) -> tuple[IntakeHandler, JobProcessor]:
    """Wire intake and processor from one configuration object."""
    consultant = Consultant(generator or GeminiClient(config), config)
    callback_client = CallbackClient(timeout=config.callback_timeout, transport=callback_transport)
    processor = JobProcessor(consultant, callback_client, config, audit_logger)
    dispatcher = build_dispatcher(config, processor)
    intake = IntakeHandler(consultant, dispatcher, config, audit_logger)
    return intake, processor


def create_app_from_env() -> FastAPI:
    """Factory for uvicorn --factory: reads config from environment variables."""
    config = RelayConfig.from_env()
    configure_logging(config.log_level)
    audit_logger = AuditLogger.from_env(config.audit_log_path) if config.audit_log_path else None
    intake, processor = build_components(config, audit_logger=audit_logger)
    return create_app(intake, processor, config.job_auth_token, audit_logger)


def create_app(
    intake: IntakeHandler,
    processor: JobProcessor,
    job_auth_token: str | None = None,
    audit_logger: AuditLogger | None = None,
) -> FastAPI:
    """Create the relay FastAPI app."""
    app = FastAPI(docs_url=None, redoc_url=None)

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.post("/skill")
    async def skill(request: Request) -> JSONResponse:
        try:
            body = await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            return JSONResponse(simple_text_response(INVALID_REQUEST_MESSAGE, []), status_code=400)
        result = await intake.handle(body)
        return JSONResponse(result.payload, status_code=result.status_code)

    @app.post("/api/process-job")
    async def process_job(request: Request) -> PlainTextResponse:
        try:
            body = await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            body = None
        outcome = await processor.process(body, job_id=request.headers.get(JOB_ID_HEADER))
        return PlainTextResponse(outcome.detail, status_code=outcome.status_code)

    if job_auth_token:
        app.add_middleware(JobAuthMiddleware, token=job_auth_token, audit_logger=audit_logger)

    return app
