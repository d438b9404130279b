"""Click CLI for running and exercising the relay."""

from __future__ import annotations

import asyncio
import json
import uuid

import click
import uvicorn

from src.config import ConfigurationError, RelayConfig
from src.dispatch.base import DispatchError, JobDispatcher
from src.dispatch.factory import build_dispatcher
from src.dispatch.inline import InlineDispatcher
from src.generation.client import GeminiClient, GenerationError
from src.generation.consultant import Consultant
from src.generation.models import WaitMessage
from src.server.app import build_components, configure_logging
from src.skill.models import ConsultationRequest, Job


@click.group()
@click.pass_context
def cli(ctx: click.Context) -> None:
    """Kakao skill callback relay."""
    ctx.ensure_object(dict)
    try:
        ctx.obj["config"] = RelayConfig.from_env()
    except ConfigurationError as exc:
        raise click.ClickException(str(exc)) from exc


@cli.command()
@click.option("--host", default="0.0.0.0", help="Bind address.")
@click.option("--port", default=8080, type=int, envvar="PORT", help="Listen port.")
def serve(host: str, port: int) -> None:
    """Run the relay HTTP server."""
    uvicorn.run("src.server.app:create_app_from_env", factory=True, host=host, port=port)


@cli.command("config")
@click.pass_context
def show_config(ctx: click.Context) -> None:
    """Print the resolved configuration with secrets masked."""
    config: RelayConfig = ctx.obj["config"]
    click.echo(json.dumps(config.masked(), indent=2))


@cli.command()
@click.argument("utterance")
@click.option("--wait", "wait_only", is_flag=True, help="Generate only the wait message.")
@click.pass_context
def ask(ctx: click.Context, utterance: str, wait_only: bool) -> None:
    """Run one generation locally and print the result."""
    config: RelayConfig = ctx.obj["config"]
    configure_logging("WARNING")
    consultant = Consultant(GeminiClient(config), config)

    if wait_only:
        result = asyncio.run(consultant.wait_message(utterance))
        if not isinstance(result, WaitMessage):
            raise click.ClickException(f"No wait message: {result.reason}")
        click.echo(result.text)
        return

    try:
        answer = asyncio.run(consultant.answer(utterance))
    except (GenerationError, ConfigurationError) as exc:
        raise click.ClickException(f"{type(exc).__name__}: {exc}") from exc
    click.echo(json.dumps(answer.model_dump(), ensure_ascii=False, indent=2))


@cli.command()
@click.argument("utterance")
@click.argument("callback_url")
@click.pass_context
def enqueue(ctx: click.Context, utterance: str, callback_url: str) -> None:
    """Submit a job through the configured dispatcher."""
    config: RelayConfig = ctx.obj["config"]
    configure_logging(config.log_level)
    try:
        config.require("process_job_url")
        request = ConsultationRequest(utterance=utterance, callback_url=callback_url)
        _, processor = build_components(config)
        dispatcher = build_dispatcher(config, processor)
        job_id = uuid.uuid4().hex
        asyncio.run(_submit(dispatcher, Job.from_request(request), config.process_job_url or "", job_id))
    except (ConfigurationError, DispatchError) as exc:
        raise click.ClickException(f"{type(exc).__name__}: {exc}") from exc
    click.echo(f"Submitted job {job_id} via {dispatcher.name}")


async def _submit(dispatcher: JobDispatcher, job: Job, target_url: str, job_id: str) -> None:
    await dispatcher.submit(job, target_url, job_id=job_id)
    if isinstance(dispatcher, InlineDispatcher):
        await dispatcher.drain()


if __name__ == "__main__":
    cli()
