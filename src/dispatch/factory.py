"""Select the job dispatcher implementation from configuration."""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING

from src.config import DispatcherKind, RelayConfig
from src.dispatch.base import JobDispatcher
from src.dispatch.cloud_tasks import CloudTasksDispatcher
from src.dispatch.http_queue import HttpQueueDispatcher
from src.dispatch.inline import InlineDispatcher

if TYPE_CHECKING:
    from src.skill.processor import JobProcessor

_BUILDERS: dict[DispatcherKind, Callable[[RelayConfig, JobProcessor], JobDispatcher]] = {
    DispatcherKind.CLOUD_TASKS: lambda config, _: CloudTasksDispatcher.from_config(config),
    DispatcherKind.HTTP: lambda config, _: HttpQueueDispatcher.from_config(config),
    DispatcherKind.INLINE: lambda _, processor: InlineDispatcher(processor),
}


def build_dispatcher(config: RelayConfig, processor: JobProcessor) -> JobDispatcher:
    """Build the configured dispatcher; raises ConfigurationError if it lacks settings."""
    return _BUILDERS[config.dispatcher](config, processor)
