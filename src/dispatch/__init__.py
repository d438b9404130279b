"""Job dispatchers for kakao-callback-relay.

One interface, several queue backends:
- Google Cloud Tasks HTTP tasks
- HTTP publish-by-URL queues
- In-process asyncio tasks (local development)
"""

from src.dispatch.base import JOB_ID_HEADER, DispatchError, JobDispatcher, task_headers
from src.dispatch.cloud_tasks import CloudTasksDispatcher
from src.dispatch.factory import build_dispatcher
from src.dispatch.http_queue import HttpQueueDispatcher
from src.dispatch.inline import InlineDispatcher

__all__ = [
    "JOB_ID_HEADER",
    "CloudTasksDispatcher",
    "DispatchError",
    "HttpQueueDispatcher",
    "InlineDispatcher",
    "JobDispatcher",
    "build_dispatcher",
    "task_headers",
]
