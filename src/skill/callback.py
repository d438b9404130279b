"""Outbound delivery to the platform-supplied callback URL."""

from __future__ import annotations

import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)


class CallbackDeliveryError(Exception):
    """The callback endpoint could not be reached or rejected the payload."""

    def __init__(self, reason: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(reason)


class CallbackClient:
    """Posts a rendered payload to a callback URL, single attempt.

    The URL is a capability token: it is used as-is and never logged.
    """

    def __init__(
        self,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._timeout = timeout
        self._transport = transport

    async def deliver(self, callback_url: str, payload: dict[str, Any]) -> None:
        try:
            async with httpx.AsyncClient(
                transport=self._transport, timeout=self._timeout, verify=True,
            ) as client:
                resp = await client.post(callback_url, json=payload)
        except httpx.TimeoutException as exc:
            raise CallbackDeliveryError(f"callback timed out after {self._timeout:g}s") from exc
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise CallbackDeliveryError(f"callback transport error: {type(exc).__name__}") from exc

        if resp.status_code >= 400:
            raise CallbackDeliveryError(
                f"callback rejected with status {resp.status_code}",
                status_code=resp.status_code,
            )
        logger.debug("Callback accepted with status %d", resp.status_code)
