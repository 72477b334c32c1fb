"""Best-effort delivery of round outcomes to the caller's evaluation URL."""

from __future__ import annotations

import logging
from typing import Any, Protocol

import httpx

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    async def notify(self, url: str, payload: dict[str, Any]) -> bool: ...


class HttpNotifier:
    """Single POST attempt per outcome; failures are logged, never raised."""

    def __init__(
        self,
        *,
        timeout_s: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.timeout_s = timeout_s
        self._transport = transport

    async def notify(self, url: str, payload: dict[str, Any]) -> bool:
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout_s, transport=self._transport
            ) as client:
                response = await client.post(url, json=payload)
                response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.warning(
                "notify event=failed url=%s status_code=%d task_id=%s",
                url,
                exc.response.status_code,
                payload.get("task_id"),
            )
            return False
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.warning(
                "notify event=failed url=%s reason=%s task_id=%s",
                url,
                exc.__class__.__name__,
                payload.get("task_id"),
            )
            return False

        logger.info(
            "notify event=delivered url=%s status_code=%d task_id=%s",
            url,
            response.status_code,
            payload.get("task_id"),
        )
        return True
