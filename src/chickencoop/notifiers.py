# Copyright (c) 2026 The py-chickencoop Authors
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Out-of-band notifications (push, webhook, log).

Notifications are best effort: a failing notifier is logged and never
interrupts the coop.
"""
from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Iterable, Optional

import httpx

from .const import DEFAULT_WEBHOOK_TIMEOUT

logger = logging.getLogger(__name__)


class Notifier(ABC):
    """Something that can deliver a text message to a human."""

    @abstractmethod
    async def notify(self, message: str) -> None:
        """Deliver ``message``."""


class LoggingNotifier(Notifier):
    """Writes notifications to the log."""

    def __init__(self, level: int = logging.WARNING):
        self.level = level

    async def notify(self, message: str) -> None:
        logger.log(self.level, f"Notification: {message}")


class WebhookNotifier(Notifier):
    """POSTs ``{"message": ...}`` as JSON to a URL."""

    def __init__(
        self,
        url: str,
        *,
        timeout: float = DEFAULT_WEBHOOK_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url
        self.timeout = timeout
        self._transport = transport

    async def notify(self, message: str) -> None:
        async with httpx.AsyncClient(
            timeout=self.timeout, transport=self._transport
        ) as client:
            response = await client.post(self.url, json={"message": message})
            response.raise_for_status()

    def __repr__(self) -> str:
        return f"WebhookNotifier({self.url!r})"


async def broadcast(notifiers: Iterable[Notifier], message: str) -> None:
    """Send ``message`` to every notifier concurrently.

    Failures are logged, never raised.
    """
    notifiers = list(notifiers)
    if not notifiers:
        return

    logger.debug(f"Notifying {len(notifiers)} notifier(s): {message}")
    results = await asyncio.gather(
        *(notifier.notify(message) for notifier in notifiers),
        return_exceptions=True,
    )
    for notifier, result in zip(notifiers, results):
        if isinstance(result, Exception):
            logger.error(f"Error in notifier {notifier!r}: {result}")
