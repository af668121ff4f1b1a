# Copyright (c) 2026 The py-chickencoop Authors
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Periodic evaluation of the coop.

The scheduler fires a tick every ``interval`` seconds and runs one
``Coop.check`` per tick. At most one check is in flight: a tick that fires
while the previous check is still running is dropped, not queued.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Optional

from .const import CHECK_FREQUENCY
from .coop import Coop

logger = logging.getLogger(__name__)


class CoopScheduler:
    """Background task driving ``Coop.check``.

    Example:
        scheduler = CoopScheduler(coop)
        await scheduler.start()
        ...
        await scheduler.stop()
    """

    def __init__(self, coop: Coop, interval: float = CHECK_FREQUENCY):
        self.coop = coop
        self.interval = interval
        self.dropped_ticks = 0
        self._watch_task: Optional[asyncio.Task] = None
        self._check_task: Optional[asyncio.Task] = None
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    @property
    def check_in_flight(self) -> bool:
        """Whether a check is currently running."""
        return self._check_task is not None and not self._check_task.done()

    async def start(self) -> None:
        """Start ticking."""
        if self._running:
            return
        self._running = True
        self._watch_task = asyncio.create_task(self._watch())
        logger.info(f"Checking the coop every {self.interval}s")

    async def stop(self) -> None:
        """Stop ticking and wait for the in-flight check, if any."""
        self._running = False

        if self._watch_task:
            self._watch_task.cancel()
            try:
                await self._watch_task
            except asyncio.CancelledError:
                pass
            self._watch_task = None

        # The door cannot be stopped mid-travel, let the check settle
        if self._check_task:
            await asyncio.gather(self._check_task, return_exceptions=True)
            self._check_task = None

        logger.info("Scheduler stopped")

    def trigger(self) -> bool:
        """Fire one tick now.

        Returns:
            True if a check was started, False if the tick was dropped.
        """
        if self._start_check() is None:
            self.dropped_ticks += 1
            logger.debug("Previous check still running, dropping tick")
            return False
        return True

    async def run_once(self) -> bool:
        """Run one check on request and wait for it.

        Goes through the same in-flight guard as the ticks, but a refused
        request is not counted as a dropped tick.

        Returns:
            True once the check has run, False if one was already running.
        """
        task = self._start_check()
        if task is None:
            return False
        # The door cannot be stopped mid-travel
        await asyncio.shield(task)
        return True

    def _start_check(self) -> Optional[asyncio.Task]:
        if self.check_in_flight:
            return None
        self._check_task = asyncio.create_task(self._run_check())
        return self._check_task

    async def _watch(self) -> None:
        # Nothing has been observed from the door yet
        await self.coop.announce_unknown()

        while self._running:
            await asyncio.sleep(self.interval)
            if not self._running:
                break
            self.trigger()

    async def _run_check(self) -> None:
        try:
            await self.coop.check()
        except Exception:
            logger.exception("Error while checking the coop")
