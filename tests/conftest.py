# Copyright (c) 2026 The py-chickencoop Authors
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Pytest configuration and fixtures for chicken coop tests."""
from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Callable, Optional

import pytest

from chickencoop import Coop, CoopStatus
from chickencoop.actuator import Actuator
from chickencoop.conditions import TimeBasedCondition
from chickencoop.notifiers import Notifier


# ============================================================================
# Fake Collaborators
# ============================================================================

class FakeActuator(Actuator):
    """Actuator that records calls and can be held mid-travel.

    When ``gated`` is set, each call waits for ``release()`` before
    completing, which lets a test observe OPENING/CLOSING.
    """

    def __init__(self, gated: bool = False):
        self.open_calls = 0
        self.close_calls = 0
        self.error: Optional[Exception] = None
        self.started = asyncio.Event()
        self._gate: Optional[asyncio.Event] = asyncio.Event() if gated else None

    def release(self) -> None:
        if self._gate is not None:
            self._gate.set()

    async def _travel(self) -> None:
        self.started.set()
        if self._gate is not None:
            await self._gate.wait()
        else:
            await asyncio.sleep(0)
        if self.error is not None:
            raise self.error

    async def open(self) -> None:
        self.open_calls += 1
        await self._travel()

    async def close(self) -> None:
        self.close_calls += 1
        await self._travel()


class RecordingNotifier(Notifier):
    """Keeps every message it is asked to deliver."""

    def __init__(self):
        self.messages: list[str] = []

    async def notify(self, message: str) -> None:
        self.messages.append(message)


class FailingNotifier(Notifier):
    """Always fails to deliver."""

    async def notify(self, message: str) -> None:
        raise RuntimeError("notifier is down")


class FakeClock:
    """Settable clock for the coop."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


def at(hour: int, minute: int = 0) -> datetime:
    """An aware UTC moment on a fixed day."""
    return datetime(2024, 5, 15, hour, minute, tzinfo=timezone.utc)


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def actuator():
    return FakeActuator()


@pytest.fixture
def gated_actuator():
    return FakeActuator(gated=True)


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def failing_notifier():
    return FailingNotifier()


@pytest.fixture
def clock():
    return FakeClock(at(12))


@pytest.fixture
def make_coop(actuator, notifier, clock) -> Callable[..., Coop]:
    """Build a coop with 07:00/20:00 time conditions in a chosen state."""

    def _make(
        status: CoopStatus = CoopStatus.CLOSED,
        automatic: bool = False,
        opening: str = "07:00",
        closing: str = "20:00",
        door: Optional[Actuator] = None,
    ) -> Coop:
        coop = Coop(
            door or actuator,
            TimeBasedCondition(opening),
            TimeBasedCondition(closing),
            automatic=automatic,
            notifiers=[notifier],
            clock=clock,
        )
        coop._status = status
        return coop

    return _make


@pytest.fixture
def record_statuses():
    """Attach a status recorder to a coop."""

    def _attach(coop: Coop) -> list[CoopStatus]:
        seen: list[CoopStatus] = []
        coop.on_status_change(seen.append)
        return seen

    return _attach

