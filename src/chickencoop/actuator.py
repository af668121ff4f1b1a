# Copyright (c) 2026 The py-chickencoop Authors
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Door actuators.

An actuator moves the physical door. Its two operations may take as long as
the mechanical travel time and raise ``ActuationError`` on failure. The coop
controller is the only component allowed to call them.
"""
from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from .const import DEFAULT_CLOSING_DURATION, DEFAULT_OPENING_DURATION
from .exceptions import ActuationError

logger = logging.getLogger(__name__)


class Actuator(ABC):
    """Contract for anything able to open and close the door."""

    @abstractmethod
    async def open(self) -> None:
        """Open the door, returning once it is fully open."""

    @abstractmethod
    async def close(self) -> None:
        """Close the door, returning once it is fully closed."""


@dataclass
class DoorTimingConfig:
    """Configurable travel time for the simulated door (seconds)."""

    # Time for the door to go from closed to fully open
    opening_duration: float = DEFAULT_OPENING_DURATION

    # Time for the door to go from open to fully closed
    closing_duration: float = DEFAULT_CLOSING_DURATION


class SimulatedActuator(Actuator):
    """Actuator that only pretends to move a door.

    Useful when no motor driver is wired, and in tests. Travel takes the
    configured duration, and the next open or close can be made to fail.

    Example:
        actuator = SimulatedActuator(DoorTimingConfig(opening_duration=2))
        await actuator.open()
        assert actuator.is_open
    """

    def __init__(
        self,
        timing: Optional[DoorTimingConfig] = None,
        *,
        is_open: bool = False,
    ):
        self.timing = timing or DoorTimingConfig()
        self.is_open = is_open
        self.open_count = 0
        self.close_count = 0
        self.fail_next_open: Optional[str] = None
        self.fail_next_close: Optional[str] = None

    async def open(self) -> None:
        self.open_count += 1
        logger.info(f"Opening the door ({self.timing.opening_duration}s)")
        await asyncio.sleep(self.timing.opening_duration)
        if self.fail_next_open:
            reason, self.fail_next_open = self.fail_next_open, None
            raise ActuationError(reason)
        self.is_open = True
        logger.info("Door is open")

    async def close(self) -> None:
        self.close_count += 1
        logger.info(f"Closing the door ({self.timing.closing_duration}s)")
        await asyncio.sleep(self.timing.closing_duration)
        if self.fail_next_close:
            reason, self.fail_next_close = self.fail_next_close, None
            raise ActuationError(reason)
        self.is_open = False
        logger.info("Door is closed")
