# Copyright (c) 2026 The py-chickencoop Authors
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Chicken coop controller.

This module holds the coop state machine: the door status, the automatic
mode flag, the opening and closing conditions, and the transitions that
drive the actuator.

Example usage:
    from chickencoop import (
        Coop,
        CoopUpdateRequest,
        SimulatedActuator,
        create_condition,
    )

    async def main():
        coop = Coop(
            SimulatedActuator(),
            create_condition("time_based", "07:00"),
            create_condition("time_based", "20:00"),
        )
        await coop.update(CoopUpdateRequest.from_dict({
            "status": "closed",
            "is_automatic": False,
            "opening_condition": {"mode": "time_based", "value": "07:00"},
            "closing_condition": {"mode": "time_based", "value": "20:00"},
        }))
        await coop.open()
        print(coop.status)

Status transitions:
    CLOSED -> OPENING -> OPENED | UNKNOWN
    OPENED -> CLOSING -> CLOSED | UNKNOWN

Any actuator failure lands in UNKNOWN, from which only ``update`` recovers.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Iterable, Optional

from .actuator import Actuator
from .conditions import Condition, create_condition
from .const import (
    ACTION_CLOSE,
    ACTION_OPEN,
    DEFAULT_LATITUDE,
    DEFAULT_LONGITUDE,
    MSG_CLOSE_FAILED,
    MSG_CLOSED,
    MSG_OPEN_FAILED,
    MSG_OPENED,
    MSG_STATUS_UNKNOWN,
    STATUS_CLOSED,
    STATUS_CLOSING,
    STATUS_OPENED,
    STATUS_OPENING,
    STATUS_UNKNOWN,
)
from .exceptions import (
    ActuationFailedError,
    AlreadyClosedError,
    AlreadyClosingError,
    AlreadyOpenedError,
    AlreadyOpeningError,
    AutomaticModeEnabledError,
    CoopError,
    InvalidStatusError,
    StatusUnknownError,
)
from .notifiers import Notifier, broadcast

logger = logging.getLogger(__name__)


class CoopStatus(Enum):
    """Door statuses."""

    UNKNOWN = STATUS_UNKNOWN
    OPENING = STATUS_OPENING
    OPENED = STATUS_OPENED
    CLOSING = STATUS_CLOSING
    CLOSED = STATUS_CLOSED

    @classmethod
    def from_attestation(cls, value: "str | CoopStatus") -> "CoopStatus":
        """Convert an operator-supplied status, which must be opened/closed."""
        if isinstance(value, CoopStatus):
            value = value.value
        if value == STATUS_OPENED:
            return cls.OPENED
        if value == STATUS_CLOSED:
            return cls.CLOSED
        raise InvalidStatusError(str(value))


# Rejections for each transition, keyed by the status observed
_OPEN_REJECTIONS = {
    CoopStatus.UNKNOWN: StatusUnknownError,
    CoopStatus.OPENED: AlreadyOpenedError,
    CoopStatus.OPENING: AlreadyOpeningError,
    CoopStatus.CLOSING: AlreadyClosingError,
}

_CLOSE_REJECTIONS = {
    CoopStatus.UNKNOWN: StatusUnknownError,
    CoopStatus.CLOSED: AlreadyClosedError,
    CoopStatus.OPENING: AlreadyOpeningError,
    CoopStatus.CLOSING: AlreadyClosingError,
}


@dataclass
class ConditionSpec:
    """A condition as carried on the wire: mode tag plus parameter string."""

    mode: str
    value: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ConditionSpec":
        return cls(mode=str(data.get("mode", "")), value=str(data.get("value", "")))

    def to_dict(self) -> dict[str, str]:
        return {"mode": self.mode, "value": self.value}


@dataclass
class CoopUpdateRequest:
    """Administrative update of the coop configuration.

    ``status`` is the operator's attestation of the door's real position
    ("opened" or "closed"); it is trusted as given.
    """

    status: str
    is_automatic: bool
    opening_condition: ConditionSpec
    closing_condition: ConditionSpec

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CoopUpdateRequest":
        """Create from a transport payload."""
        return cls(
            status=str(data.get("status", "")),
            is_automatic=bool(data.get("is_automatic", False)),
            opening_condition=ConditionSpec.from_dict(data.get("opening_condition") or {}),
            closing_condition=ConditionSpec.from_dict(data.get("closing_condition") or {}),
        )


@dataclass
class CoopState:
    """Point-in-time view of the coop, as exposed to a transport layer."""

    status: CoopStatus
    is_automatic: bool
    latitude: float
    longitude: float
    opening_condition: dict[str, str] = field(default_factory=dict)
    closing_condition: dict[str, str] = field(default_factory=dict)
    opening_time: Optional[datetime] = None
    closing_time: Optional[datetime] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "is_automatic": self.is_automatic,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "opening_condition": dict(self.opening_condition),
            "closing_condition": dict(self.closing_condition),
            "opening_time": self.opening_time.isoformat() if self.opening_time else None,
            "closing_time": self.closing_time.isoformat() if self.closing_time else None,
        }


def _local_now() -> datetime:
    return datetime.now().astimezone()


class Coop:
    """A chicken coop with one automated door.

    The coop owns its actuator: nothing else may move the door. All status
    changes go through a single lock, which is held for the whole actuator
    call so two transitions can never drive the door at the same time.
    """

    def __init__(
        self,
        actuator: Actuator,
        opening_condition: Condition,
        closing_condition: Condition,
        *,
        latitude: float = 0.0,
        longitude: float = 0.0,
        automatic: bool = False,
        notifiers: Optional[Iterable[Notifier]] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """Initialize the coop.

        Args:
            actuator: The door actuator (exclusively owned).
            opening_condition: Condition yielding today's opening time.
            closing_condition: Condition yielding today's closing time.
            latitude: Latitude of the coop (default used when 0).
            longitude: Longitude of the coop (default used when 0).
            automatic: Whether automatic mode starts enabled.
            notifiers: Notifiers for lifecycle events.
            clock: Returns "now" (defaults to the aware local time).
        """
        self._actuator = actuator
        self._opening_condition = opening_condition
        self._closing_condition = closing_condition
        self._latitude = latitude or DEFAULT_LATITUDE
        self._longitude = longitude or DEFAULT_LONGITUDE
        self._automatic = automatic
        self._notifiers: tuple[Notifier, ...] = tuple(notifiers or ())
        self._clock = clock or _local_now

        self._status = CoopStatus.UNKNOWN
        self._lock = asyncio.Lock()
        self._unknown_reported = False

        # User callbacks
        self._status_callbacks: list[Callable[[CoopStatus], None]] = []

    # =========================================================================
    # Read surface
    # =========================================================================

    @property
    def status(self) -> CoopStatus:
        """Status after the most recent transition step."""
        return self._status

    @property
    def automatic(self) -> bool:
        """Whether automatic mode owns the door."""
        return self._automatic

    @property
    def latitude(self) -> float:
        return self._latitude

    @property
    def longitude(self) -> float:
        return self._longitude

    @property
    def opening_condition(self) -> Condition:
        return self._opening_condition

    @property
    def closing_condition(self) -> Condition:
        return self._closing_condition

    @property
    def notifiers(self) -> tuple[Notifier, ...]:
        return self._notifiers

    def now(self) -> datetime:
        """Current time according to the coop's clock."""
        return self._clock()

    def opening_time(self) -> datetime:
        """Today's opening time."""
        return self._opening_condition.opening_time(self.now())

    def closing_time(self) -> datetime:
        """Today's closing time."""
        return self._closing_condition.closing_time(self.now())

    def snapshot(self) -> CoopState:
        """Return a consistent view of the coop.

        Today's times are left empty when a condition cannot be evaluated
        (e.g. no sunrise at the coop's latitude).
        """
        state = CoopState(
            status=self._status,
            is_automatic=self._automatic,
            latitude=self._latitude,
            longitude=self._longitude,
            opening_condition=self._opening_condition.to_dict(),
            closing_condition=self._closing_condition.to_dict(),
        )
        try:
            state.opening_time = self.opening_time()
            state.closing_time = self.closing_time()
        except CoopError as err:
            logger.warning(f"Cannot compute today's times: {err}")
        return state

    def on_status_change(self, callback: Callable[[CoopStatus], None]) -> None:
        """Register a callback for status changes."""
        self._status_callbacks.append(callback)

    # =========================================================================
    # Manual operations
    # =========================================================================

    async def open(self) -> None:
        """Open the coop manually.

        Raises:
            AutomaticModeEnabledError: automatic mode owns the door.
            TransitionError: the current status forbids opening.
            ActuationFailedError: the actuator failed (status is now UNKNOWN).
        """
        if self._automatic:
            raise AutomaticModeEnabledError(ACTION_OPEN)
        await self._open()

    async def close(self) -> None:
        """Close the coop manually. See ``open`` for errors."""
        if self._automatic:
            raise AutomaticModeEnabledError(ACTION_CLOSE)
        await self._close()

    async def update(self, request: CoopUpdateRequest) -> None:
        """Replace status, automatic mode and both conditions together.

        Everything is validated before anything is changed, so a rejected
        request leaves the coop untouched.

        Raises:
            InvalidStatusError: the status is neither "opened" nor "closed".
            InvalidFormatError: a condition could not be built.
        """
        status = CoopStatus.from_attestation(request.status)
        opening = create_condition(
            request.opening_condition.mode,
            request.opening_condition.value,
            self._latitude,
            self._longitude,
        )
        closing = create_condition(
            request.closing_condition.mode,
            request.closing_condition.value,
            self._latitude,
            self._longitude,
        )

        async with self._lock:
            self._automatic = request.is_automatic
            self._opening_condition = opening
            self._closing_condition = closing
            self._set_status(status)

        logger.info(
            f"Coop updated: status={status.value} automatic={request.is_automatic} "
            f"opening={opening!r} closing={closing!r}"
        )

    # =========================================================================
    # Transitions
    # =========================================================================

    async def _open(self, still_wanted=None) -> bool:
        return await self._transition(
            ACTION_OPEN,
            _OPEN_REJECTIONS,
            CoopStatus.OPENING,
            CoopStatus.OPENED,
            self._actuator.open,
            still_wanted,
        )

    async def _close(self, still_wanted=None) -> bool:
        return await self._transition(
            ACTION_CLOSE,
            _CLOSE_REJECTIONS,
            CoopStatus.CLOSING,
            CoopStatus.CLOSED,
            self._actuator.close,
            still_wanted,
        )

    async def _transition(
        self, action, rejections, in_flight, settled, actuate, still_wanted=None
    ) -> bool:
        """Run one transition under the lock.

        ``still_wanted`` is re-evaluated once the lock is held. It lets the
        automatic path drop a decision made before an ``update`` changed the
        mode or the conditions.

        Returns:
            True if the actuator was driven, False if the decision was dropped.
        """
        # An in-flight transition is rejected right away instead of waiting
        # for the lock, then the status is checked again once it is held.
        self._reject(action, rejections)
        async with self._lock:
            self._reject(action, rejections)
            if still_wanted is not None and not still_wanted():
                logger.info(f"No longer need to {action} the coop, skipping")
                return False
            self._set_status(in_flight)
            try:
                await actuate()
            except asyncio.CancelledError:
                self._set_status(CoopStatus.UNKNOWN)
                raise
            except Exception as err:
                self._set_status(CoopStatus.UNKNOWN)
                raise ActuationFailedError(action, in_flight, err) from err
            self._set_status(settled)
        return True

    def _reject(self, action: str, rejections) -> None:
        error = rejections.get(self._status)
        if error is not None:
            raise error(action, self._status)

    def _set_status(self, status: CoopStatus) -> None:
        if status == self._status:
            return
        logger.debug(f"Coop status {self._status.value} -> {status.value}")
        self._status = status
        if status != CoopStatus.UNKNOWN:
            self._unknown_reported = False
        for callback in self._status_callbacks:
            try:
                callback(status)
            except Exception:
                logger.exception("Error in status callback")

    # =========================================================================
    # Automatic evaluation
    # =========================================================================

    def should_be_opened(self, now: datetime) -> bool:
        """Whether ``now`` lies in today's opening window."""
        return (
            self._opening_condition.opening_time(now)
            <= now
            < self._closing_condition.closing_time(now)
        )

    def should_be_closed(self, now: datetime) -> bool:
        """Whether today's closing time has passed."""
        return now >= self._closing_condition.closing_time(now)

    async def check(self, now: Optional[datetime] = None) -> None:
        """Evaluate the conditions and move the door if needed.

        Called by the scheduler on every tick. Failures are logged and
        notified but never raised, so the scheduler keeps ticking.
        """
        if not self._automatic:
            logger.debug(f"Automatic mode is disabled (status={self._status.value})")
            return

        now = now or self.now()
        status = self._status

        if status == CoopStatus.UNKNOWN:
            logger.warning("The status is unknown, manual intervention required")
            if not self._unknown_reported:
                self._unknown_reported = True
                await self.notify(MSG_STATUS_UNKNOWN)
            return

        if status in (CoopStatus.OPENING, CoopStatus.CLOSING):
            logger.info(f"The coop is {status.value}")
            return

        try:
            if status == CoopStatus.CLOSED:
                should_move = self.should_be_opened(now)
            else:
                should_move = self.should_be_closed(now)
        except CoopError as err:
            logger.error(f"Error while evaluating the conditions: {err}")
            return

        logger.debug(f"Checked the coop at {now.isoformat()} (status={status.value})")
        if not should_move:
            return

        if status == CoopStatus.CLOSED:
            await self._automatic_transition(
                ACTION_OPEN,
                self._open,
                lambda: self._automatic and self.should_be_opened(now),
                MSG_OPENED,
                MSG_OPEN_FAILED,
            )
        else:
            await self._automatic_transition(
                ACTION_CLOSE,
                self._close,
                lambda: self._automatic and self.should_be_closed(now),
                MSG_CLOSED,
                MSG_CLOSE_FAILED,
            )

    async def _automatic_transition(
        self, action, transition, still_wanted, success_msg, failure_msg
    ):
        logger.warning(f"The coop should be {'opened' if action == ACTION_OPEN else 'closed'}")
        try:
            moved = await transition(still_wanted)
        except ActuationFailedError as err:
            logger.error(f"Error while trying to {action} the coop: {err}")
            await self.notify(failure_msg.format(error=err))
            return
        except CoopError as err:
            logger.warning(f"Cannot {action} the coop: {err}")
            return
        if not moved:
            return
        logger.info(success_msg)
        await self.notify(success_msg)

    # =========================================================================
    # Notifications
    # =========================================================================

    async def notify(self, message: str) -> None:
        """Broadcast ``message`` to all notifiers (best effort)."""
        await broadcast(self._notifiers, message)

    async def announce_unknown(self) -> None:
        """Announce that the door position has not been observed yet.

        Counts as the UNKNOWN report, so the next check does not repeat it.
        """
        if self._status == CoopStatus.UNKNOWN:
            self._unknown_reported = True
        await self.notify(MSG_STATUS_UNKNOWN)
