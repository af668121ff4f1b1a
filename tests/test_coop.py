# Copyright (c) 2026 The py-chickencoop Authors
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Tests for the coop state machine."""
from __future__ import annotations

import asyncio
from datetime import datetime, timezone

import pytest

from chickencoop import Coop, CoopStatus, CoopUpdateRequest
from chickencoop.conditions import SunBasedCondition, TimeBasedCondition
from chickencoop.const import (
    DEFAULT_LATITUDE,
    DEFAULT_LONGITUDE,
    MSG_CLOSED,
    MSG_OPENED,
    MSG_STATUS_UNKNOWN,
)
from chickencoop.coop import ConditionSpec
from chickencoop.exceptions import (
    ActuationError,
    ActuationFailedError,
    AlreadyClosedError,
    AlreadyClosingError,
    AlreadyOpenedError,
    AlreadyOpeningError,
    AutomaticModeEnabledError,
    ErrorKind,
    InvalidFormatError,
    InvalidStatusError,
    StatusUnknownError,
)


def at(hour: int, minute: int = 0) -> datetime:
    return datetime(2024, 5, 15, hour, minute, tzinfo=timezone.utc)


def update_request(status="closed", automatic=False, opening=None, closing=None):
    return CoopUpdateRequest(
        status=status,
        is_automatic=automatic,
        opening_condition=opening or ConditionSpec("time_based", "07:00"),
        closing_condition=closing or ConditionSpec("time_based", "20:00"),
    )


# ============================================================================
# Construction and Read Surface
# ============================================================================

class TestCoopReadSurface:
    """Tests for the coop's read-only surface."""

    def test_starts_unknown(self, actuator):
        coop = Coop(actuator, TimeBasedCondition("07:00"), TimeBasedCondition("20:00"))
        assert coop.status is CoopStatus.UNKNOWN
        assert coop.automatic is False

    def test_default_coordinates(self, actuator):
        coop = Coop(actuator, TimeBasedCondition("07:00"), TimeBasedCondition("20:00"))
        assert coop.latitude == DEFAULT_LATITUDE
        assert coop.longitude == DEFAULT_LONGITUDE

    def test_explicit_coordinates(self, actuator):
        coop = Coop(
            actuator,
            TimeBasedCondition("07:00"),
            TimeBasedCondition("20:00"),
            latitude=48.85,
            longitude=2.35,
        )
        assert (coop.latitude, coop.longitude) == (48.85, 2.35)

    def test_todays_times(self, make_coop, clock):
        coop = make_coop()
        clock.now = at(12, 30)
        assert coop.opening_time() == at(7)
        assert coop.closing_time() == at(20)

    def test_snapshot(self, make_coop):
        coop = make_coop(status=CoopStatus.OPENED, automatic=True)
        data = coop.snapshot().to_dict()

        assert data["status"] == "opened"
        assert data["is_automatic"] is True
        assert data["opening_condition"] == {"mode": "time_based", "value": "07:00"}
        assert data["closing_condition"] == {"mode": "time_based", "value": "20:00"}
        assert data["opening_time"] == at(7).isoformat()
        assert data["closing_time"] == at(20).isoformat()

    def test_snapshot_without_solar_event(self, actuator, clock):
        clock.now = datetime(2024, 6, 21, 12, tzinfo=timezone.utc)
        coop = Coop(
            actuator,
            SunBasedCondition("+00:00", 78.2232, 15.6267),
            TimeBasedCondition("20:00"),
            clock=clock,
        )
        state = coop.snapshot()
        assert state.opening_time is None
        assert state.to_dict()["opening_time"] is None


# ============================================================================
# Manual Operations
# ============================================================================

class TestManualOpen:
    """Tests for Coop.open."""

    async def test_open_from_closed(self, make_coop, actuator, record_statuses):
        coop = make_coop(status=CoopStatus.CLOSED)
        seen = record_statuses(coop)

        await coop.open()

        assert coop.status is CoopStatus.OPENED
        assert actuator.open_calls == 1
        assert seen == [CoopStatus.OPENING, CoopStatus.OPENED]

    @pytest.mark.parametrize(
        "status,error",
        [
            (CoopStatus.OPENED, AlreadyOpenedError),
            (CoopStatus.OPENING, AlreadyOpeningError),
            (CoopStatus.CLOSING, AlreadyClosingError),
            (CoopStatus.UNKNOWN, StatusUnknownError),
        ],
    )
    async def test_open_rejected(self, make_coop, actuator, status, error):
        coop = make_coop(status=status)

        with pytest.raises(error) as exc_info:
            await coop.open()

        assert coop.status is status
        assert actuator.open_calls == 0
        assert exc_info.value.status is status
        assert exc_info.value.action == "open"

    @pytest.mark.parametrize("status", list(CoopStatus))
    async def test_open_automatic(self, make_coop, actuator, status):
        coop = make_coop(status=status, automatic=True)

        with pytest.raises(AutomaticModeEnabledError) as exc_info:
            await coop.open()

        assert exc_info.value.kind is ErrorKind.AUTOMATIC_MODE_ENABLED
        assert coop.status is status
        assert actuator.open_calls == 0


class TestManualClose:
    """Tests for Coop.close."""

    async def test_close_from_opened(self, make_coop, actuator, record_statuses):
        coop = make_coop(status=CoopStatus.OPENED)
        seen = record_statuses(coop)

        await coop.close()

        assert coop.status is CoopStatus.CLOSED
        assert actuator.close_calls == 1
        assert seen == [CoopStatus.CLOSING, CoopStatus.CLOSED]

    @pytest.mark.parametrize(
        "status,error",
        [
            (CoopStatus.CLOSED, AlreadyClosedError),
            (CoopStatus.OPENING, AlreadyOpeningError),
            (CoopStatus.CLOSING, AlreadyClosingError),
            (CoopStatus.UNKNOWN, StatusUnknownError),
        ],
    )
    async def test_close_rejected(self, make_coop, actuator, status, error):
        coop = make_coop(status=status)

        with pytest.raises(error):
            await coop.close()

        assert coop.status is status
        assert actuator.close_calls == 0

    @pytest.mark.parametrize("status", list(CoopStatus))
    async def test_close_automatic(self, make_coop, actuator, status):
        coop = make_coop(status=status, automatic=True)

        with pytest.raises(AutomaticModeEnabledError):
            await coop.close()

        assert coop.status is status
        assert actuator.close_calls == 0


class TestActuationFailure:
    """Tests for actuator failures."""

    async def test_open_failure_lands_in_unknown(self, make_coop, actuator, record_statuses):
        coop = make_coop(status=CoopStatus.CLOSED)
        seen = record_statuses(coop)
        cause = ActuationError("motor jammed")
        actuator.error = cause

        with pytest.raises(ActuationFailedError) as exc_info:
            await coop.open()

        assert seen == [CoopStatus.OPENING, CoopStatus.UNKNOWN]
        assert coop.status is CoopStatus.UNKNOWN
        assert exc_info.value.kind is ErrorKind.ACTUATION_FAILED
        assert exc_info.value.cause is cause
        assert exc_info.value.__cause__ is cause
        assert "motor jammed" in str(exc_info.value)

    async def test_close_failure_lands_in_unknown(self, make_coop, actuator, record_statuses):
        coop = make_coop(status=CoopStatus.OPENED)
        seen = record_statuses(coop)
        actuator.error = ActuationError("power cut")

        with pytest.raises(ActuationFailedError):
            await coop.close()

        assert seen == [CoopStatus.CLOSING, CoopStatus.UNKNOWN]

    async def test_unknown_requires_update(self, make_coop, actuator):
        coop = make_coop(status=CoopStatus.CLOSED)
        actuator.error = ActuationError("motor jammed")
        with pytest.raises(ActuationFailedError):
            await coop.open()

        actuator.error = None
        with pytest.raises(StatusUnknownError):
            await coop.open()

        await coop.update(update_request(status="closed"))
        await coop.open()
        assert coop.status is CoopStatus.OPENED

    async def test_cancelled_actuation_lands_in_unknown(self, make_coop, gated_actuator):
        coop = make_coop(status=CoopStatus.CLOSED, door=gated_actuator)

        task = asyncio.create_task(coop.open())
        await gated_actuator.started.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert coop.status is CoopStatus.UNKNOWN

    async def test_failing_callback_does_not_break_transition(self, make_coop):
        coop = make_coop(status=CoopStatus.CLOSED)

        def broken(status):
            raise RuntimeError("callback failure")

        coop.on_status_change(broken)
        await coop.open()
        assert coop.status is CoopStatus.OPENED


# ============================================================================
# Update
# ============================================================================

class TestUpdate:
    """Tests for Coop.update."""

    async def test_update_replaces_everything(self, make_coop):
        coop = make_coop(status=CoopStatus.UNKNOWN)

        await coop.update(
            update_request(
                status="opened",
                automatic=True,
                opening=ConditionSpec("sun_based", "-00:30"),
                closing=ConditionSpec("time_based", "21:15"),
            )
        )

        assert coop.status is CoopStatus.OPENED
        assert coop.automatic is True
        assert coop.opening_condition == SunBasedCondition(
            "-00:30", DEFAULT_LATITUDE, DEFAULT_LONGITUDE
        )
        assert coop.closing_condition == TimeBasedCondition("21:15")

    @pytest.mark.parametrize("status", ["invalid", "opening", "closing", "unknown", ""])
    async def test_invalid_status(self, make_coop, status):
        coop = make_coop(status=CoopStatus.CLOSED)
        opening, closing = coop.opening_condition, coop.closing_condition

        with pytest.raises(InvalidStatusError) as exc_info:
            await coop.update(
                update_request(
                    status=status,
                    automatic=True,
                    opening=ConditionSpec("time_based", "05:00"),
                )
            )

        assert exc_info.value.kind is ErrorKind.INVALID_STATUS
        assert coop.status is CoopStatus.CLOSED
        assert coop.automatic is False
        assert coop.opening_condition is opening
        assert coop.closing_condition is closing

    async def test_invalid_condition_changes_nothing(self, make_coop):
        coop = make_coop(status=CoopStatus.CLOSED)

        with pytest.raises(InvalidFormatError):
            await coop.update(
                update_request(
                    status="opened",
                    automatic=True,
                    closing=ConditionSpec("time_based", "25:00"),
                )
            )

        assert coop.status is CoopStatus.CLOSED
        assert coop.automatic is False
        assert coop.closing_condition == TimeBasedCondition("20:00")

    async def test_from_dict(self):
        request = CoopUpdateRequest.from_dict(
            {
                "status": "opened",
                "is_automatic": True,
                "opening_condition": {"mode": "time_based", "value": "07:30"},
                "closing_condition": {"mode": "sun_based", "value": "-00:30"},
            }
        )
        assert request.status == "opened"
        assert request.is_automatic is True
        assert request.opening_condition == ConditionSpec("time_based", "07:30")
        assert request.closing_condition.to_dict() == {"mode": "sun_based", "value": "-00:30"}

    async def test_update_waits_for_transition(self, make_coop, gated_actuator):
        coop = make_coop(status=CoopStatus.CLOSED, door=gated_actuator)

        opening = asyncio.create_task(coop.open())
        await gated_actuator.started.wait()
        updating = asyncio.create_task(coop.update(update_request(status="closed")))
        await asyncio.sleep(0)

        assert not updating.done()
        assert coop.status is CoopStatus.OPENING

        gated_actuator.release()
        await opening
        await updating
        assert coop.status is CoopStatus.CLOSED


# ============================================================================
# Automatic Evaluation
# ============================================================================

class TestCheck:
    """Tests for Coop.check."""

    async def test_scenario_open_after_opening_time(self, make_coop, actuator, notifier):
        coop = make_coop(status=CoopStatus.CLOSED, automatic=True)

        await coop.check(at(7, 5))

        assert actuator.open_calls == 1
        assert coop.status is CoopStatus.OPENED
        assert notifier.messages == [MSG_OPENED]

    async def test_scenario_before_opening_time(self, make_coop, actuator, notifier):
        coop = make_coop(status=CoopStatus.CLOSED, automatic=True)

        await coop.check(at(6, 55))

        assert actuator.open_calls == 0
        assert coop.status is CoopStatus.CLOSED
        assert notifier.messages == []

    async def test_scenario_close_after_closing_time(self, make_coop, actuator, notifier):
        coop = make_coop(status=CoopStatus.OPENED, automatic=True)

        await coop.check(at(20, 1))

        assert actuator.close_calls == 1
        assert coop.status is CoopStatus.CLOSED
        assert notifier.messages == [MSG_CLOSED]

    async def test_opening_time_is_inclusive(self, make_coop, actuator):
        coop = make_coop(status=CoopStatus.CLOSED, automatic=True)
        await coop.check(at(7))
        assert actuator.open_calls == 1

    async def test_closed_after_closing_time_stays_closed(self, make_coop, actuator):
        coop = make_coop(status=CoopStatus.CLOSED, automatic=True)
        await coop.check(at(20))
        assert actuator.open_calls == 0
        assert coop.status is CoopStatus.CLOSED

    async def test_opened_before_closing_time_stays_opened(self, make_coop, actuator):
        coop = make_coop(status=CoopStatus.OPENED, automatic=True)
        await coop.check(at(19, 59))
        assert actuator.close_calls == 0

    async def test_uses_clock_when_no_time_given(self, make_coop, actuator, clock):
        coop = make_coop(status=CoopStatus.CLOSED, automatic=True)
        clock.now = at(9)
        await coop.check()
        assert actuator.open_calls == 1

    async def test_manual_mode_is_noop(self, make_coop, actuator, notifier):
        coop = make_coop(status=CoopStatus.CLOSED, automatic=False)
        await coop.check(at(12))
        assert actuator.open_calls == 0
        assert notifier.messages == []

    @pytest.mark.parametrize("status", [CoopStatus.OPENING, CoopStatus.CLOSING])
    async def test_in_flight_is_noop(self, make_coop, actuator, status):
        coop = make_coop(status=status, automatic=True)
        await coop.check(at(12))
        assert coop.status is status
        assert actuator.open_calls == 0
        assert actuator.close_calls == 0

    async def test_unknown_is_reported_once(self, make_coop, actuator, notifier):
        coop = make_coop(status=CoopStatus.UNKNOWN, automatic=True)

        await coop.check(at(12))
        await coop.check(at(12, 1))

        assert notifier.messages == [MSG_STATUS_UNKNOWN]
        assert actuator.open_calls == 0
        assert coop.status is CoopStatus.UNKNOWN

    async def test_startup_announcement_counts_as_report(self, make_coop, notifier):
        coop = make_coop(status=CoopStatus.UNKNOWN, automatic=True)

        await coop.announce_unknown()
        await coop.check(at(12))

        assert notifier.messages == [MSG_STATUS_UNKNOWN]

    async def test_announcement_in_known_status(self, make_coop, actuator, notifier):
        coop = make_coop(status=CoopStatus.CLOSED, automatic=True)
        await coop.announce_unknown()

        actuator.error = ActuationError("motor jammed")
        await coop.check(at(12))
        await coop.check(at(12, 1))

        # Entering UNKNOWN later is still reported
        assert notifier.messages[0] == MSG_STATUS_UNKNOWN
        assert notifier.messages[-1] == MSG_STATUS_UNKNOWN
        assert len(notifier.messages) == 3

    async def test_unknown_reported_again_after_recovery(self, make_coop, actuator, notifier):
        coop = make_coop(status=CoopStatus.UNKNOWN, automatic=True)
        await coop.check(at(12))

        await coop.update(update_request(status="closed", automatic=True))
        actuator.error = ActuationError("motor jammed")
        await coop.check(at(12, 1))
        await coop.check(at(12, 2))

        assert notifier.messages[0] == MSG_STATUS_UNKNOWN
        assert notifier.messages[1].startswith("The coop could not be opened")
        assert notifier.messages[2] == MSG_STATUS_UNKNOWN

    async def test_failure_is_not_raised(self, make_coop, actuator, notifier):
        coop = make_coop(status=CoopStatus.CLOSED, automatic=True)
        actuator.error = ActuationError("motor jammed")

        await coop.check(at(8))

        assert coop.status is CoopStatus.UNKNOWN
        assert len(notifier.messages) == 1
        assert "motor jammed" in notifier.messages[0]

    async def test_unavailable_solar_event_is_not_raised(self, actuator, clock):
        clock.now = datetime(2024, 6, 21, 12, tzinfo=timezone.utc)
        coop = Coop(
            actuator,
            SunBasedCondition("+00:00", 78.2232, 15.6267),
            TimeBasedCondition("20:00"),
            automatic=True,
            clock=clock,
        )
        coop._status = CoopStatus.CLOSED

        await coop.check()

        assert actuator.open_calls == 0
        assert coop.status is CoopStatus.CLOSED

    async def test_failing_notifier_does_not_break_check(self, actuator):
        class Broken:
            async def notify(self, message):
                raise RuntimeError("offline")

        coop = Coop(
            actuator,
            TimeBasedCondition("07:00"),
            TimeBasedCondition("20:00"),
            automatic=True,
            notifiers=[Broken()],
        )
        coop._status = CoopStatus.CLOSED

        await coop.check(at(8))
        assert coop.status is CoopStatus.OPENED


# ============================================================================
# Concurrency
# ============================================================================

class TestConcurrency:
    """Tests for concurrent transitions."""

    async def test_concurrent_manual_opens(self, make_coop, gated_actuator):
        coop = make_coop(status=CoopStatus.CLOSED, door=gated_actuator)

        first = asyncio.create_task(coop.open())
        await gated_actuator.started.wait()

        with pytest.raises(AlreadyOpeningError):
            await coop.open()

        gated_actuator.release()
        await first
        assert gated_actuator.open_calls == 1
        assert coop.status is CoopStatus.OPENED

    async def test_gathered_opens_actuate_once(self, make_coop, actuator):
        coop = make_coop(status=CoopStatus.CLOSED)

        results = await asyncio.gather(coop.open(), coop.open(), return_exceptions=True)

        assert actuator.open_calls == 1
        errors = [r for r in results if isinstance(r, Exception)]
        assert len(errors) == 1
        assert isinstance(errors[0], (AlreadyOpeningError, AlreadyOpenedError))

    async def test_check_and_manual_open(self, make_coop, gated_actuator, notifier):
        """A manual request during an automatic opening sees it in flight."""
        coop = make_coop(status=CoopStatus.CLOSED, automatic=True, door=gated_actuator)

        check = asyncio.create_task(coop.check(at(8)))
        await gated_actuator.started.wait()

        # Hand the door back to the operator while the motor is running
        coop._automatic = False
        with pytest.raises(AlreadyOpeningError):
            await coop.open()
        with pytest.raises(AlreadyOpeningError):
            await coop.close()

        gated_actuator.release()
        await check
        assert gated_actuator.open_calls == 1
        assert gated_actuator.close_calls == 0
        assert coop.status is CoopStatus.OPENED

    async def test_concurrent_checks_actuate_once(self, make_coop, gated_actuator):
        coop = make_coop(status=CoopStatus.CLOSED, automatic=True, door=gated_actuator)

        first = asyncio.create_task(coop.check(at(8)))
        await gated_actuator.started.wait()
        await coop.check(at(8))

        gated_actuator.release()
        await first
        assert gated_actuator.open_calls == 1

    async def test_switch_to_manual_drops_queued_automatic_move(
        self, make_coop, gated_actuator, clock
    ):
        """An automatic decision waiting on the lock is re-checked once it gets it."""
        coop = make_coop(status=CoopStatus.CLOSED, automatic=True, door=gated_actuator)
        clock.now = at(8)

        first = asyncio.create_task(coop.check())
        await gated_actuator.started.wait()

        # The operator takes over while the door is still opening
        updating = asyncio.create_task(
            coop.update(update_request(status="opened", automatic=False))
        )
        await asyncio.sleep(0)

        clock.now = at(21)
        gated_actuator.release()
        second = asyncio.create_task(coop.check())
        await asyncio.gather(first, updating, second)

        assert coop.automatic is False
        assert coop.status is CoopStatus.OPENED
        assert gated_actuator.open_calls == 1
        assert gated_actuator.close_calls == 0

    async def test_conditions_swapped_while_waiting(self, make_coop, actuator, notifier):
        coop = make_coop(status=CoopStatus.CLOSED, automatic=True)

        async with coop._lock:
            check = asyncio.create_task(coop.check(at(8)))
            await asyncio.sleep(0)
            assert not check.done()
            # Same swap update() performs under the lock
            coop._opening_condition = TimeBasedCondition("09:00")

        await check
        assert actuator.open_calls == 0
        assert coop.status is CoopStatus.CLOSED
        assert notifier.messages == []
