# Copyright (c) 2026 The py-chickencoop Authors
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Coop operation commands."""

from typing import TYPE_CHECKING, Optional

from ..const import MODE_SUN_BASED, MODE_TIME_BASED, STATUS_CLOSED, STATUS_OPENED
from ..coop import ConditionSpec, CoopUpdateRequest
from ..exceptions import CoopError
from .base import Arg, CommandResult, command

if TYPE_CHECKING:
    from ..coop import Coop
    from ..scheduler import CoopScheduler

_MODES = (MODE_TIME_BASED, MODE_SUN_BASED)


def _error_result(err: CoopError) -> CommandResult:
    return CommandResult(False, str(err), {"error": err.kind.value})


class CoopCommandsMixin:
    """Mixin providing coop commands."""

    coop: "Coop"
    scheduler: Optional["CoopScheduler"]

    @command("status", "state", "s", description="Show the coop status")
    def status(self) -> CommandResult:
        """Show status, mode, coordinates and today's times."""
        state = self.coop.snapshot()
        data = state.to_dict()

        def describe(condition: dict) -> str:
            return f"{condition['mode']} {condition['value']}"

        lines = [
            f"Status: {state.status.value}",
            f"Automatic: {'on' if state.is_automatic else 'off'}",
            f"Location: {state.latitude}, {state.longitude}",
            f"Opening: {describe(state.opening_condition)} "
            f"(today {data['opening_time'] or 'n/a'})",
            f"Closing: {describe(state.closing_condition)} "
            f"(today {data['closing_time'] or 'n/a'})",
        ]
        return CommandResult(True, "\n".join(lines), data)

    @command("open", "o", description="Open the coop (manual mode only)")
    async def open(self) -> CommandResult:
        try:
            await self.coop.open()
        except CoopError as err:
            return _error_result(err)
        return CommandResult(True, "Coop opened")

    @command("close", "c", description="Close the coop (manual mode only)")
    async def close(self) -> CommandResult:
        try:
            await self.coop.close()
        except CoopError as err:
            return _error_result(err)
        return CommandResult(True, "Coop closed")

    @command(
        "update",
        "u",
        description="Set the door status, automatic mode and both conditions",
        args=(
            Arg("status", choices=(STATUS_OPENED, STATUS_CLOSED), help="Real door position"),
            Arg("automatic", toggle=True, help="Automatic mode"),
            Arg("opening_mode", choices=_MODES, help="Opening condition"),
            Arg("opening_value", help="HH:MM or [+-]HH:MM"),
            Arg("closing_mode", choices=_MODES, help="Closing condition"),
            Arg("closing_value", help="HH:MM or [+-]HH:MM"),
        ),
    )
    async def update(
        self,
        status: str,
        automatic: bool,
        opening_mode: str,
        opening_value: str,
        closing_mode: str,
        closing_value: str,
    ) -> CommandResult:
        """Administrative override of the coop configuration.

        The status is the operator's word for where the door really is.
        """
        request = CoopUpdateRequest(
            status=status,
            is_automatic=automatic,
            opening_condition=ConditionSpec(opening_mode, opening_value),
            closing_condition=ConditionSpec(closing_mode, closing_value),
        )
        try:
            await self.coop.update(request)
        except CoopError as err:
            return _error_result(err)
        return CommandResult(True, f"Coop updated (status {self.coop.status.value})")

    @command("check", "k", description="Run one automatic evaluation now")
    async def check(self) -> CommandResult:
        if self.scheduler is None:
            await self.coop.check()
        elif not await self.scheduler.run_once():
            return CommandResult(False, "A check is already running")
        return CommandResult(True, f"Coop checked (status {self.coop.status.value})")
