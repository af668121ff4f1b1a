# Copyright (c) 2026 The py-chickencoop Authors
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Command handler that combines all command mixins."""

import asyncio
import logging
from typing import TYPE_CHECKING, Callable, Optional

from .base import CommandResult, collect_commands
from .control import ControlCommandsMixin
from .coop import CoopCommandsMixin

if TYPE_CHECKING:
    from ..coop import Coop
    from ..scheduler import CoopScheduler

logger = logging.getLogger(__name__)


class CommandHandler(CoopCommandsMixin, ControlCommandsMixin):
    """Handles commands for one coop.

    Provides a unified interface for controlling the coop from interactive
    input or the control port.

    Commands can be invoked:
    - Via execute() with a command string
    - Directly as methods (e.g., await handler.open(), handler.status())
    """

    def __init__(
        self,
        coop: "Coop",
        stop_callback: Callable[[], None],
        scheduler: Optional["CoopScheduler"] = None,
    ):
        """Initialize the command handler.

        Args:
            coop: The coop to control
            stop_callback: Function to call to stop the controller
            scheduler: Scheduler whose in-flight guard the ``check`` command
                shares. Without one, ``check`` evaluates the coop directly.
        """
        self.coop = coop
        self.stop_callback = stop_callback
        self.scheduler = scheduler
        self.commands = collect_commands(type(self))

    async def execute(self, command_str: str) -> CommandResult:
        """Execute a command string and return the result.

        Args:
            command_str: The command string to execute (e.g., "open", "debug on")

        Returns:
            CommandResult with success status and message
        """
        words = command_str.split() if command_str else []
        if not words:
            return CommandResult(False, "Empty command")

        name = words[0].lower()
        info = self.commands.get(name)
        if info is None:
            return CommandResult(
                False, f"Unknown command: {name}. Type 'help' for commands."
            )

        try:
            values = info.convert_args(words[1:])
        except ValueError as e:
            return CommandResult(False, f"{e}\nUsage: {info.name} {info.usage}".rstrip())

        try:
            result = getattr(self, info.method)(*values)
            if asyncio.iscoroutine(result):
                result = await result
        except Exception as e:
            logger.exception(f"Error while executing '{command_str}'")
            return CommandResult(False, f"Error: {e}")

        return result
