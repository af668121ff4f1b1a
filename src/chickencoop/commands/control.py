# Copyright (c) 2026 The py-chickencoop Authors
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Control commands."""

import logging
from typing import Callable, Optional

from .base import Arg, CommandInfo, CommandResult, command, unique_commands


class ControlCommandsMixin:
    """Mixin providing control commands."""

    stop_callback: Callable[[], None]
    commands: dict[str, CommandInfo]

    @command(
        "shutdown", "stop", "exit", "q", "quit",
        description="Stop the coop controller",
        category="control",
    )
    def shutdown(self) -> CommandResult:
        """Shutdown the controller."""
        self.stop_callback()
        return CommandResult(True, "Shutting down...")

    @command(
        "debug",
        description="Enable or disable debug logging",
        category="control",
        args=(Arg("state", toggle=True, optional=True, help="Debug logging"),),
    )
    def debug(self, state: Optional[bool] = None) -> CommandResult:
        """Enable or disable debug logging."""
        root_logger = logging.getLogger()

        if state is None:
            is_debug = root_logger.level <= logging.DEBUG
            return CommandResult(True, f"Debug logging: {'on' if is_debug else 'off'}")

        if state:
            root_logger.setLevel(logging.DEBUG)
            return CommandResult(True, "Debug logging enabled")
        else:
            root_logger.setLevel(logging.INFO)
            return CommandResult(True, "Debug logging disabled")

    @command("help", "h", "?", description="Show available commands", category="control")
    def help(self) -> CommandResult:
        return CommandResult(True, self.get_help())

    def get_help(self) -> str:
        """Build the help text, coop commands first."""
        sections: dict[str, list[str]] = {"coop": [], "control": []}
        for info in unique_commands(self.commands):
            aliases = f" ({', '.join(info.aliases)})" if info.aliases else ""
            usage = f" {info.usage}" if info.usage else ""
            sections.setdefault(info.category, []).append(
                f"  {info.name}{aliases}{usage} - {info.description}"
            )

        lines = []
        for category, entries in sections.items():
            if entries:
                lines.append(f"{category.capitalize()} commands:")
                lines.extend(entries)
        return "\n".join(lines)
