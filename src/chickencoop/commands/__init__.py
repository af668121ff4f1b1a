# Copyright (c) 2026 The py-chickencoop Authors
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Command handling for the coop control surface.

This module provides a command dispatcher used by:
- Interactive keyboard input
- Control port connections
- Direct Python API calls

The command handler is split into category-specific mixins:
- CoopCommandsMixin: Coop operations (status, open, close, update, check)
- ControlCommandsMixin: Controller control (shutdown, debug, help)
"""

from .base import (
    Arg,
    CommandInfo,
    CommandResult,
    collect_commands,
    command,
    unique_commands,
)
from .handler import CommandHandler

__all__ = [
    "Arg",
    "CommandHandler",
    "CommandInfo",
    "CommandResult",
    "collect_commands",
    "command",
    "unique_commands",
]
