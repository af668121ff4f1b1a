# Copyright (c) 2026 The py-chickencoop Authors
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Command declaration and argument conversion.

A command is a handler method tagged with ``@command``. Tagging only stores
a ``CommandInfo`` on the method: every ``CommandHandler`` collects the tagged
methods of its own class with ``collect_commands``, so two handlers never
share a registry.

Arguments are positional. Each ``Arg`` is free text, an on/off toggle or one
of a fixed set of lowercase choices (door statuses, condition modes).
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Optional

# Words accepted for an on/off toggle
_TOGGLE_WORDS = {
    "on": True,
    "off": False,
    "yes": True,
    "no": False,
    "true": True,
    "false": False,
    "1": True,
    "0": False,
}


@dataclass
class CommandResult:
    """Result of executing a command."""

    success: bool
    message: str
    data: Optional[dict] = None


@dataclass(frozen=True)
class Arg:
    """One positional argument."""

    name: str
    choices: tuple[str, ...] = ()
    toggle: bool = False
    optional: bool = False
    help: str = ""

    @property
    def options(self) -> tuple[str, ...]:
        """Words the argument accepts, empty for free text."""
        return ("on", "off") if self.toggle else self.choices

    def usage(self) -> str:
        label = "|".join(self.options) or self.name
        return f"[{label}]" if self.optional else f"<{label}>"

    def convert(self, word: str) -> Any:
        """Convert one word, raising ValueError if it is not accepted."""
        if self.toggle:
            try:
                return _TOGGLE_WORDS[word.lower()]
            except KeyError:
                raise ValueError(f"'{word}' is not valid for {self.name}, use on/off") from None
        if self.choices:
            if word.lower() not in self.choices:
                raise ValueError(
                    f"'{word}' is not valid for {self.name}. "
                    f"Choose from: {', '.join(self.choices)}"
                )
            return word.lower()
        return word


@dataclass
class CommandInfo:
    """A command as seen by the dispatcher and the help text."""

    name: str
    method: str
    description: str = ""
    aliases: tuple[str, ...] = ()
    category: str = "coop"
    args: tuple[Arg, ...] = field(default_factory=tuple)

    @property
    def usage(self) -> str:
        return " ".join(arg.usage() for arg in self.args)

    def convert_args(self, words: list[str]) -> list[Any]:
        """Convert positional words, filling omitted optional args with None.

        Raises:
            ValueError: wrong number of words, or a word is not accepted.
        """
        if len(words) > len(self.args):
            raise ValueError("Too many arguments")
        values = []
        for index, arg in enumerate(self.args):
            if index < len(words):
                values.append(arg.convert(words[index]))
            elif arg.optional:
                values.append(None)
            else:
                raise ValueError(f"Missing required argument: {arg.name}")
        return values


def command(
    name: str,
    *aliases: str,
    description: str,
    category: str = "coop",
    args: tuple[Arg, ...] = (),
) -> Callable[[Callable], Callable]:
    """Tag a handler method as the command ``name``."""

    def decorator(func: Callable) -> Callable:
        func._command_info = CommandInfo(
            name=name,
            method=func.__name__,
            description=description,
            aliases=aliases,
            category=category,
            args=tuple(args),
        )
        return func

    return decorator


def collect_commands(handler_class: type) -> dict[str, CommandInfo]:
    """Map every name and alias to its command for ``handler_class``."""
    commands: dict[str, CommandInfo] = {}
    for attr in dir(handler_class):
        info = getattr(getattr(handler_class, attr, None), "_command_info", None)
        if not isinstance(info, CommandInfo):
            continue
        for word in (info.name, *info.aliases):
            commands[word] = info
    return commands


def unique_commands(commands: dict[str, CommandInfo]) -> list[CommandInfo]:
    """Commands without their alias entries, sorted by name."""
    return sorted({info.name: info for info in commands.values()}.values(), key=lambda i: i.name)
