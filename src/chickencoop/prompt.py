# Copyright (c) 2026 The py-chickencoop Authors
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""prompt_toolkit components for the interactive control surface.

Provides tab completion, styling, and the InteractiveSession class used by
the CLI.
"""
from __future__ import annotations

from pathlib import Path
from typing import AsyncIterator, Callable, Optional

from prompt_toolkit import PromptSession
from prompt_toolkit.auto_suggest import AutoSuggestFromHistory
from prompt_toolkit.completion import Completer, Completion
from prompt_toolkit.formatted_text import FormattedText
from prompt_toolkit.history import FileHistory, History, InMemoryHistory
from prompt_toolkit.styles import Style

from .commands import CommandInfo, unique_commands

# History file path
CLI_HISTORY_FILE = Path.home() / ".chickencoop_history"

COOP_STYLE = Style.from_dict(
    {
        "prompt.automatic": "#00aa00 bold",  # Green when automation owns the door
        "prompt.manual": "#ff8800 bold",  # Orange in manual mode
    }
)


class CoopCompleter(Completer):
    """Tab completion for coop commands and their fixed-choice arguments."""

    def __init__(self, commands: dict[str, CommandInfo]):
        self.commands = commands

    def _get_commands(self) -> list[tuple[str, str]]:
        return [(info.name, info.description) for info in unique_commands(self.commands)]

    def _get_arg_options(self, words: list[str]) -> list[tuple[str, str]]:
        """Options for the argument following ``words``."""
        info = self.commands.get(words[0].lower())
        position = len(words) - 1
        if info is None or position >= len(info.args):
            return []
        arg = info.args[position]
        return [(option, arg.help or arg.name) for option in arg.options]

    def get_completions(self, document, complete_event):
        """Generate completions for the current input."""
        text = document.text_before_cursor
        words = text.split()

        if not text or text.endswith(" "):
            word_before = ""
            completed_words = words
        else:
            word_before = words[-1] if words else ""
            completed_words = words[:-1] if words else []

        if not completed_words:
            candidates = self._get_commands()
        else:
            candidates = self._get_arg_options(completed_words)

        for name, desc in candidates:
            if name.startswith(word_before.lower()):
                yield Completion(
                    name,
                    start_position=-len(word_before),
                    display_meta=desc,
                )


class InteractiveSession:
    """Manages an interactive prompt session with history.

    Usage:
        session = InteractiveSession(handler.commands, history_file="/path/to/history")

        async for line in session.input_loop(stop_check=stop_event.is_set):
            result = await handler.execute(line)
            if result.message:
                print(f">>> {result.message}")
    """

    def __init__(
        self,
        commands: dict[str, CommandInfo],
        history_file: Optional[str] = None,
        get_prompt: Optional[Callable[[], FormattedText]] = None,
        prompt_text: str = "coop> ",
    ):
        """Initialize the interactive session.

        Args:
            commands: Command map offered for tab completion.
            history_file: Path to history file, "none" or None for in-memory.
            get_prompt: Optional callable returning the prompt.
            prompt_text: Simple string prompt (used if get_prompt is None).
        """
        self._prompt_text = prompt_text
        self._get_prompt = get_prompt

        history: History
        if history_file and history_file.lower() != "none":
            history = FileHistory(history_file)
        else:
            history = InMemoryHistory()

        self._session = PromptSession(
            history=history,
            completer=CoopCompleter(commands),
            complete_while_typing=False,
            style=COOP_STYLE,
            auto_suggest=AutoSuggestFromHistory(),
            enable_history_search=True,
        )

    @classmethod
    def create(
        cls,
        commands: dict[str, CommandInfo],
        history_file: Optional[str] = None,
        is_automatic: Optional[Callable[[], bool]] = None,
    ) -> "InteractiveSession":
        """Create a session whose prompt color follows the automatic mode."""
        prompt_text = "coop> "

        get_prompt = None
        if is_automatic is not None:

            def get_prompt():
                if is_automatic():
                    return FormattedText([("class:prompt.automatic", prompt_text)])
                return FormattedText([("class:prompt.manual", prompt_text)])

        return cls(
            commands,
            history_file=history_file,
            get_prompt=get_prompt,
            prompt_text=prompt_text,
        )

    async def prompt_async(self) -> Optional[str]:
        """Get input from the user asynchronously.

        Returns:
            The input line stripped, or None on EOF.
        """
        try:
            prompt = self._get_prompt() if self._get_prompt else self._prompt_text
            line = await self._session.prompt_async(prompt)
            return line.strip() if line else ""
        except EOFError:
            return None
        except KeyboardInterrupt:
            return ""  # Return empty to continue loop

    async def input_loop(
        self,
        stop_check: Optional[Callable[[], bool]] = None,
    ) -> AsyncIterator[str]:
        """Yield non-empty input lines until EOF or ``stop_check()``."""
        while True:
            if stop_check and stop_check():
                break

            line = await self.prompt_async()
            if line is None:
                break
            if not line:
                continue
            yield line
