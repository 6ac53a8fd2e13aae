# Copyright (c) 2026 Mark Ferrell. MIT License.
"""Interactive operator prompts.

Release actions only see the Prompt protocol, so the whole release flow
can be driven headlessly in tests by a scripted implementation.
"""

from __future__ import annotations

from typing import Protocol, Sequence, TypeVar

from rich.console import Console
from rich.prompt import Confirm, IntPrompt

from release_train.errors import UserAbortedReleaseActionError

T = TypeVar("T")


class Prompt(Protocol):
    """Capability for asking the operator questions."""

    def confirm(self, message: str, default: bool = False) -> bool:
        """Ask a yes/no question."""
        ...

    def choose(self, message: str, options: Sequence[tuple[str, T]]) -> T:
        """Ask the operator to pick one of the labelled options."""
        ...


class RichPrompt:
    """Prompt implementation rendering to the terminal with rich."""

    def __init__(self, console: Console | None = None) -> None:
        self._console = console or Console()

    def confirm(self, message: str, default: bool = False) -> bool:
        try:
            return Confirm.ask(message, default=default, console=self._console)
        except (KeyboardInterrupt, EOFError) as e:
            raise UserAbortedReleaseActionError("Prompt cancelled.") from e

    def choose(self, message: str, options: Sequence[tuple[str, T]]) -> T:
        if not options:
            raise ValueError("Cannot choose from an empty list of options")

        self._console.print(message)
        for index, (label, _) in enumerate(options, start=1):
            self._console.print(f"  {index}) {label}")

        try:
            selected = IntPrompt.ask(
                "Please select an option",
                choices=[str(i) for i in range(1, len(options) + 1)],
                default=1,
                console=self._console,
            )
        except (KeyboardInterrupt, EOFError) as e:
            raise UserAbortedReleaseActionError("Prompt cancelled.") from e
        return options[selected - 1][1]
