"""Prompting facade used by the conflict controller and the orchestrator.

TerminalPrompter acquires the terminal for exactly one prompt at a time
and runs the selection engine inside that scope.
"""

from __future__ import annotations

import sys
from collections.abc import Sequence
from typing import Protocol, TextIO

import questionary
import readchar

from .menu import KeyReader, run_multi_select, run_single_select
from .render import MenuRenderer
from .session import TerminalSession
from .state import SelectableItem


class Prompter(Protocol):
    """Anything able to ask the user a question."""

    def select(
        self,
        title: str,
        items: Sequence[SelectableItem],
        default_index: int = 0,
        instructions: str = "",
        footer: str = "",
    ) -> SelectableItem: ...

    def multi_select(
        self,
        title: str,
        items: Sequence[SelectableItem],
        default_all_checked: bool = True,
        disabled: Sequence[bool] | None = None,
        instructions: str = "",
        footer: str = "",
    ) -> list[SelectableItem]: ...

    def confirm(self, message: str, default: bool = False) -> bool: ...


class TerminalPrompter:
    """Prompter backed by the real terminal."""

    def __init__(
        self,
        stream: TextIO | None = None,
        read_key: KeyReader = readchar.readkey,
    ):
        self.stream = stream or sys.stdout
        self.read_key = read_key

    def _session(self) -> TerminalSession:
        return TerminalSession(stdout=self.stream)

    def select(
        self,
        title: str,
        items: Sequence[SelectableItem],
        default_index: int = 0,
        instructions: str = "",
        footer: str = "",
    ) -> SelectableItem:
        with self._session():
            return run_single_select(
                title,
                instructions,
                items,
                default_index,
                renderer=MenuRenderer(self.stream),
                read_key=self.read_key,
                footer=footer,
            )

    def multi_select(
        self,
        title: str,
        items: Sequence[SelectableItem],
        default_all_checked: bool = True,
        disabled: Sequence[bool] | None = None,
        instructions: str = "",
        footer: str = "",
    ) -> list[SelectableItem]:
        with self._session():
            return run_multi_select(
                title,
                instructions,
                items,
                default_all_checked,
                disabled,
                renderer=MenuRenderer(self.stream),
                read_key=self.read_key,
                footer=footer,
            )

    def confirm(self, message: str, default: bool = False) -> bool:
        answer = questionary.confirm(message, default=default).ask()
        if answer is None:
            # User cancelled (Ctrl+C)
            raise KeyboardInterrupt("Installation cancelled by user")
        return bool(answer)


def multi_select_required(
    prompter: Prompter,
    title: str,
    items: Sequence[SelectableItem],
    warning: str,
    default_all_checked: bool = True,
    disabled: Sequence[bool] | None = None,
) -> list[SelectableItem]:
    """Re-ask a multi-select until at least one item is chosen."""
    footer = ""
    while True:
        chosen = prompter.multi_select(
            title,
            items,
            default_all_checked=default_all_checked,
            disabled=disabled,
            footer=footer,
        )
        if chosen:
            return chosen
        footer = warning
        default_all_checked = False
