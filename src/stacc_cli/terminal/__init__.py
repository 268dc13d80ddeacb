"""Terminal selection engine.

Keyboard-driven single/multi choice menus with partial redraw, plus the
scoped terminal session that owns raw mode and cursor visibility.
"""

from .menu import run_multi_select, run_single_select
from .prompter import Prompter, TerminalPrompter, multi_select_required
from .render import MenuRenderer, rendered_height, terminal_width, truncate, visible_length
from .session import TerminalSession, is_interactive
from .state import MenuState, SelectableItem

__all__ = [
    "MenuState",
    "SelectableItem",
    "MenuRenderer",
    "rendered_height",
    "terminal_width",
    "truncate",
    "visible_length",
    "run_single_select",
    "run_multi_select",
    "TerminalSession",
    "is_interactive",
    "Prompter",
    "TerminalPrompter",
    "multi_select_required",
]
