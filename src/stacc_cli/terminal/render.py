"""Menu rendering with partial redraw.

The first paint writes the whole menu. After that, cursor moves and
toggles rewrite only the affected rows: save cursor, move up to the row,
clear it, write it, restore cursor. Nothing is repainted wholesale until
the menu collapses into a one-line summary.
"""

from __future__ import annotations

import re
import shutil
from typing import TextIO

from .state import MenuState

DEFAULT_WIDTH = 80
ELLIPSIS = "…"

# Control sequences
SAVE_CURSOR = "\x1b7"
RESTORE_CURSOR = "\x1b8"
CLEAR_LINE = "\r\x1b[2K"
CLEAR_TO_END = "\x1b[J"
HIDE_CURSOR = "\x1b[?25l"
SHOW_CURSOR = "\x1b[?25h"

# Styles
RESET = "\x1b[0m"
BOLD = "\x1b[1m"
DIM = "\x1b[2m"
CYAN = "\x1b[36m"
GREEN = "\x1b[32m"
YELLOW = "\x1b[33m"

ANSI_PATTERN = re.compile(r"\x1b(?:\[[0-9;?]*[A-Za-z]|[78])")

POINTER = "❯ "
NO_POINTER = "  "


def cursor_up(rows: int) -> str:
    return f"\x1b[{rows}A" if rows > 0 else ""


def strip_ansi(text: str) -> str:
    return ANSI_PATTERN.sub("", text)


def visible_length(text: str) -> int:
    """Length of text as displayed, ignoring color/control sequences."""
    return len(strip_ansi(text))


def rendered_height(text: str, width: int) -> int:
    """Number of terminal rows text occupies once wrapped at width."""
    width = max(width, 1)
    rows = 0
    for line in text.split("\n"):
        length = visible_length(line)
        rows += max(1, -(-length // width))
    return rows


def truncate(text: str, width: int) -> str:
    """Cut plain text to width columns, ending with an ellipsis if cut."""
    if width <= 0:
        return ""
    if len(text) <= width:
        return text
    if width == 1:
        return ELLIPSIS
    return text[: width - 1] + ELLIPSIS


def terminal_width(default: int = DEFAULT_WIDTH) -> int:
    """Probe the current terminal width, falling back to default."""
    columns = shutil.get_terminal_size((default, 24)).columns
    return columns if columns > 0 else default


class MenuRenderer:
    """Draws a MenuState to a stream and keeps track of row positions.

    Row bookkeeping assumes the cursor rests on the line below the footer
    between updates, which is where render() leaves it.
    """

    def __init__(self, stream: TextIO, width_source=terminal_width):
        self.stream = stream
        self.width_source = width_source
        self.width = DEFAULT_WIDTH
        self._header_rows = 0
        self._item_count = 0
        self._drawn = False

    # -- line formatting -------------------------------------------------

    def format_item(self, state: MenuState, index: int) -> str:
        item = state.items[index]
        focused = index == state.cursor
        pointer = POINTER if focused else NO_POINTER

        if state.checked is not None:
            if not item.enabled:
                box = "[-] "
            elif state.checked[index]:
                box = "[x] "
            else:
                box = "[ ] "
        else:
            box = ""

        suffix = "" if item.enabled else " (unavailable)"
        room = self.width - 1 - len(pointer) - len(box)
        label = truncate(item.label + suffix, room)

        if not item.enabled:
            return f"{DIM}{pointer}{box}{label}{RESET}"
        if focused:
            return f"{CYAN}{BOLD}{pointer}{box}{label}{RESET}"
        if state.checked is not None and state.checked[index]:
            return f"{pointer}{GREEN}{box}{RESET}{label}"
        return f"{pointer}{box}{label}"

    def format_footer(self, state: MenuState) -> str:
        if not state.footer:
            return ""
        return f"{YELLOW}{truncate(state.footer, self.width - 1)}{RESET}"

    # -- drawing ---------------------------------------------------------

    def render(self, title: str, instructions: str, state: MenuState) -> None:
        """Full first paint of the menu."""
        self.width = self.width_source()
        header = f"{BOLD}{title}{RESET}"
        if instructions:
            header += f"\n{DIM}{instructions}{RESET}"
        self._header_rows = rendered_height(header, self.width) + 1
        self._item_count = len(state.items)

        lines = [header, ""]
        lines.extend(self.format_item(state, i) for i in range(len(state.items)))
        lines.append("")
        lines.append(self.format_footer(state))
        self.stream.write("\n".join(lines) + "\n")
        self.stream.flush()
        self._drawn = True

    def _rows_above_rest(self, index: int) -> int:
        # items, then one blank row, then the footer row
        return (self._item_count - index) + 2

    def _rewrite_row(self, rows_up: int, content: str) -> None:
        self.stream.write(
            SAVE_CURSOR + cursor_up(rows_up) + CLEAR_LINE + content + RESTORE_CURSOR
        )

    def update_items(self, state: MenuState, indices) -> None:
        """Rewrite only the given item rows."""
        for index in sorted(set(indices)):
            self._rewrite_row(self._rows_above_rest(index), self.format_item(state, index))
        self.stream.flush()

    def update_footer(self, state: MenuState) -> None:
        self._rewrite_row(1, self.format_footer(state))
        self.stream.flush()

    @property
    def total_rows(self) -> int:
        return self._header_rows + self._item_count + 2

    def collapse(self, title: str, summary: str) -> None:
        """Erase the menu and leave a one-line record of the answer."""
        if self._drawn:
            self.stream.write(cursor_up(self.total_rows) + "\r" + CLEAR_TO_END)
        room = max(self.width - 1 - visible_length(title) - 2, 1)
        self.stream.write(f"{BOLD}{title}{RESET} {CYAN}{truncate(summary, room)}{RESET}\n")
        self.stream.flush()
        self._drawn = False
