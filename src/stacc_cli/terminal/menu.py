"""Single- and multi-choice menus driven by keystrokes.

Both loops are pure functions of a key reader and a renderer, so they can
run against a scripted key sequence and an in-memory stream. Terminal mode
changes belong to TerminalSession, not to these functions.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence

import readchar

from .render import MenuRenderer
from .state import MenuState, SelectableItem

KeyReader = Callable[[], str]

UP_KEYS = frozenset({readchar.key.UP, "k"})
DOWN_KEYS = frozenset({readchar.key.DOWN, "j"})
ENTER_KEYS = frozenset({readchar.key.ENTER, "\r", "\n"})
SPACE_KEYS = frozenset({readchar.key.SPACE, " "})
TOGGLE_ALL_KEYS = frozenset({"a", "A"})
INTERRUPT_KEYS = frozenset({readchar.key.CTRL_C, "\x03"})

SINGLE_INSTRUCTIONS = "↑/↓ move · Enter select"
MULTI_INSTRUCTIONS = "↑/↓ move · Space toggle · a toggle all · Enter confirm"


def _move(state: MenuState, renderer: MenuRenderer, delta: int) -> None:
    previous = state.move(delta)
    if previous != state.cursor:
        renderer.update_items(state, [previous, state.cursor])


def _set_footer(state: MenuState, renderer: MenuRenderer, message: str) -> None:
    if state.footer != message:
        state.footer = message
        renderer.update_footer(state)


def run_single_select(
    title: str,
    instructions: str,
    items: Sequence[SelectableItem],
    default_index: int = 0,
    *,
    renderer: MenuRenderer,
    read_key: KeyReader = readchar.readkey,
    footer: str = "",
) -> SelectableItem:
    """Show a single-choice menu and block until an enabled item is chosen.

    Args:
        title: Question shown above the menu
        instructions: Key help shown under the title
        items: Menu entries
        default_index: Initial cursor position
        renderer: Renderer bound to the output stream
        read_key: Callable returning one decoded keypress
        footer: Initial footer message

    Returns:
        The chosen item

    Raises:
        KeyboardInterrupt: On Ctrl+C
    """
    state = MenuState.single(items, default_index)
    state.footer = footer
    renderer.render(title, instructions or SINGLE_INSTRUCTIONS, state)

    while True:
        key = read_key()
        if key in INTERRUPT_KEYS:
            raise KeyboardInterrupt
        if key in UP_KEYS:
            _move(state, renderer, -1)
        elif key in DOWN_KEYS:
            _move(state, renderer, 1)
        elif key in ENTER_KEYS:
            if state.current.enabled:
                break
            _set_footer(state, renderer, f"{state.current.label} is not available here")

    chosen = state.current
    renderer.collapse(title, chosen.label)
    return chosen


def run_multi_select(
    title: str,
    instructions: str,
    items: Sequence[SelectableItem],
    default_all_checked: bool = True,
    disabled: Sequence[bool] | None = None,
    *,
    renderer: MenuRenderer,
    read_key: KeyReader = readchar.readkey,
    footer: str = "",
) -> list[SelectableItem]:
    """Show a checkbox menu and return the checked items on Enter.

    An empty result is returned as-is; callers that need at least one item
    re-invoke with a warning footer.

    Raises:
        KeyboardInterrupt: On Ctrl+C
    """
    state = MenuState.multi(items, default_all_checked, disabled)
    state.footer = footer
    renderer.render(title, instructions or MULTI_INSTRUCTIONS, state)

    while True:
        key = read_key()
        if key in INTERRUPT_KEYS:
            raise KeyboardInterrupt
        if key in UP_KEYS:
            _move(state, renderer, -1)
        elif key in DOWN_KEYS:
            _move(state, renderer, 1)
        elif key in SPACE_KEYS:
            if state.toggle():
                renderer.update_items(state, [state.cursor])
        elif key in TOGGLE_ALL_KEYS:
            changed = state.toggle_all()
            if changed:
                renderer.update_items(state, changed)
        elif key in ENTER_KEYS:
            break

    chosen = state.chosen()
    renderer.collapse(title, ", ".join(item.label for item in chosen) or "(none)")
    return chosen
