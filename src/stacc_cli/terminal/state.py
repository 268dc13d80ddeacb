"""Menu state for the terminal selection engine.

Pure data: no terminal I/O happens here, so cursor movement and toggling
can be exercised directly.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class SelectableItem:
    """One menu entry. Immutable once a menu starts."""

    label: str
    value: Any = None
    enabled: bool = True

    @property
    def key(self) -> Any:
        """Value handed back to callers (label when no value was given)."""
        return self.label if self.value is None else self.value


@dataclass
class MenuState:
    """Cursor, checked flags and footer of a running menu."""

    items: tuple[SelectableItem, ...]
    cursor: int = 0
    checked: list[bool] | None = None
    footer: str = ""
    _toggle_all_snapshot: list[bool] | None = field(default=None, repr=False)

    def __post_init__(self) -> None:
        if not self.items:
            raise ValueError("a menu needs at least one item")
        self.cursor = self.cursor % len(self.items)

    @classmethod
    def single(cls, items: Sequence[SelectableItem], default_index: int = 0) -> MenuState:
        return cls(items=tuple(items), cursor=default_index)

    @classmethod
    def multi(
        cls,
        items: Sequence[SelectableItem],
        default_all_checked: bool = True,
        disabled: Sequence[bool] | None = None,
    ) -> MenuState:
        items = tuple(items)
        if disabled is not None:
            items = tuple(
                SelectableItem(item.label, item.value, item.enabled and not off)
                for item, off in zip(items, disabled)
            ) + items[len(disabled) :]
        checked = [default_all_checked and item.enabled for item in items]
        return cls(items=items, checked=checked)

    @property
    def current(self) -> SelectableItem:
        return self.items[self.cursor]

    def move(self, delta: int) -> int:
        """Move the cursor with wraparound; returns the previous index."""
        previous = self.cursor
        self.cursor = (self.cursor + delta) % len(self.items)
        return previous

    def toggle(self) -> bool:
        """Flip the item under the cursor. Disabled items never change."""
        if self.checked is None or not self.current.enabled:
            return False
        self.checked[self.cursor] = not self.checked[self.cursor]
        self._toggle_all_snapshot = None
        return True

    def toggle_all(self) -> list[int]:
        """Flip all enabled items between fully selected and fully deselected.

        A second consecutive toggle-all restores the selection that existed
        before the first one. Returns the indices whose flag changed.
        """
        if self.checked is None:
            return []

        before = list(self.checked)
        enabled = [i for i, item in enumerate(self.items) if item.enabled]

        if self._toggle_all_snapshot is not None:
            target = self._toggle_all_snapshot
            self._toggle_all_snapshot = None
        else:
            everything = all(self.checked[i] for i in enabled)
            target = list(self.checked)
            for i in enabled:
                target[i] = not everything
            self._toggle_all_snapshot = before

        self.checked = list(target)
        return [i for i in range(len(self.items)) if before[i] != self.checked[i]]

    def chosen(self) -> list[SelectableItem]:
        """Checked items in menu order (multi-select)."""
        if self.checked is None:
            return [self.current]
        return [item for item, on in zip(self.items, self.checked) if on]
