"""Unit tests for the single- and multi-select loops."""

from __future__ import annotations

import io

import pytest
import readchar

from stacc_cli.terminal.menu import run_multi_select, run_single_select
from stacc_cli.terminal.render import MenuRenderer, strip_ansi
from stacc_cli.terminal.state import SelectableItem

UP = readchar.key.UP
DOWN = readchar.key.DOWN
ENTER = readchar.key.ENTER
SPACE = " "


def keys(*sequence: str):
    """Key reader replaying a fixed sequence."""
    return iter(sequence).__next__


@pytest.fixture
def stream():
    return io.StringIO()


@pytest.fixture
def renderer(stream):
    return MenuRenderer(stream, width_source=lambda: 60)


ITEMS = [
    SelectableItem("Cursor", "cursor"),
    SelectableItem("Claude", "claude"),
    SelectableItem("Codex", "codex"),
]


class TestSingleSelect:
    """Tests for run_single_select."""

    def test_enter_returns_default(self, renderer):
        """Enter without moving picks the default item."""
        chosen = run_single_select(
            "Editor", "", ITEMS, 1, renderer=renderer, read_key=keys(ENTER)
        )
        assert chosen.key == "claude"

    def test_down_moves_cursor(self, renderer):
        """Down arrow moves to the next item."""
        chosen = run_single_select(
            "Editor", "", ITEMS, renderer=renderer, read_key=keys(DOWN, DOWN, ENTER)
        )
        assert chosen.key == "codex"

    def test_up_wraps_to_last(self, renderer):
        """Up from the first item wraps to the last."""
        chosen = run_single_select(
            "Editor", "", ITEMS, renderer=renderer, read_key=keys(UP, ENTER)
        )
        assert chosen.key == "codex"

    def test_disabled_item_cannot_be_chosen(self, renderer, stream):
        """Enter on a disabled item shows a footer and keeps waiting."""
        items = [SelectableItem("Off", enabled=False), SelectableItem("On")]
        chosen = run_single_select(
            "Pick", "", items, renderer=renderer, read_key=keys(ENTER, DOWN, ENTER)
        )
        assert chosen.label == "On"
        assert "Off is not available here" in strip_ansi(stream.getvalue())

    def test_ctrl_c_raises_keyboard_interrupt(self, renderer):
        """Ctrl+C aborts the prompt."""
        with pytest.raises(KeyboardInterrupt):
            run_single_select(
                "Pick", "", ITEMS, renderer=renderer, read_key=keys(readchar.key.CTRL_C)
            )

    def test_no_full_repaint_on_movement(self, renderer, stream):
        """The title is painted once, plus once in the collapsed summary."""
        run_single_select(
            "Editor", "", ITEMS, renderer=renderer, read_key=keys(DOWN, DOWN, UP, DOWN, ENTER)
        )
        assert strip_ansi(stream.getvalue()).count("Editor") == 2


class TestMultiSelect:
    """Tests for run_multi_select."""

    def test_enter_returns_all_by_default(self, renderer):
        """All items are checked initially."""
        chosen = run_multi_select("Editors", "", ITEMS, renderer=renderer, read_key=keys(ENTER))
        assert [i.key for i in chosen] == ["cursor", "claude", "codex"]

    def test_space_toggles_current(self, renderer):
        """Space unchecks the item under the cursor."""
        chosen = run_multi_select(
            "Editors", "", ITEMS, renderer=renderer, read_key=keys(DOWN, SPACE, ENTER)
        )
        assert [i.key for i in chosen] == ["cursor", "codex"]

    def test_toggle_all_twice_is_identity(self, renderer):
        """Two toggle-alls leave the selection unchanged."""
        chosen = run_multi_select(
            "Editors", "", ITEMS, renderer=renderer, read_key=keys(SPACE, "a", "a", ENTER)
        )
        assert [i.key for i in chosen] == ["claude", "codex"]

    def test_toggle_all_clears_full_selection(self, renderer):
        """Toggle-all on a full selection returns nothing."""
        chosen = run_multi_select(
            "Editors", "", ITEMS, renderer=renderer, read_key=keys("a", ENTER)
        )
        assert chosen == []

    def test_disabled_mask_respected(self, renderer):
        """Disabled items are never returned."""
        chosen = run_multi_select(
            "Editors",
            "",
            ITEMS,
            disabled=[False, True, False],
            renderer=renderer,
            read_key=keys(DOWN, SPACE, ENTER),
        )
        assert [i.key for i in chosen] == ["cursor", "codex"]
