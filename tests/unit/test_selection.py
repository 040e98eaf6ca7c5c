"""Unit tests for transcript_chat.selection - bounded ordered selection."""

from __future__ import annotations

import random
from typing import TYPE_CHECKING

import pytest

from transcript_chat.selection import SelectionManager

if TYPE_CHECKING:
    from transcript_chat.models import TranscriptRecord


class TestToggle:
    """toggle() adds, removes, and ignores additions past the limit."""

    def test_adds_in_click_order(self) -> None:
        manager = SelectionManager()
        manager.toggle("B")
        manager.toggle("A")
        assert manager.current_selection().selected_ids == ("B", "A")

    def test_removes_selected(self) -> None:
        manager = SelectionManager()
        manager.toggle("A")
        manager.toggle("B")
        state = manager.toggle("A")
        assert state.selected_ids == ("B",)

    def test_fourth_id_is_noop(self) -> None:
        manager = SelectionManager()
        for vid in ("A", "B", "C"):
            manager.toggle(vid)

        state = manager.toggle("D")

        assert state.selected_ids == ("A", "B", "C")
        assert state.is_full
        assert not manager.can_add()

    def test_removal_allowed_when_full(self) -> None:
        manager = SelectionManager()
        for vid in ("A", "B", "C"):
            manager.toggle(vid)
        manager.toggle("B")
        manager.toggle("D")
        assert manager.current_selection().selected_ids == ("A", "C", "D")

    def test_double_toggle_restores_membership_and_order(self) -> None:
        manager = SelectionManager()
        manager.toggle("A")
        manager.toggle("B")
        before = manager.current_selection()

        manager.toggle("C")
        manager.toggle("C")

        assert manager.current_selection() == before

    def test_random_sequences_respect_limit(self) -> None:
        rng = random.Random(1234)
        manager = SelectionManager()
        for _ in range(500):
            state = manager.toggle(rng.choice("ABCDEFG"))
            assert len(state.selected_ids) <= 3
            assert len(set(state.selected_ids)) == len(state.selected_ids)

    def test_custom_limit(self) -> None:
        manager = SelectionManager(max_selected=1)
        manager.toggle("A")
        manager.toggle("B")
        assert manager.current_selection().selected_ids == ("A",)
        assert manager.current_selection().max == 1

    def test_invalid_limit_rejected(self) -> None:
        with pytest.raises(ValueError, match="at least 1"):
            SelectionManager(max_selected=0)


class TestReadAndReset:
    """current_selection() is never stale; reset() empties it."""

    def test_snapshot_not_aliased(self) -> None:
        manager = SelectionManager()
        snapshot = manager.toggle("A")
        manager.toggle("B")
        assert snapshot.selected_ids == ("A",)
        assert manager.current_selection().selected_ids == ("A", "B")

    def test_reset(self) -> None:
        manager = SelectionManager()
        manager.toggle("A")
        manager.toggle("B")
        manager.reset()
        assert manager.current_selection().is_empty
        assert not manager.is_selected("A")


class TestEntries:
    """entries() flags records for display."""

    def test_flags(self, records: list[TranscriptRecord]) -> None:
        manager = SelectionManager(max_selected=2)
        manager.toggle("D")
        manager.toggle("A")

        entries = manager.entries(records)

        assert [e.record.video_id for e in entries] == ["A", "B", "C", "D"]
        assert [e.selected for e in entries] == [True, False, False, True]
        assert [e.selectable for e in entries] == [True, False, False, True]
        assert [e.title for e in entries] == [
            "Alpha talk",
            "Video B",
            "Charlie talk",
            "Video D",
        ]

    def test_all_selectable_below_limit(self, records: list[TranscriptRecord]) -> None:
        manager = SelectionManager()
        assert all(e.selectable for e in manager.entries(records))
