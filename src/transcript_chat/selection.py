"""Bounded, ordered selection of source videos."""

from __future__ import annotations

from typing import TYPE_CHECKING

from transcript_chat.models import SelectionState, VideoSelectionEntry

if TYPE_CHECKING:
    from collections.abc import Iterable

    from transcript_chat.models import TranscriptRecord

DEFAULT_MAX_SELECTED = 3


class SelectionManager:
    """Own the currently chosen video ids.

    Ids keep the order in which they were selected; that order drives the
    order of the merged context. Adding beyond ``max_selected`` is a silent
    no-op.
    """

    def __init__(self, max_selected: int = DEFAULT_MAX_SELECTED) -> None:
        if max_selected < 1:
            raise ValueError("max_selected must be at least 1")
        self._max = max_selected
        self._ids: list[str] = []

    @property
    def max_selected(self) -> int:
        return self._max

    def toggle(self, video_id: str) -> SelectionState:
        if video_id in self._ids:
            self._ids.remove(video_id)
        elif len(self._ids) < self._max:
            self._ids.append(video_id)
        return self.current_selection()

    def current_selection(self) -> SelectionState:
        return SelectionState(selected_ids=tuple(self._ids), max=self._max)

    def reset(self) -> None:
        self._ids.clear()

    def is_selected(self, video_id: str) -> bool:
        return video_id in self._ids

    def can_add(self) -> bool:
        return len(self._ids) < self._max

    def entries(self, records: Iterable[TranscriptRecord]) -> list[VideoSelectionEntry]:
        """Pair each record with its selection flags, in repository order.

        Unselected records are marked unselectable while the selection is
        full.
        """
        can_add = self.can_add()
        entries: list[VideoSelectionEntry] = []
        for record in records:
            selected = record.video_id in self._ids
            entries.append(
                VideoSelectionEntry(
                    record=record,
                    title=record.display_title,
                    selected=selected,
                    selectable=selected or can_add,
                )
            )
        return entries
