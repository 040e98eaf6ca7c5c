"""Merge the selected transcripts into one prompt context."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from transcript_chat.models import CombinedContext

if TYPE_CHECKING:
    from collections.abc import Iterable

    from transcript_chat.models import SelectionState, TranscriptRecord

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

VIDEO_SEPARATOR = "\n\n===== NEXT VIDEO =====\n\n"
ID_DELIMITER = ","
TITLE_DELIMITER = ", "


def format_video_block(position: int, record: TranscriptRecord) -> str:
    """Label one transcript with its 1-based position and video id."""
    return f"VIDEO {position} (ID: {record.video_id}):\n{record.transcript}"


class ContextCompositor:
    """Build a :class:`CombinedContext` from a selection and a record snapshot."""

    def build(
        self,
        selection: SelectionState,
        records: Iterable[TranscriptRecord],
    ) -> CombinedContext:
        """Merge selected transcripts in selection order.

        Repository order is ignored: the block for the first-selected video
        always comes first. Selected ids missing from ``records`` are
        skipped.

        Args:
            selection: Current selection state.
            records: Repository snapshot taken at submission time.

        Returns:
            The merged context; empty when nothing selected is available.
        """
        by_id = {record.video_id: record for record in records}
        ordered = [by_id[vid] for vid in selection.selected_ids if vid in by_id]

        missing = [vid for vid in selection.selected_ids if vid not in by_id]
        if missing:
            logger.debug("selected_transcripts_missing", video_ids=missing)

        blocks = [
            format_video_block(index, record)
            for index, record in enumerate(ordered, start=1)
        ]
        return CombinedContext(
            composite_id=ID_DELIMITER.join(selection.selected_ids),
            composite_title=TITLE_DELIMITER.join(r.display_title for r in ordered),
            merged_text=VIDEO_SEPARATOR.join(blocks),
        )
