"""UI-facing facade over selection, context building, and streaming."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from transcript_chat.config import ChatSettings
from transcript_chat.context import ContextCompositor
from transcript_chat.controller import StreamingResponseController
from transcript_chat.conversation import ConversationLog
from transcript_chat.selection import SelectionManager
from transcript_chat.store import JsonFileTranscriptStore
from transcript_chat.transport import LiteLLMTransport

if TYPE_CHECKING:
    from transcript_chat.config import Settings
    from transcript_chat.models import (
        ChatMessage,
        CombinedContext,
        SelectionState,
        StreamPhase,
        SubmitResult,
        VideoSelectionEntry,
    )
    from transcript_chat.store import TranscriptStore
    from transcript_chat.transport import StreamTransport

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)


class ChatEngine:
    """Multi-video chat over stored transcripts.

    Owns one selection, one conversation log, and one streaming
    controller. All methods are meant to be called from a single event
    loop.
    """

    def __init__(
        self,
        store: TranscriptStore,
        transport: StreamTransport,
        settings: ChatSettings | None = None,
    ) -> None:
        self._settings = settings or ChatSettings()
        self._store = store
        self._selection = SelectionManager(self._settings.max_selected_videos)
        self._compositor = ContextCompositor()
        self._log = ConversationLog(self._settings.welcome_message)
        self._controller = StreamingResponseController(
            self._log,
            transport,
            credential_markers=self._settings.credential_error_markers,
            credential_fallback=self._settings.credential_fallback,
            generic_fallback=self._settings.generic_fallback,
        )

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        transport: StreamTransport | None = None,
    ) -> ChatEngine:
        """Wire the file-backed store and litellm transport from settings."""
        return cls(
            JsonFileTranscriptStore(settings.store.path),
            transport or LiteLLMTransport(settings.llm),
            settings.chat,
        )

    # -- selection -----------------------------------------------------------

    def get_selection(self) -> SelectionState:
        return self._selection.current_selection()

    def toggle_selection(self, video_id: str) -> SelectionState:
        return self._selection.toggle(video_id)

    def reset_selection(self) -> None:
        self._selection.reset()

    def entries(self) -> list[VideoSelectionEntry]:
        """Re-read the store and flag each transcript's selection state."""
        return self._selection.entries(self._store.list())

    def build_context(self) -> CombinedContext:
        return self._compositor.build(
            self._selection.current_selection(), self._store.list()
        )

    # -- conversation --------------------------------------------------------

    @property
    def messages(self) -> tuple[ChatMessage, ...]:
        return self._log.messages

    @property
    def credential_error(self) -> bool:
        return self._controller.credential_error

    @property
    def phase(self) -> StreamPhase:
        return self._controller.phase

    @property
    def is_busy(self) -> bool:
        return self._controller.is_active

    async def submit(self, question: str) -> SubmitResult:
        """Ask ``question`` about the current selection.

        The store is snapshotted here, so later store changes never reach
        a response that is already streaming.
        """
        context = self.build_context()
        return await self._controller.submit(context, question)

    def cancel(self) -> bool:
        return self._controller.cancel()

    def clear(self) -> None:
        """Drop the history, leaving only the cleared-chat greeting."""
        if self._controller.cancel():
            logger.info("clear_cancelled_stream")
        self._log.clear(self._settings.cleared_message)
