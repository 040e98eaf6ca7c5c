"""Single-flight controller for one streamed model response at a time.

A submission appends the user question and an empty streaming assistant
reply to the conversation log, then hands the transport a chunk callback.
Every chunk rewrites that reply with the full accumulated text. The
reply is finalized exactly once: on end-of-stream, on a transport fault,
or on cancellation. Faults never escape :meth:`submit`.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from functools import partial
from typing import TYPE_CHECKING

from transcript_chat.classifier import DEFAULT_CREDENTIAL_MARKERS, is_credential_error
from transcript_chat.logging import stream_logging_context
from transcript_chat.models import (
    ChatMessage,
    MessageRole,
    StreamPhase,
    SubmitRejection,
    SubmitResult,
)

if TYPE_CHECKING:
    from collections.abc import Iterable

    from transcript_chat.conversation import ConversationLog
    from transcript_chat.models import CombinedContext
    from transcript_chat.transport import StreamTransport

DEFAULT_CREDENTIAL_FALLBACK = (
    "The model API key is not configured or invalid. Please check your .env "
    "file and restart."
)
DEFAULT_GENERIC_FALLBACK = (
    "Sorry, I encountered an error while analyzing the transcripts. "
    "Please try again."
)


@dataclass
class StreamSession:
    """Bookkeeping for the single outstanding request."""

    target_index: int
    generation: int
    accumulated_text: str = ""
    error_flag: bool = False
    cancel_requested: bool = False


class StreamingResponseController:
    """Drive IDLE -> DISPATCHING -> STREAMING -> COMPLETED/FAILED -> IDLE."""

    def __init__(
        self,
        log: ConversationLog,
        transport: StreamTransport,
        *,
        credential_markers: Iterable[str] = DEFAULT_CREDENTIAL_MARKERS,
        credential_fallback: str = DEFAULT_CREDENTIAL_FALLBACK,
        generic_fallback: str = DEFAULT_GENERIC_FALLBACK,
    ) -> None:
        self._log = log
        self._transport = transport
        self._markers = tuple(credential_markers)
        self._credential_fallback = credential_fallback
        self._generic_fallback = generic_fallback

        self._phase = StreamPhase.IDLE
        self._session: StreamSession | None = None
        self._task: asyncio.Future[None] | None = None
        self._credential_error = False

    @property
    def phase(self) -> StreamPhase:
        return self._phase

    @property
    def is_active(self) -> bool:
        return self._phase in {StreamPhase.DISPATCHING, StreamPhase.STREAMING}

    @property
    def credential_error(self) -> bool:
        """Raised by a credential failure, lowered by the next clean completion."""
        return self._credential_error

    @property
    def session(self) -> StreamSession | None:
        return self._session

    def _reject(self, reason: SubmitRejection) -> SubmitResult:
        return SubmitResult(accepted=False, phase=self._phase, reason=reason)

    async def submit(self, context: CombinedContext, question: str) -> SubmitResult:
        """Stream an answer to ``question`` into the conversation log.

        Preconditions are checked before the first suspension point, so a
        concurrent second call is refused without touching the log.

        Args:
            context: Merged transcript context snapshotted for this request.
            question: The user's question; surrounding whitespace is dropped.

        Returns:
            A rejected result, or an accepted one carrying the terminal
            phase and the index of the assistant reply.
        """
        text = question.strip()
        if not text:
            return self._reject(SubmitRejection.EMPTY_QUESTION)
        if context.is_empty:
            return self._reject(SubmitRejection.NO_SELECTION)
        if self.is_active:
            return self._reject(SubmitRejection.SESSION_ACTIVE)

        self._log.append(ChatMessage.user(text))
        target = self._log.append(ChatMessage.assistant(streaming=True))
        session = StreamSession(target_index=target, generation=self._log.generation)
        self._session = session
        self._phase = StreamPhase.DISPATCHING

        terminal = await self._run(session, context, text)
        return SubmitResult(accepted=True, phase=terminal, message_index=target)

    def cancel(self) -> bool:
        """Abort the outstanding request; it finalizes as a generic failure."""
        session = self._session
        if session is None or self._task is None:
            return False
        session.cancel_requested = True
        self._task.cancel()
        return True

    async def _run(
        self,
        session: StreamSession,
        context: CombinedContext,
        question: str,
    ) -> StreamPhase:
        with stream_logging_context(context.composite_id, session.target_index) as log:
            log.info("stream_dispatched", question_chars=len(question))
            self._task = asyncio.ensure_future(
                self._transport.start_stream(
                    context, question, partial(self._on_chunk, session)
                )
            )
            try:
                await self._task
            except asyncio.CancelledError:
                log.info("stream_cancelled", chars=len(session.accumulated_text))
                self._fail(session, self._generic_fallback)
                current = asyncio.current_task()
                if not session.cancel_requested or (
                    current is not None and current.cancelling()
                ):
                    raise
            except Exception as exc:
                description = str(exc)
                credential = is_credential_error(description, self._markers)
                if credential and self._owns_log(session):
                    self._credential_error = True
                log.warning(
                    "stream_failed",
                    error=description,
                    error_type=type(exc).__name__,
                    credential_error=credential,
                )
                self._fail(
                    session,
                    self._credential_fallback if credential else self._generic_fallback,
                )
            else:
                self._complete(session)
                log.info(
                    "stream_completed",
                    chars=len(session.accumulated_text),
                    errored=session.error_flag,
                )
            finally:
                terminal = self._phase
                self._task = None
                self._session = None
                self._phase = StreamPhase.IDLE
        return terminal

    def _on_chunk(self, session: StreamSession, chunk: str) -> None:
        if session is not self._session or not self.is_active:
            return
        if not self._owns_log(session):
            # Cleared mid-stream; this session no longer drives the log or signal.
            return
        self._phase = StreamPhase.STREAMING
        session.accumulated_text += chunk
        if is_credential_error(chunk, self._markers):
            session.error_flag = True
            self._credential_error = True
        self._write(
            session,
            ChatMessage(
                role=MessageRole.ASSISTANT,
                content=session.accumulated_text,
                streaming=True,
                errored=session.error_flag,
            ),
        )

    def _complete(self, session: StreamSession) -> None:
        if not session.error_flag and self._owns_log(session):
            self._credential_error = False
        self._write(
            session,
            ChatMessage(
                role=MessageRole.ASSISTANT,
                content=session.accumulated_text,
                errored=session.error_flag,
            ),
        )
        self._phase = StreamPhase.COMPLETED

    def _fail(self, session: StreamSession, content: str) -> None:
        self._write(
            session,
            ChatMessage(role=MessageRole.ASSISTANT, content=content, errored=True),
        )
        self._phase = StreamPhase.FAILED

    def _owns_log(self, session: StreamSession) -> bool:
        # A clear() since dispatch leaves target_index pointing into a new log.
        return self._log.generation == session.generation

    def _write(self, session: StreamSession, message: ChatMessage) -> None:
        if not self._owns_log(session):
            return
        self._log.replace_at(session.target_index, message)
