"""Shared pytest fixtures for the transcript-chat test suite."""

from __future__ import annotations

import asyncio
import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import pytest
import structlog

from transcript_chat.conversation import ConversationLog
from transcript_chat.models import CombinedContext, TranscriptRecord
from transcript_chat.store import InMemoryTranscriptStore

if TYPE_CHECKING:
    from collections.abc import Iterator

    from transcript_chat.transport import ChunkCallback

GREETING = "Hello! Pick some videos."

# ---------------------------------------------------------------------------
# Transcript fixtures
# ---------------------------------------------------------------------------


def make_record(video_id: str, transcript: str, title: str | None = None) -> TranscriptRecord:
    return TranscriptRecord(
        video_id=video_id,
        transcript=transcript,
        fetched_at=datetime(2024, 5, 1, tzinfo=UTC),
        title=title,
    )


@pytest.fixture()
def records() -> list[TranscriptRecord]:
    """Four transcripts in repository order A, B, C, D."""
    return [
        make_record("A", "alpha transcript", title="Alpha talk"),
        make_record("B", "bravo transcript"),
        make_record("C", "charlie transcript", title="Charlie talk"),
        make_record("D", "delta transcript"),
    ]


@pytest.fixture()
def store(records: list[TranscriptRecord]) -> InMemoryTranscriptStore:
    return InMemoryTranscriptStore(records)


@pytest.fixture()
def context() -> CombinedContext:
    return CombinedContext(
        composite_id="A",
        composite_title="Alpha talk",
        merged_text="VIDEO 1 (ID: A):\nalpha transcript",
    )


@pytest.fixture()
def log() -> ConversationLog:
    return ConversationLog(GREETING)


# ---------------------------------------------------------------------------
# Transport doubles
# ---------------------------------------------------------------------------


class GatedTransport:
    """Transport whose chunks and end-of-stream are driven by the test."""

    def __init__(self) -> None:
        self.started = asyncio.Event()
        self._finished = asyncio.Event()
        self._fault: Exception | None = None
        self.on_chunk: ChunkCallback | None = None
        self.context: CombinedContext | None = None
        self.question: str | None = None

    async def start_stream(
        self,
        context: CombinedContext,
        question: str,
        on_chunk: ChunkCallback,
    ) -> None:
        self.context = context
        self.question = question
        self.on_chunk = on_chunk
        self.started.set()
        await self._finished.wait()
        if self._fault is not None:
            raise self._fault

    def push(self, chunk: str) -> None:
        assert self.on_chunk is not None
        self.on_chunk(chunk)

    def finish(self, fault: Exception | None = None) -> None:
        self._fault = fault
        self._finished.set()


@pytest.fixture()
def gated() -> GatedTransport:
    return GatedTransport()


# ---------------------------------------------------------------------------
# Logging isolation
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_logging() -> Iterator[None]:
    """Drop handlers installed by CLI runs so later tests don't write to closed streams."""
    yield
    structlog.contextvars.clear_contextvars()
    structlog.reset_defaults()
    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(logging.WARNING)
