"""Data models shared by the selection, context, and streaming components."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, model_validator

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class MessageRole(StrEnum):
    """Author of a conversation message."""

    USER = "user"
    ASSISTANT = "assistant"


class StreamPhase(StrEnum):
    """Lifecycle states of a single submission."""

    IDLE = "IDLE"
    DISPATCHING = "DISPATCHING"
    STREAMING = "STREAMING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class SubmitRejection(StrEnum):
    """Why a submission was refused before any transport activity."""

    EMPTY_QUESTION = "EMPTY_QUESTION"
    NO_SELECTION = "NO_SELECTION"
    SESSION_ACTIVE = "SESSION_ACTIVE"


# ---------------------------------------------------------------------------
# Transcript records and selection
# ---------------------------------------------------------------------------


class TranscriptRecord(BaseModel):
    """A stored transcript for one video."""

    model_config = ConfigDict(frozen=True)

    video_id: str = Field(min_length=1)
    transcript: str
    fetched_at: datetime = Field(default_factory=lambda: datetime.now(tz=UTC))
    title: str | None = None

    @property
    def display_title(self) -> str:
        return self.title or f"Video {self.video_id}"


class SelectionState(BaseModel):
    """Ordered, bounded set of selected video ids."""

    model_config = ConfigDict(frozen=True)

    selected_ids: tuple[str, ...] = ()
    max: int = Field(default=3, ge=1)

    @model_validator(mode="after")
    def _check_bounds(self) -> SelectionState:
        if len(self.selected_ids) > self.max:
            msg = f"At most {self.max} videos may be selected"
            raise ValueError(msg)
        if len(set(self.selected_ids)) != len(self.selected_ids):
            raise ValueError("Selected video ids must be unique")
        return self

    @property
    def is_empty(self) -> bool:
        return not self.selected_ids

    @property
    def is_full(self) -> bool:
        return len(self.selected_ids) >= self.max


class VideoSelectionEntry(BaseModel):
    """Display view of a stored transcript with its selection flags."""

    model_config = ConfigDict(frozen=True)

    record: TranscriptRecord
    title: str
    selected: bool = False
    selectable: bool = True


class CombinedContext(BaseModel):
    """Merged prompt context built from the selected transcripts."""

    model_config = ConfigDict(frozen=True)

    composite_id: str = ""
    composite_title: str = ""
    merged_text: str = ""

    @property
    def is_empty(self) -> bool:
        return not self.merged_text


# ---------------------------------------------------------------------------
# Conversation
# ---------------------------------------------------------------------------


class ChatMessage(BaseModel):
    """One entry of the conversation log."""

    model_config = ConfigDict(frozen=True)

    role: MessageRole
    content: str = ""
    streaming: bool = False
    errored: bool = False

    @classmethod
    def user(cls, content: str) -> ChatMessage:
        return cls(role=MessageRole.USER, content=content)

    @classmethod
    def assistant(cls, content: str = "", *, streaming: bool = False) -> ChatMessage:
        return cls(role=MessageRole.ASSISTANT, content=content, streaming=streaming)


class SubmitResult(BaseModel):
    """Outcome of a submission attempt."""

    model_config = ConfigDict(frozen=True)

    accepted: bool
    phase: StreamPhase
    reason: SubmitRejection | None = None
    message_index: int | None = Field(
        default=None, description="Log index of the assistant reply."
    )
