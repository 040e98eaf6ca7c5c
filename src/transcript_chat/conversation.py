"""Ordered conversation log with a mutable streaming tail."""

from __future__ import annotations

from typing import TYPE_CHECKING, overload

from transcript_chat.exceptions import MessageFinalizedError
from transcript_chat.models import ChatMessage

if TYPE_CHECKING:
    from collections.abc import Iterator


class ConversationLog:
    """Append-only list of chat messages.

    Indices never shift: messages are only appended, a message may be
    replaced while it is still streaming, and ``clear`` swaps the whole log
    for a single greeting. Every ``clear`` bumps ``generation`` so writers
    holding an index from before the clear can tell it is stale.
    """

    def __init__(self, greeting: str) -> None:
        self._messages: list[ChatMessage] = [ChatMessage.assistant(greeting)]
        self._generation = 0

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def messages(self) -> tuple[ChatMessage, ...]:
        return tuple(self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[ChatMessage]:
        return iter(tuple(self._messages))

    @overload
    def __getitem__(self, index: int) -> ChatMessage: ...

    @overload
    def __getitem__(self, index: slice) -> tuple[ChatMessage, ...]: ...

    def __getitem__(self, index: int | slice) -> ChatMessage | tuple[ChatMessage, ...]:
        if isinstance(index, slice):
            return tuple(self._messages[index])
        return self._messages[index]

    def append(self, message: ChatMessage) -> int:
        self._messages.append(message)
        return len(self._messages) - 1

    def replace_at(self, index: int, message: ChatMessage) -> None:
        """Replace a message that is still streaming.

        Raises:
            IndexError: If ``index`` is out of range or negative.
            MessageFinalizedError: If the current message has finished
                streaming.
        """
        if index < 0 or index >= len(self._messages):
            raise IndexError(f"No message at index {index}")
        if not self._messages[index].streaming:
            raise MessageFinalizedError(f"Message at index {index} is final")
        self._messages[index] = message

    def clear(self, greeting: str) -> None:
        self._messages = [ChatMessage.assistant(greeting)]
        self._generation += 1
