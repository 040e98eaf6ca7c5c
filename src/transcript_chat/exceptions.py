"""Centralized exception hierarchy for the transcript-chat package.

All domain-specific exceptions inherit from ``TranscriptChatError`` so
callers can catch the entire family with a single ``except`` clause.
"""

from __future__ import annotations


class TranscriptChatError(Exception):
    """Base exception for all transcript-chat errors."""


# ---------------------------------------------------------------------------
# Transcript store errors
# ---------------------------------------------------------------------------


class TranscriptStoreError(TranscriptChatError):
    """Raised when the transcript store cannot be read or written."""


# ---------------------------------------------------------------------------
# Conversation errors
# ---------------------------------------------------------------------------


class MessageFinalizedError(TranscriptChatError):
    """Raised when replacing a message that has already finished streaming."""


# ---------------------------------------------------------------------------
# Transport errors
# ---------------------------------------------------------------------------


class StreamTransportError(TranscriptChatError):
    """Raised by a streaming transport when the model request fails."""
