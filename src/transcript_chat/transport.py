"""Streaming transports that feed model output to the controller chunk by chunk.

``LiteLLMTransport`` talks to the configured provider through litellm;
``ScriptedTransport`` replays canned chunks for offline use.
"""

from __future__ import annotations

import asyncio
import os
from collections.abc import Callable
from typing import TYPE_CHECKING, Protocol

import structlog

from transcript_chat.exceptions import StreamTransportError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from transcript_chat.config import LLMSettings
    from transcript_chat.models import CombinedContext

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

ChunkCallback = Callable[[str], None]

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

MISSING_API_KEY_MESSAGE = (
    "API key is not configured. Set it in your .env file and restart."
)

_PROVIDER_PREFIX: dict[str, str] = {
    "anthropic": "anthropic",
    "openai": "openai",
    "google": "gemini",
}

_PROVIDER_KEY_ENV: dict[str, str] = {
    "anthropic": "ANTHROPIC_API_KEY",
    "openai": "OPENAI_API_KEY",
    "google": "GEMINI_API_KEY",
}

_SYSTEM_PROMPT = (
    "You are a transcript analyst. Answer questions using only the video "
    "transcripts below. When videos disagree or only one covers a point, say "
    "which video (by number) the information comes from.\n\n"
    "Videos: {title}\n\n"
    "{transcripts}"
)


class StreamTransport(Protocol):
    """Opens a model stream and pushes each text chunk to ``on_chunk``.

    Returns normally at end-of-stream and raises on failure.
    """

    async def start_stream(
        self,
        context: CombinedContext,
        question: str,
        on_chunk: ChunkCallback,
    ) -> None: ...


# ---------------------------------------------------------------------------
# litellm transport
# ---------------------------------------------------------------------------


def build_messages(context: CombinedContext, question: str) -> list[dict[str, str]]:
    """Build the chat-completion message list for a question."""
    system_prompt = _SYSTEM_PROMPT.format(
        title=context.composite_title,
        transcripts=context.merged_text,
    )
    return [
        {"role": "system", "content": system_prompt},
        {"role": "user", "content": question},
    ]


class LiteLLMTransport:
    """Stream completions from the configured provider via litellm."""

    def __init__(self, settings: LLMSettings) -> None:
        self._settings = settings

    @property
    def model(self) -> str:
        prefix = _PROVIDER_PREFIX[self._settings.provider]
        return f"{prefix}/{self._settings.model}"

    def _resolve_api_key(self) -> str | None:
        if self._settings.api_key is not None:
            value = self._settings.api_key.get_secret_value()
            return value or None
        return os.environ.get(_PROVIDER_KEY_ENV[self._settings.provider]) or None

    async def start_stream(
        self,
        context: CombinedContext,
        question: str,
        on_chunk: ChunkCallback,
    ) -> None:
        api_key = self._resolve_api_key()
        if api_key is None:
            # Reported in-band, like the provider does for a rejected key.
            logger.warning("api_key_missing", provider=self._settings.provider)
            on_chunk(MISSING_API_KEY_MESSAGE)
            return

        import litellm

        try:
            response = await litellm.acompletion(
                model=self.model,
                messages=build_messages(context, question),
                temperature=self._settings.temperature,
                max_tokens=self._settings.max_tokens,
                timeout=self._settings.timeout,
                api_key=api_key,
                stream=True,
            )
            async for part in response:
                if not part.choices:
                    continue
                delta = part.choices[0].delta.content
                if delta:
                    on_chunk(delta)
        except StreamTransportError:
            raise
        except Exception as exc:
            raise StreamTransportError(str(exc)) from exc


# ---------------------------------------------------------------------------
# Scripted transport
# ---------------------------------------------------------------------------


class ScriptedTransport:
    """Replay a fixed chunk sequence, optionally ending with a fault."""

    def __init__(
        self,
        chunks: Iterable[str],
        *,
        fault: Exception | None = None,
        delay: float = 0.0,
    ) -> None:
        self._chunks = list(chunks)
        self._fault = fault
        self._delay = delay
        self.calls: list[tuple[CombinedContext, str]] = []

    async def start_stream(
        self,
        context: CombinedContext,
        question: str,
        on_chunk: ChunkCallback,
    ) -> None:
        self.calls.append((context, question))
        for chunk in self._chunks:
            await asyncio.sleep(self._delay)
            on_chunk(chunk)
        if self._fault is not None:
            raise self._fault
