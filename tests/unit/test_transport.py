"""Unit tests for transcript_chat.transport - litellm and scripted transports."""

from __future__ import annotations

from types import SimpleNamespace
from typing import TYPE_CHECKING, Any
from unittest.mock import patch

import pytest
from pydantic import SecretStr

from transcript_chat.config import LLMSettings
from transcript_chat.exceptions import StreamTransportError
from transcript_chat.transport import (
    MISSING_API_KEY_MESSAGE,
    LiteLLMTransport,
    ScriptedTransport,
    build_messages,
)

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from transcript_chat.models import CombinedContext


def _part(content: str | None) -> SimpleNamespace:
    return SimpleNamespace(
        choices=[SimpleNamespace(delta=SimpleNamespace(content=content))]
    )


async def _stream(*parts: SimpleNamespace) -> AsyncIterator[SimpleNamespace]:
    for part in parts:
        yield part


class TestBuildMessages:
    """build_messages embeds the merged transcripts in the system prompt."""

    def test_messages(self, context: CombinedContext) -> None:
        messages = build_messages(context, "What is alpha?")
        assert [m["role"] for m in messages] == ["system", "user"]
        assert context.merged_text in messages[0]["content"]
        assert "Alpha talk" in messages[0]["content"]
        assert messages[1]["content"] == "What is alpha?"


class TestLiteLLMTransport:
    """LiteLLMTransport streams deltas and wraps provider failures."""

    def test_model_prefix(self) -> None:
        transport = LiteLLMTransport(LLMSettings(provider="google", model="gemini-x"))
        assert transport.model == "gemini/gemini-x"
        transport = LiteLLMTransport(LLMSettings(provider="openai", model="gpt-4o"))
        assert transport.model == "openai/gpt-4o"

    @pytest.mark.asyncio
    async def test_missing_key_reported_in_band(
        self, context: CombinedContext, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        chunks: list[str] = []

        with patch("litellm.acompletion") as completion:
            await LiteLLMTransport(LLMSettings()).start_stream(
                context, "q", chunks.append
            )

        assert chunks == [MISSING_API_KEY_MESSAGE]
        completion.assert_not_called()

    @pytest.mark.asyncio
    async def test_streams_deltas(self, context: CombinedContext) -> None:
        calls: list[dict[str, Any]] = []

        async def fake_completion(**kwargs: Any) -> AsyncIterator[SimpleNamespace]:
            calls.append(kwargs)
            return _stream(_part("Hello "), _part(None), _part("world"))

        chunks: list[str] = []
        settings = LLMSettings(api_key=SecretStr("key-123"))
        with patch("litellm.acompletion", new=fake_completion):
            await LiteLLMTransport(settings).start_stream(context, "q", chunks.append)

        assert chunks == ["Hello ", "world"]
        assert calls[0]["stream"] is True
        assert calls[0]["api_key"] == "key-123"
        assert calls[0]["model"] == "gemini/gemini-2.0-flash"

    @pytest.mark.asyncio
    async def test_env_key_used(
        self, context: CombinedContext, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("OPENAI_API_KEY", "env-key")
        seen: list[str] = []

        async def fake_completion(**kwargs: Any) -> AsyncIterator[SimpleNamespace]:
            seen.append(kwargs["api_key"])
            return _stream()

        with patch("litellm.acompletion", new=fake_completion):
            await LiteLLMTransport(LLMSettings(provider="openai")).start_stream(
                context, "q", lambda _chunk: None
            )

        assert seen == ["env-key"]

    @pytest.mark.asyncio
    async def test_provider_error_wrapped(self, context: CombinedContext) -> None:
        async def fake_completion(**kwargs: Any) -> Any:
            raise RuntimeError("400 API key not valid")

        settings = LLMSettings(api_key=SecretStr("bad"))
        with (
            patch("litellm.acompletion", new=fake_completion),
            pytest.raises(StreamTransportError, match="API key not valid"),
        ):
            await LiteLLMTransport(settings).start_stream(context, "q", print)


class TestScriptedTransport:
    """ScriptedTransport replays chunks then optionally raises."""

    @pytest.mark.asyncio
    async def test_replay_and_fault(self, context: CombinedContext) -> None:
        chunks: list[str] = []
        transport = ScriptedTransport(["a", "b"], fault=StreamTransportError("x"))

        with pytest.raises(StreamTransportError):
            await transport.start_stream(context, "q", chunks.append)

        assert chunks == ["a", "b"]
        assert transport.calls == [(context, "q")]
