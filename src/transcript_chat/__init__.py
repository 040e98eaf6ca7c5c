"""transcript-chat: Converse with a language model about stored video transcripts."""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("transcript-chat")
except PackageNotFoundError:
    __version__ = "0.1.0"

__all__ = ["__version__"]
