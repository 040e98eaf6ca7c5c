"""Recognize credential failures reported as ordinary text.

The model backend signals a missing or rejected API key inside the
streamed content rather than on a separate error channel, so both chunks
and fault descriptions are checked against fixed markers.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

DEFAULT_CREDENTIAL_MARKERS: tuple[str, ...] = (
    "API key is not configured",
    "API key not valid",
)


def is_credential_error(
    text: str,
    markers: Iterable[str] = DEFAULT_CREDENTIAL_MARKERS,
) -> bool:
    """Return True when ``text`` contains any credential error marker."""
    return any(marker in text for marker in markers)
