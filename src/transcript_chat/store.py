"""Read access to stored video transcripts.

The chat engine only needs ``list()``; the file-backed store also offers
``save``/``get``/``remove`` so the CLI can manage the collection.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Protocol, cast

import structlog
from pydantic import ValidationError

from transcript_chat.exceptions import TranscriptStoreError
from transcript_chat.models import TranscriptRecord

if TYPE_CHECKING:
    from collections.abc import Iterable
    from pathlib import Path

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)


class TranscriptStore(Protocol):
    """Anything that can return the current ordered transcript snapshot."""

    def list(self) -> list[TranscriptRecord]: ...


class InMemoryTranscriptStore:
    """Transcript store backed by a plain list, in insertion order."""

    def __init__(self, records: Iterable[TranscriptRecord] = ()) -> None:
        self._records: list[TranscriptRecord] = []
        for record in records:
            self.save(record)

    def list(self) -> list[TranscriptRecord]:
        return list(self._records)

    def get(self, video_id: str) -> TranscriptRecord | None:
        for record in self._records:
            if record.video_id == video_id:
                return record
        return None

    def save(self, record: TranscriptRecord) -> None:
        for index, existing in enumerate(self._records):
            if existing.video_id == record.video_id:
                self._records[index] = record
                return
        self._records.append(record)

    def remove(self, video_id: str) -> bool:
        before = len(self._records)
        self._records = [r for r in self._records if r.video_id != video_id]
        return len(self._records) != before


class JsonFileTranscriptStore:
    """File-backed transcript store holding a JSON array of records.

    The file is re-read on every call so external writers are picked up
    on the next ``list()``. A missing file is an empty store.
    """

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> list[TranscriptRecord]:
        if not self._path.exists():
            return []
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise TranscriptStoreError(
                f"Cannot read transcript store {self._path}: {exc}"
            ) from exc
        if not isinstance(raw, list):
            raise TranscriptStoreError(
                f"Transcript store {self._path} must contain a JSON array"
            )
        payload = cast("list[dict[str, object]]", raw)
        try:
            return [TranscriptRecord.model_validate(item) for item in payload]
        except ValidationError as exc:
            raise TranscriptStoreError(
                f"Invalid transcript record in {self._path}: {exc}"
            ) from exc

    def _save(self, records: list[TranscriptRecord]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(
            json.dumps([record.model_dump(mode="json") for record in records], indent=2),
            encoding="utf-8",
        )

    def list(self) -> list[TranscriptRecord]:
        return self._load()

    def get(self, video_id: str) -> TranscriptRecord | None:
        for record in self._load():
            if record.video_id == video_id:
                return record
        return None

    def save(self, record: TranscriptRecord) -> None:
        records = self._load()
        for index, existing in enumerate(records):
            if existing.video_id == record.video_id:
                records[index] = record
                break
        else:
            records.append(record)
        self._save(records)
        logger.debug("transcript_saved", video_id=record.video_id, path=str(self._path))

    def remove(self, video_id: str) -> bool:
        records = self._load()
        kept = [record for record in records if record.video_id != video_id]
        if len(kept) == len(records):
            return False
        self._save(kept)
        logger.debug("transcript_removed", video_id=video_id, path=str(self._path))
        return True
