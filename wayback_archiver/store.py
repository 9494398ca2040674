# wayback_archiver/store.py
"""
Result store: URL -> outcome mapping, merge rule and the persisted JSON format.

Persisted layout (one record per normalized URL)::

    {
      "https://example.com": {
        "url": "https://web.archive.org/web/20240101000000/https://example.com",
        "last_archived": "2024-01-01T00:00:00Z",
        "existing_snapshot": false,
        "error": null,
        "attempts": 0,
        "message": ""
      }
    }

``url`` and ``last_archived`` match files written by earlier versions of the
tool, which therefore load as well.
"""
from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from threading import Lock
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, TypeAdapter, ValidationError, field_validator

from wayback_archiver.errors import StoreLoadError
from wayback_archiver.logger import logger
from wayback_archiver.models import ArchiveFailure, ArchiveOutcome, ArchiveSuccess, ErrorKind
from wayback_archiver.urls import normalize_url

__all__ = [
    "StoredOutcome",
    "ResultStore",
    "merge_stores",
    "load_store",
    "store_to_dict",
    "store_from_dict",
]


class StoredOutcome(BaseModel):
    """On-disk record of one outcome."""

    model_config = ConfigDict(extra="ignore")

    url: Optional[str] = None
    last_archived: datetime
    existing_snapshot: bool = False
    error: Optional[ErrorKind] = None
    attempts: int = 0
    message: str = ""

    @field_validator("last_archived", mode="after")
    def _assume_utc(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)

    @classmethod
    def from_outcome(cls, outcome: ArchiveOutcome) -> StoredOutcome:
        if isinstance(outcome, ArchiveSuccess):
            return cls(
                url=outcome.archived_url,
                last_archived=outcome.archived_at,
                existing_snapshot=outcome.existing_snapshot,
            )
        return cls(
            url=None,
            last_archived=outcome.failed_at,
            error=outcome.reason,
            attempts=outcome.attempts,
            message=outcome.message,
        )

    def to_outcome(self, original_url: str) -> ArchiveOutcome:
        if self.url is not None and self.error is None:
            return ArchiveSuccess(
                original_url=original_url,
                archived_url=self.url,
                archived_at=self.last_archived,
                existing_snapshot=self.existing_snapshot,
            )
        return ArchiveFailure(
            original_url=original_url,
            reason=self.error or ErrorKind.UNKNOWN,
            attempts=self.attempts,
            message=self.message,
            failed_at=self.last_archived,
        )


_RECORDS = TypeAdapter(Dict[str, StoredOutcome])


class ResultStore:
    """Ordered URL -> outcome mapping; insertion is the only mutation."""

    def __init__(self, outcomes: Iterable[ArchiveOutcome] = ()) -> None:
        self._entries: Dict[str, ArchiveOutcome] = {}
        self._lock = Lock()
        for outcome in outcomes:
            self.insert(outcome)

    def insert(self, outcome: ArchiveOutcome) -> None:
        """Store *outcome* under its URL; a later insert for the same URL wins."""
        with self._lock:
            self._entries[outcome.original_url] = outcome

    def get(self, url: str) -> Optional[ArchiveOutcome]:
        with self._lock:
            return self._entries.get(url)

    def __contains__(self, url: object) -> bool:
        with self._lock:
            return url in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self.urls())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ResultStore):
            return NotImplemented
        return self.items() == other.items()

    def __repr__(self) -> str:
        return f"ResultStore({len(self)} entries)"

    def urls(self) -> List[str]:
        with self._lock:
            return list(self._entries)

    def items(self) -> List[Tuple[str, ArchiveOutcome]]:
        with self._lock:
            return list(self._entries.items())

    def outcomes(self) -> List[ArchiveOutcome]:
        with self._lock:
            return list(self._entries.values())

    def successes(self) -> List[ArchiveSuccess]:
        return [o for o in self.outcomes() if isinstance(o, ArchiveSuccess)]

    def failures(self) -> List[ArchiveFailure]:
        return [o for o in self.outcomes() if isinstance(o, ArchiveFailure)]

    def reordered(self, order: Iterable[str]) -> ResultStore:
        """Copy with entries in *order*; entries not listed keep their relative order at the end."""
        entries = dict(self.items())
        result = ResultStore()
        for url in order:
            outcome = entries.pop(url, None)
            if outcome is not None:
                result.insert(outcome)
        for outcome in entries.values():
            result.insert(outcome)
        return result


def merge_stores(existing: ResultStore, incoming: ResultStore) -> ResultStore:
    """Last-write-wins merge.

    URLs in *incoming* overwrite the same URL in *existing* in place; URLs
    only in *existing* are kept; new URLs are appended in *incoming* order.
    """
    merged = ResultStore(existing.outcomes())
    for outcome in incoming.outcomes():
        merged.insert(outcome)
    return merged


def store_to_dict(store: ResultStore) -> Dict[str, Dict[str, Any]]:
    return {
        url: StoredOutcome.from_outcome(outcome).model_dump(mode="json")
        for url, outcome in store.items()
    }


def store_from_dict(data: Any) -> ResultStore:
    """Validate a decoded JSON document and build a store (raises ValidationError).

    Keys are normalized; when two keys normalize to the same URL the later
    record wins.
    """
    records = _RECORDS.validate_python(data)
    return ResultStore(
        record.to_outcome(normalize_url(url)) for url, record in records.items()
    )


def load_store(path: Union[str, Path], *, missing_ok: bool = True) -> ResultStore:
    """Load a persisted store.

    A missing file gives an empty store when *missing_ok*; unreadable or
    unparseable content raises :class:`StoreLoadError`.
    """
    p = Path(path)
    if not p.exists():
        if missing_ok:
            logger.info("No existing store at %s, starting empty", p)
            return ResultStore()
        raise StoreLoadError(p, "file does not exist")
    try:
        text = p.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise StoreLoadError(p, str(exc)) from exc
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise StoreLoadError(p, f"invalid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise StoreLoadError(p, f"top level must be an object, got {type(data).__name__}")
    try:
        store = store_from_dict(data)
    except ValidationError as exc:
        raise StoreLoadError(p, f"invalid record: {exc.errors()[0]['msg']}") from exc
    logger.info("Loaded %d existing entries from %s", len(store), p)
    return store
