# wayback_archiver/models.py
"""
Data models for the archiving pipeline: error kinds and per-URL outcomes.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Union


def utcnow() -> datetime:
    """Текущее время в UTC (timezone-aware)."""
    return datetime.now(timezone.utc)


class ErrorKind(str, Enum):
    """Why a single URL could not be archived."""

    NETWORK = "network"
    TRANSIENT = "transient"
    REJECTED = "rejected"
    MALFORMED_RESPONSE = "malformed_response"
    CANCELLED = "cancelled"
    UNKNOWN = "unknown"

    @property
    def retryable(self) -> bool:
        return self in (ErrorKind.NETWORK, ErrorKind.TRANSIENT)


@dataclass(slots=True)
class ArchiveSuccess:
    """Snapshot pointer returned by the archiving endpoint."""

    original_url: str
    archived_url: str
    archived_at: datetime
    existing_snapshot: bool = False

    @property
    def ok(self) -> bool:
        return True


@dataclass(slots=True)
class ArchiveFailure:
    """Terminal failure for one URL."""

    original_url: str
    reason: ErrorKind
    attempts: int
    message: str = ""
    failed_at: datetime = field(default_factory=utcnow)

    @property
    def ok(self) -> bool:
        return False


ArchiveOutcome = Union[ArchiveSuccess, ArchiveFailure]

__all__ = ["ErrorKind", "ArchiveSuccess", "ArchiveFailure", "ArchiveOutcome", "utcnow"]
