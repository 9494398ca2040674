# wayback_archiver/client.py
"""
Archive client: one submission of one URL to the Wayback Machine.

The client classifies every response into an :class:`ArchiveSuccess` or an
:class:`ArchiveError` of a specific :class:`ErrorKind`. It never retries;
retryability is decided by :mod:`wayback_archiver.retry`.
"""
from __future__ import annotations

import asyncio
import re
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from aiohttp import ClientError, ClientSession, ClientTimeout
from yarl import URL

from wayback_archiver.config import ArchiverConfig
from wayback_archiver.errors import ArchiveError
from wayback_archiver.logger import logger
from wayback_archiver.models import ArchiveSuccess, ErrorKind, utcnow

__all__ = ("ArchiveClient", "parse_wayback_timestamp", "timestamp_from_archive_url")

_SNAPSHOT_RE = re.compile(r"/web/(\d{14})")
_TIMESTAMP_FMT = "%Y%m%d%H%M%S"

# 509 — Bandwidth Exceeded у Wayback Machine.
_TRANSIENT_STATUS = frozenset({429, 509})
# "Wayback Machine unable to archive this URL".
_UNABLE_TO_ARCHIVE_STATUS = frozenset({403, 520, 523})


def parse_wayback_timestamp(ts: str) -> datetime:
    """Parse a 14-digit Wayback timestamp (always UTC)."""
    try:
        return datetime.strptime(ts, _TIMESTAMP_FMT).replace(tzinfo=timezone.utc)
    except ValueError as exc:
        raise ArchiveError(ErrorKind.MALFORMED_RESPONSE, f"bad snapshot timestamp {ts!r}") from exc


def timestamp_from_archive_url(url: str) -> datetime:
    """Extract the snapshot timestamp from ``.../web/<timestamp>/<url>``."""
    match = _SNAPSHOT_RE.search(url)
    if match is None:
        raise ArchiveError(
            ErrorKind.MALFORMED_RESPONSE, f"unable to extract timestamp from {url!r}"
        )
    return parse_wayback_timestamp(match.group(1))


class ArchiveClient:
    """Async client for Save Page Now and the availability API."""

    def __init__(self, config: ArchiverConfig, session: Optional[ClientSession] = None) -> None:
        self.config = config
        self.session = session
        self._owns_session = session is None
        # Результат поиска снимка на URL: повторные попытки его не повторяют.
        self._lookups: Dict[str, Optional[ArchiveSuccess]] = {}

    async def __aenter__(self) -> ArchiveClient:
        if self.session is None:
            self.session = ClientSession(
                timeout=ClientTimeout(total=self.config.timeout),
                headers={"User-Agent": self.config.user_agent},
                raise_for_status=False,
            )
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self._owns_session and self.session and not self.session.closed:
            await self.session.close()

    async def submit(self, url: str) -> ArchiveSuccess:
        """Archive *url* once; raise :class:`ArchiveError` on failure."""
        if not self.session:
            raise RuntimeError("Session not initialized")

        existing: Optional[ArchiveSuccess] = None
        if self.config.snapshot_max_age_days > 0:
            if url not in self._lookups:
                self._lookups[url] = await self.fetch_latest_snapshot(url)
            existing = self._lookups[url]
            if existing is not None and self._is_recent(existing.archived_at):
                logger.debug("Reusing recent snapshot of %s: %s", url, existing.archived_url)
                return existing

        try:
            return await self._save(url)
        except ArchiveError as exc:
            # Сервис не смог заархивировать, но старый снимок всё же есть.
            if existing is not None and exc.status in _UNABLE_TO_ARCHIVE_STATUS:
                logger.info("Unable to archive %s (HTTP %s), keeping older snapshot", url, exc.status)
                return existing
            raise

    async def fetch_latest_snapshot(self, url: str) -> Optional[ArchiveSuccess]:
        """Return the newest existing snapshot of *url*, or None.

        Lookup failures are not errors of the submission: they only mean that
        no snapshot can be reused.
        """
        try:
            async with self.session.get(
                self.config.availability_endpoint, params={"url": url}
            ) as resp:
                if resp.status != 200:
                    logger.debug("Availability lookup for %s -> HTTP %s", url, resp.status)
                    return None
                payload = await resp.json(content_type=None)
        except (ClientError, asyncio.TimeoutError, ValueError) as exc:
            logger.debug("Availability lookup for %s failed: %s", url, exc)
            return None
        return self._latest_from_payload(url, payload)

    # ------------------------------------------------------------------ #

    async def _save(self, url: str) -> ArchiveSuccess:
        target = f"{self.config.save_endpoint}{url}"
        try:
            async with self.session.get(target, allow_redirects=True) as resp:
                status = resp.status
                final_url = str(resp.url)
                content_location = resp.headers.get("Content-Location")
        except asyncio.TimeoutError as exc:
            raise ArchiveError(ErrorKind.NETWORK, f"timeout after {self.config.timeout}s") from exc
        except ClientError as exc:
            raise ArchiveError(ErrorKind.NETWORK, f"{type(exc).__name__}: {exc}") from exc

        logger.debug("Save %s -> HTTP %s at %s", url, status, final_url)
        return self._classify(url, status, final_url, content_location)

    def _classify(
        self, url: str, status: int, final_url: str, content_location: Optional[str]
    ) -> ArchiveSuccess:
        if status == 200:
            archived = self._snapshot_location(final_url, content_location)
            if archived is None:
                raise ArchiveError(
                    ErrorKind.MALFORMED_RESPONSE,
                    f"no snapshot location in response (final URL {final_url})",
                    status,
                )
            return self._success(url, archived, status)
        if status == 404:
            # Снимок иногда отдаёт 404, хотя архивация прошла (гонка в Wayback Machine).
            if URL(final_url).path.startswith("/web"):
                return self._success(url, final_url, status)
            raise ArchiveError(ErrorKind.REJECTED, f"HTTP 404 at {final_url}", status)
        if status in _UNABLE_TO_ARCHIVE_STATUS:
            raise ArchiveError(ErrorKind.REJECTED, f"HTTP {status}: unable to archive", status)
        if status in _TRANSIENT_STATUS or 500 <= status < 600:
            raise ArchiveError(ErrorKind.TRANSIENT, f"HTTP {status}", status)
        if 400 <= status < 500:
            raise ArchiveError(ErrorKind.REJECTED, f"HTTP {status}", status)
        raise ArchiveError(ErrorKind.MALFORMED_RESPONSE, f"unexpected HTTP {status}", status)

    def _success(self, url: str, archived_url: str, status: int) -> ArchiveSuccess:
        try:
            archived_at = timestamp_from_archive_url(archived_url)
        except ArchiveError as exc:
            exc.status = status
            raise
        return ArchiveSuccess(original_url=url, archived_url=archived_url, archived_at=archived_at)

    def _snapshot_location(self, final_url: str, content_location: Optional[str]) -> Optional[str]:
        if _SNAPSHOT_RE.search(URL(final_url).path):
            return final_url
        if content_location:
            absolute = str(URL(final_url).join(URL(content_location)))
            if _SNAPSHOT_RE.search(URL(absolute).path):
                return absolute
        return None

    def _latest_from_payload(self, url: str, payload: Any) -> Optional[ArchiveSuccess]:
        if not isinstance(payload, dict):
            return None
        snapshots = payload.get("archived_snapshots") or {}
        if not isinstance(snapshots, dict):
            return None
        candidates: Dict[str, Dict[str, Any]] = {
            name: snap
            for name, snap in snapshots.items()
            if isinstance(snap, dict) and snap.get("url") and snap.get("timestamp")
            and snap.get("available", True)
        }
        if not candidates:
            return None
        latest = max(candidates.values(), key=lambda snap: str(snap["timestamp"]))
        try:
            archived_at = parse_wayback_timestamp(str(latest["timestamp"]))
        except ArchiveError as exc:
            logger.debug("Ignoring snapshot of %s: %s", url, exc)
            return None
        return ArchiveSuccess(
            original_url=url,
            archived_url=str(latest["url"]),
            archived_at=archived_at,
            existing_snapshot=True,
        )

    def _is_recent(self, archived_at: datetime) -> bool:
        return utcnow() - archived_at < timedelta(days=self.config.snapshot_max_age_days)
