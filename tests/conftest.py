# File: tests/conftest.py
from __future__ import annotations

import asyncio
from collections import Counter
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional

import pytest_asyncio
from aiohttp import web

from wayback_archiver.config import ArchiverConfig
from wayback_archiver.errors import ArchiveError
from wayback_archiver.models import ArchiveSuccess, ErrorKind

SNAPSHOT_TS = "20240102030405"
SNAPSHOT_AT = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)


async def _serve_app(app: web.Application, port: int) -> AsyncIterator[str]:
    """Start *app* on *port*, yield base URL, ensure cleanup."""
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "localhost", port)
    await site.start()
    try:
        yield f"http://localhost:{port}"
    finally:
        await runner.cleanup()


@dataclass
class FakeWayback:
    """Local stand-in for Save Page Now and the availability API."""

    base_url: str = ""
    save_calls: Counter = field(default_factory=Counter)
    lookup_calls: Counter = field(default_factory=Counter)
    # target -> (timestamp) returned by the availability API
    snapshots: Dict[str, str] = field(default_factory=dict)

    def config(self, **overrides) -> ArchiverConfig:
        values = dict(
            save_endpoint=f"{self.base_url}/save/",
            availability_endpoint=f"{self.base_url}/wayback/available",
            timeout=2.0,
            concurrency=2,
            max_attempts=3,
            backoff_base=0.0,
            jitter=0.0,
            snapshot_max_age_days=0,
        )
        values.update(overrides)
        return ArchiverConfig(**values)

    def build_app(self) -> web.Application:
        app = web.Application()
        app.router.add_get("/save/{target:.*}", self._save)
        app.router.add_get("/web/{ts}/{target:.*}", self._snapshot)
        app.router.add_get("/wayback/available", self._available)
        return app

    async def _save(self, request: web.Request) -> web.StreamResponse:
        target = request.match_info["target"]
        self.save_calls[target] += 1
        if target.startswith("ok") or target in ("google.com", "wikipedia.org"):
            raise web.HTTPFound(location=f"/web/{SNAPSHOT_TS}/{target}")
        if target == "race.example":
            raise web.HTTPFound(location=f"/web/{SNAPSHOT_TS}/{target}")
        if target == "location.example":
            return web.Response(
                text="saved", headers={"Content-Location": f"/web/{SNAPSHOT_TS}/{target}"}
            )
        if target == "nopointer.example":
            return web.Response(text="<html>saved, probably</html>", content_type="text/html")
        if target == "blocked.example":
            return web.Response(status=403)
        if target == "unable.example" or target == "old.example":
            return web.Response(status=520)
        if target == "busy.example":
            return web.Response(status=429)
        if target == "bandwidth.example":
            return web.Response(status=509)
        if target == "down.example":
            return web.Response(status=503)
        if target == "teapot.example":
            return web.Response(status=418)
        if target == "slow.example":
            await asyncio.sleep(3)
            return web.Response(text="too late")
        if target == "flaky.example":
            if self.save_calls[target] <= 2:
                return web.Response(status=500)
            raise web.HTTPFound(location=f"/web/{SNAPSHOT_TS}/{target}")
        return web.Response(status=404)

    async def _snapshot(self, request: web.Request) -> web.Response:
        if request.match_info["target"] == "race.example":
            return web.Response(status=404)
        return web.Response(text="<html>snapshot</html>", content_type="text/html")

    async def _available(self, request: web.Request) -> web.Response:
        target = request.query.get("url", "")
        self.lookup_calls[target] += 1
        ts = self.snapshots.get(target)
        if ts is None:
            return web.json_response({"url": target, "archived_snapshots": {}})
        return web.json_response(
            {
                "url": target,
                "archived_snapshots": {
                    "closest": {
                        "status": "200",
                        "available": True,
                        "url": f"http://web.archive.org/web/{ts}/{target}",
                        "timestamp": ts,
                    }
                },
            }
        )


@pytest_asyncio.fixture
async def wayback(unused_tcp_port: int) -> AsyncIterator[FakeWayback]:
    fake = FakeWayback()
    async for url in _serve_app(fake.build_app(), unused_tcp_port):
        fake.base_url = url
        yield fake


def wayback_ts(moment: datetime) -> str:
    return moment.strftime("%Y%m%d%H%M%S")


def days_ago(days: int) -> datetime:
    return datetime.now(timezone.utc) - timedelta(days=days)


class FakeClient:
    """In-memory client: scripted responses per URL, tracks concurrency."""

    def __init__(
        self,
        script: Optional[Dict[str, List[object]]] = None,
        delay: float = 0.0,
        default: Optional[Callable[[str], object]] = None,
    ) -> None:
        self.script = {url: list(steps) for url, steps in (script or {}).items()}
        self.delay = delay
        self.default = default
        self.calls: Counter = Counter()
        self.in_flight = 0
        self.max_in_flight = 0

    async def submit(self, url: str) -> ArchiveSuccess:
        self.calls[url] += 1
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            steps = self.script.get(url)
            step = steps.pop(0) if steps else (self.default(url) if self.default else success(url))
            if isinstance(step, BaseException):
                raise step
            return step
        finally:
            self.in_flight -= 1


def success(url: str, when: datetime = SNAPSHOT_AT) -> ArchiveSuccess:
    return ArchiveSuccess(
        original_url=url,
        archived_url=f"https://web.archive.org/web/{wayback_ts(when)}/{url}",
        archived_at=when,
    )


def error(kind: ErrorKind, message: str = "") -> ArchiveError:
    return ArchiveError(kind, message)


async def no_sleep(_: float) -> None:
    return None
