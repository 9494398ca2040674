# === FILE: wayback_archiver/scheduler.py ===
from __future__ import annotations

import asyncio
import time
from typing import Awaitable, Callable, Dict, List, Optional, Protocol, Sequence, Set

from wayback_archiver.logger import logger
from wayback_archiver.models import ArchiveFailure, ArchiveSuccess, ErrorKind
from wayback_archiver.retry import RetryPolicy, RetryState
from wayback_archiver.store import ResultStore

__all__ = ("Scheduler", "SupportsSubmit")


class SupportsSubmit(Protocol):
    submit: Callable[[str], Awaitable[ArchiveSuccess]]


class Scheduler:
    """Ограниченный пул асинхронных воркеров: каждый URL получает ровно один исход."""

    def __init__(self, client: SupportsSubmit, policy: RetryPolicy, concurrency: int = 2) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be >= 1")
        self.client = client
        self.policy = policy
        self.concurrency = concurrency
        self._in_flight: Dict[str, RetryState] = {}
        self._finished: Set[str] = set()
        self._done = 0
        self._total = 0

    async def run(
        self,
        urls: Sequence[str],
        store: Optional[ResultStore] = None,
        timeout: Optional[float] = None,
    ) -> ResultStore:
        """
        Прогоняет все URL через политику повторов, не более ``concurrency``
        отправок одновременно.

        Возвращается только когда у каждого URL есть терминальный исход. По
        таймауту или отмене (Ctrl-C) воркеры отменяются, а все URL без исхода
        записываются как ``cancelled``.
        """
        store = store if store is not None else ResultStore()
        self._in_flight.clear()
        self._finished.clear()
        self._done = 0
        self._total = len(urls)
        if not urls:
            return store

        logger.info("Archiving %d URL(s) with %d worker(s)", len(urls), min(self.concurrency, len(urls)))
        start = time.monotonic()
        queue: asyncio.Queue[str] = asyncio.Queue()
        for url in urls:
            queue.put_nowait(url)
        workers = [
            asyncio.create_task(self._worker(queue, store))
            for _ in range(min(self.concurrency, len(urls)))
        ]
        try:
            await asyncio.wait_for(queue.join(), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning("Run did not finish within %s seconds, cancelling", timeout)
        except asyncio.CancelledError:
            logger.warning("Run interrupted, cancelling in-flight submissions")
        finally:
            for w in workers:
                w.cancel()
            await asyncio.gather(*workers, return_exceptions=True)

        cancelled = self._record_cancelled(urls, store)
        duration = time.monotonic() - start
        logger.info(
            "Finished: %d archived, %d failed (%d cancelled) in %.2f s",
            len(store.successes()), len(store.failures()), cancelled, duration,
        )
        return store

    async def _worker(self, queue: asyncio.Queue[str], store: ResultStore) -> None:
        while True:
            try:
                url = await queue.get()
                state = self.policy.new_state(url)
                self._in_flight[url] = state
                self._done += 1
                logger.info("[%d/%d] Archiving %s", self._done, self._total, url)
                try:
                    outcome = await self.policy.run(url, self.client.submit, state)
                except asyncio.CancelledError:
                    raise
                except Exception as exc:  # noqa: BLE001
                    logger.exception("Unexpected error while archiving %s", url)
                    outcome = ArchiveFailure(
                        original_url=url,
                        reason=ErrorKind.UNKNOWN,
                        attempts=state.attempts,
                        message=f"{type(exc).__name__}: {exc}",
                    )
                store.insert(outcome)
                self._finished.add(url)
                if isinstance(outcome, ArchiveSuccess):
                    logger.info("  -> Done: %s", outcome.archived_url)
                del self._in_flight[url]
                queue.task_done()
            except asyncio.CancelledError:
                break

    def _record_cancelled(self, urls: Sequence[str], store: ResultStore) -> int:
        missing: List[str] = [url for url in urls if url not in self._finished]
        for url in missing:
            state = self._in_flight.get(url)
            store.insert(
                ArchiveFailure(
                    original_url=url,
                    reason=ErrorKind.CANCELLED,
                    attempts=state.attempts if state else 0,
                    message="run cancelled before submission completed",
                )
            )
        self._in_flight.clear()
        return len(missing)
