# File: wayback_archiver/engine.py
"""wayback_archiver.engine: оркестрация запуска — архивация, слияние и запись результатов."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import List, Optional, Sequence, Union

from wayback_archiver.client import ArchiveClient
from wayback_archiver.config import ArchiverConfig
from wayback_archiver.logger import logger
from wayback_archiver.models import ArchiveSuccess, utcnow
from wayback_archiver.retry import RetryPolicy
from wayback_archiver.scheduler import Scheduler, SupportsSubmit
from wayback_archiver.store import ResultStore, load_store, merge_stores
from wayback_archiver.writer import write_store

__all__ = ["Engine", "RunResult", "start_archive"]


async def start_archive(
    cfg: ArchiverConfig,
    urls: Sequence[str],
    *,
    client: Optional[SupportsSubmit] = None,
    timeout: Optional[float] = None,
) -> ResultStore:
    """
    Архивирует все URL и возвращает хранилище в порядке входа.

    Parameters
    ----------
    cfg : ArchiverConfig
        Конфигурация запуска.
    urls : Sequence[str]
        Нормализованные уникальные URL.
    client : SupportsSubmit, optional
        Готовый клиент (в тестах); иначе создаётся ArchiveClient.
    timeout : float, optional
        Таймаут всего запуска; по умолчанию ``cfg.run_timeout``.
    """
    policy = RetryPolicy.from_config(cfg)
    run_timeout = timeout if timeout is not None else cfg.run_timeout
    if client is None:
        async with ArchiveClient(cfg) as archive_client:
            store = await Scheduler(archive_client, policy, cfg.concurrency).run(urls, timeout=run_timeout)
    else:
        store = await Scheduler(client, policy, cfg.concurrency).run(urls, timeout=run_timeout)
    return store.reordered(urls)


@dataclass(slots=True)
class RunResult:
    """Итог одного запуска."""

    store: ResultStore
    incoming: ResultStore
    skipped: List[str] = field(default_factory=list)
    written_to: Optional[Path] = None

    @property
    def failed(self) -> bool:
        return bool(self.incoming.failures())


class Engine:
    """Фасад для CLI и тестов: загрузка прежнего хранилища, архивация, слияние, запись."""

    def __init__(self, config: ArchiverConfig) -> None:
        self.config = config

    def run(
        self,
        urls: Sequence[str],
        out: Union[str, Path, None] = None,
        merge: bool = False,
        skip_recent_days: Optional[int] = None,
    ) -> RunResult:
        """
        Полный цикл запуска.

        Фатальные ошибки (StoreLoadError, StoreWriteError) пробрасываются; файл
        результата в этом случае не создаётся и не меняется.
        """
        if merge and out is None:
            raise ValueError("merge mode requires an output path")

        prior = load_store(out) if merge else ResultStore()
        skipped: List[str] = []
        if merge and skip_recent_days:
            skipped = self._recently_archived(prior, urls, skip_recent_days)
            for url in skipped:
                logger.info("Skipping %s: archived within %d days", url, skip_recent_days)
        skipped_set = set(skipped)
        pending = [u for u in urls if u not in skipped_set]

        incoming = asyncio.run(start_archive(self.config, pending)) if pending else ResultStore()
        final = merge_stores(prior, incoming) if merge else incoming

        written: Optional[Path] = None
        if out is not None:
            written = write_store(final, out)
        return RunResult(store=final, incoming=incoming, skipped=skipped, written_to=written)

    @staticmethod
    def _recently_archived(prior: ResultStore, urls: Sequence[str], days: int) -> List[str]:
        cutoff = utcnow() - timedelta(days=days)
        recent: List[str] = []
        for url in urls:
            outcome = prior.get(url)
            if isinstance(outcome, ArchiveSuccess) and outcome.archived_at > cutoff:
                recent.append(url)
        return recent
