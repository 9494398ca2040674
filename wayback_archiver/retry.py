# File: wayback_archiver/retry.py
"""wayback_archiver.retry: политика повторов с экспоненциальной паузой.

Каждый URL ведёт собственный RetryState:

    pending -> attempting -> succeeded
                          -> backoff_wait -> attempting ...
                          -> failed

Политика — единственное место, где решается, повторять ли попытку.
"""
from __future__ import annotations

import asyncio
import random
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Optional

from wayback_archiver.errors import ArchiveError
from wayback_archiver.logger import logger
from wayback_archiver.models import ArchiveFailure, ArchiveOutcome, ArchiveSuccess, ErrorKind

__all__ = ["MAX_ATTEMPTS", "Phase", "RetryState", "RetryPolicy"]

MAX_ATTEMPTS = 3

SubmitFn = Callable[[str], Awaitable[ArchiveSuccess]]
SleepFn = Callable[[float], Awaitable[None]]


class Phase(str, Enum):
    PENDING = "pending"
    ATTEMPTING = "attempting"
    BACKOFF_WAIT = "backoff_wait"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(slots=True)
class RetryState:
    """Счётчик попыток и следующая пауза для одного URL."""

    url: str
    max_attempts: int = MAX_ATTEMPTS
    attempts: int = 0
    phase: Phase = Phase.PENDING
    next_delay: float = 0.0
    last_error: Optional[ArchiveError] = None

    @property
    def terminal(self) -> bool:
        return self.phase in (Phase.SUCCEEDED, Phase.FAILED)

    def begin_attempt(self) -> None:
        if self.phase not in (Phase.PENDING, Phase.BACKOFF_WAIT):
            raise RuntimeError(f"cannot start an attempt from phase {self.phase.value}")
        self.attempts += 1
        self.phase = Phase.ATTEMPTING

    def record_success(self) -> None:
        self.phase = Phase.SUCCEEDED
        self.next_delay = 0.0

    def record_error(self, error: ArchiveError, delay: float) -> None:
        """Переход после ошибки: пауза и повтор либо окончательный отказ."""
        self.last_error = error
        if error.retryable and self.attempts < self.max_attempts:
            self.phase = Phase.BACKOFF_WAIT
            self.next_delay = delay
        else:
            self.phase = Phase.FAILED
            self.next_delay = 0.0

    def failure(self) -> ArchiveFailure:
        error = self.last_error
        return ArchiveFailure(
            original_url=self.url,
            reason=error.kind if error else ErrorKind.UNKNOWN,
            attempts=self.attempts,
            message=error.message if error else "",
        )


class RetryPolicy:
    """Оборачивает отправку одного URL ограниченным числом попыток."""

    def __init__(
        self,
        max_attempts: int = MAX_ATTEMPTS,
        backoff_base: float = 5.0,
        backoff_max: float = 60.0,
        jitter: float = 1.0,
        sleep: SleepFn = asyncio.sleep,
        rng: Callable[[], float] = random.random,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self.max_attempts = max_attempts
        self.backoff_base = backoff_base
        self.backoff_max = backoff_max
        self.jitter = jitter
        self._sleep = sleep
        self._rng = rng

    @classmethod
    def from_config(cls, config, **kwargs) -> RetryPolicy:
        return cls(
            max_attempts=config.max_attempts,
            backoff_base=config.backoff_base,
            backoff_max=config.backoff_max,
            jitter=config.jitter,
            **kwargs,
        )

    def backoff(self, attempt: int) -> float:
        """Пауза после попытки номер *attempt*: base * 2^(attempt-1) + jitter."""
        delay = min(self.backoff_max, self.backoff_base * 2 ** (attempt - 1))
        return delay + self.jitter * self._rng()

    def new_state(self, url: str) -> RetryState:
        return RetryState(url=url, max_attempts=self.max_attempts)

    async def run(
        self, url: str, submit: SubmitFn, state: Optional[RetryState] = None
    ) -> ArchiveOutcome:
        """Доводит URL до терминального исхода."""
        state = state or self.new_state(url)
        while True:
            state.begin_attempt()
            try:
                success = await submit(url)
            except ArchiveError as exc:
                state.record_error(exc, self.backoff(state.attempts))
                if state.phase is Phase.FAILED:
                    logger.warning(
                        "Failed %s after %d attempt(s): %s", url, state.attempts, exc
                    )
                    return state.failure()
                logger.debug(
                    "Retry %d/%d for %s after %.2f s (%s)",
                    state.attempts, state.max_attempts, url, state.next_delay, exc,
                )
                await self._sleep(state.next_delay)
                continue
            state.record_success()
            return success
