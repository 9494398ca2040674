# wayback_archiver/errors.py
"""
Иерархия исключений WaybackArchiver.

Фатальные ошибки (``ArchiverError``) прерывают запуск и несут код выхода CLI.
``ArchiveError`` описывает неудачу одной отправки URL и обрабатывается
политикой повторов, до CLI она не доходит.
"""
from __future__ import annotations

from enum import IntEnum
from pathlib import Path
from typing import Optional, Union

from wayback_archiver.models import ErrorKind


class ExitCode(IntEnum):
    OK = 0
    URL_FAILED = 1
    USAGE = 2
    EMPTY_INPUT = 3
    STORE_LOAD = 4
    STORE_WRITE = 5
    CONFIG = 6


class ArchiverError(Exception):
    """Базовое фатальное исключение запуска."""

    exit_code: ExitCode = ExitCode.URL_FAILED


class EmptyInputError(ArchiverError):
    """Ни один источник не дал ни одного URL."""

    exit_code = ExitCode.EMPTY_INPUT

    def __init__(self, message: str = "no URLs given: pass arguments, --urls-file or stdin") -> None:
        super().__init__(message)


class StoreLoadError(ArchiverError):
    """Существующее хранилище не удалось прочитать или разобрать."""

    exit_code = ExitCode.STORE_LOAD

    def __init__(self, path: Union[str, Path], reason: str) -> None:
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"cannot load result store {self.path}: {reason}")


class StoreWriteError(ArchiverError):
    """Атомарная запись хранилища не завершилась; прежний файл не тронут."""

    exit_code = ExitCode.STORE_WRITE

    def __init__(self, path: Union[str, Path], reason: str) -> None:
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"cannot write result store {self.path}: {reason}")


class ArchiveError(Exception):
    """Неудачная отправка одного URL в архив."""

    def __init__(self, kind: ErrorKind, message: str = "", status: Optional[int] = None) -> None:
        self.kind = kind
        self.message = message
        self.status = status
        super().__init__(f"{kind.value}: {message}" if message else kind.value)

    @property
    def retryable(self) -> bool:
        return self.kind.retryable


__all__ = [
    "ExitCode",
    "ArchiverError",
    "EmptyInputError",
    "StoreLoadError",
    "StoreWriteError",
    "ArchiveError",
]
