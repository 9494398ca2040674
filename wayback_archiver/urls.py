# File: wayback_archiver/urls.py
"""wayback_archiver.urls: нормализация и дедупликация входных URL."""

from __future__ import annotations

from pathlib import Path
from typing import Collection, Iterable, List, Sequence, Union

from wayback_archiver.errors import EmptyInputError
from wayback_archiver.logger import logger

__all__: Sequence[str] = (
    "normalize_url",
    "split_lines",
    "read_url_file",
    "remove_duplicates",
    "collect_urls",
)


def normalize_url(raw: str) -> str:
    """Убирает пробелы по краям. Схема не добавляется, регистр сохраняется."""
    return raw.strip()


def split_lines(text: str) -> List[str]:
    """Разбивает текст на строки (stdin, содержимое файла)."""
    return text.splitlines()


def read_url_file(path: Union[str, Path]) -> List[str]:
    """Читает файл со списком URL, по одному на строку."""
    p = Path(path)
    if not p.is_file():
        logger.error("URL file not found: %s", p)
        raise FileNotFoundError(f"URL file not found: {p}")
    lines = split_lines(p.read_text(encoding="utf-8"))
    logger.debug("Loaded %d lines from %s", len(lines), p)
    return lines


def remove_duplicates(urls: Collection[str]) -> List[str]:
    """Удаляет дубликаты из списка URL, сохраняя порядок первого появления."""
    unique = list(dict.fromkeys(urls))
    removed = len(urls) - len(unique)
    if removed:
        logger.debug("Removed %d duplicate URLs", removed)
    return unique


def collect_urls(*sources: Iterable[str]) -> List[str]:
    """
    Склеивает источники в заданном порядке, нормализует, отбрасывает пустые
    строки и дубликаты.

    CLI передаёт источники в порядке: аргументы, --urls-file, stdin.
    Если не осталось ни одного URL, бросает EmptyInputError.
    """
    normalized = [normalize_url(raw) for source in sources for raw in source]
    urls = remove_duplicates([u for u in normalized if u])
    if not urls:
        raise EmptyInputError()
    logger.debug("Collected %d unique URLs", len(urls))
    return urls
