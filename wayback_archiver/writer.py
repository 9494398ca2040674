# wayback_archiver/writer.py

"""
Вывод результатов WaybackArchiver.

Атомарная запись хранилища в файл и текстовое/JSON-представление для stdout.
"""
from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import List, Union

from wayback_archiver.errors import StoreWriteError
from wayback_archiver.logger import logger
from wayback_archiver.models import ArchiveSuccess
from wayback_archiver.store import ResultStore, store_to_dict

__all__ = ["write_store", "render_json", "render_listing"]


def render_json(store: ResultStore, *, pretty: bool = True) -> str:
    """Сериализует хранилище в JSON (тот же формат, что и файл)."""
    return json.dumps(store_to_dict(store), ensure_ascii=False, indent=2 if pretty else None)


def write_store(store: ResultStore, output_path: Union[Path, str]) -> Path:
    """
    Атомарно сохраняет хранилище по указанному пути.

    Данные пишутся во временный файл рядом с целевым и подменяют его через
    os.replace: либо файл полностью обновлён, либо прежнее содержимое цело.

    :param store: итоговое хранилище результатов
    :param output_path: путь к JSON-файлу
    :return: Path сохранённого файла
    :raises StoreWriteError: если запись не удалась
    """
    output = Path(output_path)
    tmp_name = None
    try:
        output.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            "w",
            encoding="utf-8",
            dir=output.parent,
            prefix=f".{output.name}.",
            suffix=".tmp",
            delete=False,
        ) as tmp:
            tmp_name = tmp.name
            json.dump(store_to_dict(store), tmp, ensure_ascii=False, indent=2)
            tmp.write("\n")
            tmp.flush()
            os.fsync(tmp.fileno())
        os.replace(tmp_name, output)
    except (OSError, TypeError, ValueError) as exc:
        if tmp_name is not None:
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass
        raise StoreWriteError(output, str(exc)) from exc

    logger.info("Wrote %d entries to %s", len(store), output)
    return output


def render_listing(store: ResultStore) -> str:
    """Человекочитаемый список: одна строка на URL и итог."""
    lines: List[str] = []
    for url, outcome in store.items():
        if isinstance(outcome, ArchiveSuccess):
            stamp = outcome.archived_at.strftime("%Y-%m-%d %H:%M:%S UTC")
            note = ", existing snapshot" if outcome.existing_snapshot else ""
            lines.append(f"OK    {url} -> {outcome.archived_url} ({stamp}{note})")
        else:
            detail = f": {outcome.message}" if outcome.message else ""
            lines.append(
                f"FAIL  {url} [{outcome.reason.value}, {outcome.attempts} attempt(s)]{detail}"
            )
    archived = len(store.successes())
    failed = len(store.failures())
    lines.append(f"{archived} archived, {failed} failed")
    return "\n".join(lines)
