# === FILE: wayback_archiver/config.py ===
"""
Модуль для загрузки и валидации конфигурации WaybackArchiver.
Используется Pydantic для описания схемы и проверки данных.
"""
from __future__ import annotations

import errno
import json
import os
from pathlib import Path
from typing import Any, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator


class ArchiverConfig(BaseModel):
    """Конфигурация одного запуска архивации."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    save_endpoint: str = Field(
        "https://web.archive.org/save/",
        description="Префикс Save Page Now; к нему дописывается архивируемый URL.",
    )
    availability_endpoint: str = Field(
        "https://archive.org/wayback/available",
        description="API поиска последнего существующего снимка.",
    )
    timeout: float = Field(60.0, gt=0, description="Таймаут на один запрос (секунд).")
    concurrency: int = Field(2, ge=1, description="Число одновременных отправок.")
    max_attempts: int = Field(3, ge=1, description="Попыток на один URL при временных ошибках.")
    backoff_base: float = Field(5.0, ge=0, description="Первая пауза перед повтором (секунд).")
    backoff_max: float = Field(60.0, ge=0, description="Верхняя граница паузы (секунд).")
    jitter: float = Field(1.0, ge=0, description="Случайная добавка к паузе, [0, jitter) секунд.")
    user_agent: str = Field("WaybackArchiver/0.1", min_length=1, description="Заголовок User-Agent.")
    snapshot_max_age_days: int = Field(
        90, ge=0, description="Принимать существующий снимок не старше N дней (0 — не искать)."
    )
    run_timeout: Optional[float] = Field(
        None, gt=0, description="Таймаут всего запуска (секунд); None — без ограничения."
    )

    @field_validator("save_endpoint", "availability_endpoint", mode="before")
    def _check_http(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = v.strip()
            if not v.startswith(("http://", "https://")):
                raise ValueError(f"endpoint must be an http(s) URL, got {v!r}")
        return v

    @field_validator("save_endpoint", mode="after")
    def _ensure_trailing_slash(cls, v: str) -> str:
        return v if v.endswith("/") else v + "/"


_DEFAULT_CFG = Path("configs/default.yaml")


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ValueError(f"Неправильный YAML в {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Верхний уровень YAML должен быть mapping, получено {type(data).__name__}")
    return data


def _read_json(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8")) or {}
    except json.JSONDecodeError as exc:
        raise ValueError(f"Неправильный JSON в {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Верхний уровень JSON должен быть mapping, получено {type(data).__name__}")
    return data


def load_config(path: Union[str, Path, None] = None) -> ArchiverConfig:
    """
    Читает YAML или JSON и возвращает проверенный объект ArchiverConfig.

    Без пути используется configs/default.yaml, если он есть, иначе значения
    по умолчанию. Явно указанный отсутствующий файл даёт FileNotFoundError.
    """
    if path is None:
        if not _DEFAULT_CFG.is_file():
            return ArchiverConfig()
        path_obj = _DEFAULT_CFG
    else:
        path_obj = Path(path).expanduser().resolve()
        if not path_obj.is_file():
            raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(path_obj))

    suffix = path_obj.suffix.lower()
    if suffix in (".yaml", ".yml"):
        data = _read_yaml(path_obj)
    elif suffix == ".json":
        data = _read_json(path_obj)
    else:
        raise ValueError(f"Неподдерживаемый формат конфига: {suffix}")

    return ArchiverConfig(**data)


__all__ = ["ArchiverConfig", "load_config"]
