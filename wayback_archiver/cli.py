# === FILE: wayback_archiver/cli.py ===
#!/usr/bin/env python3
"""
Точка входа WaybackArchiver для командной строки.

Источники URL (склеиваются в этом порядке и дедуплицируются):
  URLS...             Позиционные аргументы
  --urls-file PATH    Файл со списком URL, по одному на строку
  stdin               Строки со стандартного ввода (если это не терминал)

Опции:
  --out PATH          Сохранить результаты в JSON-файл (атомарно)
  --merge             Слить с существующим --out вместо перезаписи
  --skip-recent DAYS  В режиме --merge не отправлять URL, заархивированные за N дней
  --format FORMAT     Вывод в stdout без --out: text или json
  --config PATH       YAML/JSON-конфиг (configs/default.yaml, если есть)
  --concurrency INT   Число одновременных отправок (override concurrency)
  --timeout SEC       Таймаут всего запуска (override run_timeout)
  --log-level LEVEL   Уровень логирования (DEBUG, INFO, ...)
  --log-file PATH     Файл для логов (stderr, если не указан)
  --version           Показать версию

Коды выхода: 0 — всё заархивировано, 1 — есть неудачные URL, 2 — ошибка
аргументов или нечитаемый источник URL, 3 — пустой вход, 4 — не читается
прежний --out, 5 — не удалась запись, 6 — ошибка конфигурации.

Пример:
  wayback-archiver google.com wikipedia.org --out archive.json --merge
"""
import sys
from pathlib import Path
from typing import List, Optional, Sequence

import click
from pydantic import ValidationError

from wayback_archiver import __version__
from wayback_archiver.config import ArchiverConfig, load_config
from wayback_archiver.engine import Engine
from wayback_archiver.errors import ArchiverError, ExitCode
from wayback_archiver.logger import init_logging
from wayback_archiver.urls import collect_urls, read_url_file, split_lines
from wayback_archiver.writer import render_json, render_listing

CONTEXT_SETTINGS = dict(help_option_names=["--help"])


def print_error(message: str, code: int = ExitCode.URL_FAILED):
    click.secho(message, fg='red', err=True)
    sys.exit(int(code))


def _read_stdin() -> List[str]:
    stream = click.get_text_stream("stdin")
    if stream.isatty():
        return []
    return split_lines(stream.read())


def _build_config(
    config_path: Optional[Path], concurrency: Optional[int], run_timeout: Optional[float]
) -> ArchiverConfig:
    cfg = load_config(config_path)
    overrides = {}
    if concurrency is not None:
        overrides["concurrency"] = concurrency
    if run_timeout is not None:
        overrides["run_timeout"] = run_timeout
    return cfg.model_copy(update=overrides) if overrides else cfg


@click.command(context_settings=CONTEXT_SETTINGS)
@click.version_option(__version__, '--version', '-v', message='WaybackArchiver, version %(version)s')
@click.argument('urls', nargs=-1)
@click.option(
    '--urls-file', '-f', 'urls_file',
    default=None,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help='Файл со списком URL, по одному на строку'
)
@click.option(
    '--out', '-o', 'out',
    default=None,
    type=click.Path(dir_okay=False, path_type=Path),
    help='Сохранить результаты в JSON-файл (stdout, если не указан)'
)
@click.option(
    '--merge', '-m', is_flag=True,
    help='Слить результаты с существующим --out'
)
@click.option(
    '--skip-recent', 'skip_recent',
    type=click.IntRange(min=1),
    default=None,
    help='С --merge: пропускать URL, успешно заархивированные за последние N дней'
)
@click.option(
    '--format', 'output_format',
    type=click.Choice(['text', 'json']),
    default='text', show_default=True,
    help='Формат вывода в stdout'
)
@click.option(
    '--config', '-c', 'config_path',
    default=None,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help='Путь к файлу конфигурации YAML/JSON.'
)
@click.option(
    '--concurrency', '-n', 'concurrency',
    type=click.IntRange(min=1),
    default=None,
    help='Число одновременных отправок (override concurrency)'
)
@click.option(
    '--timeout', 'run_timeout',
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help='Таймаут всего запуска (секунд)'
)
@click.option(
    '--log-level', 'log_level',
    default='INFO', show_default=True,
    type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']),
    help='Уровень логирования'
)
@click.option(
    '--log-file', 'log_file',
    default=None,
    type=click.Path(dir_okay=False, path_type=Path),
    help='Путь к файлу логов (stderr, если не указан)'
)
def cli(
    urls: Sequence[str],
    urls_file: Optional[Path],
    out: Optional[Path],
    merge: bool,
    skip_recent: Optional[int],
    output_format: str,
    config_path: Optional[Path],
    concurrency: Optional[int],
    run_timeout: Optional[float],
    log_level: str,
    log_file: Optional[Path],
):
    """Отправить URL в Wayback Machine и собрать ссылки на снимки."""
    if merge and out is None:
        raise click.UsageError("--merge requires --out")
    if skip_recent is not None and not merge:
        raise click.UsageError("--skip-recent requires --merge")

    logger = init_logging(level=log_level, log_file=str(log_file) if log_file else None)

    try:
        cfg = _build_config(config_path, concurrency, run_timeout)
    except (ValidationError, ValueError, TypeError, FileNotFoundError) as e:
        print_error(f'Ошибка загрузки конфигурации: {e}', ExitCode.CONFIG)

    try:
        file_lines = read_url_file(urls_file) if urls_file else []
    except (OSError, UnicodeDecodeError) as e:
        print_error(f'Не удалось прочитать файл URL {urls_file}: {e}', ExitCode.USAGE)
    try:
        stdin_lines = _read_stdin()
    except (OSError, UnicodeDecodeError) as e:
        print_error(f'Не удалось прочитать stdin: {e}', ExitCode.USAGE)

    try:
        targets = collect_urls(urls, file_lines, stdin_lines)
    except ArchiverError as e:
        print_error(f'Нет URL для архивации: {e}', e.exit_code)

    try:
        result = Engine(cfg).run(targets, out=out, merge=merge, skip_recent_days=skip_recent)
    except ArchiverError as e:
        print_error(str(e), e.exit_code)

    if out is None:
        if output_format == 'json':
            click.echo(render_json(result.store))
        else:
            click.echo(render_listing(result.store))
    else:
        click.echo(f'Results: {result.written_to}')

    failures = result.incoming.failures()
    if failures:
        logger.warning("%d URL(s) could not be archived", len(failures))
        sys.exit(int(ExitCode.URL_FAILED))


if __name__ == "__main__":
    cli()
