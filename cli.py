# cli.py

"""
Точка входа для запуска WaybackArchiver из корня репозитория без установки.

Пример запуска:
    python cli.py google.com wikipedia.org --out archive.json --merge
    cat urls.txt | python cli.py --format json
"""
from wayback_archiver.cli import cli


if __name__ == '__main__':
    cli()
