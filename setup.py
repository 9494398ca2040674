# setup.py
from setuptools import setup, find_packages

setup(
    name="wayback_archiver",
    version="0.1.0",
    description="Массовая архивация URL в Wayback Machine с повторами и слиянием результатов",
    packages=find_packages(exclude=("tests", "tests.*")),  # автоматически найдёт папку wayback_archiver
    install_requires=[
        "aiohttp>=3.9",
        "yarl>=1.9",
        "click>=8.1",
        "pydantic>=2.5",
        "PyYAML>=6.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.4",
            "pytest-asyncio>=0.23",
        ],
    },
    entry_points={
        "console_scripts": [
            "wayback-archiver=wayback_archiver.cli:cli",
        ],
    },
    python_requires=">=3.11",
)
