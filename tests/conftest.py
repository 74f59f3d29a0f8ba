"""Shared pytest fixtures for ztr tests."""
import logging
from pathlib import Path
from typing import Callable, Dict, Generator

import pytest

from ztr.infrastructure.logger import Logger, set_global_logger


@pytest.fixture(autouse=True)
def quiet_logger() -> Generator[Logger, None, None]:
    """Install a logger without output as the global default."""
    logger = Logger(name="ztr", handlers=[logging.NullHandler()])
    set_global_logger(logger)
    yield logger
    set_global_logger(None)


@pytest.fixture
def make_tree(tmp_path: Path) -> Callable[[Dict[str, str], str], Path]:
    """Factory writing ``{relative_path: content}`` files under tmp_path.

    A relative path ending in ``/`` creates an empty directory.
    """

    def _make(files: Dict[str, str], root_name: str = "project") -> Path:
        root = tmp_path / root_name
        root.mkdir(exist_ok=True)
        for relative, content in files.items():
            target = root / relative
            if relative.endswith("/"):
                target.mkdir(parents=True, exist_ok=True)
                continue
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content, encoding="utf-8")
        return root

    return _make


@pytest.fixture
def source_dir(make_tree) -> Path:
    """Create a project directory with files to keep and files to ignore."""
    return make_tree(
        {
            "README.md": "# Project\n",
            "a.txt": "hello",
            "sub/b.txt": "world",
            "src/main.py": "print('main')\n",
            "src/__pycache__/main.cpython-311.pyc": "bytecode",
            "build/out.o": "object",
            "build/keep.txt": "kept?",
            "logs/app.log": "log line",
            "notes.tmp": "scratch",
        }
    )


@pytest.fixture
def simple_dir(make_tree) -> Path:
    """Two files: a.txt ("hello") and sub/b.txt ("world")."""
    return make_tree({"a.txt": "hello", "sub/b.txt": "world"}, root_name="simple")
