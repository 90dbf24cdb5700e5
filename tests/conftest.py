"""Shared pytest fixtures."""

import io
import logging
from collections.abc import Iterator
from pathlib import Path

import pytest
from rich.console import Console

from diffengine.display import set_console


@pytest.fixture
def console_output() -> Iterator[io.StringIO]:
    """Route the shared console into a buffer without colors or wrapping."""
    buffer = io.StringIO()
    set_console(Console(file=buffer, width=500, color_system=None, highlight=False))
    yield buffer
    set_console(None)


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Run from tmp_path with no global config; returns the working directory."""
    monkeypatch.setattr(
        "diffengine.config.loader.get_diffengine_dir", lambda: tmp_path / "home" / ".diffengine"
    )
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture(autouse=True)
def restore_diffengine_logger() -> Iterator[None]:
    """Undo handler changes the CLI makes to the package logger."""
    logger = logging.getLogger("diffengine")
    handlers = list(logger.handlers)
    level = logger.level
    propagate = logger.propagate
    yield
    logger.handlers[:] = handlers
    logger.setLevel(level)
    logger.propagate = propagate
