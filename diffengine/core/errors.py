"""Typed exception hierarchy for diffengine."""

from __future__ import annotations

from pathlib import Path


class DiffEngineError(Exception):
    """Base class for all diffengine errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ConfigError(DiffEngineError):
    """Raised for configuration issues (missing file, invalid JSON, validation failure)."""


class LoadError(DiffEngineError):
    """Base class for loading errors (config and other JSON files)."""

    pass


class MalformedHunkError(DiffEngineError):
    """Raised when a hunk header or body cannot be made sense of.

    Attributes:
        position: Character offset in the diff text where the problem was
            detected, when known.
    """

    def __init__(self, message: str, position: int | None = None) -> None:
        self.position = position
        super().__init__(message)


class AmbiguousFormatError(MalformedHunkError):
    """A hunk matches a grammar only partially (header present, body inconsistent)."""


class TargetFileError(DiffEngineError):
    """Raised when a target file cannot be found, read, written or deleted."""

    def __init__(self, path: str | Path, reason: str) -> None:
        self.path = str(path)
        self.reason = reason
        super().__init__(f"{path}: {reason}")
