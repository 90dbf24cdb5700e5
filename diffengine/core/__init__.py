"""Core errors, constants and helpers."""

from diffengine.core.encoding import ENCODING, ENCODING_ERRORS, configure_stdio
from diffengine.core.errors import (
    AmbiguousFormatError,
    ConfigError,
    DiffEngineError,
    LoadError,
    MalformedHunkError,
    TargetFileError,
)

__all__ = [
    "ENCODING",
    "ENCODING_ERRORS",
    "configure_stdio",
    "DiffEngineError",
    "ConfigError",
    "LoadError",
    "MalformedHunkError",
    "AmbiguousFormatError",
    "TargetFileError",
]
