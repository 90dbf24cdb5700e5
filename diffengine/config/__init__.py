"""Configuration loading and validation."""

from diffengine.config.loader import DEFAULT_CONFIG, DEFAULTS_DIR, load_config
from diffengine.config.schema import (
    ApplyConfig,
    Config,
    FixupConfig,
    LocateConfig,
    RefineConfig,
)

__all__ = [
    "ApplyConfig",
    "Config",
    "DEFAULT_CONFIG",
    "DEFAULTS_DIR",
    "FixupConfig",
    "LocateConfig",
    "RefineConfig",
    "load_config",
]
