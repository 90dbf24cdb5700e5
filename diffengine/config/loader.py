"""Configuration loading with layered merging.

Layers, later ones overriding earlier ones:
1. Global user config (~/.diffengine/config.json), or the shipped defaults
   when there is no global config
2. Project local config (<cwd>/.diffengine/config.json)
"""

import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from diffengine.config.load_utils import load_json_file, load_json_file_optional
from diffengine.config.schema import Config
from diffengine.core.constants import DIFFENGINE_DIR_NAME, get_defaults_dir, get_diffengine_dir
from diffengine.core.errors import ConfigError, LoadError
from diffengine.core.utils import deep_merge

logger = logging.getLogger(__name__)

DEFAULTS_DIR = get_defaults_dir()
DEFAULT_CONFIG = DEFAULTS_DIR / "config.json"


def _load_layer(path: Path) -> dict[str, Any] | None:
    try:
        return load_json_file_optional(path, error_context="config")
    except LoadError as e:
        raise ConfigError(e.message) from e


def load_config(path: Path | None = None, cwd: Path | None = None) -> Config:
    """Load configuration from file with layered merging.

    Args:
        path: Explicit config file path. If provided, skips layered loading.
        cwd: Working directory for the local layer. Defaults to Path.cwd().

    Returns:
        Validated Config object.

    Raises:
        ConfigError: If any config file contains invalid JSON or the merged
            config fails validation.
    """
    if path is not None:
        return _load_from_path(path)

    merged: dict[str, Any] = {}
    loaded_from: list[Path] = []

    global_config = get_diffengine_dir() / "config.json"
    global_data = _load_layer(global_config)
    if global_data:
        merged = deep_merge(merged, global_data)
        loaded_from.append(global_config)
        logger.debug("Using global config: %s", global_config)
    else:
        logger.debug("No global config at: %s, using defaults", global_config)
        default_data = _load_layer(DEFAULT_CONFIG)
        if default_data:
            merged = deep_merge(merged, default_data)
            loaded_from.append(DEFAULT_CONFIG)

    local_config = (cwd or Path.cwd()) / DIFFENGINE_DIR_NAME / "config.json"
    local_data = _load_layer(local_config)
    if local_data:
        merged = deep_merge(merged, local_data)
        loaded_from.append(local_config)

    if loaded_from:
        logger.debug("Config loaded from: %s", [str(p) for p in loaded_from])
    if not merged:
        return Config()

    try:
        return Config.model_validate(merged)
    except ValidationError as e:
        sources = ", ".join(str(p) for p in loaded_from)
        raise ConfigError(f"Config validation failed (merged from {sources}): {e}") from e


def _load_from_path(path: Path) -> Config:
    """Load and validate config from a specific path.

    Raises:
        ConfigError: If file doesn't exist, contains invalid JSON, or fails validation.
    """
    try:
        data = load_json_file(path, error_context="config")
    except LoadError as e:
        raise ConfigError(e.message) from e

    try:
        return Config.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Config validation failed for {path}: {e}") from e
