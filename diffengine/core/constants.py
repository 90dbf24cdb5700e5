"""Core constants and paths for diffengine.

Single source of truth for global paths and diff format constants.
"""

from pathlib import Path

DIFFENGINE_DIR_NAME = ".diffengine"

# Name used by diff tools for the missing side of a created/deleted file
NULL_DEVICE = "/dev/null"

NO_NEWLINE_MARKER = "\\ No newline at end of file"

# Upper bound on the text length for which a whitespace-insensitive
# pattern is built during source lookup
DEFAULT_FUZZY_MAX_CHARS = 10000


def get_diffengine_dir() -> Path:
    """Get ~/.diffengine (global config directory)."""
    return Path.home() / DIFFENGINE_DIR_NAME


def get_defaults_dir() -> Path:
    """Get package defaults directory (shipped with package)."""
    import diffengine
    return Path(diffengine.__file__).parent / "defaults"


def get_default_config_path() -> Path:
    """Get default config file path."""
    return get_diffengine_dir() / "config.json"
