"""Pydantic models for diffengine configuration validation."""

import logging

from pydantic import BaseModel, ConfigDict, Field, field_validator

from diffengine.core.constants import DEFAULT_FUZZY_MAX_CHARS

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class LocateConfig(BaseModel):
    """Configuration for finding hunks in target files.

    Example in config.json:
        "locate": {
            "prefer_old_side": false,
            "fuzzy": true,
            "fuzzy_max_chars": 10000
        }
    """

    model_config = ConfigDict(extra="forbid")

    prefer_old_side: bool = Field(
        default=False,
        description="Use the old file name and the old start line of each hunk",
    )
    fuzzy: bool = Field(
        default=True,
        description="Fall back to a whitespace-insensitive search",
    )
    fuzzy_max_chars: int = Field(
        default=DEFAULT_FUZZY_MAX_CHARS,
        ge=0,
        description="Longest hunk text a fuzzy pattern is built for (0 disables fuzzy search)",
    )


class ApplyConfig(BaseModel):
    """Configuration for applying hunks."""

    model_config = ConfigDict(extra="forbid")

    delete_files: bool = True
    """Delete a target file emptied by a deletion hunk."""

    save: bool = True
    """Save changed targets after a batch application."""


class FixupConfig(BaseModel):
    """Configuration for hunk header maintenance while editing a diff."""

    model_config = ConfigDict(extra="forbid")

    on_edit: bool = True
    """Fix headers after every edit. When False, fix them once before saving."""

    valid_unified_empty_line: bool = True
    """An empty line inside a unified hunk is an empty context line."""


class RefineConfig(BaseModel):
    """Configuration for word-level refinement of changed lines."""

    model_config = ConfigDict(extra="forbid")

    ignore_whitespace: bool = True
    nonmodified: bool = False


class Config(BaseModel):
    """Root configuration model.

    Example config.json:
        {
            "log_level": "WARNING",
            "locate": {"fuzzy": true},
            "apply": {"delete_files": true},
            "fixup": {"on_edit": true},
            "refine": {"ignore_whitespace": true}
        }
    """

    model_config = ConfigDict(extra="forbid")

    locate: LocateConfig = LocateConfig()
    apply: ApplyConfig = ApplyConfig()
    fixup: FixupConfig = FixupConfig()
    refine: RefineConfig = RefineConfig()
    log_level: str = "WARNING"

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """Ensure log_level names a logging level."""
        level = value.upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"Unknown log level: {value}")
        return level

    @property
    def log_level_number(self) -> int:
        return logging.getLevelName(self.log_level)
