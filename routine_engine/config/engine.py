"""
Engine Configuration for the Routine Engine.

Constants shared by the session engine and the catalog schemas, plus the
environment-driven settings that tune runtime validation.

Environment variables:
- ROUTINE_MAX_CONDITIONAL_DEPTH: deepest allowed conditional nesting level
  (root-level conditional = 0). Default: 2.
- ROUTINE_VALIDATE_DEPTH: "1" (default) rejects over-deep templates when a
  session starts, "0" trusts the authoring layer.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from routine_engine.lib.exceptions import ConfigurationError

# Conditional habits may nest inside option paths up to this level
MAX_CONDITIONAL_DEPTH = 2

# Authoring UIs cap a question at this many answers
MAX_CONDITIONAL_OPTIONS = 4

# A conditional needs at least this many options to branch
MIN_BRANCH_OPTIONS = 2

# Legacy notes encoding for conditional answers
SELECTED_PREFIX = "Selected: "
SKIPPED_SENTINEL = "Skipped"


@dataclass(frozen=True)
class EngineSettings:
    """Runtime settings for routine sessions.

    Attributes:
        max_conditional_depth: Deepest conditional nesting accepted at start.
        validate_depth_on_start: Whether sessions re-check nesting depth.
    """

    max_conditional_depth: int = MAX_CONDITIONAL_DEPTH
    validate_depth_on_start: bool = True

    def __post_init__(self) -> None:
        if self.max_conditional_depth < 0:
            raise ConfigurationError(
                f"max_conditional_depth must be >= 0, got {self.max_conditional_depth}"
            )

    @classmethod
    def from_env(cls) -> EngineSettings:
        """Build settings from ROUTINE_* environment variables.

        Raises:
            ConfigurationError: If a variable holds an unparseable value.
        """
        raw_depth = os.getenv("ROUTINE_MAX_CONDITIONAL_DEPTH", str(MAX_CONDITIONAL_DEPTH))
        try:
            depth = int(raw_depth)
        except ValueError as e:
            raise ConfigurationError(
                f"ROUTINE_MAX_CONDITIONAL_DEPTH must be an integer, got {raw_depth!r}"
            ) from e

        raw_validate = os.getenv("ROUTINE_VALIDATE_DEPTH", "1").strip().lower()
        if raw_validate in ("1", "true", "yes"):
            validate = True
        elif raw_validate in ("0", "false", "no"):
            validate = False
        else:
            raise ConfigurationError(
                f"ROUTINE_VALIDATE_DEPTH must be 0 or 1, got {raw_validate!r}"
            )

        return cls(max_conditional_depth=depth, validate_depth_on_start=validate)


_settings: EngineSettings | None = None


def get_settings() -> EngineSettings:
    """Get the process settings, reading the environment on first use."""
    global _settings
    if _settings is None:
        _settings = EngineSettings.from_env()
    return _settings


def reset_settings() -> None:
    """Drop cached settings so the next get_settings() re-reads the environment."""
    global _settings
    _settings = None


__all__ = [
    "MAX_CONDITIONAL_DEPTH",
    "MAX_CONDITIONAL_OPTIONS",
    "MIN_BRANCH_OPTIONS",
    "SELECTED_PREFIX",
    "SKIPPED_SENTINEL",
    "EngineSettings",
    "get_settings",
    "reset_settings",
]
