"""
Configuration package for the Routine Engine.

Exports:
    - EngineSettings: Environment-driven runtime settings
    - get_settings / reset_settings: Cached settings accessors
    - Engine constants (nesting depth, legacy notes encoding)
"""

from .engine import (
    MAX_CONDITIONAL_DEPTH,
    MAX_CONDITIONAL_OPTIONS,
    MIN_BRANCH_OPTIONS,
    SELECTED_PREFIX,
    SKIPPED_SENTINEL,
    EngineSettings,
    get_settings,
    reset_settings,
)

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
