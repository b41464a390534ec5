"""
Configuration for planchecker.

Configuration is an explicit value passed into parse_plan() and the
renderers; nothing is stored in module globals except the cached result
of get_config().

Environment variables:
- PLANCHECKER_TRACE=true            trace-level parse logging
- PLANCHECKER_INDENT_WIDTH=4        renderer indent per nesting level
- PLANCHECKER_WARNING_STYLE=red     rich style for console warnings
- PLANCHECKER_EXCLUDE_RULES=a,b     rule ids to skip

Usage:
    from planchecker.config import CheckerConfig, get_config

    config = get_config()
    config = CheckerConfig(trace=True, exclude_rules={"NESTED_LOOP"})
"""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)

_ENV_PREFIX = "PLANCHECKER_"


class CheckerConfig(BaseModel):
    """
    Settings threaded through a single parse and its rendering.

    Attributes:
        trace: Emit DEBUG-level trace logging while parsing.
        indent_width: Spaces per nesting level in rendered output.
        warning_style: Rich style used to highlight warnings on the console.
        exclude_rules: Rule ids that are not evaluated.
        rules: Per-rule threshold overrides, keyed by rule id. Each value is
            validated against that rule's config schema.
    """

    model_config = ConfigDict(frozen=True)

    trace: bool = Field(default=False, description="Enable trace logging")
    indent_width: int = Field(default=4, gt=0, description="Indent per nesting level")
    warning_style: str = Field(default="red", description="Rich style for warnings")
    exclude_rules: frozenset[str] = Field(
        default_factory=frozenset,
        description="Rule ids to skip",
    )
    rules: dict[str, dict[str, Any]] = Field(
        default_factory=dict,
        description="Per-rule threshold overrides",
    )


DEFAULT_CONFIG = CheckerConfig()


def _parse_env_bool(value: str | None, default: bool = False) -> bool:
    """Parse boolean from environment variable."""
    if value is None:
        return default
    return value.lower() in ("true", "1", "yes", "on")


def _parse_env_int(value: str | None, default: int) -> int:
    """Parse a positive integer from environment variable."""
    if value is None:
        return default
    try:
        parsed = int(value)
    except ValueError:
        logger.warning("Could not parse integer setting %r, using %d", value, default)
        return default
    if parsed <= 0:
        logger.warning("Setting must be positive, got %d, using %d", parsed, default)
        return default
    return parsed


def load_config_from_env() -> CheckerConfig:
    """Load configuration from PLANCHECKER_* environment variables."""
    exclude = os.environ.get(f"{_ENV_PREFIX}EXCLUDE_RULES", "")

    return CheckerConfig(
        trace=_parse_env_bool(os.environ.get(f"{_ENV_PREFIX}TRACE")),
        indent_width=_parse_env_int(os.environ.get(f"{_ENV_PREFIX}INDENT_WIDTH"), 4),
        warning_style=os.environ.get(f"{_ENV_PREFIX}WARNING_STYLE", "red"),
        exclude_rules=frozenset(r.strip() for r in exclude.split(",") if r.strip()),
    )


@lru_cache(maxsize=1)
def get_config() -> CheckerConfig:
    """
    Get the configuration loaded from the environment.

    Result is cached for the lifetime of the process.
    """
    return load_config_from_env()


def reset_config() -> None:
    """Reset the cached configuration (mainly for testing)."""
    get_config.cache_clear()
