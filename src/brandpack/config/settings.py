"""Process-level runtime settings.

These settings control the library itself (where the configuration document
lives and retry pacing) rather than any task. Values come from
``BRANDPACK_*`` environment variables, an opt-in ``.env`` file or keyword
arguments.
"""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .schema import LogLevel

_LOG_LEVELS: dict[str, int] = {
    "error": logging.ERROR,
    "warn": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
}


class RuntimeSettings(BaseSettings):
    """Pydantic settings schema for library runtime behavior."""

    model_config = SettingsConfigDict(
        env_prefix="BRANDPACK_",
        env_file=None,  # Only used when explicitly requested
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    config_path: Path = Field(
        default=Path("data/config/prompts.json"),
        description="Path to the configuration document",
    )

    retry_base_delay_s: float = Field(
        default=0.5,
        description="Base delay before the first retry",
        ge=0,
    )

    retry_max_delay_text_s: float = Field(
        default=8.0,
        description="Upper bound for a single backoff delay on text workloads",
        ge=0,
    )

    retry_max_delay_image_s: float = Field(
        default=30.0,
        description="Upper bound for a single backoff delay on image workloads",
        ge=0,
    )

    retry_jitter: float = Field(
        default=0.0,
        description="Fractional random jitter added to each backoff delay",
        ge=0,
        le=1,
    )


def configure_logging(level: LogLevel | str) -> logging.Logger:
    """Apply a configuration log level to the ``brandpack`` logger.

    Only the level is set; handlers are left to the application.

    Raises:
        ValueError: If ``level`` is not one of error, warn, info or debug.
    """
    try:
        numeric = _LOG_LEVELS[level]
    except KeyError:
        raise ValueError(
            f"Invalid log level: {level}. Must be one of: {', '.join(_LOG_LEVELS)}"
        ) from None
    root = logging.getLogger("brandpack")
    root.setLevel(numeric)
    return root
