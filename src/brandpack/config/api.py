"""Public entry point that goes from a call id to its effective configuration."""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import BaseModel

from .file_loader import FileConfigLoader
from .resolver import ConfigResolver, EffectiveConfig
from .settings import RuntimeSettings


def get_effective_config(
    call_id: str,
    *,
    path: str | Path | None = None,
    loader: FileConfigLoader | None = None,
    preset: str | None = None,
    overrides: BaseModel | Mapping[str, Any] | None = None,
) -> EffectiveConfig:
    """Load, validate and resolve the configuration for ``call_id``.

    Args:
        call_id: The call to resolve, e.g. ``"ideas.generate"``.
        path: Configuration document. Defaults to ``RuntimeSettings().config_path``.
        loader: Loader whose cache should be used. A fresh one is used otherwise.
        preset: Optional preset name.
        overrides: Optional partial configuration with the highest precedence.

    Returns:
        EffectiveConfig for the call.

    Raises:
        ConfigFileError: If the document cannot be read or parsed.
        ConfigurationError: If the document is invalid or the call is unknown.

    Example:
        effective = get_effective_config("copy.generate", preset="fast")
        print(effective.call.model.name)
    """
    source = path if path is not None else RuntimeSettings().config_path
    config = (loader or FileConfigLoader()).load(source)
    return ConfigResolver().resolve(config, call_id, preset=preset, overrides=overrides)
