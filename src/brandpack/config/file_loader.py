"""File-based configuration loading with an explicit cache.

Supports JSON, TOML and YAML documents. Parsed and validated configurations
are cached by resolved path until invalidated; there is no time-based expiry.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
import tomllib
from typing import Any

import yaml

from brandpack.exceptions import ConfigFileError

from .schema import Configuration
from .validation import ensure_valid_config

logger = logging.getLogger(__name__)

_YAML_TIMESTAMP_TAG = "tag:yaml.org,2002:timestamp"


class _ConfigYamlLoader(yaml.SafeLoader):
    """Safe loader that leaves unquoted timestamps as plain strings."""


_ConfigYamlLoader.yaml_implicit_resolvers = {
    first: [(tag, regexp) for tag, regexp in resolvers if tag != _YAML_TIMESTAMP_TAG]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}


class ConfigCache:
    """Cache of validated configurations keyed by source identity."""

    def __init__(self) -> None:
        """Initialize an empty cache."""
        self._entries: dict[str, Configuration] = {}

    def get(self, key: str) -> Configuration | None:
        return self._entries.get(key)

    def set(self, key: str, config: Configuration) -> None:
        self._entries[key] = config

    def invalidate(self, key: str | None = None) -> None:
        """Drop one entry, or every entry when ``key`` is None."""
        if key is None:
            self._entries.clear()
        else:
            self._entries.pop(key, None)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries


class FileConfigLoader:
    """Loads configuration documents from disk.

    The cache is shared by reference, so loaders constructed with the same
    `ConfigCache` see each other's entries.
    """

    def __init__(self, cache: ConfigCache | None = None) -> None:
        """Initialize with an optional shared cache."""
        self.cache = cache if cache is not None else ConfigCache()

    def load_raw(self, path: str | Path) -> Any:
        """Read and parse a document without validating it.

        Args:
            path: A ``.json``, ``.toml``, ``.yaml`` or ``.yml`` file.

        Returns:
            The parsed document.

        Raises:
            ConfigFileError: If the file cannot be read, has an unsupported
                suffix or fails to parse.
        """
        file_path = Path(path)
        suffix = file_path.suffix.lower()
        try:
            if suffix == ".toml":
                with file_path.open(mode="rb") as f:
                    return tomllib.load(f)
            text = file_path.read_text(encoding="utf-8")
            if suffix == ".json":
                return json.loads(text)
            if suffix in (".yaml", ".yml"):
                return yaml.load(text, Loader=_ConfigYamlLoader)  # noqa: S506
        except OSError as e:
            raise ConfigFileError(str(file_path), f"Failed to read file: {e}") from e
        except (json.JSONDecodeError, tomllib.TOMLDecodeError, yaml.YAMLError) as e:
            raise ConfigFileError(str(file_path), f"Failed to parse: {e}") from e
        raise ConfigFileError(
            str(file_path), f"Unsupported config format '{suffix or '<none>'}'"
        )

    def load(self, path: str | Path, *, force_reload: bool = False) -> Configuration:
        """Load, validate and cache a configuration document.

        Raises:
            ConfigFileError: If the file cannot be read or parsed.
            ConfigurationError: If the document is structurally invalid.
        """
        key = str(Path(path).resolve())
        if not force_reload:
            cached = self.cache.get(key)
            if cached is not None:
                return cached

        config = ensure_valid_config(self.load_raw(path))
        self.cache.set(key, config)
        logger.debug("Loaded configuration %s (version %s)", key, config.version)
        return config
