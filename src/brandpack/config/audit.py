"""Provenance tracking for merged configuration.

`SourceTracker` records, for every leaf of the merged tree, which layer supplied
the winning value. Leaves are addressed by dotted path, e.g.
``calls.ideas.generate.model.temperature``.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Literal

ConfigOrigin = Literal["fallback", "base", "preset", "override"]
SourceMap = Mapping[str, ConfigOrigin]

LAYER_ORDER: tuple[ConfigOrigin, ...] = ("fallback", "base", "preset", "override")


class SourceTracker:
    """Tracks the origin of configuration leaves during merging."""

    def __init__(self) -> None:
        """Initialize an empty source tracker."""
        self._origins: dict[str, ConfigOrigin] = {}

    def set_origin(self, path: str, origin: ConfigOrigin) -> None:
        """Record the origin of a leaf, replacing any earlier record."""
        self._origins[path] = origin

    def track_layer(
        self, tree: Mapping[str, Any], origin: ConfigOrigin, prefix: str = ""
    ) -> None:
        """Record ``origin`` for every non-null leaf of ``tree``.

        Lists are leaves, matching how the merger replaces them wholesale.
        Layers must be applied lowest precedence first.
        """
        for key, value in tree.items():
            if value is None:
                continue
            path = f"{prefix}.{key}" if prefix else str(key)
            if isinstance(value, Mapping):
                self.track_layer(value, origin, path)
            else:
                self.set_origin(path, origin)

    def get_source_map(self) -> SourceMap:
        """Return a copy of the current source map."""
        return dict(self._origins)

    def has_origin(self, path: str) -> bool:
        return path in self._origins


def generate_origin_summary(source_map: SourceMap) -> dict[str, int]:
    """Count leaves per layer.

    Args:
        source_map: The source map to summarize

    Returns:
        Dictionary with counts per layer (e.g., {"base": 40, "override": 2})
    """
    counts: dict[str, int] = {}
    for origin in source_map.values():
        counts[origin] = counts.get(origin, 0) + 1
    return counts
