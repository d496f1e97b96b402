"""Effective configuration resolution with precedence handling.

Resolution merges the built-in fallback, the loaded configuration, an optional
named preset and caller overrides, in that order of increasing precedence, and
then selects a single call. The result carries the layers used and a
provenance map for audit.
"""

from __future__ import annotations

from collections.abc import Mapping
import logging
from typing import Any, NamedTuple

from pydantic import BaseModel

from brandpack.exceptions import ConfigurationError

from .audit import LAYER_ORDER, SourceMap, SourceTracker
from .merger import DEFAULT_FALLBACK_CONFIG, MergeLayers, layer_trees, merge_trees
from .schema import CallConfig, Configuration, GlobalConfig
from .validation import ensure_valid_config

logger = logging.getLogger(__name__)


class ConfigLayers(NamedTuple):
    """References to the layer objects that took part in a resolution."""

    fallback: Configuration
    base: Configuration
    preset: Mapping[str, Any] | None
    override: BaseModel | Mapping[str, Any] | None


class EffectiveConfig(NamedTuple):
    """Configuration for one call after all layers were merged."""

    call_id: str
    merged: Configuration
    call: CallConfig
    global_: GlobalConfig
    layers: ConfigLayers
    origin: SourceMap

    def audit(self) -> str:
        """Human-readable list of leaf origins, one per line."""
        return "\n".join(f"{path}: {origin}" for path, origin in sorted(self.origin.items()))


class ConfigResolver:
    """Resolves the effective configuration for a call id."""

    def __init__(self, fallback: Configuration = DEFAULT_FALLBACK_CONFIG) -> None:
        """Initialize with the lowest-precedence fallback layer."""
        self.fallback = fallback

    def resolve(
        self,
        config: Configuration | Mapping[str, Any],
        call_id: str,
        *,
        preset: str | None = None,
        overrides: BaseModel | Mapping[str, Any] | None = None,
    ) -> EffectiveConfig:
        """Resolve the effective configuration for ``call_id``.

        Args:
            config: The base configuration (validated if given as a mapping).
            call_id: The call to select from the merged call map.
            preset: Optional preset name; unknown names are ignored with a warning.
            overrides: Optional partial configuration with the highest precedence.

        Returns:
            EffectiveConfig with the merged tree, selected call and provenance.

        Raises:
            ConfigurationError: If a layer is invalid or ``call_id`` is unknown.
        """
        base = config if isinstance(config, Configuration) else ensure_valid_config(config)

        preset_overrides: Mapping[str, Any] | None = None
        if preset is not None:
            entry = base.presets.get(preset)
            if entry is None:
                logger.warning("Unknown preset '%s' ignored", preset)
            else:
                preset_overrides = entry.overrides

        layers = MergeLayers(
            fallback=self.fallback,
            base=base,
            preset=preset_overrides,
            override=overrides,
        )
        trees = layer_trees(layers)
        merged = merge_trees(trees)

        tracker = SourceTracker()
        for name in LAYER_ORDER:
            tracker.track_layer(trees[name], name)

        call = merged.calls.get(call_id)
        if call is None:
            available = sorted(merged.calls)
            raise ConfigurationError(
                f"Unknown call id '{call_id}'. Available calls: {available}"
            )

        logger.debug(
            "Resolved call '%s' (preset=%s, overrides=%s)",
            call_id,
            preset,
            overrides is not None,
        )
        return EffectiveConfig(
            call_id=call_id,
            merged=merged,
            call=call,
            global_=merged.global_,
            layers=ConfigLayers(self.fallback, base, preset_overrides, overrides),
            origin=tracker.get_source_map(),
        )


def resolve_effective_config(
    config: Configuration | Mapping[str, Any],
    call_id: str,
    *,
    preset: str | None = None,
    overrides: BaseModel | Mapping[str, Any] | None = None,
    fallback: Configuration | None = None,
) -> EffectiveConfig:
    """Resolve the effective configuration for ``call_id`` in one call."""
    resolver = ConfigResolver(fallback or DEFAULT_FALLBACK_CONFIG)
    return resolver.resolve(config, call_id, preset=preset, overrides=overrides)
