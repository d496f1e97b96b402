"""Layered configuration merge.

Precedence, lowest to highest: fallback < base < preset < override. Merging
happens over validated, dumped trees so no layer can smuggle in a value of the
wrong type, and the merged tree is validated again before it is returned.
"""

from __future__ import annotations

from collections.abc import Mapping
import copy
from typing import Any, NamedTuple

from pydantic import BaseModel, ValidationError

from brandpack.exceptions import ConfigurationError

from .schema import ALLOW_EMPTY_CALLS, Configuration, PartialConfiguration
from .validation import issues_from_error

DEFAULT_FALLBACK_CONFIG: Configuration = Configuration.model_validate(
    {
        "version": "fallback",
        "updated_at": "1970-01-01T00:00:00.000Z",
        "global": {
            "provider": "anthropic",
            "log_level": "info",
            "cache_enabled": True,
            "cache_ttl_seconds": {"scrape": 604800, "llm": 86400, "image": 86400},
        },
        "calls": {},
        "validation": {
            "length": {"min_chars": 0, "max_chars": 1000},
            "continuity": {
                "enabled": True,
                "thresholds": {"tone_shift": 1, "fact_drift": 1},
            },
            "evidence_policy": {"required_for": [], "allow_empty": False},
        },
        "budgets": {
            "max_cost_per_run": 0,
            "max_tokens_per_run": 0,
            "alert_threshold_usd": 0,
            "per_stage": {},
        },
        "presets": {},
        "banned_phrases": [],
    },
    context={ALLOW_EMPTY_CALLS: True},
)


class MergeLayers(NamedTuple):
    """The four configuration layers in precedence order."""

    fallback: Configuration | Mapping[str, Any]
    base: Configuration | Mapping[str, Any]
    preset: BaseModel | Mapping[str, Any] | None = None
    override: BaseModel | Mapping[str, Any] | None = None


def deep_merge(target: Mapping[str, Any], source: Mapping[str, Any]) -> dict[str, Any]:
    """Merge ``source`` into a copy of ``target``.

    ``None`` values in ``source`` are skipped, lists replace wholesale, mappings
    merge recursively and scalars replace. Neither input is mutated.
    """
    result: dict[str, Any] = dict(target)
    for key, value in source.items():
        if value is None:
            continue
        if isinstance(value, list):
            result[key] = copy.deepcopy(value)
        elif isinstance(value, Mapping):
            existing = result.get(key)
            result[key] = deep_merge(
                existing if isinstance(existing, Mapping) else {}, value
            )
        else:
            result[key] = value
    return result


def _full_tree(layer: Configuration | Mapping[str, Any], name: str) -> dict[str, Any]:
    try:
        config = (
            layer
            if isinstance(layer, Configuration)
            else Configuration.model_validate(
                dict(layer), context={ALLOW_EMPTY_CALLS: True}
            )
        )
    except ValidationError as e:
        raise ConfigurationError(
            f"Invalid {name} configuration layer", issues=issues_from_error(e)
        ) from e
    return config.model_dump(by_alias=True)


def _partial_tree(
    layer: BaseModel | Mapping[str, Any] | None, name: str
) -> dict[str, Any]:
    if layer is None:
        return {}
    if isinstance(layer, BaseModel):
        return layer.model_dump(by_alias=True, exclude_unset=True)
    try:
        partial = PartialConfiguration.model_validate(dict(layer))
    except ValidationError as e:
        raise ConfigurationError(
            f"Invalid {name} configuration layer", issues=issues_from_error(e)
        ) from e
    return partial.model_dump(by_alias=True, exclude_unset=True)


def layer_trees(layers: MergeLayers) -> dict[str, dict[str, Any]]:
    """Return the validated, dumped tree of every layer keyed by layer name."""
    return {
        "fallback": _full_tree(layers.fallback, "fallback"),
        "base": _full_tree(layers.base, "base"),
        "preset": _partial_tree(layers.preset, "preset"),
        "override": _partial_tree(layers.override, "override"),
    }


def merge_trees(trees: Mapping[str, Mapping[str, Any]]) -> Configuration:
    """Merge already dumped layer trees in precedence order and validate."""
    merged: dict[str, Any] = {}
    for name in ("fallback", "base", "preset", "override"):
        merged = deep_merge(merged, trees.get(name) or {})
    try:
        return Configuration.model_validate(merged)
    except ValidationError as e:
        raise ConfigurationError(
            "Merged configuration is invalid", issues=issues_from_error(e)
        ) from e


def merge_config_layers(layers: MergeLayers | Mapping[str, Any]) -> Configuration:
    """Merge configuration layers (fallback < base < preset < override).

    Args:
        layers: A `MergeLayers` tuple or a mapping with the same keys.

    Returns:
        The merged and re-validated `Configuration`.

    Raises:
        ConfigurationError: If any layer or the merged result is invalid.
    """
    if not isinstance(layers, MergeLayers):
        layers = MergeLayers(
            fallback=layers.get("fallback", DEFAULT_FALLBACK_CONFIG),
            base=layers["base"],
            preset=layers.get("preset"),
            override=layers.get("override"),
        )
    return merge_trees(layer_trees(layers))


def merge_layers(
    *,
    fallback: Configuration | Mapping[str, Any] = DEFAULT_FALLBACK_CONFIG,
    base: Configuration | Mapping[str, Any],
    preset: BaseModel | Mapping[str, Any] | None = None,
    override: BaseModel | Mapping[str, Any] | None = None,
) -> Configuration:
    """Keyword form of `merge_config_layers`."""
    return merge_config_layers(MergeLayers(fallback, base, preset, override))
