"""Configuration management for brandpack.

Key components:
- Configuration: the validated configuration document
- merge_layers / ConfigResolver: fallback < base < preset < override resolution
- EffectiveConfig: one call's configuration plus provenance for audit
- FileConfigLoader / ConfigCache: JSON, TOML and YAML sources with caching
- RuntimeSettings: BRANDPACK_* process settings
"""

from .api import get_effective_config
from .audit import ConfigOrigin, SourceMap, SourceTracker, generate_origin_summary
from .file_loader import ConfigCache, FileConfigLoader
from .merger import (
    DEFAULT_FALLBACK_CONFIG,
    MergeLayers,
    deep_merge,
    merge_config_layers,
    merge_layers,
)
from .resolver import ConfigLayers, ConfigResolver, EffectiveConfig, resolve_effective_config
from .schema import (
    CallConfig,
    Configuration,
    GlobalConfig,
    ModelConfig,
    PartialConfiguration,
    PresetConfig,
    PromptConfig,
    RuntimeGuard,
    partial_model,
)
from .settings import RuntimeSettings, configure_logging
from .validation import (
    ConfigValidationResult,
    ValidationIssue,
    ensure_valid_config,
    validate_config,
)

__all__ = [  # noqa: RUF022
    "get_effective_config",
    "ConfigOrigin",
    "SourceMap",
    "SourceTracker",
    "generate_origin_summary",
    "ConfigCache",
    "FileConfigLoader",
    "DEFAULT_FALLBACK_CONFIG",
    "MergeLayers",
    "deep_merge",
    "merge_config_layers",
    "merge_layers",
    "ConfigLayers",
    "ConfigResolver",
    "EffectiveConfig",
    "resolve_effective_config",
    "CallConfig",
    "Configuration",
    "GlobalConfig",
    "ModelConfig",
    "PartialConfiguration",
    "PresetConfig",
    "PromptConfig",
    "RuntimeGuard",
    "partial_model",
    "RuntimeSettings",
    "configure_logging",
    "ConfigValidationResult",
    "ValidationIssue",
    "ensure_valid_config",
    "validate_config",
]
