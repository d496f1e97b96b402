"""Configuration-driven orchestration of brand content generation tasks."""

import importlib.metadata
import logging

from brandpack.adapters import (
    AdapterRegistry,
    GeminiAdapter,
    LLMAdapter,
    NoopImageAdapter,
    NoopLLMAdapter,
    ProviderRegistries,
)
from brandpack.config import (
    Configuration,
    ConfigResolver,
    EffectiveConfig,
    FileConfigLoader,
    RuntimeSettings,
    configure_logging,
    get_effective_config,
    resolve_effective_config,
    validate_config,
)
from brandpack.core.types import (
    AdapterResponse,
    AuditRecord,
    BatchTask,
    TaskOptions,
    TaskResult,
    TaskSpec,
    TokenUsage,
    ValidationOutcome,
)
from brandpack.exceptions import (
    AdapterError,
    AdapterErrorCode,
    BrandpackError,
    ConfigurationError,
    PipelineParseError,
)
from brandpack.orchestrator import run_task, run_task_batch
from brandpack.pipeline import (
    RetryPolicy,
    Router,
    build_copy_spec,
    build_ideas_spec,
    build_image_brief_spec,
    build_review_summary_spec,
    make_executor,
)
from brandpack.telemetry import TelemetryContext, TelemetryReporter

try:
    __version__ = importlib.metadata.version("brandpack")
except importlib.metadata.PackageNotFoundError:
    __version__ = "development"

# Prevent 'No handler found' warnings when the application has no logging set up.
logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [  # noqa: RUF022
    # Orchestration
    "run_task",
    "run_task_batch",
    "make_executor",
    "Router",
    "RetryPolicy",
    # Spec builders
    "build_review_summary_spec",
    "build_ideas_spec",
    "build_copy_spec",
    "build_image_brief_spec",
    # Configuration
    "Configuration",
    "ConfigResolver",
    "EffectiveConfig",
    "FileConfigLoader",
    "RuntimeSettings",
    "configure_logging",
    "get_effective_config",
    "resolve_effective_config",
    "validate_config",
    # Adapters
    "AdapterRegistry",
    "ProviderRegistries",
    "LLMAdapter",
    "NoopLLMAdapter",
    "NoopImageAdapter",
    "GeminiAdapter",
    # Types
    "AdapterResponse",
    "AuditRecord",
    "BatchTask",
    "TaskOptions",
    "TaskResult",
    "TaskSpec",
    "TokenUsage",
    "ValidationOutcome",
    # Errors
    "BrandpackError",
    "ConfigurationError",
    "PipelineParseError",
    "AdapterError",
    "AdapterErrorCode",
    # Telemetry
    "TelemetryContext",
    "TelemetryReporter",
]
