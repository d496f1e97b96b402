"""Typed configuration tree using Pydantic.

The models mirror the JSON configuration document that declares every task
("call") a pipeline can execute. Validation is strict: strings stay strings,
booleans are never numbers and non-finite floats are rejected. Unknown keys
are preserved so documents carrying editor hints such as ``$schema`` round-trip.

The ``global`` section is exposed as the ``global_`` attribute. Always dump with
``by_alias=True`` to get the document shape back.
"""

from __future__ import annotations

import functools
from typing import Annotated, Any, Literal, Optional, Union, get_args, get_origin

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationInfo,
    create_model,
    field_validator,
)

_MODEL_CONFIG = ConfigDict(
    strict=True,
    extra="allow",
    populate_by_name=True,
    allow_inf_nan=False,
)

LogLevel = Literal["error", "warn", "info", "debug"]

# Validation context key that lets the built-in fallback skip the call-count rule.
ALLOW_EMPTY_CALLS = "allow_empty_calls"


class _ConfigModel(BaseModel):
    model_config = _MODEL_CONFIG


# --- Global section ---


class CacheTtlSeconds(_ConfigModel):
    scrape: float
    llm: float
    image: float


class GlobalConfig(_ConfigModel):
    provider: str = Field(min_length=1)
    log_level: LogLevel
    cache_enabled: bool
    cache_ttl_seconds: CacheTtlSeconds


# --- Calls ---


class ModelConfig(_ConfigModel):
    provider: str | None = None
    name: str
    temperature: float
    max_tokens: int
    top_p: float | None = None
    stop_sequences: list[str] | None = None


class PromptConfig(_ConfigModel):
    system: str
    user_template: str
    variables: list[str]
    outputs_expected: int | None = None


class CrawlGuard(_ConfigModel):
    max_pages: float
    max_total_kb: float
    max_concurrency: float
    per_request_timeout_ms: float
    total_timeout_ms: float


class RuntimeGuard(_ConfigModel):
    timeout_ms: float
    max_retries: int
    cost_usd_limit: float
    crawl: CrawlGuard | None = None


class CallConfig(_ConfigModel):
    model: ModelConfig
    prompt: PromptConfig
    runtime: RuntimeGuard


# --- Validation policy ---


class SlotLength(_ConfigModel):
    min: float
    max: float


class LengthValidation(_ConfigModel):
    min_chars: float
    max_chars: float
    per_slot: dict[str, SlotLength] | None = None


class ContinuityThresholds(_ConfigModel):
    tone_shift: float
    fact_drift: float


class ContinuityValidation(_ConfigModel):
    enabled: bool
    thresholds: ContinuityThresholds


class EvidencePolicy(_ConfigModel):
    required_for: list[str]
    allow_empty: bool


class ValidationConfig(_ConfigModel):
    length: LengthValidation
    continuity: ContinuityValidation
    evidence_policy: EvidencePolicy


# --- Budgets ---


class StageBudget(_ConfigModel):
    max_cost: float
    max_tokens: float


class BudgetConfig(_ConfigModel):
    max_cost_per_run: float
    max_tokens_per_run: float
    alert_threshold_usd: float
    per_stage: dict[str, StageBudget]


# --- Presets and root ---


class PresetConfig(_ConfigModel):
    description: str
    overrides: dict[str, Any] | None = None

    @field_validator("overrides")
    @classmethod
    def _validate_overrides(cls, v: dict[str, Any] | None) -> dict[str, Any] | None:
        """Validate overrides as a partial configuration and keep only what was set."""
        if v is None:
            return None
        partial = PartialConfiguration.model_validate(v)
        return partial.model_dump(by_alias=True, exclude_unset=True)


class Configuration(_ConfigModel):
    """The complete configuration document."""

    version: str
    updated_at: str
    global_: GlobalConfig = Field(alias="global")
    calls: dict[str, CallConfig]
    validation: ValidationConfig
    budgets: BudgetConfig
    presets: dict[str, PresetConfig]
    banned_phrases: list[str]

    @field_validator("calls")
    @classmethod
    def _at_least_one_call(
        cls, v: dict[str, CallConfig], info: ValidationInfo
    ) -> dict[str, CallConfig]:
        if not v and not (info.context or {}).get(ALLOW_EMPTY_CALLS):
            raise ValueError("At least one call must be configured")
        return v

    def to_document(self) -> dict[str, Any]:
        """Dump back to the JSON document shape."""
        return self.model_dump(by_alias=True, exclude_none=True)


# --- Partial mirrors ---


def _partial_annotation(annotation: Any) -> Any:
    if isinstance(annotation, type) and issubclass(annotation, BaseModel):
        return partial_model(annotation)

    origin = get_origin(annotation)
    args = get_args(annotation)
    if origin is dict and len(args) == 2:
        return dict[args[0], _partial_annotation(args[1])]  # type: ignore[misc]
    if origin is list and len(args) == 1:
        return list[_partial_annotation(args[0])]  # type: ignore[misc]
    if args and type(None) in args:
        inner = [a for a in args if a is not type(None)]
        if len(inner) == 1:
            return _partial_annotation(inner[0])
        return Union[tuple(_partial_annotation(a) for a in inner)]  # noqa: UP007
    return annotation


@functools.cache
def partial_model(model: type[BaseModel]) -> type[BaseModel]:
    """Build a mirror of ``model`` where every field, recursively, is optional.

    Every field defaults to ``None`` and accepts ``None``; a present ``None`` is
    treated the same as an absent key by the merger. Field constraints and
    aliases are kept.
    """
    fields: dict[str, Any] = {}
    for name, info in model.model_fields.items():
        annotation = _partial_annotation(info.annotation)
        if info.metadata:
            annotation = Annotated[(annotation, *info.metadata)]
        fields[name] = (Optional[annotation], Field(default=None, alias=info.alias))  # noqa: UP045
    return create_model(  # type: ignore[call-overload,no-any-return]
        f"Partial{model.__name__}",
        __config__=_MODEL_CONFIG,
        __doc__=f"Partial mirror of {model.__name__}.",
        **fields,
    )


PartialConfiguration = partial_model(Configuration)
