"""Provider-neutral data types that flow through a task execution.

A `TaskSpec` is built from configuration, routed to an adapter which answers
with an `AdapterResponse`, and the orchestrator turns that into a `TaskResult`
carrying the parsed outputs, a `ValidationOutcome` and an `AuditRecord`. All
types are frozen; mappings are wrapped in read-only views.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping, Sequence
import dataclasses
from datetime import UTC, datetime
import math
from types import MappingProxyType
import typing

if typing.TYPE_CHECKING:
    from brandpack.config.schema import Configuration

ResponseFormat = typing.Literal["text", "json", "structured"]
TaskErrorKind = typing.Literal["configuration", "execution", "parse"]

_EMPTY: Mapping[str, typing.Any] = MappingProxyType({})


def _freeze_mapping(m: Mapping[str, typing.Any] | None) -> Mapping[str, typing.Any]:
    """Return an immutable mapping view, empty for None."""
    if m is None:
        return _EMPTY
    if isinstance(m, MappingProxyType):
        return m
    return MappingProxyType(dict(m))


def utc_timestamp() -> str:
    """Current time as ISO-8601 UTC with millisecond precision."""
    return (
        datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")
    )


# --- Request side ---


@dataclasses.dataclass(frozen=True, slots=True)
class SamplingConstraints:
    """Sampling parameters copied from a call's model section."""

    max_tokens: int | None = None
    temperature: float | None = None
    top_p: float | None = None
    stop_sequences: tuple[str, ...] = ()


@dataclasses.dataclass(frozen=True, slots=True)
class SpecMetadata:
    """Correlation data attached to every spec."""

    task: str
    run_id: str | None = None
    domain: str | None = None
    content_fingerprint: str | None = None
    extra: Mapping[str, typing.Any] = dataclasses.field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "extra", _freeze_mapping(self.extra))


@dataclasses.dataclass(frozen=True, slots=True)
class TaskSpec:
    """A provider-neutral request for one task execution."""

    task_id: str
    system_prompt: str
    user_prompt: str
    response_format: ResponseFormat
    constraints: SamplingConstraints = dataclasses.field(
        default_factory=SamplingConstraints
    )
    metadata: SpecMetadata | None = None
    schema: Mapping[str, typing.Any] | None = None
    model: str | None = None

    def __post_init__(self) -> None:
        if self.schema is not None:
            object.__setattr__(self, "schema", _freeze_mapping(self.schema))

    def with_model(self, model: str) -> TaskSpec:
        """Return a copy bound to a different model."""
        return dataclasses.replace(self, model=model)


@dataclasses.dataclass(frozen=True, slots=True)
class SpecCheck:
    """Result of an adapter precondition check."""

    valid: bool
    errors: tuple[str, ...] = ()


def _in_range(value: float, upper: float = 1.0) -> bool:
    return math.isfinite(value) and 0 <= value <= upper


def check_spec(spec: TaskSpec, *, max_temperature: float = 1.0) -> SpecCheck:
    """Run the provider-independent precondition checks on ``spec``.

    Adapters call this first and add their own checks on top. Providers that
    accept a wider sampling temperature pass their own ``max_temperature``.
    """
    errors: list[str] = []
    if not spec.task_id:
        errors.append("task_id is required")
    if not spec.system_prompt:
        errors.append("system_prompt is required")
    if not spec.user_prompt:
        errors.append("user_prompt is required")
    if spec.response_format not in ("text", "json", "structured"):
        errors.append(f"unsupported response_format: {spec.response_format!r}")
    if spec.response_format == "structured" and spec.schema is None:
        errors.append("schema is required for structured responses")

    c = spec.constraints
    if c.temperature is not None and not _in_range(c.temperature, max_temperature):
        errors.append(f"temperature must be between 0 and {max_temperature:g}")
    if c.top_p is not None and not _in_range(c.top_p):
        errors.append("top_p must be between 0 and 1")
    if c.max_tokens is not None and c.max_tokens <= 0:
        errors.append("max_tokens must be positive")
    return SpecCheck(valid=not errors, errors=tuple(errors))


# --- Response side ---


@dataclasses.dataclass(frozen=True, slots=True)
class TokenUsage:
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int

    @classmethod
    def zero(cls) -> TokenUsage:
        return cls(0, 0, 0)


@dataclasses.dataclass(frozen=True, slots=True)
class AdapterResponse:
    """Raw outcome of one adapter execution.

    ``metadata`` carries at least ``cached`` and ``finish_reason``.
    """

    outputs: tuple[str, ...]
    usage: TokenUsage
    provider: str
    model: str
    cost_usd: float = 0.0
    duration_ms: float = 0.0
    raw_response: typing.Any = None
    metadata: Mapping[str, typing.Any] = dataclasses.field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "outputs", tuple(self.outputs))
        object.__setattr__(self, "metadata", _freeze_mapping(self.metadata))

    @property
    def cached(self) -> bool:
        return bool(self.metadata.get("cached", False))


@dataclasses.dataclass(frozen=True, slots=True)
class ValidationOutcome:
    """Validator verdict. Only errors fail; warnings are advisory."""

    passed: bool
    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()

    @classmethod
    def from_messages(
        cls, errors: Sequence[str], warnings: Sequence[str] = ()
    ) -> ValidationOutcome:
        return cls(passed=not errors, errors=tuple(errors), warnings=tuple(warnings))


@dataclasses.dataclass(frozen=True, slots=True)
class AuditRecord:
    """Per-execution record for cost and provenance accounting."""

    task_id: str
    run_id: str
    provider: str
    model: str
    usage: TokenUsage
    cost_usd: float
    duration_ms: float
    cached: bool
    timestamp: str = dataclasses.field(default_factory=utc_timestamp)


@dataclasses.dataclass(frozen=True, slots=True)
class TaskError:
    """Why a task failed, without raising."""

    kind: TaskErrorKind
    message: str
    code: str | None = None


@dataclasses.dataclass(frozen=True, slots=True)
class TaskResult:
    """Uniform result of a task execution."""

    success: bool
    outputs: tuple[typing.Any, ...]
    validation: ValidationOutcome
    audit: AuditRecord
    error: TaskError | None = None
    raw_response: typing.Any = None


# --- Orchestration inputs ---


@dataclasses.dataclass(frozen=True, slots=True)
class TaskOptions:
    """Per-execution options for the orchestrator."""

    run_id: str | None = None
    provider_override: str | None = None
    model_override: str | None = None
    skip_validation: bool = False
    critical: bool = False
    metadata: Mapping[str, typing.Any] = dataclasses.field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "metadata", _freeze_mapping(self.metadata))

    @property
    def is_critical(self) -> bool:
        return self.critical or bool(self.metadata.get("critical", False))


Executor = Callable[[TaskSpec, str], Awaitable[AdapterResponse]]
TaskValidator = Callable[[str, Sequence[typing.Any], "Configuration"], ValidationOutcome]


@dataclasses.dataclass(frozen=True, slots=True)
class BatchTask:
    """One entry of a sequential batch."""

    spec: TaskSpec
    validator: TaskValidator | None = None
    options: TaskOptions | None = None


def calculate_cost(usage: TokenUsage, input_per_1k: float, output_per_1k: float) -> float:
    """Linear cost from token usage and per-1k-token prices."""
    return (
        usage.prompt_tokens / 1000 * input_per_1k
        + usage.completion_tokens / 1000 * output_per_1k
    )
