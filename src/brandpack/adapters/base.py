"""Provider adapter protocol.

Adapters translate a neutral `TaskSpec` into one provider call and answer with
an `AdapterResponse`. Failures are raised as `AdapterError` carrying an
`AdapterErrorCode`; the router decides what is retried. Text and image
adapters share the same surface and live in separate registries.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from brandpack.core.types import AdapterResponse, SpecCheck, TaskSpec


@runtime_checkable
class LLMAdapter(Protocol):
    """Interface every provider adapter implements."""

    provider: str

    async def execute(self, spec: TaskSpec) -> AdapterResponse:
        """Run the spec against the provider."""
        ...

    def estimate_cost(self, spec: TaskSpec) -> float:
        """Estimated USD cost of executing ``spec``, without network calls."""
        ...

    def validate_spec(self, spec: TaskSpec) -> SpecCheck:
        """Provider-specific precondition checks."""
        ...

    def get_available_models(self) -> list[str]: ...


# Image adapters share the protocol; the alias documents intent at call sites.
ImageAdapter = LLMAdapter
