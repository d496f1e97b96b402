"""In-memory adapter registries.

Registries are constructed explicitly and passed by reference to the router;
there is no module-level instance. They only map provider ids to adapter
objects and never call a provider.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Literal

from .noop import NoopImageAdapter, NoopLLMAdapter

if TYPE_CHECKING:
    from .base import LLMAdapter

Workload = Literal["text", "image"]


class AdapterRegistry:
    """Maps provider ids to adapter instances."""

    def __init__(self) -> None:
        """Initialize an empty registry."""
        self._adapters: dict[str, LLMAdapter] = {}

    def register(self, adapter: LLMAdapter) -> None:
        """Register ``adapter`` under its ``provider`` id.

        Registering the same instance twice is a no-op.

        Raises:
            ValueError: If a different adapter already holds the provider id.
        """
        existing = self._adapters.get(adapter.provider)
        if existing is not None and existing is not adapter:
            raise ValueError(
                f"Adapter for provider '{adapter.provider}' is already registered."
            )
        self._adapters[adapter.provider] = adapter

    def unregister(self, provider: str) -> None:
        self._adapters.pop(provider, None)

    def get(self, provider: str) -> LLMAdapter | None:
        """Return the adapter for ``provider``, if registered."""
        return self._adapters.get(provider)

    def list_providers(self) -> list[str]:
        """Registered provider ids, sorted."""
        return sorted(self._adapters)

    def clear(self) -> None:
        self._adapters.clear()

    def __contains__(self, provider: object) -> bool:
        return provider in self._adapters

    def __len__(self) -> int:
        return len(self._adapters)


@dataclass(frozen=True, slots=True)
class ProviderRegistries:
    """One registry per workload."""

    text: AdapterRegistry = field(default_factory=AdapterRegistry)
    image: AdapterRegistry = field(default_factory=AdapterRegistry)

    def for_workload(self, workload: Workload) -> AdapterRegistry:
        if workload == "image":
            return self.image
        if workload == "text":
            return self.text
        raise ValueError(f"Unknown workload: {workload!r}")

    def stats(self) -> dict[str, list[str]]:
        return {"text": self.text.list_providers(), "image": self.image.list_providers()}

    @classmethod
    def with_defaults(cls) -> ProviderRegistries:
        """Registries pre-populated with the offline noop adapters."""
        registries = cls()
        registries.text.register(NoopLLMAdapter())
        registries.image.register(NoopImageAdapter())
        return registries
