"""Adapter registries and protocol conformance."""

import pytest

from brandpack.adapters import (
    AdapterRegistry,
    GeminiAdapter,
    LLMAdapter,
    NoopImageAdapter,
    NoopLLMAdapter,
    ProviderRegistries,
)

pytestmark = pytest.mark.unit


def test_register_and_get():
    registry = AdapterRegistry()
    adapter = NoopLLMAdapter()

    registry.register(adapter)

    assert registry.get("noop-llm") is adapter
    assert "noop-llm" in registry
    assert len(registry) == 1


def test_registering_same_instance_twice_is_a_noop():
    registry = AdapterRegistry()
    adapter = NoopLLMAdapter()

    registry.register(adapter)
    registry.register(adapter)

    assert registry.list_providers() == ["noop-llm"]


def test_duplicate_provider_id_is_rejected():
    registry = AdapterRegistry()
    registry.register(NoopLLMAdapter())

    with pytest.raises(ValueError, match="already registered"):
        registry.register(NoopLLMAdapter())


def test_unregister_and_clear():
    registry = AdapterRegistry()
    registry.register(NoopLLMAdapter())
    registry.register(GeminiAdapter())

    registry.unregister("gemini")
    assert registry.get("gemini") is None

    registry.clear()
    assert len(registry) == 0


def test_registries_are_independent():
    first = ProviderRegistries()
    second = ProviderRegistries()

    first.text.register(NoopLLMAdapter())

    assert second.text.list_providers() == []


def test_with_defaults_populates_both_workloads():
    registries = ProviderRegistries.with_defaults()

    assert registries.stats() == {"text": ["noop-llm"], "image": ["noop-image"]}
    assert registries.for_workload("image") is registries.image


def test_unknown_workload_is_rejected():
    with pytest.raises(ValueError, match="Unknown workload"):
        ProviderRegistries().for_workload("audio")  # type: ignore[arg-type]


@pytest.mark.parametrize("adapter", [NoopLLMAdapter(), NoopImageAdapter(), GeminiAdapter()])
def test_adapters_conform_to_protocol(adapter):
    assert isinstance(adapter, LLMAdapter)
