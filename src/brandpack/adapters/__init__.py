"""Provider adapters and their registries."""

from .base import ImageAdapter, LLMAdapter
from .gemini import GeminiAdapter
from .noop import NoopImageAdapter, NoopLLMAdapter
from .registry import AdapterRegistry, ProviderRegistries

__all__ = [
    "AdapterRegistry",
    "GeminiAdapter",
    "ImageAdapter",
    "LLMAdapter",
    "NoopImageAdapter",
    "NoopLLMAdapter",
    "ProviderRegistries",
]
