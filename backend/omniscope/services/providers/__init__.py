"""Structured extraction providers.

Thin wrappers around LLM APIs (OpenAI, Anthropic) that turn a prompt plus a
strict JSON schema into a parsed object or an explicit failure.
"""

from __future__ import annotations

from ...config import Settings
from ...errors import ConfigurationError
from .anthropic_provider import AnthropicExtractor
from .base import ExtractionResult, StructuredExtractor
from .openai_provider import OpenAIExtractor

__all__ = [
    # Base classes
    "ExtractionResult",
    "StructuredExtractor",
    # Providers
    "AnthropicExtractor",
    "OpenAIExtractor",
    "build_extractor",
]

PROVIDERS: dict[str, type[StructuredExtractor]] = {
    "openai": OpenAIExtractor,
    "anthropic": AnthropicExtractor,
}


def build_extractor(settings: Settings) -> StructuredExtractor:
    """Create the extractor selected by ``settings.llm_provider``.

    Raises:
        ConfigurationError: If the provider name is not registered
    """
    provider_cls = PROVIDERS.get(settings.llm_provider)
    if provider_cls is None:
        available = ", ".join(PROVIDERS)
        raise ConfigurationError(
            f"Unknown LLM provider: {settings.llm_provider}. Available: {available}"
        )
    return provider_cls(model_id=settings.llm_model, timeout=settings.llm_timeout)
