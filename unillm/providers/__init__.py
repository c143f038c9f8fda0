"""Provider registry for LLM providers."""

from typing import Dict, Type

from .base import LLMProvider
from .bedrock_mistral import BedrockMistralProvider
from .anthropic import AnthropicProvider
from ..errors import ConfigurationError

# Provider registry - maps provider type to provider class
PROVIDER_REGISTRY: Dict[str, Type[LLMProvider]] = {
    "bedrock-mistral": BedrockMistralProvider,
    "anthropic": AnthropicProvider,
}


def register_provider(name: str, provider_class: Type[LLMProvider]):
    """Register a custom provider.

    Args:
        name: Provider type (used in config)
        provider_class: Provider class (must inherit from LLMProvider)
    """
    if not issubclass(provider_class, LLMProvider):
        raise TypeError(f"{provider_class} must inherit from LLMProvider")
    PROVIDER_REGISTRY[name] = provider_class


def get_provider_class(provider_type: str) -> Type[LLMProvider]:
    """Get provider class by type.

    Args:
        provider_type: Provider type string from config

    Returns:
        Provider class

    Raises:
        ConfigurationError: If provider type is unknown
    """
    if provider_type not in PROVIDER_REGISTRY:
        available = list(PROVIDER_REGISTRY.keys())
        raise ConfigurationError(
            f"Unknown provider type: '{provider_type}'. "
            f"Available providers: {available}"
        )
    return PROVIDER_REGISTRY[provider_type]


__all__ = [
    "LLMProvider",
    "BedrockMistralProvider",
    "AnthropicProvider",
    "PROVIDER_REGISTRY",
    "register_provider",
    "get_provider_class",
]
