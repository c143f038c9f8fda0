"""Factory for creating providers from configuration."""

from typing import Optional

from .config import get_default_service, get_provider_config, load_config
from .providers import get_provider_class
from .providers.base import LLMProvider


def resolve_service(service: Optional[str] = None, model: Optional[str] = None) -> str:
    """Decide which configured provider handles a request.

    Resolution order:
    1. An explicit ``service``
    2. The provider whose ``model_prefixes`` match ``model`` (longest first)
    3. ``defaults.service`` from config

    Args:
        service: Explicit service name from the request options
        model: Model identifier from the request options

    Returns:
        Name of a configured provider
    """
    if service:
        return service

    if model:
        config = load_config()
        prefixes = [
            (prefix, provider_name)
            for provider_name, provider_config in config["providers"].items()
            for prefix in provider_config.get("model_prefixes", [])
        ]
        # Longest prefix wins regardless of declaration order
        for prefix, provider_name in sorted(prefixes, key=lambda p: len(p[0]), reverse=True):
            if model.startswith(prefix):
                return provider_name

    return get_default_service()


def create_provider(service: str) -> LLMProvider:
    """Create the provider configured under ``service``.

    This factory function:
    1. Loads the provider's configuration
    2. Looks up the provider class for its ``type``
    3. Creates and returns the provider instance

    Args:
        service: Name of the provider section in config

    Returns:
        Provider instance

    Raises:
        ConfigurationError: If the service or its type is unknown
    """
    provider_config = get_provider_config(service)
    ProviderClass = get_provider_class(provider_config["type"])
    return ProviderClass(provider_config)
