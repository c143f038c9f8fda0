"""Configuration loader for unillm."""

import os
import yaml
from pathlib import Path
from typing import Dict, Any
from dotenv import load_dotenv

from .errors import ConfigurationError

# Load environment variables once when module is imported
load_dotenv()

DEFAULT_CONFIG_PATH = Path(__file__).parent / "llm_config.yaml"

_CONFIG_CACHE = None


def load_config(config_path: str = None, force_reload: bool = False) -> Dict[str, Any]:
    """Load provider configuration from a YAML file.

    Args:
        config_path: Path to config file. Defaults to ``$UNILLM_CONFIG`` or
            the ``llm_config.yaml`` shipped with the package.
        force_reload: Force reload config even if cached

    Returns:
        Configuration dictionary

    Raises:
        ConfigurationError: If the file is missing, is not valid YAML or
            fails validation
    """
    global _CONFIG_CACHE

    # Return cached config if available
    if _CONFIG_CACHE is not None and not force_reload:
        return _CONFIG_CACHE

    # Determine config file path
    if config_path is None:
        config_path = os.getenv("UNILLM_CONFIG") or DEFAULT_CONFIG_PATH
    config_path = Path(config_path)

    if not config_path.exists():
        raise ConfigurationError(
            f"Config file not found: {config_path}\n"
            f"Set UNILLM_CONFIG or pass config_path"
        )

    # Load YAML config
    try:
        with open(config_path, "r") as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {config_path}: {e}") from e

    if not isinstance(config, dict):
        raise ConfigurationError(f"Config file {config_path} must contain a mapping")

    # Apply environment variable overrides
    config = _apply_env_overrides(config)

    # Validate config structure
    _validate_config(config)

    # Cache and return
    _CONFIG_CACHE = config
    return config


def _env_name(provider_name: str) -> str:
    return provider_name.upper().replace("-", "_")


def _apply_env_overrides(config: Dict[str, Any]) -> Dict[str, Any]:
    """Apply environment variable overrides to config.

    Environment variables:
        UNILLM_DEFAULT_SERVICE: Override the default service
        UNILLM_<PROVIDER>_MODEL: Override the default model of a provider
        BEDROCK_MODEL: Override the default bedrock-mistral model

    Args:
        config: Base configuration

    Returns:
        Configuration with environment overrides applied
    """
    default_service = os.getenv("UNILLM_DEFAULT_SERVICE")
    if default_service:
        config.setdefault("defaults", {})
        config["defaults"]["service"] = default_service

    for provider_name, provider_config in config.get("providers", {}).items():
        override = os.getenv(f"UNILLM_{_env_name(provider_name)}_MODEL")
        if not override and provider_name == "bedrock-mistral":
            override = os.getenv("BEDROCK_MODEL")
        if override and isinstance(provider_config, dict):
            provider_config.setdefault("models", {})
            provider_config["models"]["default"] = override

    return config


def _validate_config(config: Dict[str, Any]):
    """Validate configuration structure.

    Args:
        config: Configuration to validate

    Raises:
        ConfigurationError: If configuration is invalid
    """
    if "providers" not in config or not isinstance(config["providers"], dict):
        raise ConfigurationError("Config must have 'providers' section")

    for provider_name, provider_config in config["providers"].items():
        if not isinstance(provider_config, dict):
            raise ConfigurationError(f"Provider '{provider_name}' must be a mapping")
        if "type" not in provider_config:
            raise ConfigurationError(f"Provider '{provider_name}' must have 'type' field")
        if "default" not in provider_config.get("models", {}):
            raise ConfigurationError(f"Provider '{provider_name}' must have a default model")

    default_service = config.get("defaults", {}).get("service")
    if default_service and default_service not in config["providers"]:
        raise ConfigurationError(
            f"Default service '{default_service}' is not a configured provider"
        )


def get_provider_config(provider_name: str) -> Dict[str, Any]:
    """Get configuration for a specific provider.

    Args:
        provider_name: Name of the provider

    Returns:
        Provider configuration dictionary

    Raises:
        ConfigurationError: If provider doesn't exist
    """
    config = load_config()

    if provider_name not in config["providers"]:
        available = list(config["providers"].keys())
        raise ConfigurationError(
            f"Unknown provider: '{provider_name}'. "
            f"Available providers: {available}"
        )

    return config["providers"][provider_name]


def get_default_service() -> str:
    """Return the service used when neither ``service`` nor a known model is given."""
    config = load_config()
    service = config.get("defaults", {}).get("service")
    if not service:
        raise ConfigurationError("No default service configured (defaults.service)")
    return service
