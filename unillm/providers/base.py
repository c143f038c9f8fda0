"""Base abstract class for all LLM providers."""

from abc import ABC, abstractmethod
from typing import Any, AsyncIterator, Dict, Mapping, Sequence

from ..errors import NoMessagesError
from ..schema import ChatMessage


class LLMProvider(ABC):
    """Abstract base class for all LLM providers.

    Each provider implementation handles its own API-specific request and
    response shapes. Generation parameters are filtered through
    ``OPTION_MAP``, a declarative table mapping the caller's option name to
    the provider's request key. Options missing from the table are dropped.
    """

    name = "provider"
    OPTION_MAP: Mapping[str, str] = {}

    def __init__(self, config: dict):
        """Initialize provider with configuration.

        Args:
            config: Provider configuration dictionary from YAML
        """
        self.config = config
        self.model = config.get("models", {}).get("default", "")

    @abstractmethod
    async def complete(self, messages: Sequence[ChatMessage], **options) -> str:
        """Make a completion call and return the complete response.

        Args:
            messages: List of message dicts with 'role' and 'content'
            **options: Request options (model, usage, generation parameters)

        Returns:
            Complete response string
        """
        pass

    @abstractmethod
    async def stream(self, messages: Sequence[ChatMessage], **options) -> AsyncIterator[str]:
        """Stream completion fragments as they arrive.

        Args:
            messages: List of message dicts with 'role' and 'content'
            **options: Request options (model, usage, generation parameters)

        Yields:
            Response fragments as strings
        """
        pass

    def select_options(self, options: Dict[str, Any]) -> Dict[str, Any]:
        """Pick the generation parameters this provider understands."""
        return {
            provider_key: options[key]
            for key, provider_key in self.OPTION_MAP.items()
            if options.get(key) is not None
        }

    def resolve_model(self, options: Dict[str, Any]) -> str:
        return options.get("model") or self.model

    @staticmethod
    def check_messages(messages: Sequence[ChatMessage]) -> None:
        if not messages:
            raise NoMessagesError()

    def get_metadata(self) -> Dict[str, Any]:
        """Return provider metadata for logging/debugging.

        Returns:
            Dictionary with provider name, model, config info
        """
        return {
            "provider": self.name,
            "model": self.model,
            "config": self.config
        }
