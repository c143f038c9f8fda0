"""Anthropic Claude provider."""

import os
from typing import AsyncIterator, Dict, List, Sequence, Tuple

from anthropic import APIError, APIStatusError, AsyncAnthropic

from .base import LLMProvider
from ..errors import ConfigurationError, InvalidRoleError, TransportError
from ..logging_config import get_logger, log_with_context
from ..schema import ChatMessage
from ..streaming import report_usage

logger = get_logger(__name__)

DEFAULT_MAX_TOKENS = 4096


def _transport_error(action: str, error: APIError) -> TransportError:
    status_code = error.status_code if isinstance(error, APIStatusError) else None
    return TransportError(
        f"Anthropic {action} failed: {error}",
        provider=AnthropicProvider.name,
        status_code=status_code,
    )


def _usage_record(usage) -> Dict[str, int]:
    return {
        "prompt_tokens": usage.input_tokens,
        "completion_tokens": usage.output_tokens,
    }


class AnthropicProvider(LLMProvider):
    """Provider for Anthropic's Messages API."""

    name = "anthropic"
    OPTION_MAP = {
        "max_tokens": "max_tokens",
        "temperature": "temperature",
        "top_p": "top_p",
        "top_k": "top_k",
        "stop": "stop_sequences",
    }

    def __init__(self, config: dict, client: AsyncAnthropic = None):
        """Initialize Anthropic provider.

        Args:
            config: Provider configuration with api_key_env, models, max_tokens
            client: Optional pre-built ``AsyncAnthropic`` client
        """
        super().__init__(config)

        if client is None:
            api_key_name = config.get("api_key_env", "ANTHROPIC_API_KEY")
            api_key = os.getenv(api_key_name)
            if not api_key:
                raise ConfigurationError(f"API key not found in environment: {api_key_name}")
            client = AsyncAnthropic(api_key=api_key)

        self.client = client
        self.max_tokens = config.get("max_tokens", DEFAULT_MAX_TOKENS)

    def _split_system(self, messages: Sequence[ChatMessage]) -> Tuple[str, List[Dict[str, str]]]:
        """Pull system messages out into Anthropic's top-level ``system`` field."""
        system_parts = []
        chat = []
        for message in messages:
            role = message["role"]
            if role == "system":
                system_parts.append(message["content"])
            elif role in ("user", "assistant"):
                chat.append({"role": role, "content": message["content"]})
            else:
                raise InvalidRoleError(role)
        return "\n\n".join(system_parts), chat

    def _build_request(self, messages: Sequence[ChatMessage], options: dict) -> dict:
        self.check_messages(messages)
        system, chat = self._split_system(messages)

        request = {
            "model": self.resolve_model(options),
            "messages": chat,
            "max_tokens": self.max_tokens,
            **self.select_options(options),
        }
        if system:
            request["system"] = system
        return request

    async def complete(self, messages: Sequence[ChatMessage], **options) -> str:
        """Make completion call to Anthropic API."""
        request = self._build_request(messages, options)
        log_with_context(logger, "debug", "Sending to Anthropic", model=request["model"])

        try:
            response = await self.client.messages.create(**request)
        except APIError as e:
            raise _transport_error("messages.create", e) from e

        text = "".join(
            block.text for block in response.content if getattr(block, "type", "text") == "text"
        )

        usage = options.get("usage")
        if usage is not None:
            await report_usage(usage, _usage_record(response.usage))

        return text

    async def stream(self, messages: Sequence[ChatMessage], **options) -> AsyncIterator[str]:
        """Stream completion chunks from Anthropic API."""
        request = self._build_request(messages, options)
        log_with_context(logger, "debug", "Streaming from Anthropic", model=request["model"])

        try:
            async with self.client.messages.stream(**request) as stream:
                async for text in stream.text_stream:
                    yield text
                final_message = await stream.get_final_message()
        except APIError as e:
            raise _transport_error("messages.stream", e) from e

        usage = options.get("usage")
        if usage is not None:
            await report_usage(usage, _usage_record(final_message.usage))
