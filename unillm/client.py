"""Main LLM client interface."""

import inspect
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence, Union

from . import parsers
from .errors import CallbackError
from .factory import create_provider, resolve_service
from .providers.base import LLMProvider
from .schema import ChatMessage


class LLMClient:
    """Unified client for chat requests across providers.

    The client keeps the conversation as a plain list of message dicts in
    ``messages`` and default request options in ``options``. Nothing is
    persisted beyond the instance.

    Example:
        >>> llm = LLMClient(service="bedrock-mistral", max_tokens=200)
        >>> llm.system("Be concise.")
        >>> reply = await llm.chat("What color is the sky?")
        >>>
        >>> streaming = LLMClient(stream=True, model="claude-3-opus-20240229")
        >>> async for fragment in await streaming.chat("Tell me a story"):
        ...     print(fragment, end="")
    """

    parsers = parsers

    def __init__(self, messages: Optional[Sequence[ChatMessage]] = None, **options):
        """Initialize LLM client.

        Args:
            messages: Existing conversation to continue (copied, not mutated)
            **options: Default request options (service, model, stream, usage,
                make_prompt, prompt_template, max_tokens, temperature, ...)
        """
        self.messages: List[Dict[str, str]] = [dict(m) for m in (messages or [])]
        self.options: Dict[str, Any] = options
        self._providers: Dict[str, LLMProvider] = {}  # Cache for provider instances

    def _get_provider(self, service: str) -> LLMProvider:
        """Get or create the provider for a service.

        Providers are cached to avoid rebuilding SDK clients.
        """
        if service not in self._providers:
            self._providers[service] = create_provider(service)
        return self._providers[service]

    def _resolve(self, options: Dict[str, Any]) -> LLMProvider:
        service = resolve_service(options.get("service"), options.get("model"))
        return self._get_provider(service)

    def system(self, content: str) -> None:
        self.messages.append({"role": "system", "content": content})

    def user(self, content: str) -> None:
        self.messages.append({"role": "user", "content": content})

    def assistant(self, content: str) -> None:
        self.messages.append({"role": "assistant", "content": content})

    async def send(self, **overrides) -> Any:
        """Send the current conversation and return the reply.

        Args:
            **overrides: Options for this request only, merged over the
                client's defaults

        Returns:
            The reply text, or an async iterator of text fragments when
            ``stream`` is set. With ``stream_handler`` or ``parser`` the
            stream is drained here: the handler sees each fragment and the
            call returns ``parser(text)`` (or the text). The reply is appended
            to ``messages`` once it is complete (for streams, once the
            iterator is exhausted).
        """
        options = {**self.options, **overrides}
        messages = list(self.messages)
        LLMProvider.check_messages(messages)
        provider = self._resolve(options)
        parser = options.get("parser")

        if options.get("stream"):
            if options.get("stream_handler") is None and parser is None:
                return self._stream_reply(provider, messages, options)
            text = await self._drain_stream(provider, messages, options)
        else:
            text = await provider.complete(messages, **options)

        self.assistant(text)
        return parser(text) if parser is not None else text

    async def _stream_reply(self, provider, messages, options) -> AsyncIterator[str]:
        parts = []
        fragments = provider.stream(messages, **options)
        try:
            async for fragment in fragments:
                parts.append(fragment)
                yield fragment
        finally:
            await fragments.aclose()
        self.assistant("".join(parts))

    async def _drain_stream(self, provider, messages, options) -> str:
        handler = options.get("stream_handler")
        parts = []
        fragments = provider.stream(messages, **options)
        try:
            async for fragment in fragments:
                parts.append(fragment)
                if handler is not None:
                    try:
                        result = handler(fragment)
                        if inspect.isawaitable(result):
                            await result
                    except Exception as e:
                        raise CallbackError(f"Stream handler failed: {e}") from e
        finally:
            await fragments.aclose()
        return "".join(parts)

    async def chat(self, content: str, **overrides) -> Any:
        """Append a user message and send the conversation."""
        self.user(content)
        return await self.send(**overrides)

    def get_service_info(self, service: Optional[str] = None) -> Dict[str, Any]:
        """Get metadata about the provider a request would use.

        Useful for debugging, logging, or displaying provider information.
        """
        options = dict(self.options)
        if service:
            options["service"] = service
        return self._resolve(options).get_metadata()

    def clear_cache(self):
        """Clear the provider cache.

        Useful if you've updated configuration and want to force
        recreation of providers.
        """
        self._providers.clear()


async def complete(
    messages: Union[str, Sequence[ChatMessage]],
    **options,
) -> Union[str, AsyncIterator[str]]:
    """One-shot request.

    Args:
        messages: A prompt string (sent as a single user message) or a list
            of message dicts
        **options: Request options, as for ``LLMClient``

    Returns:
        Reply text, or an async iterator of fragments when ``stream`` is set
    """
    if isinstance(messages, str):
        messages = [{"role": "user", "content": messages}]
    return await LLMClient(messages, **options).send()


def create_client(messages: Optional[Sequence[ChatMessage]] = None, **options) -> LLMClient:
    """Create a new LLM client instance."""
    return LLMClient(messages, **options)
