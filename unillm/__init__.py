"""unillm - one calling convention for hosted LLM APIs.

This package puts AWS Bedrock (Mistral) and Anthropic behind the same
interface: a list of role-tagged messages plus keyword options. It handles
prompt templating for completion-style endpoints, streaming, and usage
reporting.

Quick Start:
    >>> from unillm import LLMClient, complete
    >>>
    >>> # One-shot call
    >>> text = await complete("be concise. the color of the sky is",
    ...                       service="bedrock-mistral")
    >>>
    >>> # Conversation
    >>> llm = LLMClient(model="claude-3-opus-20240229")
    >>> llm.system("You are a helpful chat bot. Be concise.")
    >>> reply = await llm.chat("the color of the sky is")
    >>>
    >>> # Streaming with usage reporting
    >>> async def on_usage(usage):
    ...     print(usage["prompt_tokens"], usage["completion_tokens"])
    >>> fragments = await complete("who created HTML?", stream=True, usage=on_usage)
    >>> async for fragment in fragments:
    ...     print(fragment, end="")

Prompt templates:
    Completion-style providers render messages with a template. Pass
    ``prompt_template`` (a Jinja2 chat template string or an object with a
    ``render(messages)`` method) or ``make_prompt(messages, options)`` to
    replace the default Mistral ``[INST]`` format.

Configuration:
    Providers are configured in llm_config.yaml (shipped with the package,
    override with UNILLM_CONFIG).

Adding Custom Providers:
    >>> from unillm.providers import register_provider, LLMProvider
    >>>
    >>> class MyProvider(LLMProvider):
    ...     async def complete(self, messages, **options):
    ...         ...
    ...
    ...     async def stream(self, messages, **options):
    ...         ...
    >>>
    >>> register_provider("myprovider", MyProvider)
"""

from . import parsers
from .client import LLMClient, complete, create_client
from .config import load_config, get_provider_config, get_default_service
from .errors import (
    UniLLMError,
    RequestError,
    NoMessagesError,
    InvalidRoleError,
    TemplateViolationError,
    TransportError,
    CallbackError,
    ResponseParseError,
    ConfigurationError,
)
from .prompts import (
    ChatTemplate,
    MistralInstructTemplate,
    MISTRAL_CHAT_TEMPLATE,
    PromptTemplate,
    normalize_messages,
    render_prompt,
)
from .providers import (
    LLMProvider,
    register_provider,
    get_provider_class,
    PROVIDER_REGISTRY,
)
from .schema import ChatMessage, UsageRecord

__version__ = "1.0.0"

__all__ = [
    # Main client
    "LLMClient",
    "complete",
    "create_client",

    # Configuration
    "load_config",
    "get_provider_config",
    "get_default_service",

    # Errors
    "UniLLMError",
    "RequestError",
    "NoMessagesError",
    "InvalidRoleError",
    "TemplateViolationError",
    "TransportError",
    "CallbackError",
    "ResponseParseError",
    "ConfigurationError",

    # Reply parsers
    "parsers",

    # Prompt templating
    "ChatTemplate",
    "MistralInstructTemplate",
    "MISTRAL_CHAT_TEMPLATE",
    "PromptTemplate",
    "normalize_messages",
    "render_prompt",

    # Provider extensibility
    "LLMProvider",
    "register_provider",
    "get_provider_class",
    "PROVIDER_REGISTRY",

    # Types
    "ChatMessage",
    "UsageRecord",
]
