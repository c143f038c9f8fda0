"""AWS Bedrock Mistral provider (completion-style prompt API)."""

import json
import os
from typing import AsyncIterator, Sequence

from .base import LLMProvider
from ..logging_config import get_logger, log_with_context
from ..prompts import build_prompt
from ..schema import ChatMessage
from ..streaming import estimate_usage, extract_text, report_usage, stream_response
from ..transport import BedrockTransport

logger = get_logger(__name__)

DEFAULT_MODEL = "mistral.mixtral-8x7b-instruct-v0:1"


class BedrockMistralProvider(LLMProvider):
    """Provider for Mistral models hosted on AWS Bedrock.

    Bedrock's Mistral endpoint takes a single prompt string, so the message
    list is rendered through a prompt template first (see ``unillm.prompts``).
    """

    name = "bedrock-mistral"
    OPTION_MAP = {
        "max_tokens": "max_tokens",
        "top_k": "top_k",
        "top_p": "top_p",
        "temperature": "temperature",
        "stop": "stop",
    }

    def __init__(self, config: dict, transport: BedrockTransport = None):
        """Initialize Bedrock Mistral provider.

        Args:
            config: Provider configuration with region_env, models
            transport: Optional transport; one is built from config otherwise
        """
        super().__init__(config)
        if not self.model:
            self.model = DEFAULT_MODEL

        if transport is None:
            region = config.get("region") or os.getenv(config.get("region_env", "AWS_REGION"))
            transport = BedrockTransport(region_name=region, provider=self.name)
        self.transport = transport

    def _build_body(self, messages: Sequence[ChatMessage], options: dict):
        self.check_messages(messages)
        prompt = build_prompt(messages, options)
        body = {"prompt": prompt, **self.select_options(options)}
        return prompt, body

    async def complete(self, messages: Sequence[ChatMessage], **options) -> str:
        """Make completion call to Bedrock and return the first output's text."""
        prompt, body = self._build_body(messages, options)
        model = self.resolve_model(options)
        log_with_context(logger, "debug", "Sending to Bedrock Mistral", model=model, body=json.dumps(body))

        payload = await self.transport.invoke(model, body)
        text = extract_text(payload, provider=self.name)

        usage = options.get("usage")
        if usage is not None:
            # Invocation metrics only come with streamed responses
            await report_usage(usage, estimate_usage(prompt, text))

        return text

    async def stream(self, messages: Sequence[ChatMessage], **options) -> AsyncIterator[str]:
        """Stream completion fragments from Bedrock."""
        _, body = self._build_body(messages, options)
        model = self.resolve_model(options)
        log_with_context(logger, "debug", "Streaming from Bedrock Mistral", model=model, body=json.dumps(body))

        chunks = self.transport.invoke_stream(model, body)
        fragments = stream_response(chunks, options.get("usage"), provider=self.name)
        try:
            async for fragment in fragments:
                yield fragment
        finally:
            await fragments.aclose()
