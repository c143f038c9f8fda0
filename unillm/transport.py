"""AWS Bedrock runtime transport.

boto3 is synchronous, so every SDK call runs in the default thread pool
executor. Streamed responses are pulled one event per executor call, which
keeps the stream lazy: nothing is read from the network until the consumer
asks for the next chunk.
"""

import asyncio
import json
from typing import Any, AsyncIterator, Dict

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from .errors import TransportError
from .logging_config import get_logger

logger = get_logger(__name__)

_END = object()


def _status_code(error: Exception):
    if isinstance(error, ClientError):
        return error.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
    return None


class BedrockTransport:
    """Invoke Bedrock models through a ``bedrock-runtime`` client."""

    def __init__(self, region_name: str = None, client=None, provider: str = "bedrock-mistral"):
        """
        Args:
            region_name: AWS region; falls back to the usual boto3 lookup
            client: Pre-built ``bedrock-runtime`` client (tests, custom sessions)
            provider: Provider name attached to raised ``TransportError``s
        """
        self.region_name = region_name
        self.provider = provider
        self._client = client

    @property
    def client(self):
        if self._client is None:
            self._client = boto3.client("bedrock-runtime", region_name=self.region_name)
        return self._client

    def _params(self, model_id: str, body: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "modelId": model_id,
            "contentType": "application/json",
            "accept": "application/json",
            "body": json.dumps(body),
        }

    def _error(self, action: str, error: Exception) -> TransportError:
        return TransportError(
            f"Bedrock {action} failed: {error}",
            provider=self.provider,
            status_code=_status_code(error),
        )

    async def invoke(self, model_id: str, body: Dict[str, Any]) -> Dict[str, Any]:
        """Send a non-streaming request and return the decoded JSON payload."""
        params = self._params(model_id, body)

        def _sync_call():
            response = self.client.invoke_model(**params)
            return response["body"].read()

        loop = asyncio.get_running_loop()
        try:
            raw = await loop.run_in_executor(None, _sync_call)
        except (BotoCoreError, ClientError) as e:
            raise self._error("invoke_model", e) from e

        try:
            return json.loads(raw)
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise TransportError(
                f"Malformed Bedrock response: {e}", provider=self.provider
            ) from e

    async def invoke_stream(self, model_id: str, body: Dict[str, Any]) -> AsyncIterator[bytes]:
        """Send a streaming request and yield each chunk's raw bytes in order."""
        params = self._params(model_id, body)
        loop = asyncio.get_running_loop()

        try:
            response = await loop.run_in_executor(
                None, lambda: self.client.invoke_model_with_response_stream(**params)
            )
        except (BotoCoreError, ClientError) as e:
            raise self._error("invoke_model_with_response_stream", e) from e

        event_stream = response["body"]
        events = iter(event_stream)
        try:
            while True:
                try:
                    event = await loop.run_in_executor(None, next, events, _END)
                except (BotoCoreError, ClientError) as e:
                    raise self._error("response stream", e) from e
                if event is _END:
                    break
                if "chunk" not in event:
                    # Modeled stream errors arrive as events, e.g. throttlingException
                    error_name = next(iter(event), "unknown")
                    detail = event.get(error_name, {})
                    message = detail.get("message", "") if isinstance(detail, dict) else detail
                    raise TransportError(
                        f"Bedrock stream error {error_name}: {message}",
                        provider=self.provider,
                    )
                yield event["chunk"]["bytes"]
        finally:
            logger.debug("Closing Bedrock response stream")
            event_stream.close()
