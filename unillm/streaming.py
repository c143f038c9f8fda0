"""Response normalization for Bedrock-style ``outputs`` payloads.

Bedrock Mistral answers with ``{"outputs": [{"text": ..., "stop_reason": ...}]}``
both for complete responses and for each streamed chunk. The final streamed
chunk may also carry ``amazon-bedrock-invocationMetrics`` with measured token
counts; complete responses never do, so their usage is estimated.
"""

import inspect
import json
from typing import Any, AsyncIterable, AsyncIterator, Dict, Optional

from .errors import CallbackError, TransportError
from .logging_config import get_logger
from .schema import UsageCallback, UsageRecord

logger = get_logger(__name__)

METRICS_KEY = "amazon-bedrock-invocationMetrics"

# Rough characters-per-token ratio used when the provider reports no usage
CHARS_PER_TOKEN = 4


def first_output(payload: Any) -> Optional[Dict[str, Any]]:
    """Return ``payload["outputs"][0]`` or None if the payload has no such entry."""
    if not isinstance(payload, dict):
        return None
    outputs = payload.get("outputs")
    if not isinstance(outputs, list) or not outputs:
        return None
    output = outputs[0]
    if not isinstance(output, dict):
        return None
    return output


def extract_text(payload: Dict[str, Any], provider: str = None) -> str:
    """Return the text of the first output candidate of a complete response.

    Raises:
        TransportError: If the payload has no usable ``outputs[0].text``.
    """
    output = first_output(payload)
    if output is None or not isinstance(output.get("text"), str):
        raise TransportError("Malformed response: missing outputs[0].text", provider=provider)
    return output["text"]


def estimate_usage(prompt: str, text: str) -> UsageRecord:
    """Estimate token counts from character lengths."""
    return {
        "prompt_tokens": len(prompt) // CHARS_PER_TOKEN,
        "completion_tokens": len(text) // CHARS_PER_TOKEN,
    }


def metrics_usage(metrics: Dict[str, Any]) -> Optional[UsageRecord]:
    """Convert Bedrock invocation metrics into a usage record.

    Returns None when either token count is missing or not a non-negative int.
    """
    prompt_tokens = metrics.get("inputTokenCount")
    completion_tokens = metrics.get("outputTokenCount")
    for count in (prompt_tokens, completion_tokens):
        if not isinstance(count, int) or isinstance(count, bool) or count < 0:
            return None
    return {
        "prompt_tokens": prompt_tokens,
        "completion_tokens": completion_tokens,
    }


async def report_usage(callback: UsageCallback, record: UsageRecord) -> None:
    """Invoke a usage callback and wait for it to finish.

    Both plain functions and coroutine functions are accepted.

    Raises:
        CallbackError: If the callback raises.
    """
    try:
        result = callback(record)
        if inspect.isawaitable(result):
            await result
    except Exception as e:
        raise CallbackError(f"Usage callback failed: {e}") from e


def decode_chunk(data: bytes, provider: str = None) -> Any:
    """Decode one streamed chunk payload from UTF-8 JSON."""
    try:
        return json.loads(data.decode("utf-8") if isinstance(data, (bytes, bytearray)) else data)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise TransportError(f"Malformed stream chunk: {e}", provider=provider) from e


async def stream_response(
    chunks: AsyncIterable[bytes],
    usage: Optional[UsageCallback] = None,
    provider: str = None,
) -> AsyncIterator[str]:
    """Turn a stream of raw chunks into a stream of text fragments.

    Chunks are handled strictly in arrival order:

    - chunks without ``outputs[0]`` are skipped
    - when ``usage`` is set, chunks carrying invocation metrics report usage
      and produce no text
    - chunks whose output has a ``stop_reason`` are skipped
    - every other chunk yields ``outputs[0]["text"]`` when it is a string

    Metrics without both token counts report nothing.

    Each metrics chunk triggers its own usage report. The chunk source is
    closed when this generator finishes or is closed early.
    """
    try:
        async for data in chunks:
            chunk = decode_chunk(data, provider)
            output = first_output(chunk)
            if output is None:
                logger.debug("Skipping stream chunk without outputs")
                continue
            if usage is not None and chunk.get(METRICS_KEY):
                record = metrics_usage(chunk[METRICS_KEY])
                if record is None:
                    logger.warning("Skipping usage report for metrics without token counts")
                else:
                    await report_usage(usage, record)
                continue
            if output.get("stop_reason"):
                continue
            text = output.get("text")
            if not isinstance(text, str):
                logger.debug("Skipping stream chunk without text")
                continue
            yield text
    finally:
        aclose = getattr(chunks, "aclose", None)
        if aclose is not None:
            await aclose()


__all__ = [
    "METRICS_KEY",
    "first_output",
    "extract_text",
    "estimate_usage",
    "metrics_usage",
    "report_usage",
    "decode_chunk",
    "stream_response",
]
