"""
Pytest configuration and fixtures for unillm tests.
"""
import json

import pytest

from unillm import config


def encode(payload):
    """Encode a payload the way Bedrock delivers stream chunk bytes."""
    return json.dumps(payload).encode("utf-8")


def text_chunk(text):
    return encode({"outputs": [{"text": text, "stop_reason": None}]})


def stop_chunk(reason="stop"):
    return encode({"outputs": [{"text": "", "stop_reason": reason}]})


def metrics_chunk(prompt_tokens, completion_tokens, text=""):
    return encode({
        "outputs": [{"text": text, "stop_reason": "stop"}],
        "amazon-bedrock-invocationMetrics": {
            "inputTokenCount": prompt_tokens,
            "outputTokenCount": completion_tokens,
            "invocationLatency": 412,
            "firstByteLatency": 180,
        },
    })


def malformed_chunk():
    return encode({"type": "ping"})


async def aiter_chunks(chunks):
    for chunk in chunks:
        yield chunk


class FakeTransport:
    """Stands in for BedrockTransport and records what it was sent."""

    def __init__(self, payload=None, chunks=()):
        self.payload = payload
        self.chunks = list(chunks)
        self.calls = []
        self.pulled = 0
        self.closed = False

    async def invoke(self, model_id, body):
        self.calls.append((model_id, body))
        return self.payload

    async def invoke_stream(self, model_id, body):
        self.calls.append((model_id, body))
        try:
            for chunk in self.chunks:
                self.pulled += 1
                yield chunk
        finally:
            self.closed = True


class UsageRecorder:
    """Async usage callback that remembers every record it receives."""

    def __init__(self):
        self.records = []

    async def __call__(self, record):
        self.records.append(record)


@pytest.fixture(autouse=True)
def clean_config(monkeypatch):
    """Reset cached config and strip environment overrides between tests."""
    for name in ("UNILLM_CONFIG", "UNILLM_DEFAULT_SERVICE", "BEDROCK_MODEL",
                 "UNILLM_BEDROCK_MISTRAL_MODEL", "UNILLM_ANTHROPIC_MODEL"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(config, "_CONFIG_CACHE", None)
    yield
    config._CONFIG_CACHE = None


@pytest.fixture
def mock_env_vars(monkeypatch):
    """Mock environment variables for testing."""
    monkeypatch.setenv("ANTHROPIC_API_KEY", "test-anthropic-key")
    monkeypatch.setenv("AWS_REGION", "us-east-1")


@pytest.fixture
def usage_recorder():
    return UsageRecorder()


@pytest.fixture
def bedrock_config():
    return {
        "type": "bedrock-mistral",
        "region_env": "AWS_REGION",
        "models": {"default": "mistral.mixtral-8x7b-instruct-v0:1"},
    }


@pytest.fixture
def anthropic_config():
    return {
        "type": "anthropic",
        "api_key_env": "ANTHROPIC_API_KEY",
        "max_tokens": 1024,
        "models": {"default": "claude-3-opus-20240229"},
    }


@pytest.fixture
def conversation():
    return [
        {"role": "user", "content": "my favorite color is blue"},
        {"role": "assistant", "content": "My favorite color is blue as well."},
        {"role": "user", "content": "be concise. what is my favorite color?"},
    ]
