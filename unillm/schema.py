"""Message and usage shapes shared by templates, providers and the client."""

from typing import Awaitable, Callable, Literal, TypedDict, Union

Role = Literal["system", "user", "assistant"]

ROLES = ("system", "user", "assistant")


class ChatMessage(TypedDict):
    """A single role-tagged chat message."""

    role: Role
    content: str


class UsageRecord(TypedDict):
    """Token counts for one request, measured or estimated."""

    prompt_tokens: int
    completion_tokens: int


UsageCallback = Callable[[UsageRecord], Union[Awaitable[None], None]]


__all__ = ["Role", "ROLES", "ChatMessage", "UsageRecord", "UsageCallback"]
