"""Prompt templating for completion-style providers.

Completion endpoints such as Bedrock Mistral take a single prompt string
rather than a message list. This module turns a conversation into that string:

1. ``normalize_messages`` rewrites ``system`` messages into a
   ``user``/``assistant("ok")`` exchange and rejects unknown roles.
2. A ``PromptTemplate`` renders the normalized list.

The default template is ``MistralInstructTemplate``, written as plain Python.
Callers can swap in any object with a ``render(messages)`` method, a Jinja2
chat template string (the Hugging Face ``tokenizer_config.json`` convention,
wrapped in ``ChatTemplate``), or bypass templating entirely with a
``make_prompt(messages, options)`` function.
"""

from typing import Any, Dict, List, Protocol, Sequence, Union, runtime_checkable

from jinja2 import TemplateError
from jinja2.sandbox import ImmutableSandboxedEnvironment

from .errors import ConfigurationError, InvalidRoleError, TemplateViolationError
from .schema import ChatMessage

BOS_TOKEN = "<s>"
EOS_TOKEN = "</s>"

SYSTEM_ACKNOWLEDGEMENT = "ok"

ALTERNATION_ERROR = "Conversation roles must alternate user/assistant/user/assistant/..."
ROLE_ERROR = "Only user and assistant roles are supported!"

# Mistral instruct chat template, as published with the model's tokenizer config.
MISTRAL_CHAT_TEMPLATE = (
    "{{ bos_token }}"
    "{% for message in messages %}"
    "{% if (message['role'] == 'user') != (loop.index0 % 2 == 0) %}"
    "{{ raise_exception('" + ALTERNATION_ERROR + "') }}"
    "{% endif %}"
    "{% if message['role'] == 'user' %}"
    "{{ ' [INST] ' + message['content'] + ' [/INST]' }}"
    "{% elif message['role'] == 'assistant' %}"
    "{{ ' ' + message['content'] + eos_token}}"
    "{% else %}"
    "{{ raise_exception('" + ROLE_ERROR + "') }}"
    "{% endif %}"
    "{% endfor %}"
)


@runtime_checkable
class PromptTemplate(Protocol):
    """Anything that can render a normalized message list into a prompt."""

    def render(self, messages: Sequence[ChatMessage]) -> str:
        ...


def normalize_messages(messages: Sequence[ChatMessage]) -> List[Dict[str, str]]:
    """Rewrite system messages into a user/assistant exchange.

    Each ``system`` message becomes ``{"role": "user", "content": ...}``
    followed by ``{"role": "assistant", "content": "ok"}`` at the same
    position. The input list is left untouched.

    Raises:
        InvalidRoleError: If a message has a role other than system, user
            or assistant.
    """
    normalized = []
    for message in messages:
        role = message["role"]
        if role == "system":
            normalized.append({"role": "user", "content": message["content"]})
            normalized.append({"role": "assistant", "content": SYSTEM_ACKNOWLEDGEMENT})
        elif role in ("user", "assistant"):
            normalized.append({"role": role, "content": message["content"]})
        else:
            raise InvalidRoleError(role, ROLE_ERROR)
    return normalized


class MistralInstructTemplate:
    """Mistral ``[INST]`` formatting with strict user/assistant alternation."""

    def __init__(self, bos_token: str = BOS_TOKEN, eos_token: str = EOS_TOKEN):
        self.bos_token = bos_token
        self.eos_token = eos_token

    def render(self, messages: Sequence[ChatMessage]) -> str:
        parts = [self.bos_token]
        for index, message in enumerate(messages):
            role = message["role"]
            if (role == "user") != (index % 2 == 0):
                raise TemplateViolationError(ALTERNATION_ERROR)
            if role == "user":
                parts.append(" [INST] " + message["content"] + " [/INST]")
            elif role == "assistant":
                parts.append(" " + message["content"] + self.eos_token)
            else:
                raise TemplateViolationError(ROLE_ERROR)
        return "".join(parts)


def _raise_exception(message):
    raise TemplateViolationError(message)


_environment = ImmutableSandboxedEnvironment(
    autoescape=False,
    trim_blocks=True,
    lstrip_blocks=True,
)


class ChatTemplate:
    """A Jinja2 chat template rendered in a sandbox.

    The template sees ``bos_token``, ``eos_token``, ``messages`` and a
    ``raise_exception(msg)`` callable that aborts rendering with
    ``TemplateViolationError(msg)``.
    """

    def __init__(self, source: str, bos_token: str = BOS_TOKEN, eos_token: str = EOS_TOKEN):
        self.source = source
        self.bos_token = bos_token
        self.eos_token = eos_token
        try:
            self._template = _environment.from_string(source)
        except TemplateError as e:
            raise ConfigurationError(f"Invalid prompt template: {e}") from e

    def render(self, messages: Sequence[ChatMessage]) -> str:
        context = {
            "bos_token": self.bos_token,
            "eos_token": self.eos_token,
            "messages": list(messages),
            "raise_exception": _raise_exception,
        }
        try:
            return self._template.render(**context)
        except TemplateViolationError:
            raise
        except TemplateError as e:
            raise ConfigurationError(f"Prompt template failed to render: {e}") from e
        except Exception as e:
            raise ConfigurationError(
                f"Prompt template failed to render: {type(e).__name__}: {e}"
            ) from e


DEFAULT_TEMPLATE = MistralInstructTemplate()


def as_template(template: Union[str, PromptTemplate, None]) -> PromptTemplate:
    """Coerce a template option into a ``PromptTemplate``."""
    if template is None:
        return DEFAULT_TEMPLATE
    if isinstance(template, str):
        return ChatTemplate(template)
    if isinstance(template, PromptTemplate):
        return template
    raise ConfigurationError(
        f"prompt_template must be a string or have a render() method, got {type(template).__name__}"
    )


def render_prompt(
    messages: Sequence[ChatMessage],
    template: Union[str, PromptTemplate, None] = None,
) -> str:
    """Normalize ``messages`` and render them with ``template``."""
    return as_template(template).render(normalize_messages(messages))


def build_prompt(messages: Sequence[ChatMessage], options: Dict[str, Any]) -> str:
    """Build the prompt for a request.

    ``make_prompt`` wins over ``prompt_template``, which wins over the
    default Mistral template. ``make_prompt`` receives the raw message list
    and the full options dict, and its return value is used verbatim.
    """
    make_prompt = options.get("make_prompt")
    if make_prompt is not None:
        return make_prompt(messages, options)
    return render_prompt(messages, options.get("prompt_template"))


__all__ = [
    "BOS_TOKEN",
    "EOS_TOKEN",
    "MISTRAL_CHAT_TEMPLATE",
    "PromptTemplate",
    "MistralInstructTemplate",
    "ChatTemplate",
    "DEFAULT_TEMPLATE",
    "normalize_messages",
    "as_template",
    "render_prompt",
    "build_prompt",
]
