"""
Tests for prompt templating.
"""
import pytest

from unillm.errors import ConfigurationError, InvalidRoleError, TemplateViolationError
from unillm.prompts import (
    ALTERNATION_ERROR,
    ROLE_ERROR,
    MISTRAL_CHAT_TEMPLATE,
    ChatTemplate,
    MistralInstructTemplate,
    build_prompt,
    normalize_messages,
    render_prompt,
)


def test_single_user_message():
    prompt = render_prompt([{"role": "user", "content": "the color of the sky is"}])
    assert prompt == "<s> [INST] the color of the sky is [/INST]"


def test_existing_chat_renders_each_turn_in_order(conversation):
    prompt = render_prompt(conversation)
    assert prompt == (
        "<s>"
        " [INST] my favorite color is blue [/INST]"
        " My favorite color is blue as well.</s>"
        " [INST] be concise. what is my favorite color? [/INST]"
    )


def test_system_message_becomes_user_ok_pair():
    messages = [
        {"role": "system", "content": "Be concise."},
        {"role": "user", "content": "hi"},
    ]
    assert normalize_messages(messages) == [
        {"role": "user", "content": "Be concise."},
        {"role": "assistant", "content": "ok"},
        {"role": "user", "content": "hi"},
    ]
    assert render_prompt(messages) == "<s> [INST] Be concise. [/INST] ok</s> [INST] hi [/INST]"


@pytest.mark.parametrize("messages, expected", [
    (
        # last position
        [{"role": "user", "content": "a"}, {"role": "assistant", "content": "b"},
         {"role": "system", "content": "s"}],
        ["user:a", "assistant:b", "user:s", "assistant:ok"],
    ),
    (
        # middle position, several system messages
        [{"role": "system", "content": "s1"}, {"role": "user", "content": "a"},
         {"role": "assistant", "content": "b"}, {"role": "system", "content": "s2"},
         {"role": "user", "content": "c"}],
        ["user:s1", "assistant:ok", "user:a", "assistant:b",
         "user:s2", "assistant:ok", "user:c"],
    ),
])
def test_system_messages_rewritten_at_any_position(messages, expected):
    normalized = normalize_messages(messages)
    assert [f"{m['role']}:{m['content']}" for m in normalized] == expected


def test_normalize_does_not_mutate_input():
    messages = [{"role": "system", "content": "rules"}]
    normalize_messages(messages)
    assert messages == [{"role": "system", "content": "rules"}]


def test_unknown_role_rejected_before_rendering():
    class ExplodingTemplate:
        def render(self, messages):
            raise AssertionError("template should not be reached")

    with pytest.raises(InvalidRoleError) as exc_info:
        render_prompt(
            [{"role": "user", "content": "hi"}, {"role": "tool", "content": "x"}],
            ExplodingTemplate(),
        )
    assert exc_info.value.role == "tool"


def test_two_user_messages_violate_alternation():
    with pytest.raises(TemplateViolationError) as exc_info:
        render_prompt([
            {"role": "user", "content": "one"},
            {"role": "user", "content": "two"},
        ])
    assert str(exc_info.value) == ALTERNATION_ERROR


def test_assistant_first_violates_alternation():
    with pytest.raises(TemplateViolationError):
        render_prompt([{"role": "assistant", "content": "hello"}])


def test_template_rejects_roles_it_does_not_know():
    # Bypass normalization to reach the template's own role check
    template = MistralInstructTemplate()
    with pytest.raises(TemplateViolationError) as exc_info:
        template.render([
            {"role": "user", "content": "a"},
            {"role": "tool", "content": "b"},
        ])
    assert str(exc_info.value) == ROLE_ERROR


@pytest.mark.parametrize("messages", [
    [{"role": "user", "content": "hi"}],
    [{"role": "system", "content": "Be brief."}, {"role": "user", "content": "hi"}],
    [{"role": "user", "content": "a"}, {"role": "assistant", "content": "b"},
     {"role": "user", "content": "c"}, {"role": "assistant", "content": "d"}],
])
def test_jinja_template_matches_builtin_template(messages):
    assert render_prompt(messages, MISTRAL_CHAT_TEMPLATE) == render_prompt(messages)


def test_jinja_template_raise_exception_becomes_template_violation():
    with pytest.raises(TemplateViolationError) as exc_info:
        render_prompt(
            [{"role": "user", "content": "a"}, {"role": "user", "content": "b"}],
            MISTRAL_CHAT_TEMPLATE,
        )
    assert str(exc_info.value) == ALTERNATION_ERROR


def test_custom_template_string():
    template = "{% for m in messages %}{{ m['role'] }}={{ m['content'] }};{% endfor %}{{ eos_token }}"
    prompt = render_prompt(
        [{"role": "system", "content": "s"}, {"role": "user", "content": "u"}],
        template,
    )
    assert prompt == "user=s;assistant=ok;user=u;</s>"


def test_invalid_template_syntax_is_configuration_error():
    with pytest.raises(ConfigurationError):
        ChatTemplate("{% for message in messages %}")


def test_make_prompt_bypasses_normalization_and_template():
    seen = {}

    def make_prompt(messages, options):
        seen["messages"] = messages
        seen["options"] = options
        return "RAW:" + "|".join(m["role"] for m in messages)

    messages = [{"role": "system", "content": "s"}, {"role": "user", "content": "u"}]
    options = {"make_prompt": make_prompt, "prompt_template": "ignored", "temperature": 0}

    assert build_prompt(messages, options) == "RAW:system|user"
    assert seen["messages"] is messages
    assert seen["options"] is options


def test_prompt_template_option_used_when_no_make_prompt():
    prompt = build_prompt(
        [{"role": "user", "content": "hi"}],
        {"prompt_template": "{{ bos_token }}{{ messages[0]['content'] }}"},
    )
    assert prompt == "<s>hi"


def test_prompt_template_object_option():
    class Upper:
        def render(self, messages):
            return " ".join(m["content"].upper() for m in messages)

    assert build_prompt([{"role": "user", "content": "hi"}], {"prompt_template": Upper()}) == "HI"


@pytest.mark.parametrize("template, cause", [
    ("{{ 1 / 0 }}", ZeroDivisionError),
    ("{{ 1 + messages[0]['content'] }}", TypeError),
])
def test_template_runtime_errors_are_configuration_errors(template, cause):
    with pytest.raises(ConfigurationError) as exc_info:
        render_prompt([{"role": "user", "content": "hi"}], template)
    assert isinstance(exc_info.value.__cause__, cause)
