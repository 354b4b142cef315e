"""Unit tests for the canonical data model."""

import pytest

from chatgate.entities import (
    AzureOptions,
    BotReply,
    ClaudeOptions,
    ContentPart,
    ContentType,
    GenericOptions,
    GlobalSettings,
    GoogleOptions,
    Message,
    OllamaOptions,
    OpenAIOptions,
    Providers,
    Role,
    WireRequest,
    parse_options,
)
from chatgate.utils.exceptions import InvalidRoleError, OptionsParseError


class TestProviders:
    """Test provider parsing."""

    @pytest.mark.parametrize("value,expected", [
        ("OpenAI", Providers.OPENAI),
        ("openai", Providers.OPENAI),
        ("AZURE", Providers.AZURE),
        ("claude", Providers.CLAUDE),
        ("Ollama", Providers.OLLAMA),
        ("openrouter", Providers.OPENROUTER),
        ("DeepSeek", Providers.DEEPSEEK),
        ("xai", Providers.XAI),
        ("google", Providers.GOOGLE),
        ("custom", Providers.CUSTOM),
    ])
    def test_parse_case_insensitive(self, value, expected):
        assert Providers.parse(value) == expected

    @pytest.mark.parametrize("value", ["", "mistral", "unsupported", None])
    def test_unknown_maps_to_unsupported(self, value):
        assert Providers.parse(value) == Providers.UNSUPPORTED

    def test_requires_model(self):
        assert Providers.OPENAI.requires_model
        assert Providers.OLLAMA.requires_model
        assert not Providers.AZURE.requires_model
        assert not Providers.GOOGLE.requires_model


class TestRole:
    """Test role conversion from stored values."""

    def test_from_int(self):
        assert Role.from_value(0) == Role.USER
        assert Role.from_value(1) == Role.BOT
        assert Role.from_value(2) == Role.SYSTEM

    def test_from_name(self):
        assert Role.from_value("assistant") == Role.BOT
        assert Role.from_value("System") == Role.SYSTEM

    @pytest.mark.parametrize("value", [3, -1, "narrator", True])
    def test_unknown_role_raises(self, value):
        with pytest.raises(InvalidRoleError):
            Role.from_value(value)

    def test_message_validates_stored_role(self):
        message = Message(role=1, content=[ContentPart.text("hi")])
        assert message.role == Role.BOT

        with pytest.raises(InvalidRoleError):
            Message(role=7, content=[])


class TestMessage:
    """Test message helpers."""

    def test_text_helpers(self):
        message = Message(role=Role.USER, content=[
            ContentPart.text("first"),
            ContentPart.image("cat.png", "image/png"),
            ContentPart.text("second"),
        ])
        assert message.get_text() == "first"
        assert message.joined_text() == "first\nsecond"
        assert [p.data for p in message.images] == ["cat.png"]
        assert message.images[0].type == ContentType.IMAGE

    def test_message_without_text(self):
        message = Message(role=Role.USER, content=[ContentPart.image("cat.png")])
        assert message.get_text() is None
        assert message.joined_text() == ""


class TestOptions:
    """Test option parsing and documented defaults."""

    @pytest.mark.parametrize("options_cls", [OpenAIOptions, AzureOptions, GoogleOptions, OllamaOptions])
    def test_empty_options_defaults(self, options_cls):
        opts = parse_options(GenericOptions(provider="x", options="{}"), options_cls)
        assert opts.temperature == 1.0
        assert opts.top_p == 1.0
        assert opts.stream is False
        assert opts.context_length is None

    def test_openai_penalty_defaults(self):
        opts = parse_options(GenericOptions(provider="OpenAI", options="{}"), OpenAIOptions)
        assert opts.frequency_penalty == 0.0
        assert opts.presence_penalty == 0.0
        assert opts.max_tokens is None
        assert opts.user is None

    def test_claude_defaults(self):
        opts = parse_options(GenericOptions(provider="Claude", options="{}"), ClaudeOptions)
        assert opts.temperature == 0.5
        assert opts.top_p == 1.0
        assert opts.stream is False
        assert opts.system is None

    def test_empty_string_treated_as_empty_object(self):
        opts = parse_options(GenericOptions(provider="OpenAI", options=""), OpenAIOptions)
        assert opts.temperature == 1.0

    def test_camel_case_keys(self):
        raw = '{"maxTokens": 99, "topP": 0.5, "frequencyPenalty": 1.5, "contextLength": 4}'
        opts = parse_options(GenericOptions(provider="OpenAI", options=raw), OpenAIOptions)
        assert opts.max_tokens == 99
        assert opts.top_p == 0.5
        assert opts.frequency_penalty == 1.5
        assert opts.context_length == 4

    def test_ollama_camel_case_keys(self):
        raw = '{"numCtx": 4096, "numPredict": -1}'
        opts = parse_options(GenericOptions(provider="Ollama", options=raw), OllamaOptions)
        assert opts.num_ctx == 4096
        assert opts.num_predict == -1

    @pytest.mark.parametrize("raw", ["{not json", '{"temperature": "hot"}', "[1, 2]"])
    def test_malformed_options_raise(self, raw):
        with pytest.raises(OptionsParseError) as exc_info:
            parse_options(GenericOptions(provider="OpenAI", options=raw), OpenAIOptions)
        assert exc_info.value.raw_options == raw
        assert raw in str(exc_info.value)

    def test_resolve_max_tokens(self):
        settings = GlobalSettings(max_tokens=512)
        assert OpenAIOptions().resolve_max_tokens(settings) == 512
        assert OpenAIOptions(max_tokens=10).resolve_max_tokens(settings) == 10
        assert OllamaOptions().resolve_max_tokens(settings) == 512


class TestReplies:
    """Test reply and wire request models."""

    def test_usage_absent_stays_none(self):
        reply = BotReply(message="hi")
        assert reply.prompt_tokens is None
        assert reply.total_tokens is None
        assert not reply.has_usage

    def test_has_usage(self):
        assert BotReply(completion_tokens=0).has_usage

    def test_wire_request_bytes_are_compact_and_stable(self):
        request = WireRequest(url="http://x", body={"b": 1, "a": "é", "stream": True})
        assert request.to_bytes() == '{"b":1,"a":"é","stream":true}'.encode("utf-8")
        assert request.stream
        assert request.method == "POST"
