"""Per-conversation options.

Options are stored as raw JSON (``GenericOptions``) and parsed lazily into the
typed model of the provider that will receive them. Keys are camelCase in the
stored JSON; snake_case is accepted as well.
"""

from __future__ import annotations

from typing import Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel

from ..utils.exceptions import OptionsParseError

DEFAULT_MAX_TOKENS = 256
DEFAULT_CONTEXT_LENGTH = 1

T = TypeVar("T", bound="ProviderOptions")


class GenericOptions(BaseModel):
    """Stored options of one conversation."""

    provider: str
    options: str = "{}"


class GlobalSettings(BaseModel):
    """Caller-side numeric defaults."""

    max_tokens: int = DEFAULT_MAX_TOKENS
    context_length: int = DEFAULT_CONTEXT_LENGTH


class ProviderOptions(BaseModel):
    """Base for typed provider options."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    context_length: Optional[int] = None
    stream: bool = False

    def resolve_max_tokens(self, settings: GlobalSettings) -> int:
        max_tokens = getattr(self, "max_tokens", None)
        return max_tokens if max_tokens is not None else settings.max_tokens


class OpenAIOptions(ProviderOptions):
    """Options for OpenAI and OpenAI-compatible providers."""

    frequency_penalty: float = 0.0  # -2.0..2.0
    max_tokens: Optional[int] = None
    presence_penalty: float = 0.0  # -2.0..2.0
    temperature: float = 1.0  # 0..2
    top_p: float = 1.0  # 0..1
    user: Optional[str] = None


class AzureOptions(OpenAIOptions):
    """Options for Azure OpenAI deployments."""


class ClaudeOptions(ProviderOptions):
    """Options for Claude. ``system`` is sent as the top-level system prompt."""

    max_tokens: Optional[int] = None
    temperature: float = 0.5  # 0..1
    top_p: float = 1.0
    user: Optional[str] = None
    system: Optional[str] = None


class OllamaOptions(ProviderOptions):
    """Options for a local Ollama server."""

    num_ctx: Optional[int] = None
    num_predict: Optional[int] = None  # -1 infinite, -2 fill context
    temperature: float = 1.0
    top_p: float = 1.0


class GoogleOptions(ProviderOptions):
    """Options for Gemini generation config."""

    max_tokens: Optional[int] = None
    temperature: float = 1.0
    top_p: float = 1.0


def parse_options(options: GenericOptions, options_cls: Type[T]) -> T:
    """
    Parse stored options JSON into a typed options model.

    Args:
        options: Stored options
        options_cls: Typed options class of the target provider

    Returns:
        Parsed options with documented defaults filled in

    Raises:
        OptionsParseError: If the JSON is invalid or has the wrong shape
    """
    raw = options.options or "{}"
    try:
        return options_cls.model_validate_json(raw)
    except ValidationError:
        raise OptionsParseError(raw, options.provider) from None
