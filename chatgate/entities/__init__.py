"""Canonical data model shared by all provider clients."""

from .config import (
    GenericConfig,
    ProxySetting,
    RawAzureConfig,
    RawClaudeConfig,
    RawDeepseekConfig,
    RawGoogleConfig,
    RawOllamaConfig,
    RawOpenAIConfig,
    RawXaiConfig,
)
from .messages import ContentPart, ContentType, Message, Role
from .options import (
    DEFAULT_CONTEXT_LENGTH,
    DEFAULT_MAX_TOKENS,
    AzureOptions,
    ClaudeOptions,
    GenericOptions,
    GlobalSettings,
    GoogleOptions,
    OllamaOptions,
    OpenAIOptions,
    ProviderOptions,
    parse_options,
)
from .providers import SUPPORTED_PROVIDERS, Providers
from .replies import BotReply, RemoteModel, WireRequest

__all__ = [
    "GenericConfig",
    "ProxySetting",
    "RawAzureConfig",
    "RawClaudeConfig",
    "RawDeepseekConfig",
    "RawGoogleConfig",
    "RawOllamaConfig",
    "RawOpenAIConfig",
    "RawXaiConfig",
    "ContentPart",
    "ContentType",
    "Message",
    "Role",
    "DEFAULT_CONTEXT_LENGTH",
    "DEFAULT_MAX_TOKENS",
    "AzureOptions",
    "ClaudeOptions",
    "GenericOptions",
    "GlobalSettings",
    "GoogleOptions",
    "OllamaOptions",
    "OpenAIOptions",
    "ProviderOptions",
    "parse_options",
    "SUPPORTED_PROVIDERS",
    "Providers",
    "BotReply",
    "RemoteModel",
    "WireRequest",
]
