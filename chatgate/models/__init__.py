"""Provider chat clients."""

from .base import BaseChatClient
from .claude_client import ClaudeClient
from .client_factory import ClientFactory, resolve_client
from .google_client import GoogleClient
from .ollama_client import OllamaClient
from .openai_client import (
    AzureClient,
    CustomClient,
    DeepseekClient,
    OpenAIClient,
    OpenrouterClient,
    XaiClient,
)

__all__ = [
    "BaseChatClient",
    "ClaudeClient",
    "ClientFactory",
    "resolve_client",
    "GoogleClient",
    "OllamaClient",
    "AzureClient",
    "CustomClient",
    "DeepseekClient",
    "OpenAIClient",
    "OpenrouterClient",
    "XaiClient",
]
