"""chatgate - one canonical chat interface over many LLM providers."""

__version__ = "0.1.0"

from .entities import (
    BotReply,
    ContentPart,
    GenericConfig,
    GenericOptions,
    GlobalSettings,
    Message,
    Providers,
    ProxySetting,
    Role,
)
from .models import resolve_client
from .services.chat_controller import ChatController, ChatOutcome, ChatRequest, ChatState

__all__ = [
    "BotReply",
    "ContentPart",
    "GenericConfig",
    "GenericOptions",
    "GlobalSettings",
    "Message",
    "Providers",
    "ProxySetting",
    "Role",
    "resolve_client",
    "ChatController",
    "ChatOutcome",
    "ChatRequest",
    "ChatState",
]
