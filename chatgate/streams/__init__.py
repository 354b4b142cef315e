"""Streaming response decoding."""

from .decoders import (
    ReplyStream,
    decode_claude_stream,
    decode_google_stream,
    decode_ollama_stream,
    decode_openai_stream,
)
from .sse import SSEEvent, iter_sse_events

__all__ = [
    "ReplyStream",
    "decode_claude_stream",
    "decode_google_stream",
    "decode_ollama_stream",
    "decode_openai_stream",
    "SSEEvent",
    "iter_sse_events",
]
