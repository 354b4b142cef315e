"""Canonical replies and wire-level request description."""

from __future__ import annotations

import json
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class BotReply(BaseModel):
    """Canonical reply.

    The blocking result, and also the unit of a stream where ``message`` holds
    only the incremental delta. Usage fields stay ``None`` when the provider
    did not report them.
    """

    message: str = ""
    prompt_tokens: Optional[int] = None
    completion_tokens: Optional[int] = None
    total_tokens: Optional[int] = None

    @property
    def has_usage(self) -> bool:
        return any(
            v is not None for v in (self.prompt_tokens, self.completion_tokens, self.total_tokens)
        )


class RemoteModel(BaseModel):
    """A model advertised by a provider."""

    id: str


class WireRequest(BaseModel):
    """Exact HTTP request a provider expects."""

    method: str = "POST"
    url: str
    headers: Dict[str, str] = Field(default_factory=dict)
    params: Dict[str, str] = Field(default_factory=dict)
    body: Dict[str, Any] = Field(default_factory=dict)

    @property
    def stream(self) -> bool:
        return bool(self.body.get("stream")) or self.params.get("alt") == "sse"

    def to_bytes(self) -> bytes:
        """Deterministic JSON encoding of the body."""
        return json.dumps(self.body, ensure_ascii=False, separators=(",", ":")).encode("utf-8")
