"""Claude Messages API client."""

import logging
from typing import Any, Dict, Iterator, List, Optional

import requests

from ..entities.messages import ContentType, Message, Role
from ..entities.options import ClaudeOptions, GenericOptions, GlobalSettings
from ..entities.providers import Providers
from ..entities.replies import BotReply, RemoteModel, WireRequest
from ..streams.decoders import decode_claude_stream
from ..utils.content_cache import ContentCache, resolve_image_base64
from ..utils.exceptions import (
    ClaudeSystemMessageUnsupportedError,
    EmptyChoicesError,
    EmptyMessageError,
)
from .base import JSON_HEADERS, BaseChatClient

logger = logging.getLogger(__name__)

CLAUDE_API_BASE = "https://api.anthropic.com/v1"
CLAUDE_API_VERSION = "2023-06-01"
DEFAULT_IMAGE_MIMETYPE = "image/jpeg"


class ClaudeClient(BaseChatClient):
    """Client for Anthropic's Claude Messages API."""

    provider = Providers.CLAUDE
    options_cls = ClaudeOptions

    def __init__(
        self,
        session: requests.Session,
        api_key: str,
        model: Optional[str] = None,
        api_version: Optional[str] = None,
        endpoint: Optional[str] = None,
        content_cache: Optional[ContentCache] = None,
    ):
        super().__init__(session, model=model, content_cache=content_cache)
        self.api_key = api_key
        self.api_version = api_version or CLAUDE_API_VERSION
        self.endpoint = (endpoint or CLAUDE_API_BASE).rstrip("/")

        logger.info(f"Initialized ClaudeClient with endpoint: {self.endpoint}")

    def _headers(self) -> Dict[str, str]:
        headers = dict(JSON_HEADERS)
        headers["x-api-key"] = self.api_key
        headers["anthropic-version"] = self.api_version
        return headers

    def convert_message(self, message: Message) -> Dict[str, Any]:
        """
        Map a canonical message to a Claude message.

        Raises:
            ClaudeSystemMessageUnsupportedError: For system-role messages
        """
        if message.role == Role.SYSTEM:
            raise ClaudeSystemMessageUnsupportedError()

        content = []
        for part in message.content:
            if part.type == ContentType.TEXT:
                content.append({"type": "text", "text": part.data})
            else:
                _, data = resolve_image_base64(self.content_cache, part.data, part.mimetype)
                content.append({
                    "type": "image",
                    "source": {
                        "type": "base64",
                        "media_type": part.mimetype or DEFAULT_IMAGE_MIMETYPE,
                        "data": data,
                    },
                })

        role = "user" if message.role == Role.USER else "assistant"
        return {"role": role, "content": content}

    def build_request(
        self,
        messages: List[Message],
        options: GenericOptions,
        settings: GlobalSettings,
        stream: Optional[bool] = None,
    ) -> WireRequest:
        opts = self.parse_options(options)
        model = self._require_model()
        stream = opts.stream if stream is None else stream

        body: Dict[str, Any] = {
            "model": model,
            "messages": [self.convert_message(m) for m in messages],
            "max_tokens": opts.resolve_max_tokens(settings),
            "stream": stream,
            "temperature": opts.temperature,
            "top_p": opts.top_p,
        }
        if opts.system:
            body["system"] = opts.system
        if opts.user:
            body["metadata"] = {"user_id": opts.user}

        return WireRequest(url=f"{self.endpoint}/messages", headers=self._headers(), body=body)

    def parse_reply(self, data: Dict[str, Any]) -> BotReply:
        content = data.get("content") or []
        if not content:
            raise EmptyChoicesError()

        text = content[0].get("text")
        if not text:
            raise EmptyMessageError()

        usage = data.get("usage") or {}
        prompt = usage.get("input_tokens")
        completion = usage.get("output_tokens")
        total = prompt + completion if prompt is not None and completion is not None else None
        return BotReply(
            message=text,
            prompt_tokens=prompt,
            completion_tokens=completion,
            total_tokens=total,
        )

    def decode_stream(self, lines) -> Iterator[BotReply]:
        return decode_claude_stream(lines)

    def models_request(self) -> WireRequest:
        return WireRequest(method="GET", url=f"{self.endpoint}/models", headers=self._headers())

    def parse_models(self, data: Dict[str, Any]) -> List[RemoteModel]:
        return [RemoteModel(id=m["id"]) for m in data.get("data") or [] if m.get("id")]
