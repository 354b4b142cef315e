"""Ollama model client using the local/remote Ollama HTTP API."""

import logging
from typing import Any, Dict, Iterator, List, Optional

import requests

from ..entities.messages import ContentType, Message, Role
from ..entities.options import GenericOptions, GlobalSettings, OllamaOptions
from ..entities.providers import Providers
from ..entities.replies import BotReply, RemoteModel, WireRequest
from ..streams.decoders import decode_ollama_stream, ollama_reply
from ..utils.content_cache import ContentCache, resolve_image_base64
from ..utils.exceptions import EmptyChoicesError, EmptyMessageError
from .base import JSON_HEADERS, BaseChatClient

logger = logging.getLogger(__name__)

OLLAMA_API_BASE = "http://localhost:11434"

ROLE_NAMES = {Role.USER: "user", Role.BOT: "assistant", Role.SYSTEM: "system"}


class OllamaClient(BaseChatClient):
    """Client for Ollama models via ``/api/chat``."""

    provider = Providers.OLLAMA
    options_cls = OllamaOptions

    def __init__(
        self,
        session: requests.Session,
        endpoint: Optional[str] = None,
        model: Optional[str] = None,
        content_cache: Optional[ContentCache] = None,
    ):
        super().__init__(session, model=model, content_cache=content_cache)
        self.endpoint = (endpoint or OLLAMA_API_BASE).rstrip("/")

        logger.info("Initialized OllamaClient with host=%s, model=%s", self.endpoint, self.model)

    def convert_message(self, message: Message) -> Dict[str, Any]:
        # Ollama takes a single content string; text parts are joined
        converted: Dict[str, Any] = {
            "role": ROLE_NAMES[message.role],
            "content": message.joined_text(),
        }
        images = [
            resolve_image_base64(self.content_cache, part.data, part.mimetype)[1]
            for part in message.content
            if part.type == ContentType.IMAGE
        ]
        if images:
            converted["images"] = images
        return converted

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

        request_options: Dict[str, Any] = {}
        if opts.num_ctx is not None:
            request_options["num_ctx"] = opts.num_ctx
        request_options["num_predict"] = (
            opts.num_predict if opts.num_predict is not None else settings.max_tokens
        )
        request_options["temperature"] = opts.temperature
        request_options["top_p"] = opts.top_p

        body = {
            "model": model,
            "messages": [self.convert_message(m) for m in messages],
            "options": request_options,
            # Ollama streams by default, so false must be explicit
            "stream": stream,
        }
        return WireRequest(url=f"{self.endpoint}/api/chat", headers=dict(JSON_HEADERS), body=body)

    def parse_reply(self, data: Dict[str, Any]) -> BotReply:
        if not data.get("message"):
            raise EmptyChoicesError()
        if not data["message"].get("content"):
            raise EmptyMessageError()
        return ollama_reply({**data, "done": True})

    def decode_stream(self, lines) -> Iterator[BotReply]:
        return decode_ollama_stream(lines)

    def models_request(self) -> WireRequest:
        return WireRequest(method="GET", url=f"{self.endpoint}/api/tags")

    def parse_models(self, data: Dict[str, Any]) -> List[RemoteModel]:
        return [RemoteModel(id=m["name"]) for m in data.get("models") or [] if m.get("name")]
