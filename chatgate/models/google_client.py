"""Google Gemini ``generateContent`` client."""

import logging
from typing import Any, Dict, Iterator, List, Optional

import requests

from ..entities.messages import ContentType, Message, Role
from ..entities.options import GenericOptions, GlobalSettings, GoogleOptions
from ..entities.providers import Providers
from ..entities.replies import BotReply, RemoteModel, WireRequest
from ..streams.decoders import decode_google_stream, google_reply
from ..utils.content_cache import ContentCache, resolve_image_base64
from ..utils.exceptions import EmptyChoicesError, EmptyMessageError
from .base import JSON_HEADERS, BaseChatClient

logger = logging.getLogger(__name__)

GOOGLE_API_BASE = "https://generativelanguage.googleapis.com"
GOOGLE_API_VERSION = "v1beta"
DEFAULT_IMAGE_MIMETYPE = "image/jpeg"

MODEL_PREFIX = "models/"


class GoogleClient(BaseChatClient):
    """Client for the Gemini API; the API key travels as the ``key`` query parameter."""

    provider = Providers.GOOGLE
    options_cls = GoogleOptions

    def __init__(
        self,
        session: requests.Session,
        api_key: str,
        model: str,
        api_version: Optional[str] = None,
        endpoint: Optional[str] = None,
        content_cache: Optional[ContentCache] = None,
    ):
        if model.startswith(MODEL_PREFIX):
            model = model[len(MODEL_PREFIX):]
        super().__init__(session, model=model, content_cache=content_cache)
        self.api_key = api_key
        self.api_version = api_version or GOOGLE_API_VERSION
        self.endpoint = (endpoint or GOOGLE_API_BASE).rstrip("/")

        logger.info(f"Initialized GoogleClient with endpoint: {self.endpoint}/{self.api_version}")

    @property
    def base_url(self) -> str:
        return f"{self.endpoint}/{self.api_version}"

    def _parts(self, message: Message) -> List[Dict[str, Any]]:
        parts = []
        for part in message.content:
            if part.type == ContentType.TEXT:
                parts.append({"text": part.data})
            else:
                mimetype, data = resolve_image_base64(self.content_cache, part.data, part.mimetype)
                parts.append({
                    "inlineData": {"mimeType": mimetype or DEFAULT_IMAGE_MIMETYPE, "data": data}
                })
        return parts

    def build_request(
        self,
        messages: List[Message],
        options: GenericOptions,
        settings: GlobalSettings,
        stream: Optional[bool] = None,
    ) -> WireRequest:
        opts = self.parse_options(options)
        stream = opts.stream if stream is None else stream

        contents = []
        system_parts: List[Dict[str, Any]] = []
        for message in messages:
            if message.role == Role.SYSTEM:
                system_parts.extend(self._parts(message))
                continue
            role = "user" if message.role == Role.USER else "model"
            contents.append({"role": role, "parts": self._parts(message)})

        body: Dict[str, Any] = {"contents": contents}
        if system_parts:
            body["systemInstruction"] = {"parts": system_parts}
        body["generationConfig"] = {
            "maxOutputTokens": opts.resolve_max_tokens(settings),
            "temperature": opts.temperature,
            "topP": opts.top_p,
        }

        params = {"key": self.api_key}
        if stream:
            operation = "streamGenerateContent"
            params["alt"] = "sse"
        else:
            operation = "generateContent"

        return WireRequest(
            url=f"{self.base_url}/models/{self.model}:{operation}",
            headers=dict(JSON_HEADERS),
            params=params,
            body=body,
        )

    def parse_reply(self, data: Dict[str, Any]) -> BotReply:
        if not data.get("candidates"):
            raise EmptyChoicesError()
        reply = google_reply(data)
        if not reply.message:
            raise EmptyMessageError()
        return reply

    def decode_stream(self, lines) -> Iterator[BotReply]:
        return decode_google_stream(lines)

    def models_request(self) -> WireRequest:
        return WireRequest(method="GET", url=f"{self.base_url}/models", params={"key": self.api_key})

    def parse_models(self, data: Dict[str, Any]) -> List[RemoteModel]:
        models = []
        for m in data.get("models") or []:
            name = m.get("name") or ""
            if name.startswith(MODEL_PREFIX):
                name = name[len(MODEL_PREFIX):]
            if name:
                models.append(RemoteModel(id=name))
        return models
