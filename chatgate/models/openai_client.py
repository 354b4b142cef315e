"""OpenAI-compatible chat clients (OpenAI, Custom, Azure, OpenRouter, DeepSeek, xAI)."""

import logging
from typing import Any, Dict, Iterator, List, Optional

import requests

from ..entities.messages import ContentType, Message, Role
from ..entities.options import AzureOptions, GenericOptions, GlobalSettings, OpenAIOptions
from ..entities.providers import Providers
from ..entities.replies import BotReply, RemoteModel, WireRequest
from ..streams.decoders import decode_openai_stream, openai_usage_reply
from ..utils.content_cache import ContentCache, resolve_image_data_url
from ..utils.exceptions import EmptyChoicesError, EmptyMessageError, UnsupportedProviderError
from .base import JSON_HEADERS, BaseChatClient

logger = logging.getLogger(__name__)

OPENAI_API_BASE = "https://api.openai.com/v1"
OPENROUTER_API_BASE = "https://openrouter.ai/api/v1"
DEEPSEEK_API_BASE = "https://api.deepseek.com"
XAI_API_BASE = "https://api.x.ai"

ROLE_NAMES = {Role.USER: "user", Role.BOT: "assistant", Role.SYSTEM: "system"}


class OpenAIClient(BaseChatClient):
    """Client for the OpenAI chat completions API."""

    provider = Providers.OPENAI
    options_cls = OpenAIOptions
    default_endpoint = OPENAI_API_BASE
    chat_path = "/chat/completions"
    models_path = "/models"
    # Ask for the trailing usage chunk when streaming
    include_usage = True

    def __init__(
        self,
        session: requests.Session,
        api_key: str,
        model: Optional[str] = None,
        endpoint: Optional[str] = None,
        org_id: Optional[str] = None,
        content_cache: Optional[ContentCache] = None,
    ):
        super().__init__(session, model=model, content_cache=content_cache)
        self.api_key = api_key
        self.endpoint = (endpoint or self.default_endpoint).rstrip("/")
        self.org_id = org_id

        logger.info(f"Initialized {type(self).__name__} with endpoint: {self.endpoint}")

    def _headers(self) -> Dict[str, str]:
        headers = dict(JSON_HEADERS)
        headers["Authorization"] = f"Bearer {self.api_key}"
        if self.org_id:
            headers["OpenAI-Organization"] = self.org_id
        return headers

    def _chat_url(self) -> str:
        return f"{self.endpoint}{self.chat_path}"

    def _chat_params(self) -> Dict[str, str]:
        return {}

    def convert_message(self, message: Message) -> Dict[str, Any]:
        role = ROLE_NAMES[message.role]
        if message.role == Role.SYSTEM:
            return {"role": role, "content": message.joined_text()}

        content = []
        for part in message.content:
            if part.type == ContentType.TEXT:
                content.append({"type": "text", "text": part.data})
            else:
                url = resolve_image_data_url(self.content_cache, part.data, part.mimetype)
                content.append({"type": "image_url", "image_url": {"url": url}})
        return {"role": role, "content": content}

    def _model_field(self) -> Dict[str, str]:
        return {"model": self._require_model()}

    def build_request(
        self,
        messages: List[Message],
        options: GenericOptions,
        settings: GlobalSettings,
        stream: Optional[bool] = None,
    ) -> WireRequest:
        opts = self.parse_options(options)
        body: Dict[str, Any] = self._model_field()
        stream = opts.stream if stream is None else stream

        body.update({
            "messages": [self.convert_message(m) for m in messages],
            "frequency_penalty": opts.frequency_penalty,
            "max_tokens": opts.resolve_max_tokens(settings),
            "presence_penalty": opts.presence_penalty,
            "temperature": opts.temperature,
            "top_p": opts.top_p,
            "stream": stream,
        })
        if opts.user:
            body["user"] = opts.user
        if stream and self.include_usage:
            body["stream_options"] = {"include_usage": True}

        return WireRequest(
            url=self._chat_url(),
            headers=self._headers(),
            params=self._chat_params(),
            body=body,
        )

    def parse_reply(self, data: Dict[str, Any]) -> BotReply:
        choices = data.get("choices") or []
        if not choices:
            raise EmptyChoicesError()

        content = (choices[0].get("message") or {}).get("content")
        if not content:
            raise EmptyMessageError()

        usage = openai_usage_reply(data.get("usage"))
        return usage.model_copy(update={"message": content})

    def decode_stream(self, lines) -> Iterator[BotReply]:
        return decode_openai_stream(lines)

    def models_request(self) -> WireRequest:
        return WireRequest(method="GET", url=f"{self.endpoint}{self.models_path}", headers=self._headers())

    def parse_models(self, data: Dict[str, Any]) -> List[RemoteModel]:
        return [RemoteModel(id=m["id"]) for m in data.get("data") or [] if m.get("id")]


class CustomClient(OpenAIClient):
    """Any OpenAI-compatible endpoint."""

    provider = Providers.CUSTOM
    include_usage = False


class OpenrouterClient(OpenAIClient):
    provider = Providers.OPENROUTER
    default_endpoint = OPENROUTER_API_BASE
    include_usage = False


class DeepseekClient(OpenAIClient):
    provider = Providers.DEEPSEEK
    default_endpoint = DEEPSEEK_API_BASE


class XaiClient(OpenAIClient):
    provider = Providers.XAI
    default_endpoint = XAI_API_BASE
    chat_path = "/v1/chat/completions"
    models_path = "/v1/models"


class AzureClient(OpenAIClient):
    """
    Client for Azure OpenAI deployments.

    The model is implied by the deployment, so the body carries none.
    """

    provider = Providers.AZURE
    options_cls = AzureOptions

    def __init__(
        self,
        session: requests.Session,
        api_key: str,
        endpoint: str,
        api_version: str,
        deployment_id: str,
        content_cache: Optional[ContentCache] = None,
    ):
        self.api_version = api_version
        self.deployment_id = deployment_id
        super().__init__(
            session,
            api_key=api_key,
            model=deployment_id,
            endpoint=endpoint,
            content_cache=content_cache,
        )

    def _headers(self) -> Dict[str, str]:
        headers = dict(JSON_HEADERS)
        headers["api-key"] = self.api_key
        return headers

    def _chat_url(self) -> str:
        return f"{self.endpoint}/openai/deployments/{self.deployment_id}/chat/completions"

    def _chat_params(self) -> Dict[str, str]:
        return {"api-version": self.api_version}

    def _model_field(self) -> Dict[str, str]:
        return {}

    def models_request(self) -> WireRequest:
        raise UnsupportedProviderError(self.provider.value, operation="Model listing")
