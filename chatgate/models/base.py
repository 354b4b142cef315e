"""Base chat client contract shared by every provider."""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterator, List, Optional, Type

import requests

from ..entities.messages import Message
from ..entities.options import GenericOptions, GlobalSettings, ProviderOptions, parse_options
from ..entities.providers import Providers
from ..entities.replies import BotReply, RemoteModel, WireRequest
from ..services.cancellation import CancellationToken
from ..streams.decoders import ReplyStream
from ..utils.content_cache import ContentCache
from ..utils.error_handler import raise_for_upstream, upstream_call
from ..utils.exceptions import ModelNotSetError
from ..utils.http import DEFAULT_TIMEOUT, abort_session

logger = logging.getLogger(__name__)

JSON_HEADERS = {"Content-Type": "application/json"}


class BaseChatClient(ABC):
    """
    Live, authenticated handle for one provider wire protocol.

    A handle is built by ``resolve_client`` for a single gateway call and owns
    its HTTP session. Subclasses describe the wire format (``build_request``,
    ``parse_reply``, ``decode_stream``, ``models_request``, ``parse_models``);
    this class executes it.
    """

    provider: Providers = Providers.UNSUPPORTED
    options_cls: Type[ProviderOptions] = ProviderOptions

    def __init__(
        self,
        session: requests.Session,
        model: Optional[str] = None,
        content_cache: Optional[ContentCache] = None,
    ):
        self.session = session
        self.model = model
        self.content_cache = content_cache

    def parse_options(self, options: GenericOptions) -> ProviderOptions:
        return parse_options(options, self.options_cls)

    def _require_model(self) -> str:
        if self.provider.requires_model and not self.model:
            raise ModelNotSetError(self.provider.value)
        return self.model or ""

    @abstractmethod
    def build_request(
        self,
        messages: List[Message],
        options: GenericOptions,
        settings: GlobalSettings,
        stream: Optional[bool] = None,
    ) -> WireRequest:
        """
        Build the exact HTTP request for a conversation.

        Args:
            messages: Canonical messages, oldest first
            options: Stored conversation options (raw JSON)
            settings: Caller defaults for max tokens and context length
            stream: Force streaming on or off; None follows the options

        Returns:
            WireRequest ready to send

        Raises:
            OptionsParseError: If the options JSON is invalid for this provider
            ModelNotSetError: If the provider needs a model and none is configured
        """

    @abstractmethod
    def parse_reply(self, data: Dict[str, Any]) -> BotReply:
        """Turn a complete (non-streamed) response body into a reply."""

    @abstractmethod
    def decode_stream(self, lines) -> Iterator[BotReply]:
        """Decode the lines of a streamed response."""

    @abstractmethod
    def models_request(self) -> WireRequest:
        """Build the request that lists the provider's models."""

    @abstractmethod
    def parse_models(self, data: Dict[str, Any]) -> List[RemoteModel]:
        """Extract model ids from a model listing response."""

    def is_streaming(self, options: GenericOptions) -> bool:
        return self.parse_options(options).stream

    def chat(
        self,
        messages: List[Message],
        options: GenericOptions,
        settings: GlobalSettings,
        cancel_token: Optional[CancellationToken] = None,
    ) -> BotReply:
        """
        Run one blocking chat call.

        Returns:
            The complete reply, usage attached when reported

        Raises:
            UpstreamError: On transport failure, non-2xx status or undecodable body
            EmptyChoicesError: If the provider returned nothing to choose from
            EmptyMessageError: If the chosen message has no text
        """
        request = self.build_request(messages, options, settings, stream=False)
        logger.info(f"Sending {self.provider.value} chat request (model={self.model})")

        response = self._send(request, "chat completion", cancel_token=cancel_token)
        with upstream_call(f"{self.provider.value} chat completion"):
            reply = self.parse_reply(response.json())
        logger.info(
            f"{self.provider.value} chat completed "
            f"(prompt={reply.prompt_tokens}, completion={reply.completion_tokens})"
        )
        return reply

    def chat_stream(
        self,
        messages: List[Message],
        options: GenericOptions,
        settings: GlobalSettings,
        cancel_token: Optional[CancellationToken] = None,
    ) -> ReplyStream:
        """
        Start a streamed chat call.

        Non-2xx responses raise before any reply is produced.

        Returns:
            ReplyStream yielding incremental replies in provider order
        """
        request = self.build_request(messages, options, settings, stream=True)
        logger.info(f"Sending {self.provider.value} streaming chat request (model={self.model})")

        response = self._send(request, "chat stream", cancel_token=cancel_token, stream=True)
        return ReplyStream(response, self.decode_stream, cancel_token, abort=self.abort)

    def list_models(self) -> List[RemoteModel]:
        """
        List the models the provider advertises.

        Raises:
            UpstreamError: On any transport or decoding failure
            UnsupportedProviderError: If the provider has no listing endpoint
        """
        request = self.models_request()
        response = self._send(request, "model list")
        with upstream_call(f"{self.provider.value} model list"):
            models = self.parse_models(response.json())
        logger.info(f"{self.provider.value} listed {len(models)} models")
        return models

    def _send(
        self,
        request: WireRequest,
        operation: str,
        cancel_token: Optional[CancellationToken] = None,
        stream: bool = False,
    ) -> requests.Response:
        """Send a wire request; the call is aborted if the token fires mid-call."""
        unsubscribe = cancel_token.on_cancel(self.abort) if cancel_token else None
        try:
            with upstream_call(f"{self.provider.value} {operation}"):
                response = self.session.request(
                    request.method,
                    request.url,
                    headers=request.headers,
                    params=request.params or None,
                    data=request.to_bytes() if request.method == "POST" else None,
                    stream=stream,
                    timeout=DEFAULT_TIMEOUT,
                )
            try:
                raise_for_upstream(response)
            except Exception:
                response.close()
                raise
            return response
        finally:
            if unsubscribe is not None:
                unsubscribe()

    def abort(self):
        """Interrupt any in-flight request from another thread and close the session."""
        abort_session(self.session)

    def close(self):
        self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def __repr__(self) -> str:
        return f"{type(self).__name__}(model={self.model!r})"
