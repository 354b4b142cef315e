"""
Chat execution controller.

Runs one provider call on a background worker, reports its lifecycle to a
notification sink and lets a stop signal cancel it mid-flight.
"""

import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional

from ..entities.config import GenericConfig, ProxySetting
from ..entities.messages import Message
from ..entities.options import GenericOptions, GlobalSettings
from ..entities.replies import BotReply
from ..models.base import BaseChatClient
from ..models.client_factory import resolve_client
from ..utils.content_cache import ContentCache
from .cancellation import CancellationToken, StopSignalBus
from .notifications import ChatEvent, NotificationSink, deliver

logger = logging.getLogger(__name__)

ClientFactoryFn = Callable[
    [GenericConfig, Optional[ProxySetting], Optional[ContentCache]], BaseChatClient
]


class ChatState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


@dataclass
class ChatRequest:
    """Everything one chat invocation needs."""

    messages: List[Message]
    config: GenericConfig
    options: GenericOptions
    settings: GlobalSettings = field(default_factory=GlobalSettings)
    proxy: Optional[ProxySetting] = None
    content_cache: Optional[ContentCache] = None


@dataclass
class ChatOutcome:
    """Result of a finished (or still running) invocation."""

    state: ChatState
    reply: BotReply
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.state == ChatState.COMPLETED


class ChatController:
    """
    Execution and cancellation controller for a single chat invocation.

    States move ``IDLE -> RUNNING -> COMPLETED | CANCELLED | FAILED``. The
    first terminal transition wins; exactly one ``start`` and one terminal
    event reach the sink. A won cancellation suppresses ``done`` and any
    further ``data``.

    Usage:
        bus = StopSignalBus()
        outcome = ChatController(sink, bus, scope="main").run(request)
    """

    def __init__(
        self,
        sink: Optional[NotificationSink] = None,
        stop_signals: Optional[StopSignalBus] = None,
        scope: str = "main",
        client_factory: ClientFactoryFn = resolve_client,
    ):
        self.sink = sink
        self.stop_signals = stop_signals
        self.scope = scope
        self._client_factory = client_factory

        # Reentrant so a sink may call cancel() from inside send()
        self._lock = threading.RLock()
        self._state = ChatState.IDLE
        self._token = CancellationToken()
        self._thread: Optional[threading.Thread] = None
        self._unlisten: Optional[Callable[[], None]] = None

        self._parts: List[str] = []
        self._usage: Optional[BotReply] = None
        self._error: Optional[Exception] = None

    @property
    def state(self) -> ChatState:
        with self._lock:
            return self._state

    @property
    def cancel_token(self) -> CancellationToken:
        return self._token

    def start(self, request: ChatRequest) -> "ChatController":
        """
        Start the invocation on a daemon worker thread.

        Raises:
            RuntimeError: If the controller was already started
        """
        with self._lock:
            if self._state != ChatState.IDLE:
                raise RuntimeError(f"Chat already started (state={self._state.value})")
            self._state = ChatState.RUNNING
            if self.stop_signals is not None:
                self._unlisten = self.stop_signals.listen(self.scope, self.cancel)
            deliver(self.sink, ChatEvent.start())

        logger.info(f"Starting chat in scope '{self.scope}' ({request.config.provider})")
        self._thread = threading.Thread(
            target=self._work,
            args=(request,),
            name=f"chatgate-{self.scope}",
            daemon=True,
        )
        try:
            self._thread.start()
        except RuntimeError as e:
            self._release_listener()
            self._finish(ChatState.FAILED, e)
            raise
        return self

    def cancel(self) -> bool:
        """
        Cancel the running invocation.

        Returns:
            True if this call won the race to a terminal state
        """
        with self._lock:
            if self._state != ChatState.RUNNING:
                return False
            self._state = ChatState.CANCELLED
            deliver(self.sink, ChatEvent.stopped())

        logger.info(f"Chat in scope '{self.scope}' cancelled")
        self._release_listener()
        self._token.cancel()
        return True

    def is_alive(self) -> bool:
        """True while the worker thread still runs."""
        return self._thread is not None and self._thread.is_alive()

    def wait(self, timeout: Optional[float] = None) -> ChatOutcome:
        """Join the worker and report the outcome."""
        if self._thread is not None:
            self._thread.join(timeout)
        return self.outcome()

    def run(self, request: ChatRequest, timeout: Optional[float] = None) -> ChatOutcome:
        return self.start(request).wait(timeout)

    def outcome(self) -> ChatOutcome:
        with self._lock:
            usage = self._usage or BotReply()
            reply = usage.model_copy(update={"message": "".join(self._parts)})
            return ChatOutcome(state=self._state, reply=reply, error=self._error)

    def _work(self, request: ChatRequest):
        try:
            client = self._client_factory(request.config, request.proxy, request.content_cache)
            try:
                if self._token.cancelled:
                    return
                if client.is_streaming(request.options):
                    self._stream(client, request)
                else:
                    reply = client.chat(
                        request.messages, request.options, request.settings, cancel_token=self._token
                    )
                    self._on_reply(reply)
            finally:
                client.close()
            self._finish(ChatState.COMPLETED)
        except Exception as e:
            if self._token.cancelled:
                logger.debug(f"Ignoring error after cancellation: {e}")
            else:
                logger.error(f"Chat in scope '{self.scope}' failed: {e}")
                self._finish(ChatState.FAILED, e)
        finally:
            self._release_listener()

    def _stream(self, client: BaseChatClient, request: ChatRequest):
        with client.chat_stream(
            request.messages, request.options, request.settings, cancel_token=self._token
        ) as stream:
            for reply in stream:
                if not self._on_reply(reply):
                    break

    def _on_reply(self, reply: BotReply) -> bool:
        """Record and forward one reply; False once the invocation is no longer running."""
        with self._lock:
            if self._state != ChatState.RUNNING:
                return False
            if reply.has_usage:
                self._usage = reply
            if reply.message:
                self._parts.append(reply.message)
                deliver(self.sink, ChatEvent.data(reply.message))
            return True

    def _finish(self, state: ChatState, error: Optional[Exception] = None) -> bool:
        with self._lock:
            if self._state != ChatState.RUNNING:
                return False
            self._state = state
            self._error = error
            if state == ChatState.COMPLETED:
                deliver(self.sink, ChatEvent.done())
            else:
                deliver(self.sink, ChatEvent.error(str(error)))

        logger.info(f"Chat in scope '{self.scope}' finished: {state.value}")
        return True

    def _release_listener(self):
        with self._lock:
            unlisten, self._unlisten = self._unlisten, None
        if unlisten is not None:
            unlisten()
