"""Chat lifecycle events and the stream marker protocol."""

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Protocol

from ..utils.error_handler import notify_with_retry

logger = logging.getLogger(__name__)

STREAM_START = "[[START]]"
STREAM_DONE = "[[DONE]]"
STREAM_STOPPED = "[[STOPPED]]"
STREAM_ERROR = "[[ERROR]]"


class ChatEventKind(str, Enum):
    START = "start"
    DATA = "data"
    DONE = "done"
    STOPPED = "stopped"
    ERROR = "error"


TERMINAL_KINDS = (ChatEventKind.DONE, ChatEventKind.STOPPED, ChatEventKind.ERROR)


@dataclass(frozen=True)
class ChatEvent:
    """One notification of a chat invocation."""

    kind: ChatEventKind
    text: str = ""

    @classmethod
    def start(cls) -> "ChatEvent":
        return cls(ChatEventKind.START)

    @classmethod
    def data(cls, text: str) -> "ChatEvent":
        return cls(ChatEventKind.DATA, text)

    @classmethod
    def done(cls) -> "ChatEvent":
        return cls(ChatEventKind.DONE)

    @classmethod
    def stopped(cls) -> "ChatEvent":
        return cls(ChatEventKind.STOPPED)

    @classmethod
    def error(cls, message: str) -> "ChatEvent":
        return cls(ChatEventKind.ERROR, message)

    @property
    def is_terminal(self) -> bool:
        return self.kind in TERMINAL_KINDS

    def to_marker(self) -> str:
        """Render the event in the UI's marker protocol."""
        if self.kind == ChatEventKind.START:
            return STREAM_START
        if self.kind == ChatEventKind.DONE:
            return STREAM_DONE
        if self.kind == ChatEventKind.STOPPED:
            return STREAM_STOPPED
        if self.kind == ChatEventKind.ERROR:
            return f"{STREAM_ERROR}{self.text}"
        return self.text


class NotificationSink(Protocol):
    def send(self, event: ChatEvent) -> None:
        ...


class CallbackSink:
    """Adapts a plain callable to a notification sink."""

    def __init__(self, callback: Callable[[ChatEvent], None]):
        self._callback = callback

    def send(self, event: ChatEvent) -> None:
        self._callback(event)


class CollectingSink:
    """Thread-safe sink that records every event, mostly for tests and scripts."""

    def __init__(self):
        self._lock = threading.Lock()
        self.events: List[ChatEvent] = []

    def send(self, event: ChatEvent) -> None:
        with self._lock:
            self.events.append(event)

    def kinds(self) -> List[ChatEventKind]:
        with self._lock:
            return [e.kind for e in self.events]

    def count(self, kind: ChatEventKind) -> int:
        return self.kinds().count(kind)

    def text(self) -> str:
        with self._lock:
            return "".join(e.text for e in self.events if e.kind == ChatEventKind.DATA)

    def markers(self) -> List[str]:
        with self._lock:
            return [e.to_marker() for e in self.events]


def deliver(sink: Optional[NotificationSink], event: ChatEvent) -> bool:
    """Deliver one event with a single local retry; failures are logged and dropped."""
    if sink is None:
        return False
    return notify_with_retry(sink.send, event, retries=1)
