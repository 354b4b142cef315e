"""Chat execution services.

``ChatController`` lives in ``chatgate.services.chat_controller``.
"""

from .cancellation import CancellationToken, StopSignalBus
from .notifications import (
    CallbackSink,
    ChatEvent,
    ChatEventKind,
    CollectingSink,
    NotificationSink,
)

__all__ = [
    "CancellationToken",
    "StopSignalBus",
    "CallbackSink",
    "ChatEvent",
    "ChatEventKind",
    "CollectingSink",
    "NotificationSink",
]
