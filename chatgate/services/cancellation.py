"""Cancellation primitives: per-call tokens and the scoped stop signal bus."""

import logging
import threading
from collections import defaultdict
from contextlib import contextmanager
from typing import Callable, Dict, Iterator, List

logger = logging.getLogger(__name__)

Callback = Callable[[], None]


class CancellationToken:
    """
    Cancellation flag for one in-flight call.

    Callbacks registered with ``on_cancel`` run once when the token fires,
    typically closing an HTTP response or session to abort a blocked read.
    """

    def __init__(self):
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._callbacks: List[Callback] = []

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> bool:
        """
        Fire the token.

        Returns:
            True if this call fired it, False if it was already cancelled
        """
        with self._lock:
            if self._event.is_set():
                return False
            self._event.set()
            callbacks, self._callbacks = self._callbacks, []

        for callback in callbacks:
            try:
                callback()
            except Exception as e:
                logger.warning(f"Cancellation callback failed: {e}")
        return True

    def on_cancel(self, callback: Callback) -> Callback:
        """
        Register a callback; runs immediately if already cancelled.

        Returns:
            Function that unregisters the callback
        """
        with self._lock:
            if not self._event.is_set():
                self._callbacks.append(callback)
                return lambda: self._remove(callback)

        callback()
        return lambda: None

    def _remove(self, callback: Callback):
        with self._lock:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

    def wait(self, timeout: float = None) -> bool:
        return self._event.wait(timeout)


class StopSignalBus:
    """
    Scoped stop signals.

    A UI (or the CLI's Ctrl-C handler) emits ``stop`` for a scope; every
    listener registered for that scope is invoked.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._listeners: Dict[str, List[Callback]] = defaultdict(list)

    def listen(self, scope: str, callback: Callback) -> Callback:
        """
        Register a stop listener for a scope.

        Returns:
            Function that removes the listener; safe to call twice
        """
        with self._lock:
            self._listeners[scope].append(callback)

        removed = False

        def unlisten():
            nonlocal removed
            with self._lock:
                if removed:
                    return
                removed = True
                listeners = self._listeners.get(scope)
                if listeners and callback in listeners:
                    listeners.remove(callback)
                if not listeners:
                    self._listeners.pop(scope, None)

        return unlisten

    @contextmanager
    def subscription(self, scope: str, callback: Callback) -> Iterator[None]:
        """Listen for the duration of a block; the listener is always released."""
        unlisten = self.listen(scope, callback)
        try:
            yield
        finally:
            unlisten()

    def emit_stop(self, scope: str) -> int:
        """
        Signal stop to every listener of a scope.

        Returns:
            Number of listeners notified
        """
        with self._lock:
            listeners = list(self._listeners.get(scope, ()))

        logger.info("Stop signal for scope '%s' (%d listeners)", scope, len(listeners))
        for callback in listeners:
            try:
                callback()
            except Exception as e:
                logger.warning(f"Stop listener failed: {e}")
        return len(listeners)

    def listener_count(self, scope: str = None) -> int:
        with self._lock:
            if scope is None:
                return sum(len(v) for v in self._listeners.values())
            return len(self._listeners.get(scope, ()))
