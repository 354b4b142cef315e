"""HTTP transport construction."""

import logging
import socket
import threading
import weakref
from typing import Dict, Optional
from urllib.parse import quote, urlparse, urlunparse

import requests
from requests.adapters import HTTPAdapter
from urllib3.connectionpool import HTTPConnectionPool, HTTPSConnectionPool

from ..entities.config import ProxySetting

logger = logging.getLogger(__name__)

# Connect timeout only: long generations are stopped by cancellation, not a read timeout
DEFAULT_TIMEOUT = (30, None)

_sending = threading.local()


def build_proxies(proxy: ProxySetting) -> Dict[str, str]:
    """
    Build a requests ``proxies`` mapping from a proxy setting.

    Args:
        proxy: Enabled proxy setting

    Returns:
        Mapping for all protocols, HTTP only, or HTTPS only

    Raises:
        ValueError: If the server is not a valid proxy URL
    """
    parsed = urlparse(proxy.server.strip())
    if not parsed.scheme or not parsed.hostname:
        raise ValueError(f"Invalid proxy server: {proxy.server!r}")

    netloc = parsed.netloc
    if proxy.username:
        credentials = quote(proxy.username, safe="")
        if proxy.password:
            credentials += ":" + quote(proxy.password, safe="")
        host = parsed.hostname + (f":{parsed.port}" if parsed.port else "")
        netloc = f"{credentials}@{host}"
    url = urlunparse(parsed._replace(netloc=netloc))

    if proxy.http and not proxy.https:
        return {"http": url}
    if proxy.https and not proxy.http:
        return {"https": url}
    return {"http": url, "https": url}


def build_http_session(proxy: Optional[ProxySetting] = None) -> requests.Session:
    """
    Create the HTTP transport of one client handle.

    Both schemes share one AbortableHTTPAdapter so ``abort_session`` can
    interrupt a blocked call. A broken proxy setting is not fatal: the
    session falls back to a direct connection.

    Args:
        proxy: Optional proxy setting

    Returns:
        Configured requests session
    """
    session = requests.Session()
    adapter = AbortableHTTPAdapter()
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    if proxy is None or not proxy.on:
        return session

    try:
        session.proxies.update(build_proxies(proxy))
        logger.info("Routing provider traffic through proxy %s", proxy.server)
    except ValueError as e:
        logger.warning("Proxy setting ignored, using direct connection: %s", e)
    return session


class _TrackedConnectionsMixin:
    """Hands every checked-out connection to the adapter sending on this thread."""

    def _get_conn(self, timeout=None):
        conn = super()._get_conn(timeout)
        adapter = getattr(_sending, "adapter", None)
        if adapter is not None:
            adapter.track(conn)
        return conn


class _TrackedHTTPConnectionPool(_TrackedConnectionsMixin, HTTPConnectionPool):
    pass


class _TrackedHTTPSConnectionPool(_TrackedConnectionsMixin, HTTPSConnectionPool):
    pass


_TRACKED_POOL_CLASSES = {
    "http": _TrackedHTTPConnectionPool,
    "https": _TrackedHTTPSConnectionPool,
}


class AbortableHTTPAdapter(HTTPAdapter):
    """
    HTTP adapter whose in-flight requests can be aborted from another thread.

    Closing a session only drops idle pooled connections; a thread blocked on
    response headers or on the next chunk of a stream keeps waiting. ``abort``
    shuts down the sockets of connections this adapter checked out, which
    wakes the blocked read with a connection error.
    """

    def __init__(self, *args, **kwargs):
        self._tracked_lock = threading.Lock()
        self._connections: "weakref.WeakSet" = weakref.WeakSet()
        self._aborted = False
        super().__init__(*args, **kwargs)

    def init_poolmanager(self, *args, **kwargs):
        super().init_poolmanager(*args, **kwargs)
        self.poolmanager.pool_classes_by_scheme = _TRACKED_POOL_CLASSES

    def proxy_manager_for(self, proxy, **proxy_kwargs):
        manager = super().proxy_manager_for(proxy, **proxy_kwargs)
        # SOCKS managers bring their own pool classes
        if not proxy.lower().startswith("socks"):
            manager.pool_classes_by_scheme = _TRACKED_POOL_CLASSES
        return manager

    def send(self, request, *args, **kwargs):
        if self._aborted:
            raise requests.exceptions.ConnectionError("Request aborted", request=request)
        previous = getattr(_sending, "adapter", None)
        _sending.adapter = self
        try:
            return super().send(request, *args, **kwargs)
        finally:
            _sending.adapter = previous

    def track(self, conn):
        with self._tracked_lock:
            if self._aborted:
                raise requests.exceptions.ConnectionError("Request aborted")
            self._connections.add(conn)

    def abort(self) -> int:
        """
        Shut down the sockets of tracked connections.

        Returns:
            Number of sockets shut down
        """
        with self._tracked_lock:
            self._aborted = True
            connections = list(self._connections)
            self._connections.clear()

        aborted = 0
        for conn in connections:
            sock = getattr(conn, "sock", None)
            if sock is None:
                continue
            try:
                sock.shutdown(socket.SHUT_RDWR)
                aborted += 1
            except OSError as e:
                logger.debug(f"Socket already gone during abort: {e}")
        return aborted


def abort_session(session: requests.Session):
    """Abort in-flight requests of a session, then close it."""
    if isinstance(session, requests.Session):
        aborted = sum(
            adapter.abort()
            for adapter in session.adapters.values()
            if isinstance(adapter, AbortableHTTPAdapter)
        )
        logger.debug(f"Aborted {aborted} in-flight connection(s)")
    session.close()
