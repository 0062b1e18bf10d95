"""Server status snapshots and the broadcast channel that publishes them.

Every state change produces a new immutable ServerStatus. Observers
subscribe with a callback; each subscriber gets its own delivery thread so
a slow observer never holds up the publisher or the other observers.
"""
from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass
from typing import Callable, Optional

logger = logging.getLogger(__name__)

_CLOSED = object()


@dataclass(frozen=True)
class ServerStatus:
    is_running: bool
    url: Optional[str] = None
    ip_address: Optional[str] = None
    port: int = 0
    error: Optional[str] = None

    def __post_init__(self):
        if self.is_running and (not self.url or not self.ip_address or self.error is not None):
            raise ValueError("a running status needs a url and an ip address and no error")

    @classmethod
    def running(cls, ip_address: str, port: int) -> "ServerStatus":
        return cls(is_running=True, url=f"http://{ip_address}:{port}", ip_address=ip_address, port=port)

    @classmethod
    def stopped(cls, ip_address: Optional[str] = None, port: int = 0, error: Optional[str] = None) -> "ServerStatus":
        return cls(is_running=False, url=None, ip_address=ip_address, port=port, error=error)


class Subscription:
    """Delivers statuses to one callback, in order, on its own thread."""

    def __init__(self, channel: "StatusChannel", callback: Callable[[ServerStatus], None]):
        self._channel = channel
        self._callback = callback
        self._queue: "queue.Queue" = queue.Queue()
        self._thread = threading.Thread(target=self._run, name="status-subscriber", daemon=True)
        self._thread.start()

    def _push(self, item):
        self._queue.put(item)

    def _run(self):
        while True:
            item = self._queue.get()
            if item is _CLOSED:
                return
            try:
                self._callback(item)
            except Exception:
                logger.exception("Status subscriber raised")

    def cancel(self):
        self._channel._remove(self)
        self._push(_CLOSED)

    def join(self, timeout: Optional[float] = None):
        """Wait until every queued status has been delivered (after cancel/close)."""
        self._thread.join(timeout)


class StatusChannel:
    """Broadcast channel of ServerStatus snapshots.

    A new subscriber receives the current snapshot first, then every
    later one. There is no history beyond the current value.
    """

    def __init__(self, initial: ServerStatus):
        self._lock = threading.Lock()
        self._current = initial
        self._subscribers: list = []
        self._closed = False

    @property
    def current(self) -> ServerStatus:
        return self._current

    @property
    def closed(self) -> bool:
        return self._closed

    def subscribe(self, callback: Callable[[ServerStatus], None]) -> Subscription:
        with self._lock:
            if self._closed:
                raise RuntimeError("status channel is closed")
            sub = Subscription(self, callback)
            sub._push(self._current)
            self._subscribers.append(sub)
        return sub

    def publish(self, status: ServerStatus):
        with self._lock:
            self._current = status
            if self._closed:
                logger.debug("Status channel closed; not broadcasting %s", status)
                return
            for sub in self._subscribers:
                sub._push(status)

    def close(self):
        with self._lock:
            if self._closed:
                return
            self._closed = True
            subscribers, self._subscribers = self._subscribers, []
        for sub in subscribers:
            sub._push(_CLOSED)

    def _remove(self, sub: Subscription):
        with self._lock:
            if sub in self._subscribers:
                self._subscribers.remove(sub)
