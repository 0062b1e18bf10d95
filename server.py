"""Lifecycle of the LAN mirror server.

LanServer resolves the LAN address, stages the web bundle, binds a
listening socket (walking up from the requested port when it is taken) and
serves the Flask router from app.py on a background thread. Every state
change is published as a ServerStatus on a broadcast channel.

start_server/stop_server/dispose never raise; failures end up in the
published status and, for start, in the boolean result.
"""
from __future__ import annotations

import errno
import logging
import os
import socket
import sys
import threading
from typing import Callable, Optional

from werkzeug.serving import make_server

from app import create_app
from network import AddressResolver
from staging import AssetStager
from status import ServerStatus, StatusChannel, Subscription

logger = logging.getLogger(__name__)

MAX_BIND_ATTEMPTS = 10
BIND_HOST = "0.0.0.0"

# Platforms where a Python process cannot open listening sockets (Pyodide, WASI).
_NO_SOCKET_PLATFORMS = ("emscripten", "wasi")

UNAVAILABLE_ERROR = "Web server is not available on this platform"
NO_ADDRESS_ERROR = "Could not determine local IP address"
STAGING_ERROR = (
    "Could not prepare web app files. "
    "Make sure the web build has been packaged into the asset bundle first."
)


class PortUnavailableError(RuntimeError):
    """Every port tried during startup was already in use."""


def sockets_supported() -> bool:
    return sys.platform not in _NO_SOCKET_PLATFORMS


def _port_in_use(exc: OSError) -> bool:
    codes = {errno.EADDRINUSE, getattr(errno, "WSAEADDRINUSE", errno.EADDRINUSE)}
    return exc.errno in codes or getattr(exc, "winerror", None) == 10048


def bind_listener(port: int, host: str = BIND_HOST, attempts: int = MAX_BIND_ATTEMPTS):
    """Bind and listen on ``port``, moving to the next port while it is in use.

    Returns ``(socket, bound_port)``; port 0 lets the OS pick. Raises
    PortUnavailableError after ``attempts`` conflicts; any other bind error
    propagates unchanged.
    """
    for _ in range(attempts):
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            if os.name != "nt":
                # on Windows SO_REUSEADDR would let us steal a port in use
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((host, port))
            sock.listen(socket.SOMAXCONN)
            return sock, sock.getsockname()[1]
        except OSError as e:
            sock.close()
            if not _port_in_use(e):
                raise
            logger.info("Port %d in use, trying %d", port, port + 1)
            port += 1
    raise PortUnavailableError(f"Could not find available port after {attempts} attempts")


class LanServer:
    """Serves a staged web bundle to devices on the local network."""

    def __init__(self, stager: AssetStager, resolver: Optional[AddressResolver] = None,
                 supported: Optional[bool] = None):
        self.stager = stager
        self.resolver = resolver or AddressResolver()
        self._supported = sockets_supported() if supported is None else supported
        self._lock = threading.RLock()
        self._server = None
        self._thread: Optional[threading.Thread] = None
        self._ip_address: Optional[str] = None
        self._port = 0
        self._disposed = False
        self._channel = StatusChannel(ServerStatus.stopped())

    @property
    def status(self) -> ServerStatus:
        return self._channel.current

    @property
    def is_running(self) -> bool:
        return self._server is not None

    def subscribe(self, callback: Callable[[ServerStatus], None]) -> Subscription:
        """Receive the current status, then every later transition."""
        return self._channel.subscribe(callback)

    def _publish(self, status: ServerStatus):
        self._channel.publish(status)

    def start_server(self, port: int = 8080) -> bool:
        if not self._supported:
            logger.warning("Web server cannot run on this platform")
            self._publish(ServerStatus.stopped(port=0, error=UNAVAILABLE_ERROR))
            return False

        with self._lock:
            if self._disposed:
                logger.warning("Server has been disposed; not starting")
                return False
            if self._server is not None:
                logger.info("Server already running")
                return True

            sock = None
            server = None
            try:
                self._port = port

                self._ip_address = self.resolver.resolve()
                if self._ip_address is None:
                    logger.error(NO_ADDRESS_ERROR)
                    self._publish(ServerStatus.stopped(port=self._port, error=NO_ADDRESS_ERROR))
                    return False

                web_root = self.stager.prepare()
                if web_root is None:
                    logger.error("Could not prepare web app files")
                    self._publish(ServerStatus.stopped(
                        ip_address=self._ip_address, port=self._port, error=STAGING_ERROR))
                    return False

                sock, self._port = bind_listener(self._port)
                app = create_app(web_root, entry_file=self.stager.entry_file)
                server = make_server(BIND_HOST, self._port, app, threaded=True, fd=sock.fileno())
                # make_server duplicated the descriptor
                sock.close()
                sock = None

                self._thread = threading.Thread(
                    target=server.serve_forever, name=f"lanmirror-{self._port}", daemon=True)
                self._thread.start()
                self._server = server

                logger.info("Server started on %s:%d", self._ip_address, self._port)
                self._publish(ServerStatus.running(self._ip_address, self._port))
                return True
            except Exception as e:
                logger.exception("Failed to start server")
                if sock is not None:
                    sock.close()
                if server is not None:
                    server.server_close()
                self._thread = None
                self._publish(ServerStatus.stopped(
                    ip_address=self._ip_address, port=self._port, error=str(e)))
                return False

    def stop_server(self):
        """Close the listener without draining in-flight requests. Safe to call repeatedly."""
        with self._lock:
            try:
                server, self._server = self._server, None
                if server is not None:
                    server.shutdown()
                    server.server_close()
                if self._thread is not None:
                    self._thread.join(timeout=5)
                    self._thread = None
                logger.info("Server stopped")
                self._publish(ServerStatus.stopped(ip_address=self._ip_address, port=self._port))
            except Exception:
                logger.exception("Failed to stop server")

    def dispose(self):
        """Stop and close the status channel. The instance cannot be started again."""
        with self._lock:
            self.stop_server()
            self._disposed = True
            self._channel.close()
