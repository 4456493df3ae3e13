"""WebSocket transport.

DDP servers normally listen on ``ws://host/websocket``. This transport uses
the threaded client from :mod:`websockets.sync.client`; a background reader
thread owns the connection for the lifetime of each :meth:`open`.
"""

from __future__ import annotations

import logging
import threading
from typing import Optional

from websockets.exceptions import ConnectionClosed, WebSocketException
from websockets.sync.client import ClientConnection, connect

from .base import Transport, TransportConnectionError


logger = logging.getLogger(__name__)


class WebSocketTransport(Transport):
    """Carry DDP text frames over a WebSocket."""

    open_timeout = 10

    def __init__(self, endpoint: str):
        super().__init__(endpoint)
        self._connection: Optional[ClientConnection] = None
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()
        self._closing = False

    @property
    def is_open(self) -> bool:
        return self._connection is not None

    def open(self) -> None:
        with self._lock:
            if self._thread is not None and self._thread.is_alive():
                return

            self._closing = False
            self._thread = threading.Thread(target=self.run, daemon=True)
            self._thread.start()

    def close(self) -> None:
        with self._lock:
            self._closing = True
            connection = self._connection

        if connection is not None:
            connection.close()

    def send(self, text: str) -> None:
        connection = self._connection
        if connection is None:
            raise TransportConnectionError(f"not connected: {self.endpoint}")

        try:
            connection.send(text)
        except ConnectionClosed as exc:
            raise TransportConnectionError(str(exc)) from exc

    def run(self) -> None:
        try:
            connection = connect(self.endpoint, open_timeout=self.open_timeout)
        except (OSError, TimeoutError, WebSocketException) as exc:
            logger.warning("cannot connect to %s: %s", self.endpoint, exc)
            self._closed()
            return

        with connection:
            with self._lock:
                if self._closing:
                    closing = True
                else:
                    self._connection = connection
                    closing = False

            if closing:
                connection.close()
                self._closed()
                return

            self._opened()

            try:
                while True:
                    message = connection.recv()
                    if isinstance(message, bytes):
                        message = message.decode()
                    self._received(message)
            except ConnectionClosed as exc:
                logger.info("connection to %s closed: %s", self.endpoint, exc)
            finally:
                with self._lock:
                    self._connection = None
                self._closed()
