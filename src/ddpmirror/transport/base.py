"""Transport interface.

This is the (small) contract that transport implementations should follow.
A transport moves DDP text frames; it knows nothing about what is in them.
The :class:`ddpmirror.connection.Connection` assigns the three callback
slots before calling :meth:`Transport.open`.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Callable, Optional

from ..errors import TransportConnectionError, TransportError


logger = logging.getLogger(__name__)


__all__ = ('Transport', 'TransportError', 'TransportConnectionError')


class Transport(ABC):
    """Minimal contract for a duplex, message-oriented transport.

    :meth:`open` and :meth:`close` must not block waiting for the far end;
    completion is reported through the callbacks, which may be invoked from
    any thread:

    ``on_open()``
        The channel is ready to carry frames.
    ``on_close()``
        The channel went away, either because :meth:`close` was called, the
        peer disconnected, or :meth:`open` failed.
    ``on_message(text)``
        One inbound frame arrived.
    """

    def __init__(self, endpoint: str):
        self.endpoint = endpoint
        self.on_open: Optional[Callable[[], None]] = None
        self.on_close: Optional[Callable[[], None]] = None
        self.on_message: Optional[Callable[[str], None]] = None

    @abstractmethod
    def open(self) -> None:
        """Start establishing the underlying connection."""

    @abstractmethod
    def close(self) -> None:
        """Tear down the underlying connection."""

    @abstractmethod
    def send(self, text: str) -> None:
        """Send one text frame; raises TransportConnectionError if closed."""

    @property
    def is_open(self) -> bool:
        """Whether the transport is currently connected."""
        return False

    # --- callback helpers for subclasses ---

    def _opened(self) -> None:
        logger.debug("transport open: %s", self.endpoint)
        if self.on_open is not None:
            self.on_open()

    def _closed(self) -> None:
        logger.debug("transport closed: %s", self.endpoint)
        if self.on_close is not None:
            self.on_close()

    def _received(self, text: str) -> None:
        if self.on_message is not None:
            self.on_message(text)
