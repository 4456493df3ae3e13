"""Transport layer implementations.

The backend used when no transport is configured explicitly is chosen by the
DDPMIRROR_TRANSPORT environment variable: ``websocket`` (the default) or
``zmq``. Backends are imported on first use, so only the selected backend's
library needs to be importable.
"""

import os

from .base import (
    Transport,
    TransportError,
    TransportConnectionError,
)


backends = ('websocket', 'zmq')


def get(name=None):
    """Return the transport class for backend *name*, or for the backend
    named by DDPMIRROR_TRANSPORT if *name* is None.
    """

    if name is None:
        name = os.environ.get("DDPMIRROR_TRANSPORT", "websocket")

    if name == "websocket":
        from .websocket import WebSocketTransport
        return WebSocketTransport

    if name == "zmq":
        from .zeromq import ZMQTransport
        return ZMQTransport

    raise ImportError(f"unknown DDPMIRROR_TRANSPORT backend: {name!r}")
