"""ZeroMQ transport.

Carries one DDP text frame per ZeroMQ message over a DEALER socket, for DDP
servers fronted by a ROUTER socket (``tcp://host:port``). ZeroMQ sockets are
not thread-safe, so every socket operation happens on the poller thread;
:meth:`ZMQTransport.send` queues the frame and signals that thread over an
inproc PAIR socket. Connection state comes from the socket monitor, which
means an open/close callback pair is reported each time ZeroMQ itself drops
and re-establishes the peer connection.
"""

from __future__ import annotations

import atexit
import itertools
import logging
import queue
import threading
from typing import Optional

import zmq
from zmq.utils.monitor import recv_monitor_message

from .base import Transport, TransportConnectionError


logger = logging.getLogger(__name__)

zmq_context = zmq.Context()
_instances = itertools.count()


class ZMQTransport(Transport):
    """Carry DDP text frames over a ZeroMQ DEALER socket."""

    poll_interval = 100

    def __init__(self, endpoint: str):
        super().__init__(endpoint)
        self._instance = next(_instances)
        self._outbox: queue.SimpleQueue = queue.SimpleQueue()
        self._signal_tx: Optional[zmq.Socket] = None
        self._signal_lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        self._connected = False
        self.shutdown = False

    @property
    def is_open(self) -> bool:
        return self._connected

    def open(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return

        internal = f"inproc://ddpmirror.ZMQTransport:signal:{self._instance}"
        signal_rx = zmq_context.socket(zmq.PAIR)
        signal_rx.bind(internal)

        with self._signal_lock:
            self._signal_tx = zmq_context.socket(zmq.PAIR)
            self._signal_tx.setsockopt(zmq.LINGER, 0)
            self._signal_tx.connect(internal)

        socket = zmq_context.socket(zmq.DEALER)
        socket.setsockopt(zmq.LINGER, 0)
        monitor = socket.get_monitor_socket(zmq.EVENT_CONNECTED | zmq.EVENT_DISCONNECTED)
        socket.connect(self.endpoint)

        self.shutdown = False
        self._thread = threading.Thread(target=self.run, args=(socket, monitor, signal_rx), daemon=True)
        self._thread.start()

    def close(self) -> None:
        self.shutdown = True
        self._signal()

    def send(self, text: str) -> None:
        if not self._connected:
            raise TransportConnectionError(f"not connected: {self.endpoint}")

        self._outbox.put(text.encode())
        self._signal()

    def _signal(self) -> None:
        with self._signal_lock:
            if self._signal_tx is not None:
                self._signal_tx.send(b"")

    def _handle_monitor(self, monitor: zmq.Socket) -> None:
        event = recv_monitor_message(monitor)

        if event["event"] == zmq.EVENT_CONNECTED:
            self._connected = True
            self._opened()
        elif event["event"] == zmq.EVENT_DISCONNECTED:
            if self._connected:
                self._connected = False
                self._closed()

    def _handle_outgoing(self, socket: zmq.Socket, signal_rx: zmq.Socket) -> None:
        signal_rx.recv(flags=zmq.NOBLOCK)

        while True:
            try:
                frame = self._outbox.get(block=False)
            except queue.Empty:
                break
            socket.send(frame)

    def run(self, socket: zmq.Socket, monitor: zmq.Socket, signal_rx: zmq.Socket) -> None:
        poller = zmq.Poller()
        poller.register(socket, zmq.POLLIN)
        poller.register(monitor, zmq.POLLIN)
        poller.register(signal_rx, zmq.POLLIN)

        try:
            while not self.shutdown:
                for active, _flag in poller.poll(self.poll_interval):
                    if active == monitor:
                        self._handle_monitor(monitor)
                    elif active == signal_rx:
                        self._handle_outgoing(socket, signal_rx)
                    elif active == socket:
                        parts = socket.recv_multipart()
                        self._received(parts[-1].decode())
        finally:
            with self._signal_lock:
                self._signal_tx.close()
                self._signal_tx = None

            socket.disable_monitor()
            monitor.close()
            signal_rx.close()
            socket.close()

            self._connected = False
            self._closed()


def _cleanup() -> None:
    try:
        zmq_context.destroy(linger=0)
    except zmq.ZMQError:
        pass


atexit.register(_cleanup)
