"""ZeroMQ transport.

An alternate socket for ``tcp://`` and ``ipc://`` endpoints, for
deployments where the Brook service sits behind a ZeroMQ ROUTER instead of
a WebSocket gateway. Each ZeroMQ message carries exactly one JSON frame.

ZeroMQ has no notion of an open or closed connection, and reconnects on its
own; here that automatic reconnection is disabled, and the socket monitor is
used to report connect and disconnect events, so that the session state
machine above remains in charge of retries.
"""

from __future__ import annotations

import queue
import threading
from typing import Optional

import zmq
from zmq.utils.monitor import recv_monitor_message

from ..errors import NotConnected
from .base import CLOSE_ABNORMAL, CLOSE_NORMAL, Socket


zmq_context = zmq.Context()

_events = zmq.EVENT_CONNECTED | zmq.EVENT_DISCONNECTED | zmq.EVENT_CLOSED


class ZmqSocket(Socket):
    """Connect a ZeroMQ DEALER socket and exchange single-part messages."""

    poll_timeout = 100

    def __init__(self, endpoint: str):
        super().__init__(endpoint)

        self.socket = None
        self.monitor = None
        self._signal_rx = None
        self._signal_tx = None
        self._signal_lock = threading.Lock()
        self._outbox = queue.SimpleQueue()
        self._thread: Optional[threading.Thread] = None

        self._opened = False
        self._closed = False
        self._shutdown = False
        self._close_code = CLOSE_ABNORMAL
        self._close_reason = ""

    def open(self) -> None:
        self.socket = zmq_context.socket(zmq.DEALER)
        self.socket.setsockopt(zmq.LINGER, 0)
        self.socket.setsockopt(zmq.RECONNECT_IVL, -1)
        self.monitor = self.socket.get_monitor_socket(_events)

        # Sends are requested from arbitrary threads, but a ZeroMQ socket
        # may only be touched by the thread that polls it.

        internal = f"inproc://brook.ZmqSocket:signal:{id(self)}"
        self._signal_rx = zmq_context.socket(zmq.PAIR)
        self._signal_rx.bind(internal)
        self._signal_tx = zmq_context.socket(zmq.PAIR)
        self._signal_tx.connect(internal)

        self.socket.connect(self.endpoint)

        self._thread = threading.Thread(
            target=self.run, daemon=True,
            name=f"brook.ZmqSocket:{self.endpoint}",
        )
        self._thread.start()

    def run(self) -> None:
        poller = zmq.Poller()
        poller.register(self.socket, zmq.POLLIN)
        poller.register(self.monitor, zmq.POLLIN)
        poller.register(self._signal_rx, zmq.POLLIN)

        try:
            while not self._shutdown:
                for active, _flag in poller.poll(self.poll_timeout):
                    if active == self.monitor:
                        self._handle_event()
                    elif active == self._signal_rx:
                        self._handle_outgoing()
                    elif active == self.socket:
                        self._handle_incoming()
        except zmq.ZMQError as exc:
            self.on_error(exc)
            self._close_code = CLOSE_ABNORMAL
            self._close_reason = str(exc)
        finally:
            self._teardown()

    def _handle_event(self) -> None:
        event = recv_monitor_message(self.monitor)
        kind = event["event"]

        if kind == zmq.EVENT_CONNECTED:
            self._opened = True
            self.on_open()
        elif kind in (zmq.EVENT_DISCONNECTED, zmq.EVENT_CLOSED):
            self._close_code = CLOSE_ABNORMAL
            self._close_reason = "peer disconnected"
            self._shutdown = True

    def _handle_outgoing(self) -> None:
        # Clear one signal and send one message.
        self._signal_rx.recv(flags=zmq.NOBLOCK)
        text = self._outbox.get(block=False)
        self.socket.send(text.encode("utf-8"))

    def _handle_incoming(self) -> None:
        parts = self.socket.recv_multipart()

        # A ROUTER may prepend an empty delimiter frame; the JSON frame is
        # always the last part.
        message = parts[-1].decode("utf-8", "replace")
        self.on_message(message)

    def _teardown(self) -> None:
        with self._signal_lock:
            self._closed = True
            try:
                self.socket.disable_monitor()
            except zmq.ZMQError:
                pass
            for sock in (self.monitor, self.socket, self._signal_rx, self._signal_tx):
                if sock is not None:
                    sock.close()

        self.on_close(self._close_code, self._close_reason)

    def close(self, code: int = CLOSE_NORMAL, reason: str = "") -> None:
        if self._thread is None:
            return
        self._close_code = code
        self._close_reason = reason
        self._shutdown = True

    def send(self, text: str) -> None:
        with self._signal_lock:
            if not self.is_open:
                raise NotConnected("ZeroMQ socket is not connected")
            self._outbox.put(text)
            self._signal_tx.send(b"")

    @property
    def is_open(self) -> bool:
        return self._opened and not self._closed and not self._shutdown
