"""Socket implementations."""

import os
import urllib.parse

from .base import (
    CLOSE_ABNORMAL,
    CLOSE_GOING_AWAY,
    CLOSE_NORMAL,
    Socket,
    SocketFactory,
)

_BACKEND = os.environ.get("BROOK_TRANSPORT")

websocket_schemes = ("ws", "wss")
zmq_schemes = ("tcp", "ipc")


def socket(endpoint: str) -> Socket:
    """Return an unopened :class:`Socket` suited to *endpoint*.

    The implementation is chosen from the endpoint scheme, unless the
    ``BROOK_TRANSPORT`` environment variable names one explicitly.
    """

    backend = _BACKEND

    if backend is None:
        scheme = urllib.parse.urlsplit(endpoint).scheme.lower()
        if scheme in websocket_schemes:
            backend = "websocket"
        elif scheme in zmq_schemes:
            backend = "zmq"
        else:
            raise ValueError(f"unsupported endpoint scheme: {endpoint!r}")

    if backend == "websocket":
        from .websocket import WebSocket
        return WebSocket(endpoint)
    elif backend == "zmq":
        from .zmq import ZmqSocket
        return ZmqSocket(endpoint)
    else:
        raise ImportError(f"unknown BROOK_TRANSPORT backend: {backend!r}")
