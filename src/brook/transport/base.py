"""Socket interface.

This is the (small) contract that socket implementations should follow.
It lives outside :mod:`brook.protocol` so the protocol remains
socket-agnostic, and outside :mod:`brook.connection` so the session state
machine can be driven by a fake socket.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable, Optional


# Close codes, as defined by RFC 6455.

CLOSE_NORMAL = 1000
CLOSE_GOING_AWAY = 1001
CLOSE_ABNORMAL = 1006


def _ignore(*args) -> None:
    pass


class Socket(ABC):
    """Minimal contract for a full-duplex, message-oriented socket.

    Implementations report events through the four ``on_*`` attributes,
    which the owner assigns before calling :meth:`open`:

    - ``on_open()`` once the socket can carry traffic;
    - ``on_message(text)`` for every inbound message;
    - ``on_error(exception)`` for failures, before the matching close;
    - ``on_close(code, reason)`` exactly once, when the socket is gone.

    Events may be delivered from a background thread.
    """

    def __init__(self, endpoint: str):
        self.endpoint = endpoint
        self.on_open: Callable[[], None] = _ignore
        self.on_message: Callable[[str], None] = _ignore
        self.on_error: Callable[[BaseException], None] = _ignore
        self.on_close: Callable[[int, str], None] = _ignore

    def detach(self) -> None:
        """Drop every event callback; later events are silently discarded."""
        self.on_open = _ignore
        self.on_message = _ignore
        self.on_error = _ignore
        self.on_close = _ignore

    @abstractmethod
    def open(self) -> None:
        """Begin establishing the connection; must not block."""

    @abstractmethod
    def close(self, code: int = CLOSE_NORMAL, reason: str = "") -> None:
        """Tear down the connection."""

    @abstractmethod
    def send(self, text: str) -> None:
        """Transmit one message; raises if the socket cannot accept it."""

    @property
    def is_open(self) -> bool:
        """Whether the socket is currently able to carry traffic."""
        return False


SocketFactory = Callable[[str], Socket]


def closed_reason(code: Optional[int], reason: Optional[str]) -> tuple:
    """Normalize close details reported by a socket library."""

    if code is None:
        code = CLOSE_ABNORMAL
    if reason is None:
        reason = ""
    elif isinstance(reason, bytes):
        reason = reason.decode("utf-8", "replace")
    return int(code), reason
