"""WebSocket transport, built on the websocket-client library.

``WebSocketApp.run_forever`` runs on a daemon thread and reports events
through callbacks; this module adapts those callbacks to the
:class:`brook.transport.base.Socket` contract.
"""

from __future__ import annotations

import threading
from typing import Optional

import websocket

from .base import CLOSE_NORMAL, Socket, closed_reason


class WebSocket(Socket):
    """WebSocket client socket for ``ws://`` and ``wss://`` endpoints."""

    def __init__(self, endpoint: str, sslopt: Optional[dict] = None):
        super().__init__(endpoint)
        self.sslopt = sslopt
        self.app: Optional[websocket.WebSocketApp] = None
        self._thread: Optional[threading.Thread] = None
        self._opened = False
        self._closed = False
        self._lock = threading.Lock()

    def open(self) -> None:
        self.app = websocket.WebSocketApp(
            self.endpoint,
            on_open=self._app_open,
            on_message=self._app_message,
            on_error=self._app_error,
            on_close=self._app_close,
        )

        kwargs = {}
        if self.sslopt is not None:
            kwargs["sslopt"] = self.sslopt

        self._thread = threading.Thread(
            target=self._run, kwargs=kwargs, daemon=True,
            name=f"brook.WebSocket:{self.endpoint}",
        )
        self._thread.start()

    def _run(self, **kwargs) -> None:
        try:
            self.app.run_forever(**kwargs)
        finally:
            # Older websocket-client releases skip on_close when the
            # initial connect fails.
            self._closed_once(None, None)

    def close(self, code: int = CLOSE_NORMAL, reason: str = "") -> None:
        app = self.app
        if app is None:
            return

        app.keep_running = False
        sock = app.sock

        if sock is not None and sock.connected:
            try:
                sock.close(status=code, reason=reason.encode("utf-8"), timeout=1)
                return
            except websocket.WebSocketException:
                pass

        app.close()

    def send(self, text: str) -> None:
        app = self.app
        if app is None or not self.is_open:
            raise websocket.WebSocketConnectionClosedException("socket is not open")
        app.send(text)

    @property
    def is_open(self) -> bool:
        app = self.app
        if app is None or self._closed:
            return False
        sock = app.sock
        return bool(self._opened and sock is not None and sock.connected)

    # --- websocket-client callbacks ---

    def _app_open(self, app) -> None:
        self._opened = True
        self.on_open()

    def _app_message(self, app, message) -> None:
        if isinstance(message, bytes):
            message = message.decode("utf-8", "replace")
        self.on_message(message)

    def _app_error(self, app, error) -> None:
        self.on_error(error)

    def _app_close(self, app, code=None, reason=None) -> None:
        self._closed_once(code, reason)

    def _closed_once(self, code, reason) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True

        code, reason = closed_reason(code, reason)
        self.on_close(code, reason)
