"""Convenience constructors for outbound frames."""

from __future__ import annotations

import time
from typing import Any, Dict, Optional

from .fields import AUTH, HEARTBEAT, PUBLISH, SUBSCRIBE, UNSUBSCRIBE

Frame = Dict[str, Any]


def timestamp() -> int:
    """Current time in integer milliseconds, as carried on the wire."""
    return int(time.time() * 1000)


def auth(api_key: str) -> Frame:
    return {"type": AUTH, "apiKey": api_key, "timestamp": timestamp()}


def heartbeat() -> Frame:
    return {"type": HEARTBEAT, "timestamp": timestamp()}


def subscribe(channel: str, from_offset: Optional[int] = 0) -> Frame:
    return {"type": SUBSCRIBE, "channel": channel, "fromOffset": from_offset}


def unsubscribe(channel: str) -> Frame:
    return {"type": UNSUBSCRIBE, "channel": channel, "timestamp": timestamp()}


def publish(channel: str, message: Any) -> Frame:
    return {
        "type": PUBLISH,
        "channel": channel,
        "message": message,
        "timestamp": timestamp(),
    }
