"""Frame <-> text conversion for the socket layer."""

from __future__ import annotations

from typing import Union

from .. import json
from ..errors import MessageParseError
from .factory import Frame
from .fields import TYPE


def encode(frame: Frame) -> str:
    """Serialize one outbound frame to the text sent on the socket.

    Values that cannot be represented as JSON raise TypeError to the caller.
    """

    return json.dumps(frame).decode("utf-8")


def decode(data: Union[str, bytes]) -> Frame:
    """Parse one inbound frame.

    Raises MessageParseError if *data* is not a JSON object with a string
    ``type`` field.
    """

    try:
        frame = json.loads(data)
    except (json.DecodeError, ValueError) as exc:
        raise MessageParseError(f"malformed frame: {exc}") from exc

    if not isinstance(frame, dict):
        raise MessageParseError(f"frame is not an object: {frame!r}")

    if not isinstance(frame.get(TYPE), str):
        raise MessageParseError(f"frame has no type: {frame!r}")

    return frame
