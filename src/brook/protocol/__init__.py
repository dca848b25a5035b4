"""
Brook Wire Protocol
===================

Frames exchanged with the Brook service are JSON objects; the ``type``
field discriminates between them.

    type            direction   fields
    --------------  ---------   -------------------------------------------
    auth            out         apiKey, timestamp
    auth_required   in          (server asks for credentials again)
    auth_success    in          (credentials accepted, wait for connected)
    connected       in          (session established)
    auth_timeout    in          error / message
    error           in          error / message
    heartbeat       both        timestamp
    subscribe       out         channel, fromOffset
    unsubscribe     out         channel, timestamp
    subscribed      in          channel
    unsubscribed    in          channel
    publish         out         channel, message, timestamp
    published       in          channel
    message         in          channel, data, offset, timestamp, replay

Layers
------

Field Vocabulary (fields.py)
    Canonical names for frame types.

Frame Construction (factory.py)
    Builds outbound frames with consistent timestamps.

Codec (wire.py)
    Maps frames <-> socket text; the only place JSON is touched.

The protocol layer MUST NOT depend on any socket implementation.
"""

from . import fields
from . import factory
from . import wire

from .factory import Frame
