"""Exceptions raised by the Brook client.

Failures discovered while a caller is waiting on :func:`Connection.connect`
are raised to that caller; failures discovered afterwards are absorbed by
the reconnection machinery and only surface as connectivity transitions.
"""


class BrookError(Exception):
    """Base class for all Brook client errors."""


# Transport errors

class TransportError(BrookError):
    """Base class for failures of the underlying socket."""


class ConnectionTimeout(TransportError):
    """The socket did not open within the connection timeout."""


class TransportConnectionError(TransportError):
    """The socket closed or failed before the session was established."""


class NotConnected(TransportError):
    """An operation required an established, authenticated session."""


# Authentication errors

class AuthenticationError(BrookError):
    """Base class for handshake failures."""


class AuthenticationTimeout(AuthenticationError):
    """The handshake did not complete within the authentication timeout."""


class AuthenticationFailed(AuthenticationError):
    """The server rejected the supplied credentials."""


# Everything else

class MaxAttemptsExceeded(BrookError):
    """The backoff policy has no reconnection attempts left."""


class InvalidTopicName(BrookError, ValueError):
    """A channel name was empty or not a string."""


class MessageParseError(BrookError, ValueError):
    """An inbound frame could not be decoded."""


class InvalidConfiguration(BrookError, ValueError):
    """A required configuration option is missing or malformed."""


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
