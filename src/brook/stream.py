""" A :class:`Stream` is one subscription on a :class:`brook.channel.Channel`,
    bound to one callback. Streams are created by
    :func:`brook.channel.Channel.stream`; there is no need to instantiate
    them directly.
"""

import itertools

from .connection import States
from .protocol import factory


IDLE = 'idle'
STREAMING = 'streaming'
STOPPED = 'stopped'

_tokens = itertools.count(1)


class Stream:
    """ Subscription state for a single callback. The *offset* is the
        channel offset at the time the stream was created; the server will
        replay anything published after that offset.

        :ivar token: Unique identifier for this stream, used as the key when
                     unsubscribing.
        :ivar state: One of 'idle', 'streaming', or 'stopped'.
    """

    def __init__(self, channel, connection, offset=0, log=None):

        self.token = next(_tokens)
        self.channel = channel
        self.connection = connection
        self.offset = offset
        self.log = log
        self.handler = None
        self.state = IDLE


    def start(self, handler):
        """ Bind *handler* and ask the server for every message on the
            channel after :attr:`offset`. If the connection is not usable
            right now the request is left to the resubscription that
            follows the next successful connection.
        """

        if callable(handler):
            pass
        else:
            raise TypeError('the stream callback must be callable')

        self.handler = handler
        self.state = STREAMING

        if self.connection.is_connected():
            frame = factory.subscribe(self.channel, self.offset)
            self.connection.send(frame)

            if self.log is not None:
                self.log.info('Streaming %s from offset %s', self.channel, self.offset)

        elif self.log is not None:
            self.log.info('Streaming %s once connected', self.channel)


    def stop(self):
        self.state = STOPPED


    def status(self):
        """ Return the connection state if the connection is not established,
            otherwise the state of this stream.
        """

        connection_state = self.connection.state

        if connection_state != States.CONNECTED:
            return connection_state

        return self.state


    def __repr__(self):
        return 'Stream(%r, token=%d, state=%r)' % (self.channel, self.token, self.state)


# end of class Stream


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
