""" A :class:`Channel` is one named topic multiplexed over the shared
    :class:`brook.connection.Connection`. It tracks the highest offset seen
    on the topic, persists it, and routes inbound messages to every active
    :class:`brook.stream.Stream`.
"""

import math

from .errors import InvalidTopicName, NotConnected
from .log import Log
from .protocol import factory, fields
from .stream import Stream


class Channel:
    """ Subscription and publication for the topic *name*. Channels are
        created and cached by :func:`brook.Client.channel`; a channel
        persists for the lifetime of the session, even when it has no
        active streams.

        The *storage* is any object with ``get(key)`` and ``set(key, value)``
        methods; it is used to remember the channel offset under the key
        ``<name>_offset``. If *storage* is None the offset always starts at
        zero.

        :ivar offset: The highest message offset observed on this channel.
        :ivar streams: Active :class:`Stream` instances, keyed by token.
    """

    def __init__(self, name, connection, log=None, storage=None):

        if isinstance(name, str) and name != '':
            pass
        else:
            raise InvalidTopicName('channel name is required and must be a string')

        if log is None:
            log = Log()

        self.name = name
        self.connection = connection
        self.log = log
        self.storage = storage
        self.streams = dict()

        # Inbound routing runs under the connection lock; channel state
        # changes share it.

        self.lock = connection.lock

        self.offset = self._load_offset()

        self.handler = self.handle_message
        self.connection.add_handler(self.handler)


    @property
    def offset_key(self):
        return self.name + '_offset'


    def _load_offset(self):

        if self.storage is None:
            return 0

        stored = self.storage.get(self.offset_key)

        if stored is None or stored == '':
            return 0

        try:
            return int(stored)
        except ValueError:
            pass

        try:
            offset = float(stored)
        except ValueError:
            offset = None

        if offset is None or math.isfinite(offset) == False:
            self.log.warning('Ignoring unreadable stored offset for %s: %r', self.name, stored)
            return 0

        if offset.is_integer():
            offset = int(offset)

        return offset


    def _set_offset(self, offset):

        self.offset = offset

        if self.storage is None:
            return

        # Whole numbers are always stored without a fractional part.
        if isinstance(offset, float) and offset.is_integer():
            offset = int(offset)

        try:
            self.storage.set(self.offset_key, str(offset))
        except Exception:
            self.log.exception('Failed to persist offset for %s', self.name)


    def stream(self, callback):
        """ Invoke *callback* for every message arriving on this channel,
            starting with any messages published after the current offset.
            The callback receives two arguments: the message data, and a
            metadata dictionary with 'offset', 'timestamp', 'replay', and
            'channel' keys.

            Calling :func:`stream` repeatedly with the same callback creates
            independent streams; the callback will be invoked once per
            stream. The return value is a callable that removes the stream
            created by this call; its *token* attribute can also be passed
            to :func:`unstream`.
        """

        if callable(callback):
            pass
        else:
            raise TypeError('the stream callback must be callable')

        with self.lock:
            stream = Stream(self.name, self.connection, self.offset, self.log)
            self.streams[stream.token] = stream
            stream.start(callback)

            self.log.info('Stream added on %s (%d active, offset %s)', self.name, len(self.streams), self.offset)

        token = stream.token

        def unsubscribe():
            self.unstream(token)

        unsubscribe.token = token
        return unsubscribe


    def unstream(self, target):
        """ Stop and remove a stream. The *target* is either a stream token,
            or a callback, in which case every stream bound to that callback
            is removed. When the last stream is removed the server is asked
            to stop sending messages for this channel; the channel can be
            reactivated at any time by calling :func:`stream` again.
        """

        with self.lock:
            if callable(target):
                tokens = list()
                for token,stream in self.streams.items():
                    if stream.handler is target:
                        tokens.append(token)
            else:
                tokens = (target,)

            removed = list()
            for token in tokens:
                try:
                    stream = self.streams.pop(token)
                except KeyError:
                    continue

                stream.stop()
                removed.append(stream)

            if len(removed) == 0:
                return

            self.log.info('Stream removed from %s (%d active)', self.name, len(self.streams))

            if len(self.streams) == 0:
                self.log.info('No streams left on %s, unsubscribing', self.name)
                self.close()


    def publish(self, message):
        """ Publish *message* to this channel. The message is handed to the
            connection immediately; no acknowledgement from the server is
            awaited. Raises :class:`brook.errors.NotConnected` if the
            connection is not established.
        """

        if self.connection.is_connected():
            pass
        else:
            raise NotConnected('connection is not established')

        frame = factory.publish(self.name, message)
        self.connection.send(frame)

    send = publish


    def close(self):
        """ Ask the server to stop delivering messages for this channel. The
            connection itself is unaffected. Nothing is sent if the
            connection is down: a new session starts with no subscriptions.
        """

        if self.connection.is_connected():
            frame = factory.unsubscribe(self.name)
            self.connection.send(frame)


    def detach(self):
        """ Stop receiving frames from the connection at all; used when the
            owning client discards this channel.
        """

        self.connection.remove_handler(self.handler)


    def resubscribe(self):
        """ Ask the server to resume this channel from the current offset,
            replaying anything missed. Called after every reconnection; does
            nothing if there are no active streams.
        """

        with self.lock:
            if len(self.streams) == 0:
                return

            frame = factory.subscribe(self.name, self.offset)
            self.connection.send(frame)

            self.log.info('Resubscribed to %s from offset %s', self.name, self.offset)


    def handle_message(self, frame):
        """ Route one inbound frame. Frames are ignored entirely while the
            channel has no active streams.
        """

        with self.lock:
            if len(self.streams) == 0:
                self.log.debug('No streams active on %s, skipping %s frame', self.name, frame.get('type'))
                return

            type = frame.get('type')
            channel = frame.get('channel')

            if type == fields.MESSAGE:
                if not channel or channel == self.name:
                    self._deliver(frame)

            elif channel != self.name:
                return

            elif type == fields.SUBSCRIBED:
                self.log.info('Subscribed to channel: %s', self.name)

            elif type == fields.UNSUBSCRIBED:
                self.log.info('Unsubscribed from channel: %s', self.name)

            elif type == fields.PUBLISHED:
                self.log.info('Message published to channel: %s', self.name)


    def _deliver(self, frame):

        offset = frame.get('offset')

        metadata = dict()
        metadata['offset'] = offset
        metadata['timestamp'] = frame.get('timestamp')
        metadata['replay'] = bool(frame.get('replay', False))
        metadata['channel'] = frame.get('channel') or self.name

        # Replays and duplicates are still delivered, but only a strictly
        # greater offset moves the channel forward.

        if is_number(offset) and offset > self.offset:
            self._set_offset(offset)

        data = frame.get('data')

        for stream in list(self.streams.values()):
            try:
                stream.handler(data, dict(metadata))
            except Exception:
                self.log.exception('Stream handler error on %s', self.name)


    def stats(self):
        """ Return a dictionary describing this channel, intended for
            diagnostics.
        """

        stats = dict()
        stats['name'] = self.name
        stats['streams'] = len(self.streams)
        stats['offset'] = self.offset
        stats['connection_state'] = self.connection.state

        return stats


    def __repr__(self):
        return 'Channel(%r, streams=%d, offset=%r)' % (self.name, len(self.streams), self.offset)


# end of class Channel



def is_number(value):
    return isinstance(value, (int, float)) and not isinstance(value, bool)


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
