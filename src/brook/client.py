""" Implementation of the top-level :class:`Client`. This is intended to be
    the principal entry point for applications using the Brook service.
"""

import types

from .channel import Channel
from .config import Configuration
from .connection import Connection, States
from .errors import BrookError, InvalidTopicName
from .log import Log
from .storage import MemoryStorage


class Client:
    """ A :class:`Client` owns one :class:`brook.connection.Connection` and
        every :class:`brook.channel.Channel` multiplexed over it. The options
        are those of :class:`brook.config.Configuration`, either as a
        dictionary (*config*), as keyword arguments, or both; at minimum an
        *api_key* is required::

            client = brook.Client(api_key='...')
            client.connect()

            channel = client.channel('prices')
            unsubscribe = channel.stream(print)
            channel.publish({'price': 42})

        The optional *storage* remembers channel offsets between clients
        (see :mod:`brook.storage`); offsets are only kept in memory if it is
        not specified. The *log*, *socket_factory*, and *scheduler*
        arguments are passed through to the :class:`Connection`.
    """

    def __init__(self, config=None, storage=None, log=None, socket_factory=None, scheduler=None, **options):

        self.config = Configuration(config, **options)

        if log is None:
            log = Log(self.config.verbose)

        if storage is None:
            storage = MemoryStorage()

        self.log = log
        self.storage = storage
        self.connection = Connection(self.config, log=log, socket_factory=socket_factory, scheduler=scheduler)
        self.channels = dict()

        self._listeners = list()

        self.connection.register(self._connectivity)

        self.realtime = types.SimpleNamespace(channel=self.channel)
        self.connectivity = types.SimpleNamespace(subscribe=self.on_connectivity_change)

        self.log.info('Client %s initialized', self.client_id)


    @property
    def client_id(self):
        return self.connection.client_id


    @property
    def status(self):
        """ The current connection state, one of the
            :class:`brook.connection.States` values.
        """

        return self.connection.state


    @property
    def is_authenticated(self):
        return self.connection.is_authenticated


    def is_connected(self):
        return self.connection.is_connected()


    def connect(self, wait=True, timeout=None):
        """ Establish the connection to the Brook service; see
            :func:`brook.connection.Connection.connect` for the meaning of
            the arguments and the return value.
        """

        self.log.info('Connecting to %s', self.config.endpoint)

        try:
            result = self.connection.connect(wait, timeout)
        except BrookError as e:
            self.log.error('Failed to connect: %s', e)
            raise

        return result


    def disconnect(self):
        """ Unsubscribe every channel, forget them, and close the connection.
        """

        with self.connection.lock:
            for channel in self.channels.values():
                channel.close()
                channel.detach()

            self.channels.clear()
            self.connection.disconnect()


    def cleanup(self):
        """ Disconnect, and drop every connectivity callback registered via
            :func:`on_connectivity_change`. The client can still be reused
            afterwards.
        """

        self.disconnect()

        for listener in self._listeners:
            self.connection.unregister(listener)

        del self._listeners[:]


    def channel(self, name):
        """ Return the :class:`brook.channel.Channel` for the topic *name*,
            creating it if necessary. The same instance is returned every
            time for the same *name*.
        """

        if isinstance(name, str) and name != '':
            pass
        else:
            raise InvalidTopicName('channel name is required and must be a string')

        with self.connection.lock:
            try:
                channel = self.channels[name]
            except KeyError:
                channel = Channel(name, self.connection, self.log, self.storage)
                self.channels[name] = channel

        return channel


    def active_channels(self):
        return list(self.channels.keys())


    def on_connectivity_change(self, callback):
        """ Invoke *callback* with the new state name every time the
            connection state changes. Returns a callable that removes the
            callback.
        """

        if callable(callback):
            pass
        else:
            raise TypeError('the connectivity callback must be callable')

        def listener(event):
            callback(event.status)

        self.connection.register(listener)
        self._listeners.append(listener)
        self.log.info('Connectivity listener added')

        def unsubscribe():
            self.connection.unregister(listener)
            try:
                self._listeners.remove(listener)
            except ValueError:
                return
            self.log.info('Connectivity listener removed')

        return unsubscribe


    def resubscribe_channels(self):
        """ Ask the server to resume every channel with active streams from
            its last known offset.
        """

        with self.connection.lock:
            for channel in list(self.channels.values()):
                channel.resubscribe()


    def stats(self):
        """ Return a dictionary describing the connection and every channel,
            intended for diagnostics.
        """

        channels = dict()
        for name,channel in list(self.channels.items()):
            channels[name] = channel.stats()

        stats = dict()
        stats['connection'] = self.connection.stats()
        stats['channels'] = channels
        stats['active_channels'] = len(channels)

        return stats


    def _connectivity(self, event):

        if event.status == States.CONNECTED:
            self.resubscribe_channels()


# end of class Client


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
