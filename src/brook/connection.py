""" The :class:`Connection` owns the one physical socket shared by every
    channel of a :class:`brook.Client`. It authenticates the socket, keeps
    it alive with heartbeats, buffers outbound frames while the socket is
    unusable, and reconnects with exponential backoff when the socket is
    lost unexpectedly.

    Every event that can change the state of a :class:`Connection` (socket
    callbacks, timer expirations, public method calls) is processed while
    holding :attr:`Connection.lock`, so state transitions for one instance
    never interleave.
"""

import collections
import concurrent.futures
import functools
import threading
import time

from . import transport
from .backoff import Backoff
from .errors import (
    AuthenticationFailed,
    AuthenticationTimeout,
    ConnectionTimeout,
    MaxAttemptsExceeded,
    MessageParseError,
    NotConnected,
    TransportConnectionError,
)
from .log import Log
from .protocol import factory, fields, wire
from .timer import Scheduler
from .transport import CLOSE_ABNORMAL, CLOSE_GOING_AWAY, CLOSE_NORMAL


class States:
    """ Names of the states a :class:`Connection` can be in.
    """

    DISCONNECTED = 'disconnected'
    CONNECTING = 'connecting'
    AUTHENTICATING = 'authenticating'
    CONNECTED = 'connected'
    RECONNECTING = 'reconnecting'
    FAILED = 'failed'
    UNAUTHORIZED = 'unauthorized'

    all = (DISCONNECTED, CONNECTING, AUTHENTICATING, CONNECTED,
           RECONNECTING, FAILED, UNAUTHORIZED)


# Delivered to every callback registered via Connection.register().
Connectivity = collections.namedtuple('Connectivity', ('status', 'timestamp', 'client_id'))

# One entry in the outbox.
Queued = collections.namedtuple('Queued', ('frame', 'enqueued'))



class Connection:
    """ Manage the socket connection to the Brook service. The *config* is
        a :class:`brook.config.Configuration` instance; the remaining
        arguments replace the collaborators a :class:`Connection` would
        otherwise create for itself:

        * *log*, any object with the methods of :class:`brook.log.Log`;
        * *backoff*, a :class:`brook.backoff.Backoff` instance;
        * *socket_factory*, a callable accepting an endpoint and returning
          an unopened :class:`brook.transport.base.Socket`;
        * *scheduler*, a :class:`brook.timer.Scheduler` instance.

        The timeouts and the heartbeat interval are in seconds.

        :ivar state: The current state, one of the :class:`States` values.
        :ivar client_id: Identifier for this client, stable for the lifetime
                         of the instance.
        :ivar outbox: Frames waiting for the connection to be usable.
        :ivar last_pong: UNIX epoch timestamp of the most recent liveness
                         signal from the server.
    """

    connect_timeout = 10
    auth_timeout = 30
    heartbeat_interval = 30
    max_queue_size = 10000

    def __init__(self, config, log=None, backoff=None, socket_factory=None, scheduler=None):

        self.config = config
        self.endpoint = config.endpoint
        self.client_id = config.client_id

        self.connect_timeout = config.connect_timeout
        self.auth_timeout = config.auth_timeout
        self.heartbeat_interval = config.heartbeat_interval
        self.max_queue_size = config.max_queue_size

        if log is None:
            log = Log(config.verbose)

        if backoff is None:
            backoff = Backoff(initial_delay=config.reconnect_timeout,
                              multiplier=config.backoff_multiplier,
                              max_delay=config.backoff_max_delay,
                              jitter=config.backoff_jitter,
                              max_attempts=config.backoff_max_attempts)

        if socket_factory is None:
            socket_factory = transport.socket

        if scheduler is None:
            scheduler = Scheduler()

        self.log = log
        self.backoff = backoff
        self.socket_factory = socket_factory
        self.scheduler = scheduler

        self.lock = threading.RLock()
        self.state = States.DISCONNECTED
        self.socket = None
        self.should_reconnect = False
        self.last_pong = None
        self.outbox = collections.deque(maxlen=self.max_queue_size)
        self.handlers = list()
        self.listeners = list()

        self._authenticated = False
        self._handshaking = False
        self._pending = None
        self._dispatch = threading.local()

        self._connect_timer = None
        self._auth_timer = None
        self._heartbeat = None
        self._reconnect_timer = None


    @property
    def is_authenticated(self):
        """ True only between a completed handshake and the next
            disconnection.
        """

        return self._authenticated and self.state == States.CONNECTED


    def is_connected(self):
        """ Return True if frames can be transmitted right now: the session
            is connected, authenticated, and the socket is open.
        """

        if self.state != States.CONNECTED or self._authenticated == False:
            return False

        socket = self.socket
        return socket is not None and socket.is_open


    # --- public operations ---

    def connect(self, wait=True, timeout=None):
        """ Establish the connection. If *wait* is True (the default) the
            call blocks until the handshake completes, returning True, or
            fails, raising the corresponding exception; a *timeout* in
            seconds bounds the wait. If *wait* is False the caller receives a
            :class:`concurrent.futures.Future` instead.

            Calls made while an attempt is already in progress share that
            attempt: they receive the same future, and no additional socket
            is opened.

            A call made from within a connectivity listener or a message
            handler never blocks, since the outcome can only be delivered
            once that callback returns; the future is returned regardless
            of *wait*.
        """

        with self.lock:
            future = self._pending

            if future is None:
                future = concurrent.futures.Future()

                if self.is_connected():
                    future.set_result(True)
                else:
                    self.should_reconnect = True

                    if self.state in (States.FAILED, States.UNAUTHORIZED):
                        self.backoff.reset()

                    self._cancel_reconnect()
                    self._pending = future
                    self._attempt()

        if wait == False or self._in_callback():
            return future

        return future.result(timeout)


    def disconnect(self):
        """ Close the connection and stop any further reconnection attempts.
            All pending timers are cancelled before this method returns, and
            the socket is detached before it is closed, so the closure it
            causes has no side effects. The state is Disconnected afterwards,
            regardless of what it was before.
        """

        with self.lock:
            self.should_reconnect = False

            self._cancel_reconnect()
            self._cancel_connect_timer()
            self._cancel_auth_timer()
            self._stop_heartbeat()

            self._authenticated = False
            self._handshaking = False

            socket = self.socket
            if socket is not None:
                self._release(socket, CLOSE_NORMAL, 'Client disconnect')

            pending = self._take_pending()
            self._set_state(States.DISCONNECTED)
            self._reject(pending, NotConnected('disconnected before the connection was established'))


    def send(self, frame):
        """ Transmit a frame (a dictionary) immediately if the connection is
            usable; otherwise, or if the transmission fails, put it in the
            outbox to be sent after the next successful connection. Returns
            True if the frame was transmitted, False if it was queued.
            Frames that cannot be serialized raise TypeError.
        """

        text = wire.encode(frame)

        with self.lock:
            if self.is_connected():
                try:
                    self.socket.send(text)
                except Exception as e:
                    self.log.error('Failed to send frame: %s', e)
                else:
                    return True

            self._enqueue(frame)
            return False


    def add_handler(self, handler):
        """ Register a callable to receive every inbound frame, as a
            dictionary, once the connection is authenticated. Heartbeat
            frames are not delivered.
        """

        if callable(handler):
            pass
        else:
            raise TypeError('the message handler must be callable')

        with self.lock:
            if handler not in self.handlers:
                self.handlers.append(handler)


    def remove_handler(self, handler):

        with self.lock:
            try:
                self.handlers.remove(handler)
            except ValueError:
                pass


    def register(self, callback):
        """ Register a callable to be invoked with a :class:`Connectivity`
            tuple every time the state changes. Returns a callable that will
            undo the registration.
        """

        if callable(callback):
            pass
        else:
            raise TypeError('the connectivity callback must be callable')

        with self.lock:
            self.listeners.append(callback)

        def unregister():
            self.unregister(callback)

        return unregister


    def unregister(self, callback):

        with self.lock:
            try:
                self.listeners.remove(callback)
            except ValueError:
                pass


    def stats(self):
        """ Return a dictionary describing the connection, intended for
            diagnostics.
        """

        with self.lock:
            stats = dict()
            stats['state'] = self.state
            stats['client_id'] = self.client_id
            stats['is_authenticated'] = self.is_authenticated
            stats['reconnect_attempts'] = self.backoff.attempts
            stats['queued_messages'] = len(self.outbox)
            stats['last_pong'] = self.last_pong
            stats['backoff'] = self.backoff.status()

        return stats


    # --- connection attempts ---

    def _attempt(self):
        """ Open a new socket on behalf of the pending future. Failures to
            even create the socket are treated the same as a socket that
            closed before opening.
        """

        self._set_state(States.CONNECTING)

        try:
            socket = self.socket_factory(self.endpoint)
        except Exception as e:
            error = TransportConnectionError('cannot create socket: ' + str(e))
            self._lost(CLOSE_ABNORMAL, str(e), error)
            return

        socket.on_open = functools.partial(self._on_open, socket)
        socket.on_message = functools.partial(self._on_message, socket)
        socket.on_error = functools.partial(self._on_error, socket)
        socket.on_close = functools.partial(self._on_close, socket)

        self.socket = socket
        self._connect_timer = self.scheduler.timer(self.connect_timeout, self._on_connect_timeout, socket)

        try:
            socket.open()
        except Exception as e:
            self._release(socket, CLOSE_GOING_AWAY, str(e))
            error = TransportConnectionError('cannot open socket: ' + str(e))
            self._lost(CLOSE_ABNORMAL, str(e), error)


    def _on_connect_timeout(self, socket):

        with self.lock:
            if socket is not self.socket or self.state != States.CONNECTING:
                return

            self._connect_timer = None
            self.log.warning('Connection timeout after %s seconds', self.connect_timeout)

            self._release(socket, CLOSE_GOING_AWAY, 'Connection timeout')
            error = ConnectionTimeout('Connection timeout')
            self._lost(CLOSE_ABNORMAL, 'Connection timeout', error)


    def _on_open(self, socket):

        with self.lock:
            if socket is not self.socket:
                return

            self._cancel_connect_timer()
            self._set_state(States.AUTHENTICATING)

            # The server expects credentials immediately; there is no
            # challenge to wait for.

            self._handshaking = True
            self._auth_timer = self.scheduler.timer(self.auth_timeout, self._on_auth_timeout, socket)
            self._send_credentials(socket)


    def _on_message(self, socket, text):

        with self.lock:
            if socket is not self.socket:
                return

            try:
                frame = wire.decode(text)
            except MessageParseError as e:
                self.log.error('Failed to parse inbound frame: %s', e)
                return

            if self._authenticated == False:
                self._handle_auth(socket, frame)
                return

            if frame['type'] == fields.HEARTBEAT:
                self.last_pong = time.time()
                return

            self._enter_callback()
            try:
                for handler in list(self.handlers):
                    try:
                        handler(frame)
                    except Exception:
                        self.log.exception('Message handler error')
            finally:
                self._leave_callback()


    def _on_error(self, socket, error):

        with self.lock:
            if socket is not self.socket:
                return

            # A closure always follows; that is where the state changes.
            self.log.error('Socket error: %s', error)


    def _on_close(self, socket, code, reason):

        with self.lock:
            if socket is not self.socket:
                return

            socket.detach()
            self.socket = None

            if self.state in (States.CONNECTING, States.AUTHENTICATING):
                error = TransportConnectionError("Connection failed: %s %s" % (code, reason))
            else:
                error = None

            self._lost(code, reason, error)


    def _lost(self, code, reason, error):
        """ The socket is gone, for whatever reason. Settle the state, then
            fail the pending attempt, if any.
        """

        self._cancel_connect_timer()

        pending = self._take_pending()
        self._handle_disconnection(code, reason)

        if error is None:
            error = TransportConnectionError("Connection lost: %s %s" % (code, reason))

        self._reject(pending, error)


    def _handle_disconnection(self, code, reason):

        self.log.info('Disconnected: %s %s', code, reason)

        self._authenticated = False
        self._handshaking = False
        self._cancel_auth_timer()
        self._stop_heartbeat()

        if self.should_reconnect == False or code == CLOSE_NORMAL:
            self._set_state(States.DISCONNECTED)
            return

        if self.backoff.attempts_exceeded():
            self._set_state(States.FAILED)
            return

        self._set_state(States.RECONNECTING)

        # A connectivity listener may have called connect() already.
        if self.state != States.RECONNECTING:
            return

        self._schedule_reconnection()


    # --- reconnection ---

    def _schedule_reconnection(self):
        """ At most one reconnection is ever scheduled; scheduling a new one
            replaces any existing one.
        """

        self._cancel_reconnect()

        try:
            delay = self.backoff.next_delay()
        except MaxAttemptsExceeded:
            self._set_state(States.FAILED)
            return

        self.log.info('Reconnecting in %d ms (attempt %d)', delay, self.backoff.attempts)
        self._reconnect_timer = self.scheduler.timer(delay / 1000.0, self._reconnect)


    def _reconnect(self):

        with self.lock:
            self._reconnect_timer = None

            if self.should_reconnect == False or self.state != States.RECONNECTING:
                return

            if self._pending is not None:
                return

            future = concurrent.futures.Future()
            future.add_done_callback(self._reconnect_done)
            self._pending = future
            self._attempt()


    def _reconnect_done(self, future):

        error = future.exception()
        if error is not None:
            self.log.warning('Reconnection attempt failed: %s', error)


    def _cancel_reconnect(self):

        timer = self._reconnect_timer
        self._reconnect_timer = None

        if timer is not None:
            timer.cancel()


    def _cancel_connect_timer(self):

        timer = self._connect_timer
        self._connect_timer = None

        if timer is not None:
            timer.cancel()


    # --- authentication ---

    def _send_credentials(self, socket):

        text = wire.encode(factory.auth(self.config.api_key))

        try:
            socket.send(text)
        except Exception as e:
            self.log.error('Failed to send credentials: %s', e)
            self._release(socket, CLOSE_GOING_AWAY, 'Cannot send credentials')
            error = TransportConnectionError('cannot send credentials: ' + str(e))
            self._lost(CLOSE_ABNORMAL, str(e), error)


    def _handle_auth(self, socket, frame):
        """ Process one frame received while the handshake is underway.
        """

        if self._handshaking == False:
            return

        type = frame['type']

        if type == fields.AUTH_REQUIRED:
            self._send_credentials(socket)

        elif type == fields.AUTH_SUCCESS:
            # Not done yet; 'connected' completes the handshake.
            self.log.debug('Credentials accepted')

        elif type == fields.CONNECTED:
            self._handshake_complete()

        elif type == fields.AUTH_TIMEOUT:
            reason = failure_reason(frame, 'Authentication timeout')
            self._handshake_failed(socket, AuthenticationTimeout(reason))

        elif type == fields.ERROR:
            reason = failure_reason(frame, 'Authentication failed')
            self._handshake_failed(socket, AuthenticationFailed(reason))

        elif type == fields.HEARTBEAT:
            self.last_pong = time.time()

        else:
            self.log.warning('Unexpected frame during authentication: %s', type)

            if frame.get('error') == fields.INVALID_API_KEY:
                self._handshake_failed(socket, AuthenticationFailed(fields.INVALID_API_KEY))


    def _handshake_complete(self):

        self._cancel_auth_timer()
        self._handshaking = False
        self._authenticated = True
        self.backoff.reset()

        self.log.info('Connected as %s', self.client_id)
        self._set_state(States.CONNECTED)

        # A connectivity listener may have torn everything down again.
        if self.state != States.CONNECTED:
            return

        self._start_heartbeat()
        self._flush()
        self._resolve(True)


    def _handshake_failed(self, socket, error):

        self._cancel_auth_timer()
        self._handshaking = False

        self.log.error('Authentication failed: %s', error)
        self._release(socket, CLOSE_NORMAL, 'Authentication failed')

        pending = self._take_pending()
        self._set_state(States.UNAUTHORIZED)
        self._reject(pending, error)


    def _on_auth_timeout(self, socket):

        with self.lock:
            if socket is not self.socket or self._handshaking == False:
                return

            self._auth_timer = None
            self._handshake_failed(socket, AuthenticationTimeout('Authentication timeout'))


    def _cancel_auth_timer(self):

        timer = self._auth_timer
        self._auth_timer = None

        if timer is not None:
            timer.cancel()


    # --- heartbeat ---

    def _start_heartbeat(self):

        self._stop_heartbeat()
        self.last_pong = time.time()
        self._heartbeat = self.scheduler.interval(self.heartbeat_interval, self._on_heartbeat, self.socket)


    def _stop_heartbeat(self):

        heartbeat = self._heartbeat
        self._heartbeat = None

        if heartbeat is not None:
            heartbeat.cancel()


    def _on_heartbeat(self, socket):
        """ Close the socket if the server has been silent for more than two
            heartbeat intervals, otherwise send a heartbeat of our own.
        """

        with self.lock:
            if socket is not self.socket or self.is_connected() == False:
                return

            elapsed = time.time() - self.last_pong

            if elapsed > self.heartbeat_interval * 2:
                self.log.warning('Heartbeat timeout detected, closing connection')
                self._release(socket, CLOSE_GOING_AWAY, 'Heartbeat timeout')
                self._lost(CLOSE_ABNORMAL, 'Heartbeat timeout', None)
                return

            self.send(factory.heartbeat())


    # --- outbox ---

    def _enqueue(self, frame):

        if len(self.outbox) == self.outbox.maxlen:
            self.log.warning('Outbox full (%d), dropping the oldest frame', self.outbox.maxlen)

        self.outbox.append(Queued(frame, time.time()))


    def _flush(self):
        """ Resend everything in the outbox, oldest first. Frames that fail
            again land back in the outbox, and wait for the next flush.
        """

        if len(self.outbox) == 0:
            return

        queued = list(self.outbox)
        self.outbox.clear()

        self.log.info('Sending %d queued frames', len(queued))

        for entry in queued:
            self.send(entry.frame)


    # --- helpers ---

    def _release(self, socket, code, reason):
        """ Detach and close *socket*. No further events will be processed
            for it.
        """

        socket.detach()

        if socket is self.socket:
            self.socket = None

        try:
            socket.close(code, reason)
        except Exception as e:
            self.log.debug('Ignoring error while closing socket: %s', e)


    def _resolve(self, result):

        future = self._pending
        self._pending = None

        if future is not None and future.done() == False:
            future.set_result(result)


    def _take_pending(self):
        """ Detach the in-flight attempt, if any, so that a listener
            notified of the outcome can start a new one.
        """

        future = self._pending
        self._pending = None
        return future


    def _reject(self, future, error):

        if future is not None and future.done() == False:
            future.set_exception(error)


    def _set_state(self, state):

        if state == self.state:
            return

        self.log.debug('State %s -> %s', self.state, state)
        self.state = state

        event = Connectivity(state, time.time(), self.client_id)

        self._enter_callback()
        try:
            for listener in list(self.listeners):
                try:
                    listener(event)
                except Exception:
                    self.log.exception('Connectivity listener error')
        finally:
            self._leave_callback()


    def _enter_callback(self):
        self._dispatch.depth = getattr(self._dispatch, 'depth', 0) + 1


    def _leave_callback(self):
        self._dispatch.depth -= 1


    def _in_callback(self):
        """ True if the calling thread is running a listener or a handler
            on behalf of this connection.
        """

        return getattr(self._dispatch, 'depth', 0) > 0


# end of class Connection



def failure_reason(frame, default):
    """ Extract the human-readable reason from a server error frame.
    """

    for field in ('error', 'message'):
        reason = frame.get(field)
        if reason:
            return str(reason)

    return default


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
