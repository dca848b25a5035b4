import json
import pytest

import brook
from brook.transport.base import Socket


class FakeSocket(Socket):
    """ In-memory stand-in for a real socket. Nothing happens on its own:
        the test decides when the socket opens, what arrives, and when it
        goes away.
    """

    def __init__(self, endpoint):
        Socket.__init__(self, endpoint)
        self.sent = list()
        self.opened = False
        self.closed = None
        self.fail_sends = False
        self._open = False


    def open(self):
        self.opened = True


    def close(self, code=1000, reason=''):
        self._open = False
        self.closed = (code, reason)

        # A real socket reports its own closure; a well-behaved owner has
        # detached before getting here.
        self.on_close(code, reason)


    def send(self, text):
        if self._open == False or self.fail_sends == True:
            raise ConnectionError('socket is not open')

        self.sent.append(json.loads(text))


    @property
    def is_open(self):
        return self._open


    def accept(self):
        self._open = True
        self.on_open()


    def receive(self, frame):
        if isinstance(frame, dict):
            frame = json.dumps(frame)

        self.on_message(frame)


    def drop(self, code=1006, reason='gone'):
        self._open = False
        self.on_close(code, reason)


    def types(self):
        return [frame['type'] for frame in self.sent]


# end of class FakeSocket



class FakeSockets:
    """ Socket factory that remembers every socket it hands out.
    """

    def __init__(self):
        self.created = list()


    def __call__(self, endpoint):
        socket = FakeSocket(endpoint)
        self.created.append(socket)
        return socket


    @property
    def last(self):
        return self.created[-1]


# end of class FakeSockets



class ManualTimer:

    def __init__(self, delay, function, args, periodic=False):
        self.delay = delay
        self.function = function
        self.args = args
        self.periodic = periodic
        self.cancelled = False
        self.fired = False


    @property
    def active(self):
        return self.cancelled == False and self.fired == False


    def fire(self):
        if self.active == False:
            return

        if self.periodic == False:
            self.fired = True

        self.function(*self.args)


    def cancel(self):
        self.cancelled = True


# end of class ManualTimer



class ManualScheduler:
    """ Drop-in for :class:`brook.timer.Scheduler` where nothing expires
        until the test says so.
    """

    def __init__(self):
        self.timers = list()


    def timer(self, delay, function, *args):
        timer = ManualTimer(delay, function, args)
        self.timers.append(timer)
        return timer


    def interval(self, period, function, *args):
        timer = ManualTimer(period, function, args, periodic=True)
        self.timers.append(timer)
        return timer


    def pending(self, function=None):
        pending = list()
        for timer in self.timers:
            if timer.active == False:
                continue
            if function is not None and timer.function != function:
                continue
            pending.append(timer)

        return pending


# end of class ManualScheduler



@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):

    for variable in brook.config.environment.values():
        monkeypatch.delenv(variable, raising=False)


@pytest.fixture
def sockets():
    return FakeSockets()


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def options():

    options = dict()
    options['api_key'] = 'test-key'
    options['endpoint'] = 'wss://brook.invalid'
    options['reconnect_timeout'] = 1000
    options['backoff_multiplier'] = 2
    options['backoff_max_delay'] = 8000
    options['backoff_jitter'] = 0
    options['backoff_max_attempts'] = 5

    return options


@pytest.fixture
def config(options):
    return brook.config.Configuration(options)


@pytest.fixture
def connection(config, sockets, scheduler):
    return brook.Connection(config, socket_factory=sockets, scheduler=scheduler)


@pytest.fixture
def client(options, sockets, scheduler):
    return brook.Client(options, socket_factory=sockets, scheduler=scheduler)


@pytest.fixture
def handshake():
    """ Walk an unopened socket through a successful handshake.
    """

    def handshake(socket):
        socket.accept()
        socket.receive({'type': 'auth_success'})
        socket.receive({'type': 'connected'})
        return socket

    return handshake


@pytest.fixture
def establish(sockets, handshake):
    """ Connect a :class:`brook.Connection` (or :class:`brook.Client`)
        and return the socket it ended up with.
    """

    def establish(target):
        target.connect(wait=False)
        return handshake(sockets.last)

    return establish


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
