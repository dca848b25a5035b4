import pytest
import re

import brook


def test_api_key_required(sockets):

    with pytest.raises(brook.InvalidConfiguration):
        brook.Client(socket_factory=sockets)

    with pytest.raises(brook.InvalidConfiguration):
        brook.Client(api_key='', socket_factory=sockets)



def test_api_key_from_environment(monkeypatch, sockets):

    monkeypatch.setenv('BROOK_API_KEY', 'from-environment')
    client = brook.Client(socket_factory=sockets)

    assert client.config.api_key == 'from-environment'
    assert client.config.endpoint == 'wss://connect.aptly.cloud'



def test_client_id(options, sockets):

    client = brook.Client(options, socket_factory=sockets)
    assert re.match(r'^client_\d+_[0-9a-z]{9}$', client.client_id)

    other = brook.Client(options, socket_factory=sockets)
    assert other.client_id != client.client_id

    options['client_id'] = 'dashboard-1'
    client = brook.Client(options, socket_factory=sockets)
    assert client.client_id == 'dashboard-1'



def test_keyword_options(sockets):

    client = brook.Client(api_key='kw-key', endpoint='wss://elsewhere.invalid', socket_factory=sockets)

    assert client.config.api_key == 'kw-key'
    assert client.connection.endpoint == 'wss://elsewhere.invalid'



def test_channel_cache(client):

    prices = client.channel('prices')

    assert client.channel('prices') is prices
    assert client.realtime.channel('prices') is prices
    assert client.channel('news') is not prices
    assert sorted(client.active_channels()) == ['news', 'prices']



def test_connect(client, sockets, handshake):

    future = client.connect(wait=False)
    handshake(sockets.last)

    assert future.result(0) == True
    assert client.status == 'connected'
    assert client.is_connected() == True
    assert client.is_authenticated == True



def test_connect_failure_raises(options, scheduler):

    def broken(endpoint):
        raise OSError('no route to host')

    client = brook.Client(options, socket_factory=broken, scheduler=scheduler)

    with pytest.raises(brook.TransportConnectionError):
        client.connect(timeout=1)

    assert client.status == 'reconnecting'



def test_connectivity_callbacks(client, establish):

    states = list()
    unsubscribe = client.on_connectivity_change(states.append)

    socket = establish(client)
    assert states == ['connecting', 'authenticating', 'connected']

    socket.drop()
    assert states[-1] == 'reconnecting'

    unsubscribe()
    client.disconnect()
    assert states[-1] == 'reconnecting'

    # The namespaced spelling is the same thing.

    later = list()
    client.connectivity.subscribe(later.append)
    establish(client)
    assert later[-1] == 'connected'

    with pytest.raises(TypeError):
        client.on_connectivity_change(None)



def test_connect_in_connectivity_callback(options, sockets, scheduler, handshake):

    options['backoff_max_attempts'] = 1
    client = brook.Client(options, socket_factory=sockets, scheduler=scheduler)

    recoveries = list()

    def recover(status):
        if status == 'failed':
            recoveries.append(client.connect(timeout=2))

    client.on_connectivity_change(recover)
    client.channel('prices').stream(print)

    client.connect(wait=False)
    handshake(sockets.last).drop()
    scheduler.pending(client.connection._reconnect)[0].fire()
    sockets.last.drop()

    assert len(recoveries) == 1
    assert client.status == 'connecting'

    socket = handshake(sockets.last)
    assert recoveries[0].result(0) == True
    assert socket.types() == ['auth', 'subscribe']



def test_disconnect(client, scheduler, establish):

    socket = establish(client)

    prices = client.channel('prices')
    prices.stream(print)
    client.channel('news')

    client.disconnect()

    # Only the channel with streams was active on the server, but every
    # channel asks to be unsubscribed before the socket goes away.

    unsubscribed = [frame['channel'] for frame in socket.sent if frame['type'] == 'unsubscribe']
    assert sorted(unsubscribed) == ['news', 'prices']

    assert socket.closed == (1000, 'Client disconnect')
    assert client.status == 'disconnected'
    assert client.active_channels() == []
    assert client.connection.handlers == []
    assert scheduler.pending() == []

    # Channels are created afresh afterwards.

    assert client.channel('prices') is not prices



def test_disconnect_while_disconnected(client):

    client.channel('prices').stream(print)
    client.disconnect()

    queued = [entry.frame['type'] for entry in client.connection.outbox]
    assert 'unsubscribe' not in queued
    assert client.status == 'disconnected'



def test_cleanup(client, establish):

    states = list()
    client.on_connectivity_change(states.append)

    establish(client)
    client.cleanup()

    assert client.status == 'disconnected'
    assert states[-1] == 'disconnected'

    count = len(states)
    establish(client)
    assert len(states) == count

    # Cleanup is repeatable.

    client.cleanup()
    client.cleanup()



def test_stats(client, establish):

    establish(client)
    client.channel('prices').stream(print)

    stats = client.stats()

    assert stats['connection']['state'] == 'connected'
    assert stats['connection']['client_id'] == client.client_id
    assert stats['active_channels'] == 1
    assert stats['channels']['prices']['streams'] == 1


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
