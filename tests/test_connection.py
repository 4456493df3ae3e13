import ddpmirror
import pytest

import fake


def test_handshake(client):

    fake.flush(client)
    transport = client.connection.transport

    assert transport.opens == 1
    assert transport.sent == [{'msg': 'connect', 'version': '1', 'support': ['1']}]
    assert client.connection.status == ddpmirror.connection.CONNECTING


def test_connected(client):

    seen = list()
    client.on('connected', seen.append)

    fake.connect(client, 'abc')

    assert client.connection.status == ddpmirror.connection.CONNECTED
    assert client.connection.session == 'abc'
    assert client.connected == True
    assert len(seen) == 1
    assert seen[0]['session'] == 'abc'


def test_no_auto_connect(make_client):

    client = make_client(auto_connect=False)
    fake.flush(client)

    transport = client.connection.transport
    assert transport.opens == 0
    assert transport.sent == []

    client.connect()
    fake.flush(client)
    assert transport.opens == 1
    assert transport.messages('connect') != []


def test_ping(connected):

    transport = connected.connection.transport

    # A ping must be answered even while the queue is held.
    connected.connection.pause_queue()
    connected.call('held')

    fake.serve(connected, msg='ping', id='p1')
    fake.serve(connected, msg='ping')

    assert transport.messages('pong') == [{'msg': 'pong', 'id': 'p1'}, {'msg': 'pong'}]
    assert transport.messages('method') == []

    connected.connection.resume_queue()
    assert len(transport.messages('method')) == 1


def test_queue_until_connected(client):

    transport = client.connection.transport

    client.call('first', 1)
    client.call('second', 2)
    client.apply('urgent', [3], at_beginning=True)
    fake.flush(client)

    assert transport.messages('method') == []

    fake.connect(client)

    methods = transport.messages('method')
    names = [method['method'] for method in methods]
    assert names == ['urgent', 'first', 'second']
    assert methods[1]['params'] == [1]


def test_queue_order_after_reconnect(connected):

    transport = connected.connection.transport
    transport.drop()
    fake.flush(connected)
    assert connected.connection.status == ddpmirror.connection.DISCONNECTED

    connected.call('one')
    connected.call('two')
    connected.call('three')

    fake.wait_for(lambda: transport.opens == 2)
    fake.connect(connected, 'session-2')

    names = [method['method'] for method in transport.messages('method')]
    assert names == ['one', 'two', 'three']


def test_clean_queue(make_client):

    client = make_client(clean_queue=True)
    transport = client.connection.transport

    client.call('discarded')
    fake.flush(client)
    transport.drop()
    fake.flush(client)

    fake.wait_for(lambda: transport.opens == 2)
    fake.connect(client)

    assert transport.messages('method') == []


def test_reconnect_resumes_session(connected):

    disconnects = list()
    connected.on('disconnected', lambda: disconnects.append(True))

    transport = connected.connection.transport
    transport.drop()
    fake.flush(connected)

    assert disconnects == [True]
    assert connected.connected == False

    fake.wait_for(lambda: transport.opens == 2)
    fake.flush(connected)

    handshakes = transport.messages('connect')
    assert len(handshakes) == 2
    assert 'session' not in handshakes[0]
    assert handshakes[1]['session'] == 'session-1'


def test_disconnect_suspends_reconnect(connected):

    transport = connected.connection.transport

    disconnected = connected.disconnect()
    assert disconnected.result(timeout=5) is None
    assert connected.connected == False
    assert connected.connection.session is None

    fake.flush(connected)
    assert transport.opens == 1

    # Connecting again restores automatic reconnection.

    connected.connect()
    fake.connect(connected)
    assert connected.connection.auto_reconnect == True
    assert transport.opens == 2


def test_disconnect_when_disconnected(make_client):

    client = make_client(auto_connect=False)
    future = client.disconnect()
    assert future.result(timeout=5) is None
    assert client.trying_to_disconnect == False


def test_undecodable_and_unknown(connected):

    seen = list()
    connected.on('error', seen.append)

    connected.connection.transport._received('this is not JSON')
    fake.serve(connected, msg='surprise')
    fake.serve(connected, msg='error', reason='bad request')

    assert len(seen) == 1
    assert seen[0]['reason'] == 'bad request'
    assert connected.connection.status == ddpmirror.connection.CONNECTED


def test_connect_timeout(make_client):

    client = make_client(auto_connect=False, max_timeout=100)
    client.connection.transport.accept = False

    future = client.connect()

    with pytest.raises(TimeoutError) as excinfo:
        future.result(timeout=5)

    assert str(excinfo.value) == 'MAX_TIMEOUT_REACHED'
    assert isinstance(excinfo.value, ddpmirror.errors.MaxTimeoutError)


def test_connect_when_connected(connected):

    future = connected.connect()
    assert future.result(timeout=5) is None
    assert connected.connection.transport.opens == 1


def test_ids_are_unique(client):

    ids = set()

    for count in range(100):
        ids.add(client.connection.next_id())

    assert len(ids) == 100


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
