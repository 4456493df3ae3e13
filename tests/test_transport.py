""" Exercise the real transports against minimal in-process DDP servers.
"""

import ddpmirror
import pytest
import threading
import zmq

from websockets.exceptions import ConnectionClosed
from websockets.sync.server import serve


def answer(text):
    """ Play a tiny DDP server: return the reply to the message *text*, or
        None if there is no reply.
    """

    message = ddpmirror.ejson.parse(text)

    if message['msg'] == 'connect':
        return ddpmirror.ejson.stringify({'msg': 'connected', 'session': 'server-session'})

    if message['msg'] == 'method':
        result = dict()
        result['msg'] = 'result'
        result['id'] = message['id']
        result['result'] = sum(message['params'])
        return ddpmirror.ejson.stringify(result)

    return None



@pytest.fixture
def websocket_server():

    def handler(connection):
        try:
            while True:
                reply = answer(connection.recv())
                if reply is not None:
                    connection.send(reply)
        except ConnectionClosed:
            pass

    server = serve(handler, 'localhost', 0)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()

    port = server.socket.getsockname()[1]
    yield 'ws://localhost:%d/websocket' % (port)

    server.shutdown()
    thread.join(5)



@pytest.fixture
def zmq_server():

    context = zmq.Context.instance()
    router = context.socket(zmq.ROUTER)
    router.setsockopt(zmq.LINGER, 0)
    port = router.bind_to_random_port('tcp://127.0.0.1')

    shutdown = threading.Event()

    def run():
        poller = zmq.Poller()
        poller.register(router, zmq.POLLIN)

        while shutdown.is_set() == False:
            if poller.poll(50):
                identity, frame = router.recv_multipart()
                reply = answer(frame.decode())
                if reply is not None:
                    router.send_multipart([identity, reply.encode()])

        router.close()

    thread = threading.Thread(target=run, daemon=True)
    thread.start()

    yield 'tcp://127.0.0.1:%d' % (port)

    shutdown.set()
    thread.join(5)



def round_trip(client):

    connected = client.connect()
    assert connected.result(timeout=5) is None
    assert client.connection.session == 'server-session'

    result = client.call('sum', 1, 2, 3)
    assert result.result(timeout=5) == 6

    disconnected = client.disconnect()
    assert disconnected.result(timeout=5) is None
    assert client.connected == False


def test_websocket(websocket_server):

    transport = ddpmirror.transport.get('websocket')
    client = ddpmirror.Client(endpoint=websocket_server, transport=transport)

    try:
        round_trip(client)
    finally:
        client.close()


@pytest.mark.filterwarnings('error::DeprecationWarning')
def test_websocket_without_deprecations(websocket_server):

    # A warning turned into an error on the reader thread ends the
    # connection, and the round trip with it.

    transport = ddpmirror.transport.get('websocket')
    client = ddpmirror.Client(endpoint=websocket_server, transport=transport)

    try:
        round_trip(client)
    finally:
        client.close()


def test_zmq(zmq_server):

    transport = ddpmirror.transport.get('zmq')
    client = ddpmirror.Client(endpoint=zmq_server, transport=transport)

    try:
        round_trip(client)
    finally:
        client.close()


def test_websocket_refused():

    transport = ddpmirror.transport.get('websocket')
    client = ddpmirror.Client(endpoint='ws://127.0.0.1:1/websocket', transport=transport, auto_reconnect=False, max_timeout=2000)

    try:
        with pytest.raises(TimeoutError):
            client.connect().result(timeout=5)
    finally:
        client.close()


def test_send_when_closed():

    transport = ddpmirror.transport.get('websocket')('ws://localhost/websocket')
    assert transport.is_open == False

    with pytest.raises(ddpmirror.transport.TransportConnectionError):
        transport.send('{}')


def test_selection(monkeypatch):

    monkeypatch.delenv('DDPMIRROR_TRANSPORT', raising=False)
    assert ddpmirror.transport.get().__name__ == 'WebSocketTransport'

    monkeypatch.setenv('DDPMIRROR_TRANSPORT', 'zmq')
    assert ddpmirror.transport.get().__name__ == 'ZMQTransport'

    monkeypatch.setenv('DDPMIRROR_TRANSPORT', 'carrier-pigeon')
    with pytest.raises(ImportError):
        ddpmirror.transport.get()


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
