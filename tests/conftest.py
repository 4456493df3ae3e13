import ddpmirror
import pytest

import fake


def new_client(**options):

    options.setdefault('endpoint', 'ws://localhost:3000/websocket')
    options.setdefault('transport', fake.Transport)
    options.setdefault('reconnect_interval', 50)

    return ddpmirror.Client(**options)


@pytest.fixture
def make_client():
    """ Factory for clients talking to a fake transport. Every client made
        is closed at the end of the test.
    """

    clients = list()

    def make(**options):
        client = new_client(**options)
        clients.append(client)
        return client

    yield make

    for client in clients:
        client.close()


@pytest.fixture
def client(make_client):
    return make_client()


@pytest.fixture
def connected(client):
    fake.connect(client)
    return client


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
