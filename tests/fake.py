""" An in-memory stand-in for a DDP server connection. The unit tests hand
    :class:`Transport` to :class:`ddpmirror.Client` as the transport
    factory; the test then plays the part of the server by injecting
    messages and inspecting what the client sent.
"""

import ddpmirror
import time


class Transport(ddpmirror.transport.Transport):

    def __init__(self, endpoint):

        ddpmirror.transport.Transport.__init__(self, endpoint)

        self.sent = list()
        self.opens = 0
        self.pending = False
        self.connected = False

        # Set accept to False to simulate a server that never answers.
        self.accept = True


    @property
    def is_open(self):
        return self.connected


    def open(self):

        self.opens += 1

        if self.accept == True:
            self.connected = True
            self._opened()
        else:
            self.pending = True


    def close(self):

        was_open = self.connected or self.pending
        self.connected = False
        self.pending = False

        if was_open:
            self._closed()


    def send(self, text):

        if self.connected == False:
            raise ddpmirror.errors.TransportConnectionError('not connected')

        self.sent.append(ddpmirror.ejson.parse(text))


    def drop(self):
        """ Simulate the server going away.
        """

        self.connected = False
        self._closed()


    def inject(self, message):
        self._received(ddpmirror.ejson.stringify(message))


    def messages(self, kind):
        """ Return every sent message whose 'msg' field is *kind*.
        """

        matched = list()

        for message in self.sent:
            if message.get('msg') == kind:
                matched.append(message)

        return matched


# end of class Transport



def flush(client):
    assert client.dispatcher.flush() == True



def wait_for(condition, timeout=5):
    """ Poll *condition* until it returns True, or fail after *timeout*
        seconds.
    """

    expiration = time.time() + timeout

    while time.time() < expiration:
        if condition():
            return
        time.sleep(0.005)

    raise AssertionError('condition not met within ' + str(timeout) + ' seconds')



def connect(client, session='session-1'):
    """ Complete the DDP handshake for *client*, as the server would.
    """

    flush(client)
    client.connection.transport.inject({'msg': 'connected', 'session': session})
    flush(client)



def serve(client, **message):
    """ Deliver one server message to *client* and wait for it to be fully
        processed.
    """

    client.connection.transport.inject(message)
    flush(client)



def added(client, collection, id, **fields):
    serve(client, msg='added', collection=collection, id=id, fields=fields)



def changed(client, collection, id, cleared=None, **fields):

    message = dict()
    message['msg'] = 'changed'
    message['collection'] = collection
    message['id'] = id

    if fields:
        message['fields'] = fields
    if cleared:
        message['cleared'] = cleared

    serve(client, **message)



def removed(client, collection, id):
    serve(client, msg='removed', collection=collection, id=id)


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
