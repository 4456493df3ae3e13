""" The DDP connection state machine. A :class:`Connection` owns the
    transport, performs the DDP handshake, answers keepalive pings, queues
    outbound requests until the server will accept them, reconnects after
    the transport goes away, and turns every other inbound message into an
    event on the client's :class:`ddpmirror.events.Dispatcher`.
"""

import itertools
import logging
import threading

from . import ejson
from . import transport
from .errors import ProtocolDecodeError, TransportError
from .outbound import MessageQueue


logger = logging.getLogger(__name__)


# Events a user may listen for via :func:`ddpmirror.Client.on`. The login
# and logout events are synthesized by the client, not sent by the server.

PUBLIC_EVENTS = (
    # Subscription messages
    'ready', 'nosub', 'added', 'changed', 'removed',
    # Method messages
    'result', 'updated',
    # Error messages
    'error',
    # Other messages
    'connected', 'login', 'logout', 'ping', 'pong', 'disconnected',
)

# Server messages relayed to listeners as-is. 'connected' and 'ping' are
# handled by the state machine before being (or instead of being) relayed.

relayed = set(('ready', 'nosub', 'added', 'changed', 'removed', 'result', 'updated', 'error', 'pong'))

DISCONNECTED = 'disconnected'
CONNECTING = 'connecting'
CONNECTED = 'connected'


class Connection:
    """ A single DDP connection described by *options*, a
        :class:`ddpmirror.config.Options` instance. All state transitions
        happen on the *dispatcher* thread: transport callbacks, which
        arrive on whatever thread the transport uses, are queued there
        rather than handled in place.

        :ivar status: One of 'disconnected', 'connecting' or 'connected'.
        :ivar session: The server-assigned session id, if any; it is
            offered back to the server when reconnecting.
    """

    def __init__(self, options, dispatcher):

        self.dispatcher = dispatcher
        self.status = DISCONNECTED
        self.session = None
        self.version = options.ddp_version
        self.clean_queue = options.clean_queue
        self.auto_reconnect = options.auto_reconnect
        self.auto_reconnect_preference = options.auto_reconnect
        self.reconnect_interval = options.reconnect_seconds

        self.queue = MessageQueue(self._send_queued)
        self._reconnect_timer = None
        self._status_lock = threading.Lock()

        factory = options.transport
        if factory is None:
            factory = transport.get()

        self.transport = factory(options.endpoint)
        self.transport.on_open = self._transport_open
        self.transport.on_close = self._transport_close
        self.transport.on_message = self._transport_message

        if options.auto_connect == True:
            self.connect()


    def connect(self):
        """ Open the transport, unless it is already open or opening. This
            also restores automatic reconnection if it was enabled in the
            original options.
        """

        self.auto_reconnect = self.auto_reconnect_preference
        self._open()


    def disconnect(self):
        """ Close the transport. The caller likely does not want the
            connection to come back by itself, so automatic reconnection is
            suspended until the next :func:`connect`; the session id is
            forgotten as well.
        """

        self.auto_reconnect = False
        self.session = None
        self._cancel_reconnect()
        self.transport.close()


    def emit(self, event, *args):
        self.dispatcher.emit(event, *args)


    def next_id(self):
        """ Reserve a correlation id, for callers that need to start
            listening for a response before the request is queued.
        """

        return _id_next()


    def method(self, name, params, at_beginning=False, id=None):
        """ Queue a remote method call, returning its correlation id. Set
            *at_beginning* to True to put the request ahead of everything
            already queued.
        """

        if id is None:
            id = _id_next()

        message = dict()
        message['msg'] = 'method'
        message['id'] = id
        message['method'] = name
        message['params'] = list(params)

        if at_beginning == True:
            self.queue.unshift(message)
        else:
            self.queue.push(message)

        return id


    def sub(self, name, params, id=None):
        """ Queue a subscription request, returning its correlation id.
        """

        if id is None:
            id = _id_next()

        message = dict()
        message['msg'] = 'sub'
        message['id'] = id
        message['name'] = name
        message['params'] = list(params)

        self.queue.push(message)
        return id


    def unsub(self, id):
        """ Queue a request to stop the subscription with the given *id*.
        """

        message = dict()
        message['msg'] = 'unsub'
        message['id'] = id

        self.queue.push(message)
        return id


    def pause_queue(self):
        self.queue.pause()


    def resume_queue(self):
        self.queue.resume()


    def _cancel_reconnect(self):

        timer = self._reconnect_timer
        self._reconnect_timer = None

        if timer is not None:
            timer.cancel()


    def _open(self):

        with self._status_lock:
            if self.status != DISCONNECTED:
                return
            self.status = CONNECTING

        logger.info('connecting to %s', self.transport.endpoint)
        self.transport.open()


    def _reconnect(self):

        self._reconnect_timer = None

        if self.auto_reconnect == True:
            self._open()


    def _send(self, message):
        """ Put *message* on the wire immediately, bypassing the queue.
        """

        text = ejson.stringify(message)
        logger.debug('>>> %s', text)
        self.transport.send(text)


    def _send_queued(self, message):

        if self.status != CONNECTED:
            return False

        try:
            self._send(message)
        except TransportError as e:
            logger.warning('send failed, request stays queued: %s', e)
            return False

        return True


    # Transport callbacks. These can arrive on any thread; the real work is
    # handed to the dispatcher thread.

    def _transport_open(self):
        self.dispatcher.call_soon(self._opened)


    def _transport_close(self):
        self.dispatcher.call_soon(self._closed)


    def _transport_message(self, text):
        self.dispatcher.call_soon(self._incoming, text)


    def _opened(self):
        """ The transport is up; ask the server for a DDP session, resuming
            the previous session if there was one.
        """

        with self._status_lock:
            if self.status == DISCONNECTED:
                self.status = CONNECTING

        message = dict()
        message['msg'] = 'connect'
        message['version'] = self.version
        message['support'] = [self.version]

        if self.session:
            message['session'] = self.session

        try:
            self._send(message)
        except TransportError as e:
            logger.warning('handshake failed: %s', e)


    def _closed(self):

        with self._status_lock:
            previous = self.status
            self.status = DISCONNECTED

        if self.clean_queue == True:
            self.queue.empty()

        if previous == CONNECTED:
            logger.info('disconnected from %s', self.transport.endpoint)
            self.emit('disconnected')

        if self.auto_reconnect == True and self._reconnect_timer is None:
            self._reconnect_timer = self.dispatcher.call_later(self.reconnect_interval, self._reconnect)


    def _incoming(self, text):

        logger.debug('<<< %s', text)

        try:
            message = ejson.parse(text)
        except ProtocolDecodeError as e:
            logger.warning('dropping undecodable message: %s', e)
            return

        try:
            msg = message['msg']
        except (KeyError, TypeError):
            logger.debug('dropping non-DDP message: %r', message)
            return

        if msg == 'connected':
            with self._status_lock:
                self.status = CONNECTED

            try:
                self.session = message['session']
            except KeyError:
                self.session = None

            logger.info('connected to %s, session %s', self.transport.endpoint, self.session)
            self.queue.process()
            self.emit('connected', message)

        elif msg == 'ping':
            # Reply immediately so that the server does not drop us; this
            # must not wait behind anything in the queue.

            pong = dict()
            pong['msg'] = 'pong'

            try:
                pong['id'] = message['id']
            except KeyError:
                pass

            try:
                self._send(pong)
            except TransportError as e:
                logger.warning('cannot answer ping: %s', e)

        elif msg in relayed:
            self.emit(msg, message)

        else:
            logger.debug("ignoring unrecognized '%s' message", msg)


# end of class Connection



_id_lock = threading.Lock()
_id_ticker = itertools.count(1)


def _id_next():
    """ Return the next correlation id for an outbound request. Ids are
        locally unique strings.
    """

    _id_lock.acquire()
    id = next(_id_ticker)
    _id_lock.release()

    return '%x' % (id)


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
