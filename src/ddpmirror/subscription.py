""" Subscriptions to server publications. A :class:`Subscription` tracks
    one (publication, arguments) pair through its lifecycle: it is started
    (a 'sub' request is outstanding), ready (the server sent 'ready'),
    stopping (an 'unsub' is outstanding), or stopped (the server sent
    'nosub'). Instances are normally obtained from
    :func:`ddpmirror.Client.subscribe`, which reuses an existing instance
    for an identical publication and argument list.
"""

import logging

from . import futures
from . import identity
from .errors import SubscriptionError


logger = logging.getLogger(__name__)


STOPPED = 'stopped'
STARTING = 'starting'
READY = 'ready'
STOPPING = 'stopping'


def _ready_for(message, id):

    try:
        subs = message['subs']
    except (KeyError, TypeError):
        return False

    return identity.contains(subs, id)



def _nosub_for(message, id):

    try:
        other = message['id']
    except (KeyError, TypeError):
        return False

    return identity.same_id(other, id)



def _nosub_error(message):

    try:
        return message['error']
    except (KeyError, TypeError):
        return None



class Subscription:
    """ A subscription to the publication *name* with argument list *args*,
        issued through *client*. A new instance starts itself immediately.
    """

    def __init__(self, name, args, client):

        self.client = client
        self.name = name
        self.args = list(args)
        self.id = None

        self._nosub = False
        self._started = False
        self._ready = False
        self._error = None

        self._ready_listener = client.on('ready', self._ready_message)
        self._nosub_listener = client.on('nosub', self._nosub_message)

        self.start()


    def __repr__(self):
        return "subscription.Subscription: %s%r %s" % (self.name, tuple(self.args), self.state)


    def _ready_message(self, message):

        if _ready_for(message, self.id):
            self._ready = True
            self._nosub = False


    def _nosub_message(self, message):

        if _nosub_for(message, self.id):
            self._ready = False
            self._nosub = True
            self._started = False

            error = _nosub_error(message)
            self._error = error
            if error is not None:
                logger.warning("subscription '%s' stopped by the server: %r", self.name, error)


    @property
    def state(self):
        """ One of 'stopped', 'starting', 'ready' or 'stopping'.
        """

        if self._started == True:
            if self._ready == True:
                return READY
            return STARTING

        if self._nosub == True or self.id is None:
            return STOPPED

        return STOPPING


    def is_on(self):
        """ Return True if the subscription has been started and not
            subsequently stopped.
        """

        return self._started


    def is_ready(self):
        return self._ready


    def is_stopped(self):
        """ Return True once the server has confirmed, via 'nosub', that
            the subscription is no longer active.
        """

        return self._nosub


    def nosub(self):
        """ Return a future that resolves when the matching 'nosub' message
            arrives, or immediately if the subscription is already stopped.
            The future fails with :class:`ddpmirror.errors.SubscriptionError`
            if the 'nosub' carries an error.
        """

        if self.is_stopped():
            if self._error is None:
                return futures.resolved()

            # Already stopped by the server, with an error.
            future = futures.Future()
            futures.fail(future, SubscriptionError(self._error))
            return future

        # The future tracks the id in force now, even if the subscription
        # is started again before the server answers.
        id = self.id
        future = futures.Future()

        def nosub(message):
            if _nosub_for(message, id):
                listener.stop()

                # A restart may have moved on to a new id in the meantime.
                if identity.same_id(id, self.id):
                    self._nosub = True

                error = _nosub_error(message)
                if error is None:
                    futures.settle(future)
                else:
                    futures.fail(future, SubscriptionError(error))

        listener = self.client.on('nosub', nosub)
        return future


    def on_nosub(self, callback):
        """ Invoke *callback* with the message every time a matching
            'nosub' arrives; it is invoked immediately, with None, if the
            subscription is already stopped. A 'nosub' carrying an error
            raises :class:`ddpmirror.errors.SubscriptionError` instead of
            invoking the callback. If the subscription was already stopped
            with an error, this call raises it right away. Returns the
            listener handle.
        """

        if self.is_stopped():
            if self._error is not None:
                raise SubscriptionError(self._error)
            callback(None)

        def nosub(message):
            if _nosub_for(message, self.id):
                error = _nosub_error(message)
                if error is not None:
                    raise SubscriptionError(error)

                callback(message)

        return self.client.on('nosub', nosub)


    def on_ready(self, callback):
        """ Invoke *callback*, with no arguments, every time a matching
            'ready' arrives; it is invoked immediately if the subscription is
            already ready. Returns the listener handle.
        """

        if self.is_ready():
            callback()

        def ready(message):
            if _ready_for(message, id):
                callback()

        return self.client.on('ready', ready)


    def ready(self):
        """ Return a future that resolves when the subscription is ready.
            It fails with :class:`ddpmirror.errors.SubscriptionError` if a
            'nosub' arrives first; the error is the one carried by the
            'nosub', or the message itself if it carries none.
        """

        if self.is_ready():
            return futures.resolved()

        future = futures.Future()
        id = self.id

        def ready(message):
            if _ready_for(message, id):
                ready_listener.stop()
                nosub_listener.stop()
                futures.settle(future)

        def nosub(message):
            if _nosub_for(message, id):
                ready_listener.stop()
                nosub_listener.stop()

                error = _nosub_error(message)
                if error is None:
                    error = message

                futures.fail(future, SubscriptionError(error))

        ready_listener = self.client.on('ready', ready)
        nosub_listener = self.client.on('nosub', nosub)

        return future


    def remove(self):
        """ Stop the subscription and forget it entirely; the client will
            no longer restart it after a reconnect, and a later identical
            :func:`ddpmirror.Client.subscribe` creates a new instance.
        """

        self._nosub_listener.stop()
        stopped = self.stop()
        self.client._remove_subscription(self)
        return stopped


    def restart(self, args=None):
        """ Stop, then start the subscription, optionally with a new
            argument list. The returned future resolves when the restarted
            subscription is ready, and fails with the first error
            encountered along the way.
        """

        restarted = futures.Future()

        def stopped(future):
            exception = future.exception()
            if exception is not None:
                futures.fail(restarted, exception)
                return

            futures.chain(self.start(args), restarted)

        self.stop().add_done_callback(stopped)
        return restarted


    def start(self, args=None):
        """ Start the subscription, if it is not already started, replacing
            the argument list if *args* is provided. Returns :func:`ready`.
        """

        if self._started == True:
            return self.ready()

        if args is not None:
            self.args = list(args)

        # The id is assigned, and the ready/nosub handlers are in place,
        # before the request can possibly reach the server.

        connection = self.client.connection

        self.id = connection.next_id()
        self._nosub = False
        self._error = None
        self._ready = False
        self._ready_listener.start()
        self._nosub_listener.start()

        ready = self.ready()

        connection.sub(self.name, self.args, self.id)
        self._started = True

        return ready


    def stop(self):
        """ Stop the subscription. Returns :func:`nosub`, a future that
            resolves once the server confirms.
        """

        if self._started == False:
            return self.nosub()

        self._ready_listener.stop()

        stopped = self.nosub()

        if self._nosub == False:
            self.client.connection.unsub(self.id)

        self._started = False
        self._ready = False

        return stopped


# end of class Subscription


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
