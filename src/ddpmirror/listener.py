""" The start/stop listener primitive used throughout ddpmirror. Every
    callback registration-- protocol events, collection change observers,
    reactive collection tickers-- is a :class:`Listener` bound to a single
    :class:`Registry` and a single payload.
"""

import logging
import threading


logger = logging.getLogger(__name__)


class Registry:
    """ An ordered container of listener payloads. A source keeps one
        :class:`Registry` per named registry key; dispatch iterates over a
        :func:`snapshot` so that listeners can start or stop other listeners
        (including themselves) while being invoked.
    """

    def __init__(self):

        self._entries = list()
        self._lock = threading.Lock()


    def __contains__(self, payload):

        self._lock.acquire()
        try:
            for entry in self._entries:
                if entry is payload:
                    return True
        finally:
            self._lock.release()

        return False


    def __len__(self):
        return len(self._entries)


    def add(self, payload):
        """ Append *payload*, unless that exact object is already present.
            Returns True if the payload was added.
        """

        self._lock.acquire()
        try:
            for entry in self._entries:
                if entry is payload:
                    return False
            self._entries.append(payload)
        finally:
            self._lock.release()

        return True


    def clear(self):
        self._lock.acquire()
        self._entries = list()
        self._lock.release()


    def discard(self, payload):
        """ Remove *payload* by identity. Returns True if it was present.
        """

        self._lock.acquire()
        try:
            for index, entry in enumerate(self._entries):
                if entry is payload:
                    del self._entries[index]
                    return True
        finally:
            self._lock.release()

        return False


    def snapshot(self):
        """ Return a list of the currently registered payloads, in
            registration order.
        """

        self._lock.acquire()
        entries = list(self._entries)
        self._lock.release()
        return entries


# end of class Registry



class Listener:
    """ A handle binding one *payload* to one *registry*. :func:`start`
        puts the payload in the registry exactly once; :func:`stop` removes
        it by identity, and is a no-op if it is already gone. A new
        :class:`Listener` is started immediately unless *start* is False.
    """

    def __init__(self, registry, payload, start=True):

        self.registry = registry
        self.payload = payload

        if start == True:
            self.start()


    @property
    def started(self):
        return self.payload in self.registry


    def start(self):
        self.registry.add(self.payload)
        return self


    def stop(self):
        self.registry.discard(self.payload)
        return self


# end of class Listener




class Callback:
    """ Wrapper giving each registration of a callable its own identity, so
        that the same callable registered twice yields two independent
        listeners.
    """

    __slots__ = ('method',)

    def __init__(self, method):

        if callable(method):
            pass
        else:
            raise TypeError('the callback must be callable')

        self.method = method


    def __call__(self, *args):
        return self.method(*args)


# end of class Callback



def notify(registry, *args):
    """ Invoke every :class:`Callback` in *registry* with *args*. A callback
        stopped by an earlier one is skipped; exceptions are logged, and do
        not prevent delivery to the remaining callbacks.
    """

    for callback in registry.snapshot():
        if callback not in registry:
            continue

        try:
            callback(*args)
        except Exception:
            logger.exception('exception in callback %r', callback.method)


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
