""" Deferred, ordered event delivery. A :class:`Dispatcher` owns a single
    background thread; every emitted event, every transport callback and
    every timer expiry is funneled through its queue, which makes that
    thread the one logical thread of execution for a client. A call that
    emits an event always returns before any listener for that event runs,
    and events are delivered in the order they were emitted.
"""

import logging
import queue
import threading

from . import listener


logger = logging.getLogger(__name__)


class _Wake:
    pass



class _Timer(threading.Timer):
    """ A :class:`threading.Timer` that forgets itself in the owning
        dispatcher when it is cancelled, as well as when it fires.
    """

    def __init__(self, dispatcher, delay, function):
        threading.Timer.__init__(self, delay, function)
        self.dispatcher = dispatcher
        self.daemon = True


    def cancel(self):
        threading.Timer.cancel(self)
        self.dispatcher._forget(self)


# end of class _Timer



class Dispatcher:
    """ Background thread to invoke queued calls one at a time, in order.
        Exceptions raised by a queued call are logged and otherwise ignored;
        a misbehaving callback must not stop delivery to everyone else.
    """

    def __init__(self, name='ddpmirror'):

        self.queue = queue.SimpleQueue()
        self.shutdown = False
        self.registries = dict()
        self._registries_lock = threading.Lock()
        self._timers = set()
        self._timers_lock = threading.Lock()

        self.thread = threading.Thread(target=self.run, name=name)
        self.thread.daemon = True
        self.thread.start()


    def call_soon(self, method, *args):
        """ Queue *method* to be invoked with *args* on the dispatcher thread.
        """

        self.queue.put((method, args))


    def call_later(self, delay, method, *args):
        """ Queue *method* to be invoked on the dispatcher thread after
            *delay* seconds. The returned :class:`threading.Timer` can be
            cancelled with its :func:`cancel` method. Pending timers are
            tracked only until they fire or are cancelled.
        """

        def expired():
            self._forget(timer)
            self.call_soon(method, *args)

        timer = _Timer(self, delay, expired)

        with self._timers_lock:
            self._timers.add(timer)

        timer.start()
        return timer


    def emit(self, event, *args):
        """ Deliver *event* to every handler registered via :func:`on`. The
            delivery is deferred; the set of handlers is the set registered
            at delivery time, not at emit time.
        """

        self.call_soon(self._deliver, event, args)


    def flush(self, timeout=5):
        """ Block until everything queued before this call has been
            processed. Returns True on success, False if *timeout* seconds
            elapsed first. Calling this from the dispatcher thread would
            block forever, and raises :class:`RuntimeError` instead.
        """

        if threading.current_thread() is self.thread:
            raise RuntimeError('flush() cannot be called from the dispatcher thread')

        # Events emitted by whatever is ahead in the queue land behind the
        # marker; wait until the queue goes quiet.

        while True:
            done = threading.Event()
            self.call_soon(done.set)

            if done.wait(timeout) == False:
                return False

            if self.queue.empty():
                return True


    def listeners(self, event):
        return len(self.registry(event))


    def on(self, event, handler):
        """ Register *handler* for *event*, returning a started
            :class:`ddpmirror.listener.Listener`.
        """

        if callable(handler):
            pass
        else:
            raise TypeError('the event handler must be callable')

        registry = self.registry(event)
        return listener.Listener(registry, listener.Callback(handler))


    def registry(self, event):
        """ Return the :class:`ddpmirror.listener.Registry` for *event*,
            creating it if necessary.
        """

        self._registries_lock.acquire()
        try:
            registry = self.registries[event]
        except KeyError:
            registry = listener.Registry()
            self.registries[event] = registry
        finally:
            self._registries_lock.release()

        return registry


    def run(self):

        while True:
            if self.shutdown == True:
                break

            try:
                dequeued = self.queue.get(timeout=300)
            except queue.Empty:
                continue

            if isinstance(dequeued, _Wake):
                continue

            method, args = dequeued

            try:
                method(*args)
            except Exception:
                logger.exception('exception in dispatched call to %r', method)


    def stop(self, timeout=5):
        """ Cancel any pending timers and shut down the dispatcher thread,
            waiting up to *timeout* seconds for a call already in progress
            to finish. Anything still queued is abandoned.
        """

        with self._timers_lock:
            timers = list(self._timers)
            self._timers.clear()

        for timer in timers:
            timer.cancel()

        self.shutdown = True
        self.wake()

        if threading.current_thread() is not self.thread:
            self.thread.join(timeout)


    def wake(self):
        self.queue.put(_Wake())


    def _forget(self, timer):

        with self._timers_lock:
            self._timers.discard(timer)


    def _deliver(self, event, args):

        try:
            registry = self.registries[event]
        except KeyError:
            return

        for handler in registry.snapshot():
            if handler not in registry:
                # Stopped by an earlier handler for this same event.
                continue

            try:
                handler(*args)
            except Exception:
                logger.exception("exception in '%s' handler %r", event, handler.method)


# end of class Dispatcher


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
