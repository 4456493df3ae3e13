""" Reactive folds over the window of a
    :class:`ddpmirror.ReactiveCollection`.
"""

import copy
import functools
import logging

from . import listener
from . import weakref


logger = logging.getLogger(__name__)


class Reducer:
    """ The fold of ``function(accumulator, element)`` over the window of
        *owner*, starting from *initial*, recomputed every time the window
        changes. The reducer refers to its owner weakly; the owner keeps a
        strong reference to every started reducer. The new instance is
        started immediately.
    """

    def __init__(self, owner, function, initial):

        if callable(function):
            pass
        else:
            raise TypeError('the reducer function must be callable')

        self.owner = weakref.ref(owner)
        self.function = function
        self.initial = initial
        self.result = None
        self.tickers = listener.Registry()

        self._started = False
        self._activation = listener.Listener(owner.reducers, self, start=False)

        self.start()


    @property
    def started(self):
        return self._started


    def recompute(self):
        """ Fold the owner's current window and notify the change
            callbacks. Does nothing if the reducer is stopped.
        """

        if self._started == False:
            return

        owner = weakref.resolve(self.owner, 'reactive collection')
        initial = copy.deepcopy(self.initial)

        self.result = functools.reduce(self.function, owner.data(), initial)
        listener.notify(self.tickers, self.value())


    def start(self):
        """ Compute the current value and follow the owner's changes. This
            happens automatically on construction.
        """

        if self._started == True:
            return self

        self._started = True
        self._activation.start()
        self.recompute()
        return self


    def stop(self):

        if self._started == False:
            return self

        self._activation.stop()
        self._started = False
        return self


    def value(self):
        """ Return a deep copy of the most recently computed value.
        """

        return copy.deepcopy(self.result)


    def on_change(self, callback):
        """ Invoke *callback* with the new value every time it is
            recomputed. Returns a started
            :class:`ddpmirror.listener.Listener`.
        """

        return listener.Listener(self.tickers, listener.Callback(callback))


# end of class Reducer


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
