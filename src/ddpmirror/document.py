""" A single reactive document: whatever is first in the window of a
    :class:`ddpmirror.ReactiveCollection`.
"""

import copy

from . import listener
from . import weakref


class Document:
    """ Mirror of the first document in the window of *owner*. When the
        window empties the mirrored fields are cleared, unless *preserve*
        is True, in which case the last document seen is kept. The document
        refers to its owner weakly; the owner keeps a strong reference to
        every started document. The new instance is started immediately.
    """

    def __init__(self, owner, preserve=False):

        self.owner = weakref.ref(owner)
        self.preserve = bool(preserve)
        self.fields = dict()
        self.tickers = listener.Registry()

        self._started = False
        self._activation = listener.Listener(owner.documents, self, start=False)

        self.start()


    @property
    def started(self):
        return self._started


    def data(self):
        """ Return a deep copy of the mirrored fields.
        """

        return copy.deepcopy(self.fields)


    def on_change(self, callback):
        """ Invoke *callback* with a copy of the fields every time the
            mirrored document changes. Returns a started
            :class:`ddpmirror.listener.Listener`.
        """

        return listener.Listener(self.tickers, listener.Callback(callback))


    def settings(self, preserve=None):

        if preserve is not None:
            self.preserve = bool(preserve)

        return self


    def start(self):

        if self._started == True:
            return self

        owner = weakref.resolve(self.owner, 'reactive collection')

        self._started = True
        self._activation.start()
        self.update(owner.first())
        return self


    def stop(self):

        if self._started == False:
            return self

        self._activation.stop()
        self._started = False
        return self


    def update(self, document):
        """ Mirror *document*, which is None if the window is empty, and
            notify the change callbacks.
        """

        if document is not None:
            self.fields = copy.deepcopy(document)
        elif self.preserve == False:
            self.fields = dict()

        listener.notify(self.tickers, self.data())


# end of class Document


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
