""" Incrementally maintained projections of a mirrored collection. A
    :class:`ReactiveCollection` keeps a private, filtered and optionally
    sorted mirror of its collection, plus the window ``raw[skip:skip+limit]``
    of that mirror; every change in the underlying collection updates both
    in place rather than recomputing them, then notifies the dependent
    reducers, singleton documents, and change callbacks.
"""

import copy
import logging
import threading

from . import identity
from . import listener
from .document import Document
from .reducer import Reducer


logger = logging.getLogger(__name__)

_unset = object()


def _everything(document):
    return 1



def _count(accumulator, element):
    return accumulator + 1



class ReactiveCollection:
    """ A reactive projection of *view*, a
        :class:`ddpmirror.CollectionView`. The comparison function *sort*,
        if any, orders the documents; *skip* and *limit* select the window.
        A *limit* of None means the window is unbounded. The new instance
        is started immediately.

        :ivar raw: Every document in the view, in order.
        :ivar window: The documents selected by *skip* and *limit*.
        :ivar length: The number of documents in the window.
    """

    def __init__(self, view, skip=0, limit=None, sort=None):

        if sort is not None and callable(sort) == False:
            raise TypeError('the sort comparison must be callable')

        self.view = view
        self.raw = list()
        self.window = list()
        self.length = 0

        if skip is None:
            skip = 0

        self._skip = skip
        self._limit = limit
        self._sort = sort
        self._first = None
        self._started = False
        self._lock = threading.RLock()

        self.tickers = listener.Registry()
        self.reducers = listener.Registry()
        self.documents = listener.Registry()

        predicate = view.predicate
        if predicate is None:
            predicate = _everything

        with view.lock:
            self.upstream = view.on_change(self._changed, predicate)
            self.upstream.stop()

        self.start()


    def __repr__(self):
        return "reactive.ReactiveCollection: %s %d" % (self.view.name, self.length)


    @property
    def started(self):
        return self._started


    def start(self):
        """ Synchronize with the collection and start following its
            changes. This happens automatically on construction.
        """

        if self._started == True:
            return self

        # No change can be fanned out while the store lock is held; the
        # snapshot and the start of the upstream listener are atomic with
        # respect to the dispatch of changes.

        with self.view.lock:
            self._resync()
            self.upstream.start()
            self._started = True

        self._propagate(True)
        return self


    def stop(self):
        """ Stop following changes in the collection. The window keeps its
            current contents.
        """

        if self._started == False:
            return self

        self.upstream.stop()
        self._started = False
        return self


    def settings(self, skip=_unset, limit=_unset, sort=_unset):
        """ Change any of *skip*, *limit* or *sort*, then rebuild the
            mirror and the window from a fresh fetch. Returns this
            instance.
        """

        if sort is not _unset and sort is not None and callable(sort) == False:
            raise TypeError('the sort comparison must be callable')

        with self.view.lock:
            with self._lock:
                if skip is not _unset:
                    if skip is None:
                        skip = 0
                    self._skip = skip

                if limit is not _unset:
                    self._limit = limit

                if sort is not _unset:
                    self._sort = sort

            self._resync()

        self._propagate(True)
        return self


    def skip(self, count):
        return self.settings(skip=count)


    def limit(self, count):
        return self.settings(limit=count)


    def sort(self, comparison):
        """ Sort the collection with the comparison function
            *comparison*, or restore the collection order if None.
        """

        return self.settings(sort=comparison)


    def data(self):
        """ Return a deep copy of the window.
        """

        with self._lock:
            return copy.deepcopy(self.window)


    def first(self):
        """ Return a deep copy of the first document in the window, or None
            if the window is empty.
        """

        with self._lock:
            if len(self.window) == 0:
                return None
            return copy.deepcopy(self.window[0])


    def on_change(self, callback):
        """ Invoke *callback* with a copy of the window every time it
            changes. Returns a started
            :class:`ddpmirror.listener.Listener`.
        """

        return listener.Listener(self.tickers, listener.Callback(callback))


    def reduce(self, function, initial):
        """ Return a :class:`ddpmirror.Reducer` folding the window with
            ``function(accumulator, element)``, starting from *initial*.
        """

        return Reducer(self, function, initial)


    def map(self, function):
        """ Return a :class:`ddpmirror.Reducer` whose value is the list of
            ``function(element)`` for every element of the window.
        """

        def mapped(accumulator, element):
            return accumulator + [function(element)]

        return Reducer(self, mapped, list())


    def count(self):
        """ Return a :class:`ddpmirror.Reducer` whose value is the number of
            documents in the window.
        """

        return Reducer(self, _count, 0)


    def one(self, preserve=False):
        """ Return a :class:`ddpmirror.Document` mirroring the first
            document in the window.
        """

        return Document(self, preserve)


    # Window maintenance. Everything below runs with self._lock held.

    def _in_window(self, index):

        if index < self._skip:
            return False

        if self._limit is None:
            return True

        return index < self._skip + self._limit


    def _trim(self):

        if self._limit is not None:
            del self.window[self._limit:]


    def _refill(self):

        if self._limit is None or len(self.window) >= self._limit:
            return

        end = self._skip + self._limit

        if len(self.raw) >= end:
            self.window.append(self.raw[end - 1])


    def _placement(self, document):

        if self._sort is None:
            return len(self.raw)

        for index, other in enumerate(self.raw):
            if self._sort(document, other) <= 0:
                return index

        return len(self.raw)


    def _find(self, document):

        try:
            id = document['_id']
        except (KeyError, TypeError):
            return -1

        return identity.index(self.raw, id)


    def _insert(self, document):

        index = self._placement(document)
        self.raw.insert(index, document)

        if self._in_window(index):
            self.window.insert(index - self._skip, document)
            self._trim()

        elif index < self._skip and len(self.raw) > self._skip:
            # Everything from the window start onwards moved right by one.
            self.window.insert(0, self.raw[self._skip])
            self._trim()


    def _remove(self, index):

        self.raw.pop(index)

        if self._in_window(index):
            del self.window[index - self._skip]
            self._refill()

        elif index < self._skip:
            if len(self.window) > 0:
                del self.window[0]
            self._refill()


    def _replace(self, index, document):

        self.raw[index] = document

        if self._in_window(index):
            self.window[index - self._skip] = document


    def _enter(self, document):

        index = self._find(document)
        if index > -1:
            self._remove(index)

        self._insert(document)


    def _exit(self, document):

        index = self._find(document)
        if index > -1:
            self._remove(index)


    def _stay(self, prev, next):

        index = self._find(prev)

        if index == -1:
            self._insert(next)
        elif self._sort is None:
            self._replace(index, next)
        else:
            self._remove(index)
            self._insert(next)


    def _resync(self):

        raw = self.view.fetch(sort=self._sort)

        with self._lock:
            self.raw = raw

            if self._limit is None:
                self.window = raw[self._skip:]
            else:
                self.window = raw[self._skip:self._skip + self._limit]


    def _changed(self, change):

        try:
            passed = change['predicate_passed']
        except KeyError:
            return

        prev = change.get('prev')
        next = change.get('next')

        with self._lock:
            if passed[0] == 0 and passed[1] == 1:
                self._enter(next)
            elif passed[0] == 1 and passed[1] == 0:
                self._exit(prev)
            elif passed[0] == 1 and passed[1] == 1:
                self._stay(prev, next)
            else:
                return

        self._propagate()


    def _propagate(self, resynced=False):
        """ Bring every dependent up to date with the window: reducers are
            recomputed, singleton documents are updated if the first element
            changed (or unconditionally after a resynchronization), and the
            change callbacks receive a copy of the window.
        """

        with self._lock:
            self.length = len(self.window)

            if len(self.window) == 0:
                first = None
            else:
                first = self.window[0]

            moved = first is not self._first
            self._first = first

        for reducer in self.reducers.snapshot():
            reducer.recompute()

        if moved or resynced:
            for document in self.documents.snapshot():
                document.update(self.first())

        listener.notify(self.tickers, self.data())


# end of class ReactiveCollection


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
