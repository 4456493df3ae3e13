""" Read access to a single mirrored collection. A :class:`CollectionView`
    never holds documents itself; every read goes back to the client's
    store and hands out deep copies.
"""

import functools
import logging

from . import ejson
from .reactive import ReactiveCollection


logger = logging.getLogger(__name__)


def passes(predicate, document):
    """ Evaluate *predicate* against *document*, returning 1 or 0. A
        predicate that raises is treated as failing.
    """

    try:
        passed = predicate(document)
    except Exception:
        logger.exception('predicate %r raised', predicate)
        return 0

    if passed:
        return 1
    return 0



class CollectionView:
    """ A view of the collection *name* mirrored by *client*, optionally
        restricted to the documents satisfying *predicate*.
    """

    def __init__(self, name, client, predicate=None):

        self.name = name
        self.client = client
        self.predicate = None
        self.filter(predicate)


    def __repr__(self):
        return "collection.CollectionView: %s" % (self.name)


    @property
    def lock(self):
        """ The lock guarding the client's store. Holding it guarantees
            that no mutation is applied, and no change is fanned out, in the
            meantime.
        """

        return self.client._store_lock


    def copy(self):
        """ Return an independent view with the same name and predicate;
            later calls to :func:`filter` on either do not affect the other.
        """

        return CollectionView(self.name, self.client, self.predicate)


    def filter(self, predicate=None):
        """ Restrict this view to the documents for which *predicate*
            returns a true value; None removes the restriction. Reactive
            collections already created from this view keep the predicate
            they were created with. Returns this view.
        """

        if predicate is not None and callable(predicate) == False:
            raise TypeError('the filter predicate must be callable')

        self.predicate = predicate
        return self


    def fetch(self, skip=None, limit=None, sort=None):
        """ Return a list of deep copies of the documents in the view. The
            optional *sort* is a comparison function returning a negative
            number, zero, or a positive number; the filter is applied first,
            then the sort, then *skip*, then *limit*.
        """

        documents = self.client.snapshot(self.name)

        if self.predicate is not None:
            filtered = list()
            for document in documents:
                if passes(self.predicate, document):
                    filtered.append(document)
            documents = filtered

        if sort is not None:
            documents.sort(key=functools.cmp_to_key(sort))

        if skip is not None:
            documents = documents[skip:]

        if limit is not None:
            documents = documents[:limit]

        return documents


    def reactive(self, skip=0, limit=None, sort=None):
        """ Return a started :class:`ddpmirror.ReactiveCollection` mirroring
            this view, sorted by the comparison function *sort*, windowed by
            *skip* and *limit*. A *limit* of None means unbounded.
        """

        return ReactiveCollection(self.copy(), skip, limit, sort)


    def on_change(self, callback, predicate=None):
        """ Invoke *callback* with a change record every time a document in
            this collection is added, changed or removed. Without a
            predicate, and if the view is not filtered, the record is a
            dictionary with 'added', 'changed' and 'removed' keys, exactly
            one of which is not False.

            With a *predicate* (or the view's own filter, if none is given)
            only changes involving a document that satisfies it are
            delivered; the record carries 'prev' and 'next' documents (False
            where there is none) and 'predicate_passed', the pair of 0/1
            flags telling whether the document passed before and after the
            change. Returns a started :class:`ddpmirror.listener.Listener`.
        """

        if predicate is None:
            predicate = self.predicate

        return self.client.on_change(self.name, callback, predicate)


    def import_data(self, data):
        """ Add the documents for this collection found in *data*, as
            produced by :func:`export_data`, as if the server had published
            them. Documents rejected by the view's filter are skipped.
            Returns a future; see :func:`ddpmirror.Client.import_data`.
        """

        if isinstance(data, (str, bytes)):
            data = ejson.parse(data)

        try:
            documents = data[self.name]
        except KeyError:
            documents = list()

        if self.predicate is not None:
            filtered = list()
            for document in documents:
                if passes(self.predicate, document):
                    filtered.append(document)
            documents = filtered

        imported = dict()
        imported[self.name] = documents

        return self.client.import_data(imported)


    def export_data(self, format='string'):
        """ Export the documents in the view, keyed by the collection name,
            as extended JSON text; a *format* of 'raw' returns the
            dictionary instead.
        """

        exported = dict()
        exported[self.name] = self.fetch()

        if format is None or format == 'string':
            return ejson.stringify(exported)

        if format == 'raw':
            return exported

        raise ValueError('unknown export format: ' + repr(format))


# end of class CollectionView


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
