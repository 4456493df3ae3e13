""" Non-owning references. Dependents of a reactive collection (reducers,
    singleton documents) refer back to their owner through these, so that
    the dependent never extends the owner's lifetime.
"""

import weakref


def ref(thing):
    """ Return a weak reference to the supplied argument, regardless of
        whether it is a simple object or a bound method.
    """

    try:
        thing.__func__
        thing.__self__
    except AttributeError:
        return weakref.ref(thing)
    else:
        return weakref.WeakMethod(thing)



def resolve(reference, what='referent'):
    """ Dereference *reference*, raising :class:`ReferenceError` if the
        referent has already been garbage collected.
    """

    thing = reference()

    if thing is None:
        raise ReferenceError(what + ' no longer exists')

    return thing


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
