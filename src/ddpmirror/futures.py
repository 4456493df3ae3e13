""" Helpers for the :class:`concurrent.futures.Future` instances handed
    back by every asynchronous ddpmirror operation. Results arrive on the
    dispatcher thread, often racing a timeout; the helpers here only
    complete a future that is still pending, so the first outcome wins.
"""

import concurrent.futures


Future = concurrent.futures.Future


def resolved(value=None):
    """ Return a future that has already completed with *value*.
    """

    future = Future()
    future.set_result(value)
    return future



def settle(future, value=None):
    """ Complete *future* with *value*, unless it is already complete.
        Returns True if this call completed it.
    """

    if future.done():
        return False

    try:
        future.set_result(value)
    except concurrent.futures.InvalidStateError:
        return False

    return True



def fail(future, exception):
    """ Complete *future* with *exception*, unless it is already complete.
        Returns True if this call completed it.
    """

    if future.done():
        return False

    try:
        future.set_exception(exception)
    except concurrent.futures.InvalidStateError:
        return False

    return True



def chain(source, target):
    """ Complete *target* with the outcome of *source* once *source*
        completes.
    """

    def done(source):
        if source.cancelled():
            target.cancel()
            return

        exception = source.exception()
        if exception is None:
            settle(target, source.result())
        else:
            fail(target, exception)

    source.add_done_callback(done)
    return target


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
