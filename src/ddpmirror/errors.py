""" Exception classes raised by ddpmirror. The transport family mirrors the
    transport-agnostic exceptions in :mod:`ddpmirror.transport.base`; the
    remaining classes wrap errors reported by the server.
"""


class DDPError(Exception):
    """ Base class for all ddpmirror errors. """


class TransportError(DDPError):
    """ Base class for all transport-layer errors. """


class TransportConnectionError(TransportError):
    """ The transport could not establish or maintain a connection. """


class ProtocolDecodeError(DDPError):
    """ An inbound message could not be decoded, or is not a DDP message. """


class MaxTimeoutError(DDPError, TimeoutError):
    """ A bounded wait (see the *max_timeout* option) expired before the
        server responded. The request itself is not retracted.
    """

    def __init__(self, message='MAX_TIMEOUT_REACHED'):
        TimeoutError.__init__(self, message)


class MethodError(DDPError):
    """ A remote method call failed. The error payload sent by the server--
        typically a dictionary with 'error', 'reason', 'message' and
        'errorType' fields-- is passed through unchanged as :attr:`error`.
    """

    def __init__(self, error):

        self.error = error

        try:
            text = error['message']
        except (KeyError, TypeError):
            text = repr(error)

        DDPError.__init__(self, text)


class SubscriptionError(MethodError):
    """ A 'nosub' message arrived carrying an error. The server-provided
        error is available as :attr:`error`.
    """


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
