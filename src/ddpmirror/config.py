""" Client configuration. An :class:`Options` instance gathers every
    recognized option in one place, applies the defaults, and rejects
    anything it does not recognize.
"""

DDP_VERSION = '1'
DEFAULT_RECONNECT_INTERVAL = 10000


# Option dictionaries written for other DDP clients use camelCase names;
# accept those as aliases for the local names.

aliases = dict()
aliases['SocketConstructor'] = 'transport'
aliases['autoConnect'] = 'auto_connect'
aliases['autoReconnect'] = 'auto_reconnect'
aliases['reconnectInterval'] = 'reconnect_interval'
aliases['clearDataOnReconnection'] = 'clear_data_on_reconnection'
aliases['maxTimeout'] = 'max_timeout'
aliases['cleanQueue'] = 'clean_queue'
aliases['ddpVersion'] = 'ddp_version'


class Options:
    """ The configuration for a single :class:`ddpmirror.Client`.

        :ivar endpoint: Address of the DDP server; required.
        :ivar transport: Callable accepting the *endpoint* and returning a
            :class:`ddpmirror.transport.Transport`. None selects the
            default via :func:`ddpmirror.transport.get`.
        :ivar auto_connect: Connect as soon as the client is constructed.
        :ivar auto_reconnect: Reopen the transport after it closes.
        :ivar reconnect_interval: Milliseconds to wait before reconnecting.
        :ivar clear_data_on_reconnection: Drop all mirrored documents each
            time a connection is (re)established.
        :ivar max_timeout: Milliseconds before connect, disconnect and
            method calls give up; None waits forever.
        :ivar clean_queue: Discard queued outbound requests on disconnect.
        :ivar plugins: Ordered sequence of plugins; see
            :mod:`ddpmirror.plugins`.
        :ivar ddp_version: The DDP protocol version to request.
    """

    def __init__(self, endpoint=None, transport=None, auto_connect=True,
                 auto_reconnect=True,
                 reconnect_interval=DEFAULT_RECONNECT_INTERVAL,
                 clear_data_on_reconnection=True, max_timeout=None,
                 clean_queue=False, plugins=(), ddp_version=DDP_VERSION):

        if endpoint is None or endpoint == '':
            raise ValueError('the endpoint must be specified')

        if transport is not None and callable(transport) == False:
            raise TypeError('the transport must be callable')

        if reconnect_interval is None or reconnect_interval == 0:
            reconnect_interval = DEFAULT_RECONNECT_INTERVAL

        reconnect_interval = float(reconnect_interval)
        if reconnect_interval < 0:
            raise ValueError('reconnect_interval cannot be negative')

        if max_timeout is not None:
            max_timeout = float(max_timeout)
            if max_timeout <= 0:
                max_timeout = None

        if plugins is None:
            plugins = ()

        self.endpoint = str(endpoint)
        self.transport = transport
        self.auto_connect = auto_connect != False
        self.auto_reconnect = auto_reconnect != False
        self.reconnect_interval = reconnect_interval
        self.clear_data_on_reconnection = clear_data_on_reconnection != False
        self.max_timeout = max_timeout
        self.clean_queue = bool(clean_queue)
        self.plugins = tuple(plugins)
        self.ddp_version = str(ddp_version)


    def __repr__(self):
        return 'config.Options: ' + repr(vars(self))


    @classmethod
    def from_dict(cls, options):
        """ Build an :class:`Options` instance from a dictionary, accepting
            either the local option names or their camelCase aliases.
            Unrecognized names raise :class:`TypeError`.
        """

        translated = dict()

        for key, value in options.items():
            try:
                key = aliases[key]
            except KeyError:
                pass
            translated[key] = value

        return cls(**translated)


    @property
    def max_timeout_seconds(self):
        if self.max_timeout is None:
            return None
        return self.max_timeout / 1000.0


    @property
    def reconnect_seconds(self):
        return self.reconnect_interval / 1000.0


# end of class Options



def options(options=None, **kwargs):
    """ Normalize whatever the caller handed to :class:`ddpmirror.Client`:
        an :class:`Options` instance is returned as-is, a dictionary and/or
        keyword arguments are combined and interpreted.
    """

    if isinstance(options, Options):
        if kwargs:
            raise TypeError('keyword options cannot be combined with an Options instance')
        return options

    combined = dict()

    if options is not None:
        combined.update(options)

    combined.update(kwargs)
    return Options.from_dict(combined)


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
