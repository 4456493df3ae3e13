""" Python implementation of a DDP client. This includes the connection to
    a DDP server, remote method calls and subscriptions, a local mirror of
    every published collection, and reactive views of that mirror that are
    kept up to date incrementally as the server publishes changes.
"""

# Utility components.

from . import json
from . import ejson
from . import weakref

# Submodules used by multiple other components.

from . import errors
from . import config
from . import listener
from . import events
from . import transport

from .connection import Connection, PUBLIC_EVENTS
Options = config.Options

# Primary public-facing interfaces.

from .client import Client
from .subscription import Subscription
from .collection import CollectionView
from .reactive import ReactiveCollection
from .reducer import Reducer
from .document import Document

# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
