""" Python client for the Brook real-time publish/subscribe service. A single
    :class:`Client` maintains one authenticated connection to the service,
    recovers from failures, and multiplexes any number of named channels
    over that connection, with replay of anything missed while the
    connection was down.
"""

# Utility components.

from . import json
from . import errors
from . import timer

# Submodules used by multiple other components.

from . import protocol
from . import transport
from . import config
from . import storage
home = config.directory

from .backoff import Backoff
from .log import Log

# Primary public-facing interfaces.

from .connection import Connection, States
from .channel import Channel
from .stream import Stream
from .client import Client

from .errors import *
from .storage import FileStorage, MemoryStorage

# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
