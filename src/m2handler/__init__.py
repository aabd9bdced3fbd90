""" Python implementation of a Mongrel2 handler library. This includes the
    wire protocol (TNetstrings, request parsing, HTTP responses, WebSocket
    frames), the ZeroMQ connection to Mongrel2, the handler runtime, and a
    client for the Mongrel2 control port.
"""

# Utility components.

from . import constants
from . import exceptions
from . import json
from . import logs

__version__ = constants.VERSION

# Submodules used by multiple other components.

from . import protocol
from . import config
home = config.directory

from . import transport

# Primary public-facing interfaces.

from .protocol.table import Table
from .protocol.request import Request, register_request_type
from .protocol.response import Response
from .protocol.http import HTTPRequest, HTTPResponse
from .protocol.jsonrequest import JSONRequest
from .protocol.xmlrequest import XMLRequest
from .protocol.websocket import Frame

from .transport import Connection, Control
from .handler import Handler
from .heartbeat import HeartbeatHandler

# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
