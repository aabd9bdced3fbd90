""" The Mongrel2 handler protocol: TNetstrings, request parsing, and the
    request and response types. Importing this package registers every
    built-in request type with the METHOD dispatch table.

The protocol layer does not depend on any transport implementation.
"""

from . import tnetstring
from . import table
from . import response
from . import request
from . import http
from . import jsonrequest
from . import xmlrequest
from . import websocket

parse = request.parse


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
