""" Parsing of raw Mongrel2 requests, and the base :class:`Request` class.

    A raw request from Mongrel2 looks like::

        <sender_id> <conn_id> <path> <len>:<headers>,<len>:<body>,

    The headers are either a TNetstring dictionary, or (for servers using the
    older JSON protocol) a TNetstring containing a JSON-encoded dictionary.
    The METHOD header selects the :class:`Request` subclass used to represent
    the request; see :func:`register_request_type`.
"""

import logging
import os
import re

from .. import json
from ..constants import POLICY_VARIABLE
from ..exceptions import ParseError, UnhandledMethodError
from . import tnetstring
from .response import Response, as_bytes
from .table import Table

log = logging.getLogger(__name__)


# Policies for a METHOD header that is missing or not a simple word. The
# lenient policy treats such a request as a GET; the strict policy raises
# UnhandledMethodError.

LENIENT = 'lenient'
STRICT = 'strict'

DEFAULT_METHOD = 'GET'

method_policy = os.environ.get(POLICY_VARIABLE, LENIENT)

if method_policy not in (LENIENT, STRICT):
    raise ImportError(f"unknown {POLICY_VARIABLE} policy: {method_policy!r}")

_method_pattern = re.compile(r'\w+', re.ASCII)


class Request:
    """ A request from a Mongrel2 server. Subclasses represent specific kinds
        of request, selected by the METHOD header; this class is used for
        any METHOD without a registered subclass.

        :ivar sender_id: The UUID of the Mongrel2 server that sent the request.
        :ivar conn_id: The integer id of the client connection on that server.
        :ivar path: The path component of the request.
        :ivar headers: A :class:`Table` of the request headers.
        :ivar body: The request body as bytes.
        :ivar raw: The raw request, if it was parsed from the wire.
    """

    response_class = Response

    def __init__(self, sender_id, conn_id, path, headers=None, body=b'', raw=None):

        self.sender_id = sender_id
        self.conn_id = int(conn_id)
        self.path = path
        self.headers = Table(headers)
        self.body = as_bytes(body)
        self.raw = raw


    def __repr__(self):
        return '<%s %s %s:%d>' % (self.__class__.__name__, self.path, self.sender_id, self.conn_id)


    def response(self):
        """ Return a response addressed to the same server and connection as
            this request. Subclasses choose the kind of response by setting
            :attr:`response_class`.
        """

        return self.response_class.from_request(self)


    def is_disconnect(self):
        """ Return True if this request is Mongrel2's notice that the client
            disconnected.
        """

        return False


# end of class Request



class RequestTypes:
    """ The mapping of METHOD header values to :class:`Request` subclasses.
        Methods without an explicit registration use the *default* class.
        Lookups of unregistered methods are cached; changing the default
        clears the cache, so every unregistered method picks up the new
        default, including methods that were looked up before the change.
    """

    def __init__(self, default):

        self.default = default
        self.registered = dict()
        self.cache = dict()


    def register(self, subclass, *methods):
        """ Use *subclass* for requests whose METHOD is one of *methods*.
            The special method name ``__default`` makes *subclass* the
            default; see :func:`register_default`.
        """

        for method in methods:
            method = str(method)

            if method == '__default':
                self.register_default(subclass)
                continue

            log.info('Registering %s for the %s method', subclass.__name__, method)
            self.registered[method] = subclass
            self.cache.pop(method, None)


    def register_default(self, subclass):
        """ Use *subclass* for every method without its own registration.
        """

        log.info('Registering %s as the default request type', subclass.__name__)
        self.default = subclass
        self.clear_cache()


    def subclass_for_method(self, method):
        """ Return the :class:`Request` subclass for the METHOD *method*.
        """

        method = str(method)

        try:
            return self.registered[method]
        except KeyError:
            pass

        try:
            return self.cache[method]
        except KeyError:
            pass

        subclass = self.default
        self.cache[method] = subclass
        return subclass


    def clear_cache(self):
        self.cache.clear()


    def __getitem__(self, method):
        return self.subclass_for_method(method)


# end of class RequestTypes


request_types = RequestTypes(Request)


def register_request_type(subclass, *methods):
    """ Register *subclass* as the class to instantiate for requests whose
        METHOD header is one of *methods*. Frameworks providing their own
        request types register them this way::

            class MyJSONRequest(m2handler.JSONRequest):
                pass

            register_request_type(MyJSONRequest, 'JSON')

        Register with the method ``__default`` to replace :class:`Request`
        as the class used for unregistered methods.
    """

    request_types.register(subclass, *methods)


def subclass_for_method(method):
    """ Return the :class:`Request` subclass registered for *method*.
    """

    return request_types.subclass_for_method(method)


def parse(raw_request, policy=None):
    """ Parse *raw_request* from a Mongrel2 server and return an instance of
        the appropriate :class:`Request` subclass. *policy* decides what
        happens to a request with a missing or malformed METHOD header; it
        defaults to the module-level :data:`method_policy`.

        Raises :class:`ParseError` if the request is malformed.
    """

    if isinstance(raw_request, str):
        raw_request = raw_request.encode('utf-8')

    parts = raw_request.split(b' ', 3)

    if len(parts) != 4:
        raise ParseError('expected 4 space-separated request fields, found %d' % (len(parts)))

    sender_id, conn_id, path, rest = parts

    try:
        sender_id = sender_id.decode('utf-8')
        path = path.decode('utf-8')
    except UnicodeDecodeError as error:
        raise ParseError('request envelope is not valid UTF-8: %s' % (error))

    if conn_id.isdigit():
        conn_id = int(conn_id)
    else:
        raise ParseError('connection id is not a non-negative integer: %r' % (conn_id,))

    log.debug('Parsing request for %r from %s:%d', path, sender_id, conn_id)

    headers, rest = tnetstring.decode(rest, 'utf-8')
    body, _ = tnetstring.decode(rest)

    headers = _load_headers(headers)

    if isinstance(body, bytes):
        pass
    else:
        raise ParseError('request body is not a string: %r' % (body,))

    method = _request_method(headers, policy)
    subclass = subclass_for_method(method)

    return subclass(sender_id, conn_id, path, headers, body, raw_request)


def _load_headers(headers):
    """ Return the decoded request *headers* as a dictionary. Servers using
        the JSON protocol send the headers as a JSON-encoded string.
    """

    if isinstance(headers, str):
        log.debug('Parsing JSON-encoded headers')
        try:
            headers = json.loads(headers)
        except json.DecodeError as error:
            raise ParseError('invalid JSON in request headers: %s' % (error))

    if isinstance(headers, dict):
        return headers

    raise ParseError('request headers are not a dictionary: %r' % (headers,))


def _request_method(headers, policy):
    """ Pick the METHOD out of the request *headers*, applying the
        method *policy* if it is missing or malformed.
    """

    if policy is None:
        policy = method_policy

    method = Table(headers).get('METHOD')

    if isinstance(method, str) and _method_pattern.fullmatch(method):
        return method

    if policy == STRICT:
        raise UnhandledMethodError(method)

    log.warning('Missing or malformed METHOD %r, handling as %s', method, DEFAULT_METHOD)
    return DEFAULT_METHOD


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
