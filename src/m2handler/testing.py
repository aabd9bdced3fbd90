""" Helpers for testing handlers without a Mongrel2 server. The factories
    build request objects the way :func:`m2handler.protocol.request.parse`
    would, and :func:`build_message` builds the raw message Mongrel2 would
    send for a request.
"""

import urllib.parse

from . import json
from .protocol import tnetstring
from .protocol.request import subclass_for_method
from .protocol.table import Table
from .protocol.websocket import FIN_FLAG, OPCODE

DEFAULT_TEST_UUID = 'BD17D85C-4730-4BF2-999D-9D2B2E0FCCF9'
DEFAULT_CONN_ID = 0

TEST_SEND_SPEC = 'tcp://127.0.0.1:9998'
TEST_RECV_SPEC = 'tcp://127.0.0.1:9997'

DEFAULT_TESTING_HOST = 'localhost'
DEFAULT_TESTING_PORT = 8080
DEFAULT_TESTING_ROUTE = '/a_handler'

DEFAULT_TESTING_HEADERS = {
    'x-forwarded-for': '127.0.0.1',
    'accept-language': 'en-US,en;q=0.8',
    'accept-encoding': 'gzip,deflate,sdch',
    'connection': 'keep-alive',
    'accept-charset': 'UTF-8,*;q=0.5',
    'accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8',
    'user-agent': 'Mozilla/5.0 (X11; Linux x86_64) m2handler-testing',
    'VERSION': 'HTTP/1.1',
}

DEFAULT_WEBSOCKET_HEADERS = {
    'x-forwarded-for': '127.0.0.1',
    'upgrade': 'websocket',
    'connection': 'Upgrade',
    'sec-websocket-version': '13',
    'sec-websocket-key': 'dGhlIHNhbXBsZSBub25jZQ==',
    'origin': 'http://localhost',
    'VERSION': 'HTTP/1.1',
}


def build_message(sender_id, conn_id, path, headers=None, body=b'', json_headers=False):
    """ Return the raw bytes Mongrel2 would send for a request. With
        *json_headers* the headers are encoded the way servers using the
        older JSON protocol send them.
    """

    if headers is None:
        headers = dict()
    elif isinstance(headers, Table):
        headers = headers.to_dict()
    else:
        headers = dict(headers)

    if json_headers:
        encoded_headers = tnetstring.encode(json.dumps(headers))
    else:
        encoded_headers = tnetstring.encode(headers)

    envelope = '%s %s %s ' % (sender_id, conn_id, path)

    return envelope.encode('utf-8') + encoded_headers + tnetstring.encode(body)


class RequestFactory:
    """ A factory for :class:`HTTPRequest` objects (or whatever is currently
        registered for each method) routed through *route*::

            factory = RequestFactory(route='/api')
            request = factory.get('/api/status')
            response = MyHandler.handle(handler, request)
    """

    default_headers = DEFAULT_TESTING_HEADERS

    def __init__(self, sender_id=DEFAULT_TEST_UUID, conn_id=DEFAULT_CONN_ID,
                 host=DEFAULT_TESTING_HOST, port=DEFAULT_TESTING_PORT,
                 route=DEFAULT_TESTING_ROUTE, headers=None):

        self.sender_id = sender_id
        self.conn_id = conn_id
        self.host = host
        self.port = port
        self.route = route

        self.headers = Table(self.default_headers)
        if headers is not None:
            self.headers = self.headers.merge(Table(headers))


    def check_route(self, uri):

        if uri.startswith(self.route):
            pass
        else:
            raise ValueError("request for %r doesn't route through %r" % (uri, self.route))


    def make_merged_headers(self, method, uri, headers=None):
        """ Return the factory's headers, updated with *headers* and the
            headers Mongrel2 adds for a request for *uri*.
        """

        merged = self.headers.copy()

        if headers is not None:
            merged.update(Table(headers))

        parsed = urllib.parse.urlsplit(uri)

        merged['URI'] = uri
        merged['PATH'] = parsed.path
        merged['METHOD'] = method
        merged['host'] = '%s:%d' % (self.host, self.port)
        merged['PATTERN'] = self.route

        if parsed.query:
            merged['QUERY'] = parsed.query

        return merged


    def request(self, method, uri, body=b'', headers=None):
        """ Build a request for *uri* with the METHOD *method*.
        """

        self.check_route(uri)
        headers = self.make_merged_headers(method, uri, headers)
        subclass = subclass_for_method(method)

        return subclass(self.sender_id, self.conn_id, uri, headers, body)


    def options(self, uri, headers=None):
        return self.request('OPTIONS', uri, headers=headers)

    def get(self, uri, headers=None):
        return self.request('GET', uri, headers=headers)

    def head(self, uri, headers=None):
        return self.request('HEAD', uri, headers=headers)

    def post(self, uri, body=b'', headers=None):
        return self.request('POST', uri, body, headers)

    def put(self, uri, body=b'', headers=None):
        return self.request('PUT', uri, body, headers)

    def delete(self, uri, headers=None):
        return self.request('DELETE', uri, headers=headers)


# end of class RequestFactory



class WebSocketFrameFactory(RequestFactory):
    """ A factory for WebSocket :class:`Frame` requests. Each method takes
        the request *uri*, the frame *payload*, and any extra *flags* (as
        accepted by :func:`Frame.set_flags`); the FIN flag is set unless
        *fin* is False.
    """

    default_headers = DEFAULT_WEBSOCKET_HEADERS

    def frame(self, opcode, uri, payload=b'', *flags, fin=True, headers=None):

        self.check_route(uri)

        headers = self.make_merged_headers('WEBSOCKET', uri, headers)

        header_byte = OPCODE[opcode]
        if fin:
            header_byte |= FIN_FLAG

        headers['FLAGS'] = '0x%x' % (header_byte)

        subclass = subclass_for_method('WEBSOCKET')
        frame = subclass(self.sender_id, self.conn_id, uri, headers, payload)

        if flags:
            frame.set_flags(*flags)
            frame.headers['FLAGS'] = '0x%x' % (frame.flags)

        return frame


    def continuation(self, uri, payload=b'', *flags, **kwargs):
        return self.frame('continuation', uri, payload, *flags, **kwargs)

    def text(self, uri, payload=b'', *flags, **kwargs):
        return self.frame('text', uri, payload, *flags, **kwargs)

    def binary(self, uri, payload=b'', *flags, **kwargs):
        return self.frame('binary', uri, payload, *flags, **kwargs)

    def close(self, uri, payload=b'', *flags, **kwargs):
        return self.frame('close', uri, payload, *flags, **kwargs)

    def ping(self, uri, payload=b'', *flags, **kwargs):
        return self.frame('ping', uri, payload, *flags, **kwargs)

    def pong(self, uri, payload=b'', *flags, **kwargs):
        return self.frame('pong', uri, payload, *flags, **kwargs)


# end of class WebSocketFrameFactory


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
