""" The base response class. A response is addressed to a single client
    connection on a single Mongrel2 server; that address is copied from the
    request being answered.
"""

import logging

from .table import Table

log = logging.getLogger(__name__)


def as_bytes(data):
    """ Return *data* as bytes, encoding text as UTF-8.
    """

    if isinstance(data, str):
        return data.encode('utf-8')

    return bytes(data)


class Response:
    """ A generic response to a request. The *sender_id* identifies the
        Mongrel2 server the response is routed to, and *conn_id* identifies
        the client connection on that server.

        :ivar headers: A :class:`Table` of response headers.
    """

    def __init__(self, sender_id, conn_id, body=b'', headers=None):

        self.sender_id = sender_id
        self.conn_id = conn_id
        self.headers = Table(headers)
        self._body = b''
        self.body = body


    @classmethod
    def from_request(cls, request):
        """ Create a response addressed to the same server and connection as
            *request*.
        """

        log.debug('Creating a %s in response to %r', cls.__name__, request)
        return cls(request.sender_id, request.conn_id)


    @property
    def body(self):
        return self._body


    @body.setter
    def body(self, body):

        # Anything that can seek and tell (an open file, say) is kept as-is
        # and read when the response is serialized.

        if hasattr(body, 'read'):
            self._body = body
        else:
            self._body = as_bytes(body)


    def write(self, data):
        """ Append *data* to the body. Returns the response for chaining.
        """

        self._body = self._body + as_bytes(data)
        return self


    def puts(self, *objects):
        """ Write the string form of each object to the body, each followed
            by a newline.
        """

        for thing in objects:
            text = str(thing)
            if text.endswith('\n'):
                pass
            else:
                text += '\n'
            self.write(text)


    def body_bytes(self):
        """ Return the body as bytes, reading it if it is a file-like object.
        """

        body = self._body

        if hasattr(body, 'read'):
            return as_bytes(body.read())

        return body


    def __bytes__(self):
        return self.body_bytes()


    def __repr__(self):
        return '<%s %s:%s>' % (self.__class__.__name__, self.sender_id, self.conn_id)


# end of class Response


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
