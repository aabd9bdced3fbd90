""" HTTP requests and responses.
"""

import email.utils
import io
import logging

from .. import constants
from ..exceptions import ResponseError
from .request import Request, register_request_type
from .response import Response

log = logging.getLogger(__name__)

# The format for building valid HTTP status lines.
STATUS_LINE_FORMAT = 'HTTP/1.1 %03d %s'

# The status used when a response is sent without one being set.
DEFAULT_HTTP_STATUS = constants.NO_CONTENT

DEFAULT_CONTENT_TYPE = 'application/octet-stream'

EOL = b'\r\n'


def version_string():
    return 'm2handler %s' % (constants.VERSION)


class HTTPResponse(Response):
    """ A response to an :class:`HTTPRequest`. The :attr:`status` starts out
        unset; a response serialized without a status is sent as
        '204 No Content'.
    """

    def __init__(self, sender_id, conn_id, body=b'', headers=None):

        Response.__init__(self, sender_id, conn_id)
        self.status = None
        self.reset()

        self.body = body

        if headers is not None:
            self.headers.update(headers)


    def __bytes__(self):

        # The headers come first; measuring a file body needs its position
        # before it is read.

        status = self.status_line().encode('latin-1')
        headers = self.header_data().encode('latin-1')

        if self.bodiless:
            body = b''
        else:
            body = self.body_bytes()

        return status + EOL + headers + EOL + body


    def __repr__(self):
        return '<%s %s:%s %s>' % (self.__class__.__name__, self.sender_id, self.conn_id, self.status_line())


    def reset(self):
        """ Clear the headers, body, and status, restoring the defaults.
        """

        self.headers.clear()
        self.headers['Server'] = version_string()
        self.status = None
        self.body = b''


    def status_line(self):

        status = self.status

        if status is None:
            log.warning('Building status line for unset status')
            status = DEFAULT_HTTP_STATUS

        return STATUS_LINE_FORMAT % (status, constants.status_name(status))


    @property
    def handled(self):
        """ True if the response has a status and is ready to send.
        """

        return self.status is not None


    @property
    def bodiless(self):
        """ True if the response status means the response has no body.
        """

        return self.status in constants.BODILESS_HTTP_RESPONSE_CODES


    @property
    def status_category(self):
        """ The hundreds digit of the status, or 0 if there is no status.
        """

        if self.status is None:
            return 0

        return self.status // 100


    def status_is_informational(self):
        return self.status_category == 1

    def status_is_successful(self):
        return self.status_category == 2

    def status_is_redirect(self):
        return self.status_category == 3

    def status_is_clienterror(self):
        return self.status_category == 4

    def status_is_servererror(self):
        return self.status_category == 5


    @property
    def content_type(self):
        return self.headers.get('Content-Type')


    @content_type.setter
    def content_type(self, content_type):
        self.headers['Content-Type'] = content_type


    @property
    def keepalive(self):
        """ True if the response's Connection header asks for the connection
            to stay open. Setting this sets the header to 'keep-alive' or
            'close'.
        """

        header = self.headers.get('Connection')

        if header is None:
            return False

        return 'keep-alive' in str(header).lower()


    @keepalive.setter
    def keepalive(self, value):

        if value:
            self.headers['Connection'] = 'keep-alive'
        else:
            self.headers['Connection'] = 'close'


    def header_data(self):
        """ Return the normalized headers as HTTP header lines.
        """

        return str(self.normalized_headers())


    def normalized_headers(self):
        """ Return a copy of the headers with the automatically generated
            headers (Date, Content-Length, Content-Type) filled in.
        """

        headers = self.headers.copy()

        if 'Date' in headers:
            pass
        else:
            headers['Date'] = email.utils.formatdate(usegmt=True)

        if 'Content-Length' in headers:
            pass
        else:
            headers['Content-Length'] = self.content_length()

        if self.bodiless:
            headers.pop('Content-Type', None)
        elif 'Content-Type' in headers:
            pass
        else:
            headers['Content-Type'] = DEFAULT_CONTENT_TYPE

        return headers


    def content_length(self):
        """ Return the length of the body in bytes. A file-like body is
            measured with seek() and tell(), leaving its position unchanged.
        """

        if self.bodiless:
            return 0

        body = self.body

        if isinstance(body, bytes):
            return len(body)

        try:
            start = body.tell()
            body.seek(0, io.SEEK_END)
            end = body.tell()
            body.seek(start, io.SEEK_SET)
        except (AttributeError, OSError):
            raise ResponseError('no way to calculate the content length of a %s body' % (type(body).__name__))

        return end - start


# end of class HTTPResponse



class HTTPRequest(Request):
    """ An HTTP request from a Mongrel2 server.
    """

    response_class = HTTPResponse

    # HTTP verbs from RFC2616, and PATCH from RFC5789.
    methods = ('OPTIONS', 'GET', 'HEAD', 'POST', 'PUT', 'DELETE', 'TRACE', 'CONNECT', 'PATCH')

    @property
    def keepalive(self):
        """ True if the client's connection may be kept open after the
            response: the request must be HTTP/1.1, and its Connection header,
            if any, must not include the 'close' token.
        """

        if self.headers.get('VERSION') != 'HTTP/1.1':
            return False

        header = self.headers.get('Connection')

        if header is None:
            return True

        if isinstance(header, list):
            header = ','.join(str(value) for value in header)

        tokens = [token.strip().lower() for token in str(header).split(',')]
        return 'close' not in tokens


# end of class HTTPRequest


register_request_type(HTTPRequest, *HTTPRequest.methods)


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
