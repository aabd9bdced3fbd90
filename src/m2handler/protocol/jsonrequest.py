""" Requests for JSON (Flash/JSSocket style) routes.
"""

import logging

from .. import json
from ..exceptions import ParseError
from .request import Request, register_request_type

log = logging.getLogger(__name__)


class JSONRequest(Request):
    """ A JSON message from a Mongrel2 server. The body is decoded when the
        request is created.

        :ivar data: The decoded JSON body.
    """

    def __init__(self, sender_id, conn_id, path, headers=None, body=b'', raw=None):

        Request.__init__(self, sender_id, conn_id, path, headers, body, raw)

        log.debug('Parsing JSON request body')

        try:
            self.data = json.loads(self.body)
        except json.DecodeError as error:
            raise ParseError('invalid JSON in request body: %s' % (error))


    def is_disconnect(self):
        """ Mongrel2 announces a client disconnect with a JSON message of
            type 'disconnect'.
        """

        try:
            return self.data['type'] == 'disconnect'
        except (KeyError, TypeError):
            return False


# end of class JSONRequest


register_request_type(JSONRequest, 'JSON')


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
