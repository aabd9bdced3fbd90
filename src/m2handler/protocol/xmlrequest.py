""" Requests for XML routes.
"""

import logging
import xml.etree.ElementTree

from ..exceptions import ParseError
from .request import Request, register_request_type

log = logging.getLogger(__name__)


class XMLRequest(Request):
    """ An XML message from a Mongrel2 server. The body is parsed when the
        request is created.

        :ivar data: The root :class:`xml.etree.ElementTree.Element` of the body.
    """

    def __init__(self, sender_id, conn_id, path, headers=None, body=b'', raw=None):

        Request.__init__(self, sender_id, conn_id, path, headers, body, raw)

        log.debug('Parsing XML request body')

        try:
            self.data = xml.etree.ElementTree.fromstring(self.body)
        except xml.etree.ElementTree.ParseError as error:
            raise ParseError('invalid XML in request body: %s' % (error))


# end of class XMLRequest


register_request_type(XMLRequest, 'XML')


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
