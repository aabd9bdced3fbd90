""" Constants shared across m2handler.
"""

import http

VERSION = '0.1.0'

# Maximum number of connection ids that can be included in a broadcast.
MAX_BROADCAST_IDENTS = 100

# Environment variables consulted by m2handler.
HOME_VARIABLE = 'M2HANDLER_HOME'
POLICY_VARIABLE = 'M2HANDLER_METHOD_POLICY'


# HTTP status codes. The standard library already carries the canonical
# list; the handful used directly by the runtime get names here.

SWITCHING_PROTOCOLS = 101
OK = 200
NO_CONTENT = 204
NOT_MODIFIED = 304
BAD_REQUEST = 400
NOT_FOUND = 404
SERVER_ERROR = 500

# Responses with these statuses never carry a body.
BODILESS_HTTP_RESPONSE_CODES = frozenset((100, 101, 102, 204, 304))


def status_name(code):
    """ Return the reason phrase for the HTTP status *code*, or a generic
        placeholder for codes without one.
    """

    try:
        status = http.HTTPStatus(code)
    except ValueError:
        return 'Undefined HTTP Status'

    return status.phrase


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
