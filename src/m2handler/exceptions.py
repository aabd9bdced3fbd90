""" Exceptions raised by m2handler. The transport itself raises the
    :class:`zmq.ZMQError` family; everything here describes a problem with
    the messages, the connection state, or the configuration.
"""


class Error(Exception):
    """ Base class for all m2handler errors. """


class ParseError(Error):
    """ Raised when a raw request, or any length-prefixed string inside it,
        cannot be parsed.
    """


class UnhandledMethodError(Error):
    """ Raised when the METHOD header of a request is missing or malformed
        and the parser is running with the strict method policy.
    """

    def __init__(self, method_name):
        self.method_name = method_name
        Error.__init__(self, 'Unhandled method %r' % (method_name,))


class ConnectionError(Error):
    """ Raised when an operation is attempted on a closed
        :class:`m2handler.transport.zmq.connection.Connection`.
    """


class FrameError(Error):
    """ Raised when a WebSocket frame is invalid at the time it is
        serialized for the wire.
    """


class ControlError(Error):
    """ Raised when the control port rejects a command. The *code* is the
        machine-readable error code from the server.
    """

    def __init__(self, code, message):
        self.code = code
        Error.__init__(self, message)


class ConfigError(Error):
    """ Raised when a handler configuration is missing or invalid. """


class ResponseError(Error):
    """ Raised when a response cannot generate a valid response document. """


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
