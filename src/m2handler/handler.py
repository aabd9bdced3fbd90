""" The :class:`Handler` is the application side of a Mongrel2 route: it
    receives requests from one or more Mongrel2 servers over ZeroMQ,
    dispatches each one to a handler method according to its type, and
    sends back whatever response the handler method returns.
"""

import logging
import queue
import signal
import threading

import zmq

from . import config
from . import constants
from .exceptions import FrameError, ParseError
from .protocol.http import HTTPRequest
from .protocol.jsonrequest import JSONRequest
from .protocol.websocket import CLOSE_PROTOCOL_ERROR, Frame
from .protocol.xmlrequest import XMLRequest
from .transport import Connection

# Commands accepted by Handler.post().

RESTART = 'restart'
SHUTDOWN = 'shutdown'
CHECKPOINT = 'checkpoint'

COMMANDS = (RESTART, SHUTDOWN, CHECKPOINT)


def _signal_commands():

    commands = dict()
    wanted = (('SIGHUP', RESTART),
              ('SIGINT', SHUTDOWN),
              ('SIGTERM', SHUTDOWN),
              ('SIGUSR1', CHECKPOINT))

    for name, command in wanted:
        try:
            signum = getattr(signal, name)
        except AttributeError:
            # Not every platform has SIGHUP and SIGUSR1.
            continue
        commands[signum] = command

    return commands


class Handler:
    """ A Mongrel2 handler application. Subclasses override the handler
        methods (:func:`handle`, :func:`handle_json`, :func:`handle_xml`,
        :func:`handle_disconnect`, and the ``handle_<opcode>_frame``
        methods for WebSocket frames) to respond to requests::

            class HelloWorld(m2handler.Handler):

                def handle(self, request):
                    response = request.response()
                    response.status = 200
                    response.content_type = 'text/plain'
                    response.puts('Hello, world!')
                    return response

            HelloWorld.run_app('helloworld-handler')

        The *send_spec* is the ZeroMQ endpoint the Mongrel2 server sends
        requests on; *recv_spec* is the endpoint it receives responses on.
        Log messages go to *log* if one is provided, otherwise to this
        module's logger. The *context* is the ZeroMQ context used for the
        connection; the default is shared by the whole process.

        OS signals do not act on the handler directly. Each one posts a
        command (see :func:`post`) that the request loop applies between
        requests: SIGHUP restarts, SIGINT and SIGTERM shut down, and SIGUSR1
        logs a checkpoint.

        :ivar conn: The handler's :class:`m2handler.transport.Connection`.
    """

    # How long, in seconds, the request loop waits for a request before
    # checking for posted commands.
    poll_interval = 0.5

    signal_commands = _signal_commands()

    def __init__(self, app_id, send_spec, recv_spec, log=None, context=None):

        self.app_id = app_id
        self.log = log or logging.getLogger(__name__)
        self.conn = Connection(app_id, send_spec, recv_spec, context=context, log=self.log)

        self.commands = queue.SimpleQueue()
        self._saved_handlers = dict()


    def __repr__(self):
        return '<%s %s %s>' % (self.__class__.__name__, self.app_id, self.conn)


    @classmethod
    def run_app(cls, app_id, provider=None, **kwargs):
        """ Look up the connection information for *app_id*, create an
            instance of this class with it, and :func:`run` it. The
            configuration *provider* defaults to :mod:`m2handler.config`;
            any other keyword arguments are passed to the constructor.
            Returns the handler once it has stopped.
        """

        logging.getLogger(__name__).info('Running application %r', app_id)

        send_spec, recv_spec = cls.connection_info_for(app_id, provider)
        handler = cls(app_id, send_spec, recv_spec, **kwargs)
        return handler.run()


    @classmethod
    def connection_info_for(cls, app_id, provider=None):
        """ Return the (send_spec, recv_spec) pair for *app_id* from the
            configuration *provider*.
        """

        if provider is None:
            provider = config

        send_spec, recv_spec = provider.connection_info_for(app_id)
        logging.getLogger(__name__).info('  config specs: %s <-> %s', send_spec, recv_spec)

        return send_spec, recv_spec


    def run(self):
        """ Install the signal handlers and accept requests until the
            connection is closed. The signal handlers that were in place
            beforehand are always restored. Returns the handler.
        """

        self.log.info('Starting up %r', self)
        self.set_signal_handlers()

        try:
            self.start_accepting_requests()
        finally:
            self.restore_signal_handlers()
            self.log.info('Done: %r', self)

        return self


    def start_accepting_requests(self):
        """ The request loop: apply any posted commands, wait for the next
            request, dispatch it, and reply with the result, until the
            connection is closed. ZeroMQ errors are logged and the loop
            continues while the connection remains open; requests that
            cannot be parsed are logged and dropped.
        """

        while not self.conn.closed:
            self.process_commands()

            if self.conn.closed:
                break

            try:
                request = self.conn.receive(self.poll_interval)
            except zmq.ZMQError as error:
                if self.conn.closed:
                    break
                self.log.error('%s while accepting requests: %s', error.__class__.__name__, error)
                self.log.debug('Traceback:', exc_info=True)
                continue
            except ParseError as error:
                self.log.error('Dropping unparseable request: %s', error)
                continue

            if request is None:
                continue

            self.log.info('%s from %s:%d', request.__class__.__name__, request.sender_id, request.conn_id)
            response = self.dispatch_request(request)

            if response is None:
                self.log.debug('  no response; ignoring.')
            else:
                self.log.debug('  responding with a %s', response.__class__.__name__)
                self.send_response(response)


    def send_response(self, response):
        """ Reply with *response*. A frame that fails validation is logged
            and not sent; the request loop carries on.
        """

        try:
            self.conn.reply(response)
        except FrameError:
            self.log.error('Not sending invalid frame to %s:%d: %s', response.sender_id, response.conn_id, ', '.join(response.errors))


    def dispatch_request(self, request):
        """ Invoke the handler method appropriate for *request* and return
            its result. Override this to dispatch in some other way.
        """

        if request.is_disconnect():
            self.log.debug('disconnect!')
            self.handle_disconnect(request)
            return None

        if isinstance(request, Frame):
            return self.handle_websocket(request)
        elif isinstance(request, HTTPRequest):
            return self.handle(request)
        elif isinstance(request, JSONRequest):
            return self.handle_json(request)
        elif isinstance(request, XMLRequest):
            return self.handle_xml(request)

        self.log.error('Unhandled request type %s', request.__class__.__name__)
        return None


    # Handler methods.

    def handle(self, request):
        """ Handle an :class:`HTTPRequest`. The default answers every request
            with '204 No Content'.
        """

        self.log.warning("No default handler; responding with '204 No Content'")
        response = request.response()
        response.status = constants.NO_CONTENT
        return response


    def handle_json(self, request):
        self.log.warning('Unhandled JSON message request (%r)', request.headers.get('METHOD'))
        return None


    def handle_xml(self, request):
        self.log.warning('Unhandled XML message request (%r)', request.headers.get('METHOD'))
        return None


    def handle_disconnect(self, request):
        """ Called when a client disconnects. The return value is ignored.
        """

        return None


    def handle_websocket(self, frame):
        """ Dispatch the WebSocket *frame* to the ``handle_<opcode>_frame``
            method for its opcode.
        """

        method = getattr(self, 'handle_%s_frame' % (frame.opcode))
        return method(frame)


    def handle_continuation_frame(self, frame):
        self.log.debug('Unhandled continuation frame %r', frame)
        return None

    def handle_text_frame(self, frame):
        self.log.debug('Unhandled text frame %r', frame)
        return None

    def handle_binary_frame(self, frame):
        self.log.debug('Unhandled binary frame %r', frame)
        return None

    def handle_pong_frame(self, frame):
        self.log.debug('Pong from %s:%d', frame.sender_id, frame.conn_id)
        return None


    def handle_ping_frame(self, frame):
        """ Answer a ping with a pong carrying the same payload.
        """

        return frame.response()


    def handle_close_frame(self, frame):
        """ Acknowledge the client's close frame, then ask the server to
            close the connection.
        """

        self.log.info('Close frame from %s:%d', frame.sender_id, frame.conn_id)
        self.conn.reply(frame.response())
        self.conn.reply_close(frame)
        return None


    def handle_reserved_frame(self, frame):
        """ Close the connection of a client using a reserved opcode.
        """

        self.log.error('Frame with reserved opcode 0x%x from %s:%d', frame.numeric_opcode, frame.sender_id, frame.conn_id)
        response = frame.response('close')
        response.set_status(CLOSE_PROTOCOL_ERROR)
        return response


    # Commands.

    def post(self, command):
        """ Ask the request loop to perform *command*, one of 'restart',
            'shutdown', or 'checkpoint', before it waits for the next
            request. Safe to call from any thread, and from signal handlers.
        """

        if command in COMMANDS:
            pass
        else:
            raise ValueError('unknown handler command: ' + repr(command))

        self.commands.put(command)


    def process_commands(self):
        """ Apply all posted commands, in the order they were posted.
            Commands posted after a shutdown are discarded.
        """

        while True:
            try:
                command = self.commands.get_nowait()
            except queue.Empty:
                break

            if self.conn.closed:
                self.log.debug('Discarding %s command, connection is closed', command)
                continue

            getattr(self, command)()


    def restart(self):
        """ Replace the connection with a new one to the same server. The
            old connection is closed.
        """

        self.log.info('Restarting')

        old_conn = self.conn
        self.conn = old_conn.reconnect()
        self.log.debug('  conn %r -> %r', old_conn, self.conn)

        old_conn.close()


    def shutdown(self):
        """ Close the connection, which ends the request loop.
        """

        self.log.info('Shutting down.')
        self.conn.close()


    def checkpoint(self):
        self.log.info('Checkpoint: User signal.')


    # Signal handling.

    def set_signal_handlers(self):
        """ Install :func:`on_signal` for each signal in
            :attr:`signal_commands`, remembering the handlers being replaced.
            Signal handlers can only be installed from the main thread; in
            any other thread this does nothing.
        """

        if threading.current_thread() is not threading.main_thread():
            self.log.debug('Not in the main thread, leaving signal handlers alone')
            return

        for signum in self.signal_commands:
            previous = signal.signal(signum, self.on_signal)
            self._saved_handlers[signum] = previous


    def restore_signal_handlers(self):

        saved = self._saved_handlers
        self._saved_handlers = dict()

        for signum, previous in saved.items():
            if previous is None:
                previous = signal.SIG_DFL
            signal.signal(signum, previous)


    def on_signal(self, signum, frame):

        command = self.signal_commands[signum]
        self.log.warning('Received %s, posting %s', signal.Signals(signum).name, command)
        self.post(command)


# end of class Handler


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
