"""Client for the Mongrel2 control port.

Commands are sent on a REQ socket as a TNetstring list of the command name
and a dictionary of options. Successful replies are tables, a dictionary
with a list of column ``headers`` and a list of ``rows``; failures are a
dictionary with an error ``code`` and an ``error`` message.
"""

from __future__ import annotations

import datetime
import logging
from typing import Dict, List, Optional

import zmq

from ...exceptions import ControlError, ParseError
from ...protocol import tnetstring
from . import zmq_context

log = logging.getLogger(__name__)

DEFAULT_PORT = 'ipc://run/control'


class Control:
    """A connection to the control port of a running Mongrel2 server."""

    def __init__(self, port: str = DEFAULT_PORT, context=None):

        if context is None:
            context = zmq_context

        self.port = port
        self.socket = context.socket(zmq.REQ)
        self.socket.setsockopt(zmq.LINGER, 0)
        self.socket.connect(port)


    def request(self, command: str, options: Optional[dict] = None) -> List[Dict]:
        """Ask the server to perform *command* with the given *options*, and
        return the resulting table as a list of dictionaries, one per row.
        Raises :class:`ControlError` if the server reports a failure.
        """

        if options is None:
            options = dict()

        message = tnetstring.encode([command, options])
        log.debug('Control request: %r', message)

        self.socket.send(message)
        reply = self.socket.recv()

        log.debug('Control reply: %r', reply)
        reply = tnetstring.loads(reply, 'utf-8')

        return self._rows(reply)


    @staticmethod
    def _rows(reply) -> List[Dict]:

        if isinstance(reply, dict):
            pass
        else:
            raise ParseError('control reply is not a dictionary: %r' % (reply,))

        if 'code' in reply:
            raise ControlError(reply['code'], reply.get('error', ''))

        try:
            headers = reply['headers']
            rows = reply['rows']
        except KeyError as missing:
            raise ParseError('control reply has no %s' % (missing))

        return [dict(zip(headers, row)) for row in rows]


    def stop(self):
        """Stop the server (SIGINT)."""
        return self.request('stop')

    def reload(self):
        """Reload the server's configuration."""
        return self.request('reload')

    def terminate(self):
        """Terminate the server (SIGTERM)."""
        return self.request('terminate')

    def help(self):
        return self.request('help')

    def uuid(self):
        return self.request('uuid')

    def info(self):
        return self.request('info')

    def tasklist(self):
        """Return the server's internal tasks."""
        return self.request('status', {'what': 'tasks'})

    def conn_status(self):
        """Return the status of the server's client connections."""
        return self.request('status', {'what': 'net'})


    def time(self):
        """Return the server's clock, with each value converted to a
        :class:`datetime.datetime`.
        """

        rows = self.request('time')

        for row in rows:
            for key, value in row.items():
                row[key] = datetime.datetime.fromtimestamp(int(value))

        return rows


    def kill(self, conn_id: int):
        """Close the client connection *conn_id*."""
        return self.request('kill', {'id': int(conn_id)})

    def control_stop(self):
        """Shut down the control port."""
        return self.request('control_stop')


    def close(self) -> None:
        self.socket.close()


# end of class Control


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
