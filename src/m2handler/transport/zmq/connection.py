"""ZeroMQ connection to a Mongrel2 server.

A handler receives requests on a PULL socket connected to the server's
send_spec, and publishes responses on a PUB socket connected to its
recv_spec. The PUB socket's identity tells the server which handler a
response came from. Each outbound message is addressed to a server by its
UUID, and to one or more client connections on that server::

    <sender_id> <len>:<conn_id> <conn_id> ..., <data>
"""

from __future__ import annotations

import hashlib
import logging
import os
import socket as pysocket
import threading
import time
from typing import Iterable, Optional, Union

import zmq

from ...constants import MAX_BROADCAST_IDENTS
from ...protocol import request
from ...protocol.response import as_bytes
from ..base import Transport
from . import zmq_context

log = logging.getLogger(__name__)


def make_identifier(app_id: str) -> str:
    """Return a unique identifier for a connection used by *app_id*, built
    from the app id, the host name, the process id, and the current time.
    """

    identifier = hashlib.sha1()
    identifier.update(str(app_id).encode('utf-8'))
    identifier.update(pysocket.gethostname().encode('utf-8'))
    identifier.update(str(os.getpid()).encode('utf-8'))
    identifier.update(repr(time.time()).encode('utf-8'))

    return identifier.hexdigest()


class Connection(Transport):
    """The handler's pair of sockets to a Mongrel2 server. The sockets are
    created on first use, or explicitly with :func:`connect`.

    The *context* defaults to the shared module context; tests substitute
    their own. Messages are logged to *log* if provided. The
    *method_policy* is passed to :func:`m2handler.protocol.request.parse`
    for every request received.
    """

    def __init__(self, app_id: str, sub_addr: str, pub_addr: str,
                 context=None, log: Optional[logging.Logger] = None,
                 method_policy: Optional[str] = None,
                 identifier: Optional[str] = None):

        self.app_id = app_id
        self.sub_addr = sub_addr
        self.pub_addr = pub_addr
        self.context = context
        self.log = log or logging.getLogger(__name__)
        self.method_policy = method_policy

        if identifier is None:
            identifier = make_identifier(app_id)

        self.identifier = identifier

        self._request_sock = None
        self._response_sock = None
        self._closed = False
        self.send_lock = threading.Lock()


    def __str__(self) -> str:

        if self.closed:
            state = 'closed'
        else:
            state = 'open'

        return '{%s} %s <-> %s (%s)' % (self.identifier, self.sub_addr, self.pub_addr, state)


    def __repr__(self) -> str:
        return '<%s %s>' % (self.__class__.__name__, self)


    @property
    def closed(self) -> bool:
        return self._closed


    def connect(self) -> None:
        """Create the request (PULL) and response (PUB) sockets and connect
        them to the server.
        """

        self.check_closed()

        context = self.context
        if context is None:
            context = zmq_context

        self.log.info('Connecting PULL request socket (%s)', self.sub_addr)
        request_sock = context.socket(zmq.PULL)
        request_sock.setsockopt(zmq.LINGER, 0)
        request_sock.connect(self.sub_addr)

        self.log.info('Connecting PUB response socket (%s)', self.pub_addr)
        response_sock = context.socket(zmq.PUB)
        response_sock.setsockopt(zmq.LINGER, 0)
        response_sock.setsockopt(zmq.IDENTITY, self.identifier.encode('ascii'))
        response_sock.connect(self.pub_addr)

        self._request_sock = request_sock
        self._response_sock = response_sock


    @property
    def request_sock(self):
        """The PULL socket requests arrive on."""

        if self._request_sock is None:
            self.connect()

        return self._request_sock


    @property
    def response_sock(self):
        """The PUB socket responses are sent on."""

        if self._response_sock is None:
            self.connect()

        return self._response_sock


    def recv(self, timeout: Optional[float] = None) -> Optional[bytes]:
        """Return the next raw request. Wait at most *timeout* seconds if it
        is not None, returning None if nothing arrives in that time.
        """

        self.check_closed()
        sock = self.request_sock

        if timeout is not None:
            if sock.poll(int(timeout * 1000), zmq.POLLIN):
                pass
            else:
                return None

        data = sock.recv()
        self.log.debug('Received request: %r', data[:256])
        return data


    def receive(self, timeout: Optional[float] = None):
        """Return the next request, parsed into the appropriate
        :class:`m2handler.protocol.request.Request` subclass, or None if
        *timeout* expires first.
        """

        raw = self.recv(timeout)

        if raw is None:
            return None

        return request.parse(raw, self.method_policy)


    def send(self, sender_id: str, conn_id: Union[int, str], data) -> None:
        """Send *data* to the connection(s) *conn_id* on the server
        *sender_id*.
        """

        self.check_closed()

        conn_id = str(conn_id)
        header = '%s %d:%s, ' % (sender_id, len(conn_id.encode('utf-8')), conn_id)
        message = header.encode('utf-8') + as_bytes(data)

        self.log.debug('Sending response: %r', message[:256])

        with self.send_lock:
            self.response_sock.send(message)


    def reply(self, response) -> None:
        """Send *response* to the connection it is addressed to."""

        self.send(response.sender_id, response.conn_id, bytes(response))


    def broadcast(self, sender_id: str, conn_ids: Iterable[int], data) -> None:
        """Send *data* to each of the *conn_ids* on the server *sender_id*
        with a single message.
        """

        conn_ids = [str(conn_id) for conn_id in conn_ids]

        if len(conn_ids) > MAX_BROADCAST_IDENTS:
            raise ValueError('cannot broadcast to more than %d connections (got %d)' % (MAX_BROADCAST_IDENTS, len(conn_ids)))

        self.send(sender_id, ' '.join(conn_ids), data)


    def send_close(self, sender_id: str, conn_id: Union[int, str]) -> None:
        """Ask the server to close the client connection *conn_id*; an
        empty message means close.
        """

        self.send(sender_id, conn_id, b'')


    def reply_close(self, request_or_response) -> None:
        """Close the client connection a request came from, or a response
        is addressed to.
        """

        self.send_close(request_or_response.sender_id, request_or_response.conn_id)


    def broadcast_close(self, sender_id: str, conn_ids: Iterable[int]) -> None:
        self.broadcast(sender_id, conn_ids, b'')


    def close(self) -> None:
        """Close both sockets. Closing an already closed connection does
        nothing.
        """

        if self._closed:
            return

        self.log.info('Closing %s', self)

        # Another thread may be sending; wait for it to finish.
        with self.send_lock:
            for sock in (self._request_sock, self._response_sock):
                if sock is not None:
                    sock.close()

            self._request_sock = None
            self._response_sock = None
            self._closed = True


    def reconnect(self) -> Connection:
        """Return a new, unconnected :class:`Connection` to the same server
        with the same settings and identifier. The new connection shares no
        sockets with this one; closing this one is left to the caller.
        """

        return self.__class__(self.app_id, self.sub_addr, self.pub_addr,
                              context=self.context, log=self.log,
                              method_policy=self.method_policy,
                              identifier=self.identifier)


# end of class Connection


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
