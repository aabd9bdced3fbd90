import collections

import pytest
import zmq

import m2handler


class FakeSocket:
    """ Stand-in for a pyzmq socket. PULL sockets read from the context's
        incoming queue, REQ sockets read from its replies queue, and every
        send is recorded on the context.
    """

    def __init__(self, context, socket_type):

        self.context = context
        self.socket_type = socket_type
        self.options = dict()
        self.endpoints = list()
        self.closed = False


    def setsockopt(self, option, value):
        self.options[option] = value


    def connect(self, endpoint):
        self.endpoints.append(endpoint)


    def _queue(self):

        if self.socket_type == zmq.REQ:
            return self.context.replies
        return self.context.incoming


    def poll(self, timeout=None, flags=zmq.POLLIN):

        if self._queue():
            return zmq.POLLIN

        if self.context.idle is not None:
            self.context.idle()

        return 0


    def recv(self):

        item = self._queue().popleft()

        if isinstance(item, Exception):
            raise item

        return item


    def send(self, data):

        if self.socket_type == zmq.REQ:
            self.context.requests.append(bytes(data))
        else:
            self.context.outgoing.append(bytes(data))


    def close(self):
        self.closed = True


class FakeContext:

    def __init__(self):

        self.sockets = list()
        self.incoming = collections.deque()
        self.replies = collections.deque()
        self.outgoing = list()
        self.requests = list()
        self.idle = None


    def socket(self, socket_type):

        socket = FakeSocket(self, socket_type)
        self.sockets.append(socket)
        return socket


    def sockets_of(self, socket_type):
        return [socket for socket in self.sockets if socket.socket_type == socket_type]


@pytest.fixture
def context():
    return FakeContext()


@pytest.fixture
def home(tmp_path, monkeypatch):
    """ Point the m2handler configuration directory at a temporary location
        for the duration of a test.
    """

    previous = m2handler.config.directory.found
    directory = tmp_path / 'm2handler'
    monkeypatch.setenv(m2handler.constants.HOME_VARIABLE, str(directory))
    m2handler.config.directory(str(directory))

    yield directory

    m2handler.config.directory.found = previous
    m2handler.config._cache.clear()


@pytest.fixture
def request_types():
    """ Restore the METHOD dispatch table after a test that changes it.
    """

    types = m2handler.protocol.request.request_types
    default = types.default
    registered = dict(types.registered)

    yield types

    types.default = default
    types.registered.clear()
    types.registered.update(registered)
    types.clear_cache()


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
