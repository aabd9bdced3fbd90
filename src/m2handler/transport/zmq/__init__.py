"""ZeroMQ transport: the handler connection and the control port client."""

import atexit

import zmq

zmq_context = zmq.Context()


def _cleanup() -> None:
    zmq_context.destroy(linger=0)


atexit.register(_cleanup)
