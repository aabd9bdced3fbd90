"""Transport layer implementations."""

import os

from .base import Transport

_BACKEND = os.environ.get("M2HANDLER_TRANSPORT", "zmq")

if _BACKEND == "zmq":
    from .zmq import connection
    from .zmq import control
else:
    raise ImportError(f"unknown M2HANDLER_TRANSPORT backend: {_BACKEND!r}")

Connection = connection.Connection
Control = control.Control
