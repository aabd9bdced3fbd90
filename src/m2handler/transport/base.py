"""Transport interface.

This is the (small) contract the handler runtime expects of the object that
moves messages to and from a Mongrel2 server. It lives outside
:mod:`m2handler.protocol` so the protocol remains transport-agnostic.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional, Union

from ..exceptions import ConnectionError


class Transport(ABC):
    """Minimal contract for a handler's wire-level transport."""

    @abstractmethod
    def connect(self) -> None:
        """Establish the underlying sockets."""

    @abstractmethod
    def close(self) -> None:
        """Tear down the underlying sockets. Closing twice is harmless."""

    @abstractmethod
    def send(self, sender_id: str, conn_id: Union[int, str], data: bytes) -> None:
        """Send *data* to one or more client connections on a server."""

    @abstractmethod
    def recv(self, timeout: Optional[float] = None) -> Optional[bytes]:
        """Receive the next raw request, or None if *timeout* expires."""

    @property
    @abstractmethod
    def closed(self) -> bool:
        """Whether the transport has been closed."""

    def check_closed(self) -> None:
        """Raise :class:`ConnectionError` if the transport is closed."""

        if self.closed:
            raise ConnectionError('operation on closed %s' % (self.__class__.__name__))
