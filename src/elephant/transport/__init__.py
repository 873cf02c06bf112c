"""Transports perform the network exchange behind a template execution.

Classes:
    :class:`Transport` -- abstract base enforcing the success/error then
    complete callback order.
    :class:`HttpxTransport` -- implementation on :mod:`httpx`.
    :class:`TransportRequest` / :class:`TransportResponse` -- exchange data.
"""

from elephant.transport.base import Transport, TransportRequest, TransportResponse
from elephant.transport.httpx_transport import HttpxTransport

__all__ = ["Transport", "TransportRequest", "TransportResponse", "HttpxTransport"]
