"""
wirehttp: an HTTP/1.x client working directly on sockets.

Build a Request, attach observers for lifecycle events if needed and send
it through an adapter:

    request = Request('http://example.com/')
    response = request.send()
"""

__version__ = '0.1.0'

from wirehttp.adapters import BaseAdapter, SocketAdapter
from wirehttp.events import Event, EventKind, Observer, Subject
from wirehttp.exceptions import (
    ConnectError,
    ErrorCode,
    LogicError,
    MessageError,
    RequestError,
)
from wirehttp.pool import ConnectionPool
from wirehttp.request import Request
from wirehttp.response import Response

__all__ = [
    'BaseAdapter',
    'ConnectError',
    'ConnectionPool',
    'ErrorCode',
    'Event',
    'EventKind',
    'LogicError',
    'MessageError',
    'Observer',
    'Request',
    'RequestError',
    'Response',
    'SocketAdapter',
    'Subject',
]
