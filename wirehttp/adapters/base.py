"""
Base adapter interface.

This module defines the abstract base class that all transport adapters
must implement, together with the request body bookkeeping they share.
"""

import io
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from wirehttp.exceptions import ErrorCode, LogicError
from wirehttp.request import Request
from wirehttp.response import Response
from wirehttp.utils.logging import get_logger


def body_length(body: Any) -> Optional[int]:
    """Return the length of a request body, or None if it cannot be known.

    Seekable bodies are rewound to their start.
    """
    if isinstance(body, (bytes, bytearray, memoryview)):
        return len(body)
    get_length = getattr(body, 'get_length', None)
    if callable(get_length):
        return get_length()
    seekable = getattr(body, 'seekable', None)
    if callable(seekable) and seekable():
        body.seek(0)
        size = body.seek(0, io.SEEK_END)
        body.seek(0)
        return size
    if hasattr(body, '__len__'):
        return len(body)
    return None


def read_body_block(body: Any, position: int, size: int) -> bytes:
    """Read the next block of at most ``size`` bytes from a request body."""
    if isinstance(body, (bytes, bytearray, memoryview)):
        return bytes(body[position:position + size])
    data = body.read(size)
    if isinstance(data, str):
        data = data.encode('utf-8')
    return data or b''


class BaseAdapter(ABC):
    """Abstract base class for transport adapters.
    
    Subclasses implement ``send_request``. The attributes below are set up
    by ``calculate_request_length`` for the request being sent.
    """

    # Methods that never carry a body
    BODY_DISALLOWED = ('GET', 'HEAD', 'TRACE')

    # Methods that always send Content-Length, even for an empty body
    BODY_REQUIRED = ('POST', 'PUT')

    def __init__(self) -> None:
        self.request: Optional[Request] = None
        self.request_body: Any = b''
        self.content_length: Optional[int] = 0
        self.chunked_body = False
        self.logger = get_logger()

    @abstractmethod
    def send_request(self, request: Request) -> Response:
        """Send a request and return the server's response.
        
        Args:
            request: The request to send
            
        Returns:
            The response
            
        Raises:
            RequestError: If anything goes wrong
        """
        pass

    def calculate_request_length(self, headers: Dict[str, str]) -> None:
        """Set up the body to send and the headers describing it.
        
        Args:
            headers: Header mapping for the request, updated in place
            
        Raises:
            LogicError: If the body length is unknown on HTTP/1.0
        """
        body = self.request.get_body()
        if isinstance(body, str):
            body = body.encode('utf-8')
        self.request_body = body
        self.content_length = body_length(body)
        self.chunked_body = False
        method = self.request.method

        if method in self.BODY_DISALLOWED or self.content_length == 0:
            self.content_length = 0
            if method in self.BODY_REQUIRED:
                headers['content-length'] = '0'
            else:
                # Neither a body nor a reason to describe one
                headers.pop('content-length', None)
                headers.pop('content-type', None)
            return

        if not headers.get('content-type'):
            headers['content-type'] = 'application/x-www-form-urlencoded'
        if self.content_length is None:
            if self.request.get_config('protocol_version') == '1.0':
                raise LogicError(
                    'Request body of unknown length cannot be sent with HTTP/1.0',
                    ErrorCode.MISCONFIGURATION,
                )
            headers.pop('content-length', None)
            headers['transfer-encoding'] = 'chunked'
            self.chunked_body = True
        else:
            headers['content-length'] = str(self.content_length)
