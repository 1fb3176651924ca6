"""
Observers for common tasks: streaming a download to a file and logging
request lifecycle events.
"""

import logging
import zlib
from typing import BinaryIO, Optional

from wirehttp.events import EventKind
from wirehttp.exceptions import ErrorCode, MessageError
from wirehttp.utils.logging import get_logger


class BodyWriter:
    """Writes the response body to a stream while it is being received.

    gzip and deflate content-encodings are removed on the fly, so the
    request can be sent with ``store_body`` switched off to download large
    bodies without keeping them in memory. Bodies of redirect responses are
    not written.
    """

    def __init__(self, stream: BinaryIO, max_bytes: Optional[int] = None) -> None:
        self.stream = stream
        self.max_bytes = max_bytes
        self.written = 0
        self._response = None
        self._decompressor = None
        self._first_part = True

    def update(self, subject) -> None:
        event = subject.last_event

        if event.kind == EventKind.RECEIVED_HEADERS:
            self._response = event.data
            self._decompressor = None
            self._first_part = True

        elif event.kind in (EventKind.RECEIVED_BODY_PART, EventKind.RECEIVED_ENCODED_BODY_PART):
            if self._response is None or self._response.is_redirect():
                return
            if self._first_part:
                self._decompressor = self._create_decompressor(event.data)
                self._first_part = False
            data = event.data
            if self._decompressor is not None:
                try:
                    data = self._decompressor.decompress(data)
                except zlib.error as exc:
                    raise MessageError(
                        f"Error decoding response body: {exc}", ErrorCode.DECODE_ERROR
                    ) from exc
            self._write(data)

        elif event.kind == EventKind.RECEIVED_BODY:
            if self._decompressor is not None:
                self._write(self._decompressor.flush())
                self._decompressor = None

    def _create_decompressor(self, first_part: bytes):
        encoding = (self._response.get_header('content-encoding') or '').lower()
        if encoding == 'gzip':
            return zlib.decompressobj(16 + zlib.MAX_WBITS)
        if encoding == 'deflate':
            # zlib-wrapped stream if the first two bytes form a valid header
            if len(first_part) >= 2 and (first_part[0] << 8 | first_part[1]) % 31 == 0:
                return zlib.decompressobj(zlib.MAX_WBITS)
            return zlib.decompressobj(-zlib.MAX_WBITS)
        return None

    def _write(self, data: bytes) -> None:
        if not data:
            return
        self.stream.write(data)
        self.written += len(data)
        if self.max_bytes is not None and self.written > self.max_bytes:
            raise MessageError(
                f"Maximum body size of {self.max_bytes} bytes exceeded",
                ErrorCode.READ_ERROR,
            )


class EventLogger:
    """Logs every lifecycle event of the requests it is attached to."""

    def __init__(self, logger: Optional[logging.Logger] = None, level: int = logging.DEBUG) -> None:
        self.logger = logger or get_logger()
        self.level = level

    def update(self, subject) -> None:
        event = subject.last_event
        data = event.data
        if isinstance(data, (bytes, bytearray)):
            detail = f"{len(data)} bytes"
        elif event.kind == EventKind.SENT_HEADERS:
            detail = data.splitlines()[0] if data else ''
        elif data is None:
            detail = ''
        else:
            detail = str(data)
        self.logger.log(self.level, f"[{event.name}] {detail}".rstrip())
