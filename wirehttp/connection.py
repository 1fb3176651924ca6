"""
Byte-stream connection with line and chunk oriented reads.

Connection wraps a connected (possibly TLS) socket with a small receive
buffer. End-of-stream is only known after a receive returned no data, so
``eof`` never blocks.
"""

import re
import select
import socket
from typing import Optional

from wirehttp.exceptions import ConnectError, ErrorCode, MessageError
from wirehttp.utils.logging import get_logger

try:
    import ssl
except ImportError:  # Python built without OpenSSL
    ssl = None

_CHUNK_SIZE_RE = re.compile(r"^([0-9a-fA-F]+)")


class Connection:
    """A transport connection identified by its pool key."""

    def __init__(self, sock: socket.socket, key: str) -> None:
        self.sock = sock
        self.key = key
        self._buffer = bytearray()
        self._eof = False
        self._closed = False
        self.logger = get_logger()

    @classmethod
    def open(
        cls,
        host: str,
        port: int,
        key: str,
        timeout: Optional[float] = None,
        connect_timeout: Optional[float] = None,
        ssl_context: Optional["ssl.SSLContext"] = None,
    ) -> "Connection":
        """Open a new connection.

        Args:
            host: Host name or address to connect to
            port: TCP port
            key: Pool key of the connection
            timeout: Read/write timeout in seconds, None or 0 for no timeout
            connect_timeout: Timeout for establishing the connection
            ssl_context: TLS context, wraps the socket when given

        Raises:
            ConnectError: If the connection cannot be established
        """
        try:
            sock = socket.create_connection((host, port), timeout=connect_timeout or None)
        except OSError as exc:
            get_logger().error(f"Failed to connect to {key}: {exc}")
            raise ConnectError.from_os_error(key, exc) from exc

        try:
            if ssl_context is not None:
                sock = ssl_context.wrap_socket(sock, server_hostname=host)
            sock.settimeout(timeout or None)
        except OSError as exc:
            get_logger().error(f"TLS handshake with {key} failed: {exc}")
            sock.close()
            raise ConnectError.from_os_error(key, exc) from exc

        return cls(sock, key)

    @property
    def eof(self) -> bool:
        return self._eof and not self._buffer

    @property
    def closed(self) -> bool:
        return self._closed

    def _fill(self, size: int) -> None:
        try:
            data = self.sock.recv(size)
        except socket.timeout as exc:
            self.logger.error(f"Read from {self.key} timed out after {self.sock.gettimeout()} second(s)")
            raise MessageError(
                f"Request timed out after {self.sock.gettimeout()} second(s)",
                ErrorCode.TIMEOUT,
            ) from exc
        except OSError as exc:
            self.logger.error(f"Error receiving data from {self.key}: {exc}")
            raise MessageError(f"Error reading response: {exc}", ErrorCode.READ_ERROR) from exc
        if data:
            self._buffer.extend(data)
        else:
            self._eof = True

    def read(self, size: int) -> bytes:
        """Read up to ``size`` bytes; ``b''`` is returned only at end-of-stream."""
        if not self._buffer and not self._eof:
            self._fill(size)
        data = bytes(self._buffer[:size])
        del self._buffer[:size]
        return data

    def read_line(self, buffer_size: int) -> str:
        """Read until a newline or end-of-stream, whichever comes first.

        The trailing CR/LF is stripped; at end-of-stream whatever has been
        accumulated (possibly nothing) is returned.
        """
        searched = 0
        while True:
            index = self._buffer.find(b"\n", searched)
            if index != -1:
                line = bytes(self._buffer[: index + 1])
                del self._buffer[: index + 1]
                return line.rstrip(b"\r\n").decode("iso-8859-1")
            if self._eof:
                line = bytes(self._buffer)
                self._buffer.clear()
                return line.decode("iso-8859-1")
            searched = len(self._buffer)
            self._fill(buffer_size)

    def write(self, data: bytes) -> None:
        try:
            self.sock.sendall(data)
        except socket.timeout as exc:
            self.logger.error(f"Write to {self.key} timed out after {self.sock.gettimeout()} second(s)")
            raise MessageError(
                f"Request timed out after {self.sock.gettimeout()} second(s)",
                ErrorCode.TIMEOUT,
            ) from exc
        except OSError as exc:
            self.logger.error(f"Error sending data to {self.key}: {exc}")
            raise MessageError(f"Error writing request: {exc}", ErrorCode.WRITE_ERROR) from exc

    def is_stale(self) -> bool:
        """Whether an idle connection can no longer be used.

        An idle HTTP connection has nothing to read; if it is readable the
        peer either closed it or sent data nobody asked for.
        """
        if self._closed or self._eof or self._buffer:
            return True
        if ssl is not None and isinstance(self.sock, ssl.SSLSocket) and self.sock.pending():
            return True
        try:
            readable, _, _ = select.select([self.sock], [], [], 0)
        except (OSError, ValueError):
            return True
        return bool(readable)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self.sock.close()
        except OSError as exc:
            self.logger.debug(f"Error closing connection {self.key}: {exc}")

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"<Connection {self.key} {state}>"


class ChunkedDecoder:
    """Decoder for a body using chunked transfer-coding.

    ``chunk_length`` is the number of bytes left in the current chunk; zero
    means the next read starts with a chunk-size line.
    """

    def __init__(self, connection: Connection) -> None:
        self.connection = connection
        self.chunk_length = 0
        self.finished = False
        self.incomplete = False

    def read(self, buffer_size: int) -> bytes:
        """Read the next part of the decoded body.

        Returns ``b''`` after the last chunk, when the stream ended early, or
        when a read returned nothing mid-chunk; callers tell these apart via
        ``finished``, ``incomplete``, ``chunk_length`` and ``connection.eof``.

        Raises:
            MessageError: If a chunk-size line cannot be parsed
        """
        if self.finished:
            return b""

        if self.chunk_length == 0:
            line = self.connection.read_line(buffer_size)
            if line == "" and self.connection.eof:
                # Server closed the connection without the last zero-length chunk
                self.incomplete = True
                return b""
            match = _CHUNK_SIZE_RE.match(line)
            if not match:
                raise MessageError(
                    f"Cannot decode chunked response, invalid chunk length '{line}'",
                    ErrorCode.MALFORMED_RESPONSE,
                )
            self.chunk_length = int(match.group(1), 16)
            if self.chunk_length == 0:
                self._read_trailer(buffer_size)
                self.finished = True
                return b""

        data = self.connection.read(min(self.chunk_length, buffer_size))
        self.chunk_length -= len(data)
        if self.chunk_length == 0:
            # CRLF after chunk data
            self.connection.read_line(buffer_size)
        return data

    def _read_trailer(self, buffer_size: int) -> None:
        while not self.connection.eof:
            if self.connection.read_line(buffer_size) == "":
                return
