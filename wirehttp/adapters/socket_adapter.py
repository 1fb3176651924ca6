"""
Socket-based HTTP/1.x adapter.

This module implements the request/response exchange directly on top of a
TCP (or TLS) socket: it writes the request line, headers and body itself
and parses the status line, headers and chunked or length-delimited body
of the response, reusing persistent connections through a ConnectionPool.
"""

import time
import urllib.parse
from typing import Optional

from wirehttp.adapters.base import BaseAdapter, read_body_block
from wirehttp.auth import create_auth_header
from wirehttp.connection import ChunkedDecoder, Connection
from wirehttp.events import EventKind
from wirehttp.exceptions import ErrorCode, LogicError, MessageError
from wirehttp.pool import ConnectionPool, default_pool
from wirehttp.request import METHOD_GET, METHOD_HEAD, Request
from wirehttp.response import Response
from wirehttp.utils import tls
from wirehttp.utils.logging import log_request, log_response


def _tokens(value: Optional[str]) -> list[str]:
    if not value:
        return []
    return [token.strip().lower() for token in value.split(',')]


def is_chunked(transfer_encoding: Optional[str]) -> bool:
    """Whether chunked is the final transfer-coding applied."""
    tokens = _tokens(transfer_encoding)
    return bool(tokens) and tokens[-1] == 'chunked'


def canonical_header_name(name: str) -> str:
    """Capitalize each hyphen-separated word: ``content-type`` -> ``Content-Type``."""
    return '-'.join(part[:1].upper() + part[1:] for part in name.split('-'))


class SocketAdapter(BaseAdapter):
    """HTTP/1.x adapter working on raw sockets.

    Features:
    - Keep-alive connection reuse through a shared ConnectionPool
    - Chunked and length-delimited response bodies
    - Chunked request bodies when the body length is unknown
    - Plain HTTP proxies with Basic proxy authentication
    - Optional redirect following

    One adapter performs one exchange at a time; run separate adapters
    sharing a pool to send requests from several threads.
    """

    def __init__(self, pool: Optional[ConnectionPool] = None) -> None:
        """Initialize a new socket adapter.

        Args:
            pool: Pool of persistent connections, the process-wide default
                pool if not given
        """
        super().__init__()
        self.pool = pool if pool is not None else default_pool()
        self.connection: Optional[Connection] = None
        self.socket_key: Optional[str] = None

    def send_request(self, request: Request) -> Response:
        """Send the request and return the server's response.

        Redirects are followed if the request's ``follow_redirects``
        configuration is set.

        Raises:
            LogicError: If the request cannot be sent as configured
            ConnectError: If the connection cannot be established
            MessageError: If sending the request or reading the response fails
        """
        redirects = 0
        while True:
            response = self._exchange(request)
            if not (request.get_config('follow_redirects') and response.is_redirect()):
                return response
            max_redirects = request.get_config('max_redirects')
            if redirects >= max_redirects:
                raise MessageError(
                    f"Maximum ({max_redirects}) redirects followed",
                    ErrorCode.TOO_MANY_REDIRECTS,
                )
            request = self.handle_redirect(request, response)
            redirects += 1

    def _exchange(self, request: Request) -> Response:
        self.request = request
        self.connection = None
        reusable = False
        try:
            keep_alive = self.connect()
            headers = self.prepare_headers()
            start_time = time.monotonic()
            self.connection.write(headers.encode('utf-8', errors='surrogateescape'))
            request.set_last_event(EventKind.SENT_HEADERS, headers)
            self.write_body()

            response = self.read_response()
            log_response(self.logger, response, time.monotonic() - start_time)

            length_known = (
                is_chunked(response.get_header('transfer-encoding'))
                or response.get_header('content-length') is not None
            )
            connection_tokens = _tokens(response.get_header('connection'))
            persistent = 'keep-alive' in connection_tokens or (
                not connection_tokens and response.version == '1.1'
            )
            reusable = (
                keep_alive and length_known and persistent and not self.connection.eof
            )
            if reusable:
                self.logger.debug(f"Keeping connection {self.socket_key} alive")
                self.pool.release(self.socket_key, self.connection)
                self.connection = None
        finally:
            if not reusable:
                self.disconnect()
        return response

    def connect(self) -> bool:
        """Open a connection or take a persistent one from the pool.

        Returns:
            Whether the connection may be kept alive after this exchange

        Raises:
            LogicError: On an unusable proxy / TLS configuration
            ConnectError: If the connection cannot be established
        """
        request = self.request
        config = request.get_config()
        url = request.url
        secure = url.scheme.lower() == 'https'

        if config['proxy_host']:
            if not config['proxy_port']:
                raise LogicError('Proxy port not provided', ErrorCode.MISSING_VALUE)
            host, port, proxy = config['proxy_host'], int(config['proxy_port']), True
        else:
            host, port, proxy = url.hostname, url.port or (443 if secure else 80), False

        if secure:
            if proxy:
                raise LogicError(
                    'HTTPS proxy support not yet implemented', ErrorCode.MISCONFIGURATION
                )
            if not tls.tls_available():
                raise LogicError(
                    'Need OpenSSL support for https:// requests', ErrorCode.MISCONFIGURATION
                )

        # RFC 2068, section 19.7.1: A client MUST NOT send the Keep-Alive
        # connection token to a proxy server
        connection_header = request.headers.get('connection')
        if proxy and connection_header and connection_header.lower() == 'keep-alive':
            request.set_header('connection', None)
            connection_header = None

        keep_alive = (
            config['protocol_version'] == '1.1' and not connection_header
        ) or (bool(connection_header) and connection_header.lower() == 'keep-alive')

        self.socket_key = f"{'ssl' if secure else 'tcp'}://{host}:{port}"
        self.connection = None

        if keep_alive:
            self.connection = self.pool.acquire(self.socket_key)
            if self.connection is not None:
                self.logger.debug(f"Reusing connection {self.socket_key}")
                return keep_alive

        self.logger.debug(f"Connecting to {self.socket_key}")
        self.connection = Connection.open(
            host,
            port,
            self.socket_key,
            timeout=config['timeout'],
            connect_timeout=config['connect_timeout'],
            ssl_context=tls.get_http1_ssl_context(config) if secure else None,
        )
        if secure:
            protocol = tls.get_negotiated_protocol(self.connection.sock)
            if protocol:
                self.logger.debug(f"Negotiated protocol: {protocol}")
        request.set_last_event(EventKind.CONNECT, self.socket_key)
        return keep_alive

    def disconnect(self) -> None:
        """Close the connection used by the current exchange, if any."""
        if self.connection is None:
            return
        self.logger.debug(f"Closing connection {self.connection.key}")
        self.connection.close()
        self.connection = None
        self.request.set_last_event(EventKind.DISCONNECT)

    def prepare_headers(self) -> str:
        """Build the request line and header block.

        Returns:
            The header block, terminated by an empty line
        """
        request = self.request
        config = request.get_config()
        url = request.url

        host = url.hostname
        if ':' in host:
            host = f"[{host}]"
        port = url.port
        if port and not (
            (url.scheme.lower() == 'http' and port == 80)
            or (url.scheme.lower() == 'https' and port == 443)
        ):
            host = f"{host}:{port}"

        headers = {'host': host}
        headers.update((k, v) for k, v in request.headers.items() if k != 'host')

        if not config['proxy_host']:
            target = ''
        else:
            if config['proxy_user']:
                headers['proxy-authorization'] = create_auth_header(
                    config['proxy_user'],
                    config['proxy_password'],
                    config['proxy_auth_scheme'],
                )
            target = f"{url.scheme}://{host}"
        target += (url.path or '/') + (f"?{url.query}" if url.query else '')

        if request.auth:
            headers['authorization'] = create_auth_header(
                request.auth.user, request.auth.password, request.auth.scheme
            )
        if config['protocol_version'] == '1.1' and 'accept-encoding' not in headers:
            headers['accept-encoding'] = 'gzip, deflate'

        self.calculate_request_length(headers)
        log_request(self.logger, request.method, target, headers, self.content_length)

        lines = [f"{request.method} {target} HTTP/{config['protocol_version']}\r\n"]
        for name, value in headers.items():
            lines.append(f"{canonical_header_name(name)}: {value}\r\n")
        lines.append("\r\n")
        return ''.join(lines)

    def write_body(self) -> None:
        """Send the request body in ``buffer_size`` blocks.

        Raises:
            MessageError: If writing fails or the body ends before its
                declared length
        """
        request = self.request
        if request.method in self.BODY_DISALLOWED or self.content_length == 0:
            return

        buffer_size = request.get_config('buffer_size')
        position = 0
        while self.content_length is None or position < self.content_length:
            size = buffer_size
            if self.content_length is not None:
                size = min(buffer_size, self.content_length - position)
            data = read_body_block(self.request_body, position, size)
            if not data:
                if self.content_length is None:
                    break
                raise MessageError(
                    f"Request body ended after {position} of {self.content_length} bytes",
                    ErrorCode.WRITE_ERROR,
                )
            if self.chunked_body:
                self.connection.write(b'%x\r\n%s\r\n' % (len(data), data))
            else:
                self.connection.write(data)
            request.set_last_event(EventKind.SENT_BODY_PART, len(data))
            position += len(data)

        if self.chunked_body:
            self.connection.write(b'0\r\n\r\n')
        request.set_last_event(EventKind.SENT_BODY)

    def read_response(self) -> Response:
        """Read the response, skipping interim 1xx responses.

        Raises:
            MessageError: If the response is malformed or reading fails
        """
        request = self.request
        connection = self.connection
        buffer_size = request.get_config('buffer_size')

        while True:
            response = Response(
                connection.read_line(buffer_size), effective_url=request.get_url()
            )
            while True:
                line = connection.read_line(buffer_size)
                response.parse_header_line(line)
                if line == '':
                    break
            if response.status not in (100, 101):
                break

        request.set_last_event(EventKind.RECEIVED_HEADERS, response)

        # No body possible in such responses
        if request.method == METHOD_HEAD or response.status in (204, 304):
            return response

        # RFC 2616, section 4.4: if a message is received with both a
        # Transfer-Encoding header field and a Content-Length header field,
        # the latter MUST be ignored.
        chunked = is_chunked(response.get_header('transfer-encoding'))
        length = None if chunked else self._content_length(response)
        if not (chunked or length is None or length > 0):
            return response

        to_read = length
        decoder = ChunkedDecoder(connection) if chunked else None
        store_body = request.get_config('store_body')
        encoding = (response.get_header('content-encoding') or 'identity').lower()
        part_event = (
            EventKind.RECEIVED_BODY_PART
            if encoding == 'identity'
            else EventKind.RECEIVED_ENCODED_BODY_PART
        )

        has_body = False
        while not connection.eof and (to_read is None or to_read > 0):
            if decoder is not None:
                data = decoder.read(buffer_size)
            elif to_read is None:
                data = connection.read(buffer_size)
            else:
                data = connection.read(min(to_read, buffer_size))
                to_read -= len(data)
            chunk_length = decoder.chunk_length if decoder is not None else 0
            if not data and (not chunk_length or connection.eof):
                break

            has_body = True
            if store_body:
                response.append_body(data)
            request.set_last_event(part_event, data)

        if decoder is not None and not decoder.finished:
            self._warn_incomplete(
                'Chunked response ended without the terminating zero-length chunk'
            )
        elif to_read is not None and to_read > 0:
            self._warn_incomplete(
                f"Connection closed with {to_read} of {length} body bytes unread"
            )

        if has_body:
            request.set_last_event(EventKind.RECEIVED_BODY, response)
        return response

    def _content_length(self, response: Response) -> Optional[int]:
        value = response.get_header('content-length')
        if value is None:
            return None
        # Repeated identical headers arrive joined with commas
        values = {v.strip() for v in value.split(',')}
        if len(values) != 1 or not next(iter(values)).isdigit():
            raise MessageError(
                f"Invalid Content-Length header '{value}'", ErrorCode.MALFORMED_RESPONSE
            )
        return int(values.pop())

    def _warn_incomplete(self, message: str) -> None:
        self.logger.warning(f"{message} ({self.request.get_url()})")
        self.request.set_last_event(EventKind.WARNING, message)

    def handle_redirect(self, request: Request, response: Response) -> Request:
        """Build the request that follows a redirect response.

        Raises:
            MessageError: If the redirect points to a non-HTTP URL
        """
        location = response.get_header('location')
        scheme = urllib.parse.urlsplit(location).scheme
        if scheme and scheme.lower() not in ('http', 'https'):
            raise MessageError(
                f"Refusing to redirect to a non-HTTP URL {location}",
                ErrorCode.NON_HTTP_REDIRECT,
            )

        redirect = request.clone()
        redirect.set_url(urllib.parse.urljoin(request.get_url(), location))
        if redirect.url.netloc.lower() != request.url.netloc.lower():
            redirect.set_auth(None)
        strict = request.get_config('strict_redirects')
        if response.status == 303 or (not strict and response.status in (301, 302)):
            if redirect.method != METHOD_HEAD:
                redirect.set_method(METHOD_GET)
            redirect.set_body(b'')
        self.logger.debug(f"Following {response.status} redirect to {redirect.get_url()}")
        return redirect
