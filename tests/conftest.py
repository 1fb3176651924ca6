"""
pytest configuration and fixtures.
"""

import socket
import threading
from typing import Generator, List, Optional, Tuple

import pytest

from wirehttp import ConnectionPool, Request


class ScriptedServer:
    """Local HTTP server that answers each request with a scripted raw response.

    Responses are consumed in order across all connections. A connection is
    closed after a response enqueued with ``close=True``, or when no
    response is left. A response of None holds the connection open without
    answering.
    """

    def __init__(self) -> None:
        self._sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self._sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self._sock.bind(('127.0.0.1', 0))
        self._sock.listen(8)
        self._sock.settimeout(0.1)
        self.port = self._sock.getsockname()[1]
        self.requests: List[bytes] = []
        self.connections = 0
        self.closed_connections = 0
        self._responses: List[Tuple[Optional[bytes], bool]] = []
        self._lock = threading.Condition()
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._serve, daemon=True)

    @property
    def base_url(self) -> str:
        return f"http://127.0.0.1:{self.port}"

    def start(self) -> None:
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()
        self._thread.join(timeout=5.0)
        self._sock.close()

    def enqueue(self, raw: Optional[bytes], close: bool = False) -> None:
        with self._lock:
            self._responses.append((raw, close))

    def wait_for_disconnects(self, count: int, timeout: float = 5.0) -> bool:
        with self._lock:
            return self._lock.wait_for(lambda: self.closed_connections >= count, timeout)

    def _serve(self) -> None:
        while not self._stop.is_set():
            try:
                conn, _ = self._sock.accept()
            except socket.timeout:
                continue
            except OSError:
                return
            with self._lock:
                self.connections += 1
            threading.Thread(target=self._handle, args=(conn,), daemon=True).start()

    def _handle(self, conn: socket.socket) -> None:
        conn.settimeout(5.0)
        buffer = b''
        try:
            while True:
                request, buffer = self._read_request(conn, buffer)
                if request is None:
                    return
                with self._lock:
                    self.requests.append(request)
                    if not self._responses:
                        return
                    raw, close = self._responses.pop(0)
                if raw is None:
                    self._stop.wait(5.0)
                    return
                conn.sendall(raw)
                if close:
                    return
        except OSError:
            return
        finally:
            conn.close()
            with self._lock:
                self.closed_connections += 1
                self._lock.notify_all()

    @staticmethod
    def _recv(conn: socket.socket, buffer: bytes) -> Optional[bytes]:
        data = conn.recv(65536)
        if not data:
            return None
        return buffer + data

    def _read_request(self, conn: socket.socket, buffer: bytes):
        while b'\r\n\r\n' not in buffer:
            buffer = self._recv(conn, buffer)
            if buffer is None:
                return None, b''
        end = buffer.index(b'\r\n\r\n') + 4
        head, rest = buffer[:end], buffer[end:]

        fields = {}
        for line in head.split(b'\r\n')[1:]:
            name, sep, value = line.partition(b':')
            if sep:
                fields[name.strip().lower()] = value.strip()

        if fields.get(b'transfer-encoding', b'').lower() == b'chunked':
            while b'0\r\n\r\n' not in rest:
                rest = self._recv(conn, rest)
                if rest is None:
                    return None, b''
            end = rest.index(b'0\r\n\r\n') + 5
            return head + rest[:end], rest[end:]

        length = int(fields.get(b'content-length', b'0'))
        while len(rest) < length:
            rest = self._recv(conn, rest)
            if rest is None:
                return None, b''
        return head + rest[:length], rest[length:]


class EventSequenceObserver:
    """Records the names of events, collapsing immediate repeats."""

    def __init__(self, watched: Optional[List[str]] = None) -> None:
        self.watched = watched
        self.sequence: List[str] = []
        self.events = []

    def update(self, subject) -> None:
        event = subject.last_event
        self.events.append(event)
        if self.watched is not None and event.name not in self.watched:
            return
        if not self.sequence or self.sequence[-1] != event.name:
            self.sequence.append(event.name)

    def data_for(self, name: str) -> list:
        return [event.data for event in self.events if event.name == name]


class CountingObserver:
    def __init__(self) -> None:
        self.calls = 0
        self.event = None

    def update(self, subject) -> None:
        self.calls += 1
        self.event = subject.last_event


@pytest.fixture
def server() -> Generator[ScriptedServer, None, None]:
    """A running scripted server."""
    srv = ScriptedServer()
    srv.start()
    yield srv
    srv.stop()


@pytest.fixture
def pool() -> Generator[ConnectionPool, None, None]:
    """A private connection pool, closed after the test."""
    connection_pool = ConnectionPool()
    yield connection_pool
    connection_pool.close_all()


@pytest.fixture
def make_request(server: ScriptedServer):
    """Factory for requests to the scripted server."""

    def factory(path: str = '/x', method: str = 'GET', **config) -> Request:
        config.setdefault('timeout', 5)
        config.setdefault('connect_timeout', 5)
        return Request(server.base_url + path, method, config)

    return factory


@pytest.fixture
def free_port() -> int:
    """A port nothing listens on."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


@pytest.fixture
def sequence_observer():
    """Factory for EventSequenceObserver instances."""
    return EventSequenceObserver


@pytest.fixture
def counting_observer():
    """Factory for CountingObserver instances."""
    return CountingObserver
