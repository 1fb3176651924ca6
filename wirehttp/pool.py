"""
Keep-alive connection pool.

The pool owns idle connections, keyed by ``scheme://host:port``. An
adapter checks a connection out for the duration of one exchange and
returns it only if it may be reused, so a connection is never used by two
exchanges at once.
"""

import threading
from typing import Dict, List, Optional

from wirehttp.connection import Connection
from wirehttp.utils.logging import get_logger


class ConnectionPool:
    """Idle persistent connections shared between adapters."""

    def __init__(self) -> None:
        self._connections: Dict[str, Connection] = {}
        self._lock = threading.Lock()
        self.logger = get_logger()

    def acquire(self, key: str) -> Optional[Connection]:
        """Check out the idle connection for ``key``.

        Returns None if there is none or if it has gone stale, in which
        case it is closed.
        """
        with self._lock:
            connection = self._connections.pop(key, None)
        if connection is None:
            return None
        if connection.is_stale():
            self.logger.debug(f"Dropping stale connection {key}")
            connection.close()
            return None
        return connection

    def release(self, key: str, connection: Connection) -> None:
        """Return a reusable connection to the pool."""
        if connection.closed:
            return
        with self._lock:
            previous = self._connections.get(key)
            self._connections[key] = connection
        if previous is not None and previous is not connection:
            previous.close()

    def discard(self, key: str) -> None:
        with self._lock:
            connection = self._connections.pop(key, None)
        if connection is not None:
            connection.close()

    def close_all(self) -> None:
        with self._lock:
            connections = list(self._connections.values())
            self._connections.clear()
        for connection in connections:
            connection.close()

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._connections)

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._connections

    def __len__(self) -> int:
        with self._lock:
            return len(self._connections)


_default_pool: Optional[ConnectionPool] = None
_default_pool_lock = threading.Lock()


def default_pool() -> ConnectionPool:
    """Pool used by adapters that were not given one explicitly."""
    global _default_pool
    with _default_pool_lock:
        if _default_pool is None:
            _default_pool = ConnectionPool()
        return _default_pool
