"""
Transport adapters.

An adapter performs one request/response exchange for a Request and
returns the Response, reporting progress as events on the request.
"""

from wirehttp.adapters.base import BaseAdapter
from wirehttp.adapters.socket_adapter import SocketAdapter

__all__ = ['BaseAdapter', 'SocketAdapter']
