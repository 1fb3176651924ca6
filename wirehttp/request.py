"""
HTTP request model.

A Request holds everything an adapter needs to perform one exchange: the
method, the URL, headers, body, per-request configuration and optional
credentials. It is also the observer bus adapters report lifecycle events
to.
"""

import mimetypes
import platform
import re
import urllib.parse
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Mapping, Optional, Union

from wirehttp import __version__
from wirehttp.events import Subject
from wirehttp.exceptions import ErrorCode, LogicError

METHOD_OPTIONS = "OPTIONS"
METHOD_GET = "GET"
METHOD_HEAD = "HEAD"
METHOD_POST = "POST"
METHOD_PUT = "PUT"
METHOD_DELETE = "DELETE"
METHOD_TRACE = "TRACE"
METHOD_CONNECT = "CONNECT"

AUTH_BASIC = "basic"
AUTH_DIGEST = "digest"

# RFC 7230, section 3.2.6: token = 1*tchar
_TOKEN_RE = re.compile(r"[!#$%&'*+\-.^_`|~0-9A-Za-z]+")
_INVALID_COOKIE_RE = re.compile(r"[\s,;]")

DEFAULT_CONFIG: Dict[str, Any] = {
    "connect_timeout": 10,
    "timeout": 0,
    "buffer_size": 16384,
    "protocol_version": "1.1",
    "store_body": True,
    "proxy_host": "",
    "proxy_port": "",
    "proxy_user": "",
    "proxy_password": "",
    "proxy_auth_scheme": AUTH_BASIC,
    "ssl_verify_peer": True,
    "ssl_verify_host": True,
    "ssl_cafile": None,
    "ssl_capath": None,
    "follow_redirects": False,
    "max_redirects": 5,
    "strict_redirects": False,
}


@dataclass(frozen=True)
class Auth:
    user: str
    password: str = ""
    scheme: str = AUTH_BASIC


def is_token(value: str) -> bool:
    return bool(_TOKEN_RE.fullmatch(value))


class Request(Subject):
    """An HTTP request.

    Header names are stored lowercased, so ``set_header('Foo', ...)`` and
    ``set_header('FOO', ...)`` address the same header. Configuration keys
    are restricted to those in ``DEFAULT_CONFIG``.
    """

    def __init__(
        self,
        url: Optional[str] = None,
        method: str = METHOD_GET,
        config: Optional[Mapping[str, Any]] = None,
    ) -> None:
        super().__init__()
        self._url: Optional[urllib.parse.SplitResult] = None
        self._method = METHOD_GET
        self._headers: Dict[str, str] = {}
        self._config: Dict[str, Any] = dict(DEFAULT_CONFIG)
        self._auth: Optional[Auth] = None
        self._body: Any = b""
        self._post_params: Dict[str, Any] = {}
        self._adapter = None

        if url:
            self.set_url(url)
        if method:
            self.set_method(method)
        if config:
            self.set_config(config)
        self.set_header(
            "user-agent",
            f"wirehttp/{__version__} Python/{platform.python_version()}",
        )

    # URL

    def set_url(self, url: Union[str, urllib.parse.SplitResult]) -> "Request":
        """Set the request URL.

        Userinfo in the URL is removed and turned into Basic credentials.

        Raises:
            LogicError: If the URL is not an absolute http(s) URL
        """
        if isinstance(url, str):
            parts = urllib.parse.urlsplit(url)
        elif isinstance(url, urllib.parse.SplitResult):
            parts = url
        else:
            raise LogicError("Parameter is not a valid HTTP URL", ErrorCode.INVALID_ARGUMENT)

        if not parts.scheme or not parts.hostname:
            raise LogicError(
                f"Absolute URL required, got '{urllib.parse.urlunsplit(parts)}'",
                ErrorCode.INVALID_ARGUMENT,
            )
        if parts.scheme.lower() not in ("http", "https"):
            raise LogicError(
                f"Unsupported URL scheme '{parts.scheme}'", ErrorCode.INVALID_ARGUMENT
            )
        # Accessing .port validates it
        try:
            parts.port
        except ValueError as exc:
            raise LogicError(str(exc), ErrorCode.INVALID_ARGUMENT) from exc

        if parts.username is not None:
            self.set_auth(
                urllib.parse.unquote(parts.username),
                urllib.parse.unquote(parts.password or ""),
            )
            netloc = parts.netloc.rpartition("@")[2]
            parts = parts._replace(netloc=netloc)

        self._url = parts
        return self

    @property
    def url(self) -> Optional[urllib.parse.SplitResult]:
        return self._url

    def get_url(self) -> str:
        return urllib.parse.urlunsplit(self._url) if self._url else ""

    # Method

    def set_method(self, method: str) -> "Request":
        if not isinstance(method, str) or not is_token(method):
            raise LogicError(f"Invalid request method '{method}'", ErrorCode.INVALID_ARGUMENT)
        self._method = method
        return self

    @property
    def method(self) -> str:
        return self._method

    # Configuration

    def set_config(self, name: Union[str, Mapping[str, Any]], value: Any = None) -> "Request":
        """Set one configuration value or several from a mapping.

        Raises:
            LogicError: If a key is unknown
        """
        if isinstance(name, Mapping):
            for key, val in name.items():
                self.set_config(key, val)
            return self

        if name == "proxy":
            self._set_proxy_url(value)
        elif name not in self._config:
            raise LogicError(
                f"Unknown configuration parameter '{name}'", ErrorCode.INVALID_ARGUMENT
            )
        else:
            self._config[name] = value
        return self

    def _set_proxy_url(self, value: str) -> None:
        parts = urllib.parse.urlsplit(value)
        if parts.scheme and parts.scheme.lower() != "http":
            raise LogicError(
                f"Unsupported proxy type '{parts.scheme}'", ErrorCode.INVALID_ARGUMENT
            )
        self._config["proxy_host"] = parts.hostname or ""
        self._config["proxy_port"] = parts.port or ""
        self._config["proxy_user"] = urllib.parse.unquote(parts.username or "")
        self._config["proxy_password"] = urllib.parse.unquote(parts.password or "")

    def get_config(self, name: Optional[str] = None) -> Any:
        if name is None:
            return dict(self._config)
        if name not in self._config:
            raise LogicError(
                f"Unknown configuration parameter '{name}'", ErrorCode.INVALID_ARGUMENT
            )
        return self._config[name]

    # Authentication

    def set_auth(self, user: Optional[str], password: str = "", scheme: str = AUTH_BASIC) -> "Request":
        if not user:
            self._auth = None
        else:
            self._auth = Auth(str(user), str(password), scheme)
        return self

    @property
    def auth(self) -> Optional[Auth]:
        return self._auth

    # Headers

    def set_header(
        self,
        name: Union[str, Mapping[str, Any], Iterable[Any]],
        value: Union[str, Iterable[str], None] = None,
        replace: bool = True,
    ) -> "Request":
        """Set, append to or remove request header(s).

        ``name`` is either a header name, a full ``"Name: value"`` string, a
        mapping of names to values or an iterable of such strings. A value
        of None removes the header.

        Raises:
            LogicError: If the header name is not a valid token
        """
        if isinstance(name, Mapping):
            for key, val in name.items():
                self.set_header(key, val, replace)
            return self
        if not isinstance(name, str):
            for item in name:
                if isinstance(item, tuple):
                    self.set_header(item[0], item[1], replace)
                else:
                    self.set_header(item, None, replace)
            return self

        if value is None and ":" in name:
            name, _, value = name.partition(":")
            name = name.strip()
            value = value.strip()
        if not is_token(name):
            raise LogicError(f"Invalid header name '{name}'", ErrorCode.INVALID_ARGUMENT)

        name = name.lower()
        if value is None:
            self._headers.pop(name, None)
            return self

        if isinstance(value, str):
            value = value.strip()
        else:
            value = ", ".join(str(v).strip() for v in value)
        if replace or name not in self._headers:
            self._headers[name] = value
        else:
            self._headers[name] = f"{self._headers[name]}, {value}"
        return self

    @property
    def headers(self) -> Dict[str, str]:
        return dict(self._headers)

    def get_headers(self) -> Dict[str, str]:
        return dict(self._headers)

    def add_cookie(self, name: str, value: str) -> "Request":
        cookie = f"{name}={value}"
        if _INVALID_COOKIE_RE.search(cookie):
            raise LogicError(f"Invalid cookie: '{cookie}'", ErrorCode.INVALID_ARGUMENT)
        existing = self._headers.get("cookie")
        self.set_header("cookie", f"{existing}; {cookie}" if existing else cookie)
        return self

    # Body

    def set_body(self, body: Any, is_filename: bool = False) -> "Request":
        """Set the request body.

        Args:
            body: bytes or str, a binary file object, an object with a
                ``read(size)`` method, or a file name
            is_filename: Whether ``body`` is the name of a file to send

        Raises:
            LogicError: If the named file cannot be opened
        """
        self._post_params = {}
        if not is_filename:
            self._body = body if body is not None else b""
            return self

        try:
            self._body = open(body, "rb")
        except OSError as exc:
            raise LogicError(f"Cannot open file {body}", ErrorCode.READ_ERROR) from exc
        if not self._headers.get("content-type"):
            mime_type, _ = mimetypes.guess_type(str(body))
            self.set_header("content-type", mime_type or "application/octet-stream")
        return self

    def add_post_parameter(self, name: Union[str, Mapping[str, Any]], value: Any = None) -> "Request":
        if isinstance(name, Mapping):
            for key, val in name.items():
                self.add_post_parameter(key, val)
            return self
        self._post_params[name] = value
        if not self._headers.get("content-type"):
            self.set_header("content-type", "application/x-www-form-urlencoded")
        return self

    def get_body(self) -> Any:
        if self._method == METHOD_POST and self._post_params:
            return urllib.parse.urlencode(self._post_params, doseq=True).encode("ascii")
        return self._body

    # Sending

    def set_adapter(self, adapter) -> "Request":
        self._adapter = adapter
        return self

    @property
    def adapter(self):
        if self._adapter is None:
            from wirehttp.adapters.socket_adapter import SocketAdapter

            self._adapter = SocketAdapter()
        return self._adapter

    def send(self):
        """Send the request using the configured adapter.

        Returns:
            The Response

        Raises:
            RequestError: On any failure
        """
        if self._url is None:
            raise LogicError("No URL given", ErrorCode.MISSING_VALUE)
        return self.adapter.send_request(self)

    def clone(self) -> "Request":
        """Copy the request. Observers are shared with the copy."""
        other = Request.__new__(Request)
        Subject.__init__(other)
        other._observers = list(self._observers)
        other._url = self._url
        other._method = self._method
        other._headers = dict(self._headers)
        other._config = dict(self._config)
        other._auth = self._auth
        other._body = self._body
        other._post_params = dict(self._post_params)
        other._adapter = self._adapter
        return other

    def __repr__(self) -> str:
        return f"<Request {self._method} {self.get_url()}>"
