"""
Exception hierarchy for wirehttp.

Fatal conditions are raised as one of the classes below. Recoverable
conditions (an incomplete response body) are reported as a ``warning``
event on the request instead.
"""

import errno as _errno
from enum import IntEnum
from typing import Optional


class ErrorCode(IntEnum):
    """Machine-readable reason attached to a RequestError."""

    MISSING_VALUE = 1
    INVALID_ARGUMENT = 2
    MISCONFIGURATION = 3
    READ_ERROR = 40
    WRITE_ERROR = 41
    CONNECTION_ERROR = 42
    MALFORMED_RESPONSE = 10
    DECODE_ERROR = 20
    TIMEOUT = 30
    TOO_MANY_REDIRECTS = 50
    NON_HTTP_REDIRECT = 51


class RequestError(Exception):
    """Base class for all errors raised by wirehttp."""

    def __init__(self, message: str, code: Optional[ErrorCode] = None) -> None:
        super().__init__(message)
        self.code = code


class LogicError(RequestError):
    """Usage or configuration error, detected before any I/O happens."""


class ConnectError(RequestError):
    """The transport connection could not be established.

    Attributes:
        errno: Platform error number of the underlying failure, if known
        strerror: Platform error message of the underlying failure
    """

    def __init__(
        self,
        message: str,
        errno: Optional[int] = None,
        strerror: Optional[str] = None,
    ) -> None:
        super().__init__(message, ErrorCode.CONNECTION_ERROR)
        self.errno = errno
        self.strerror = strerror

    @classmethod
    def from_os_error(cls, key: str, exc: OSError) -> "ConnectError":
        code = exc.errno if exc.errno is not None else _errno.ECONNABORTED
        strerror = exc.strerror or str(exc)
        return cls(
            f"Unable to connect to {key}. Error #{code}: {strerror}",
            errno=code,
            strerror=strerror,
        )


class MessageError(RequestError):
    """Error while sending the request or reading / decoding the response."""
