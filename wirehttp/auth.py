"""
Builders for the values of Authorization and Proxy-Authorization headers.
"""

import base64

from wirehttp.exceptions import ErrorCode, LogicError
from wirehttp.request import AUTH_BASIC, AUTH_DIGEST


def create_auth_header(user: str, password: str, scheme: str = AUTH_BASIC) -> str:
    """Create the value for an ``[Proxy-]Authorization`` header.

    Raises:
        LogicError: If the scheme is not supported
    """
    scheme = (scheme or AUTH_BASIC).lower()
    if scheme == AUTH_BASIC:
        credentials = f"{user}:{password or ''}".encode("utf-8")
        return "Basic " + base64.b64encode(credentials).decode("ascii")
    if scheme == AUTH_DIGEST:
        raise LogicError(
            "Digest authentication is not supported by the socket adapter",
            ErrorCode.MISCONFIGURATION,
        )
    raise LogicError(
        f"Unknown HTTP authentication scheme '{scheme}'", ErrorCode.INVALID_ARGUMENT
    )
