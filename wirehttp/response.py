"""
HTTP response model.

A Response is created from the status line, fed header lines one at a
time by the adapter and then receives the body in parts.
"""

import re
import zlib
from http import HTTPStatus
from typing import Dict, List, Optional

from wirehttp.exceptions import ErrorCode, MessageError

# RFC 9112: the space after the status code is mandatory even when the
# reason-phrase is empty, and the reason-phrase may consist of whitespace.
_STATUS_LINE_RE = re.compile(r"^HTTP/(\d\.\d) (\d{3}) ([^\r\n]*)")


def parse_cookie(value: str) -> Dict[str, object]:
    """Parse the value of a Set-Cookie header."""
    cookie: Dict[str, object] = {
        "name": "",
        "value": "",
        "expires": None,
        "domain": None,
        "path": None,
        "secure": False,
    }
    parts = value.split(";")
    name, _, val = parts[0].partition("=")
    cookie["name"] = name.strip()
    cookie["value"] = val.strip()

    for part in parts[1:]:
        attr, sep, attr_value = part.partition("=")
        attr = attr.strip().lower()
        if sep:
            if attr in ("expires", "domain", "path"):
                cookie[attr] = attr_value.strip()
        elif attr == "secure":
            cookie["secure"] = True
    return cookie


def decode_gzip(data: bytes) -> bytes:
    try:
        return zlib.decompress(data, 16 + zlib.MAX_WBITS)
    except zlib.error as exc:
        raise MessageError(f"Error decoding gzip body: {exc}", ErrorCode.DECODE_ERROR) from exc


def decode_deflate(data: bytes) -> bytes:
    # Servers send either a zlib stream (RFC 1950) or raw deflate data
    if len(data) >= 2 and (data[0] << 8 | data[1]) % 31 == 0:
        wbits = zlib.MAX_WBITS
    else:
        wbits = -zlib.MAX_WBITS
    try:
        return zlib.decompress(data, wbits)
    except zlib.error as exc:
        raise MessageError(f"Error decoding deflate body: {exc}", ErrorCode.DECODE_ERROR) from exc


class Response:
    """An HTTP response.

    Header names are case-insensitive; repeated headers are joined with
    ``", "``.
    """

    def __init__(
        self,
        status_line: str,
        decode_body: bool = True,
        effective_url: Optional[str] = None,
    ) -> None:
        match = _STATUS_LINE_RE.match(status_line)
        if not match:
            raise MessageError(
                f"Malformed response: {status_line!r}", ErrorCode.MALFORMED_RESPONSE
            )
        self.version: str = match.group(1)
        self.status: int = int(match.group(2))
        reason = match.group(3)
        self.reason_phrase: Optional[str] = (
            reason if reason != "" else self.default_reason_phrase(self.status)
        )
        self.decode_body = decode_body
        self.effective_url = effective_url
        self._headers: Dict[str, str] = {}
        self._cookies: List[Dict[str, object]] = []
        self._last_header: Optional[str] = None
        self._body = bytearray()

    @staticmethod
    def default_reason_phrase(code: int) -> Optional[str]:
        try:
            return HTTPStatus(code).phrase
        except ValueError:
            return None

    def parse_header_line(self, line: str) -> None:
        """Parse one header line; an empty line ends the header block."""
        line = line.rstrip("\r\n")
        if line == "":
            self._last_header = None
            return

        if line[0] in " \t":
            # obs-fold continuation of the previous header
            if self._last_header is not None:
                self._headers[self._last_header] += " " + line.strip()
            return

        name, sep, value = line.partition(":")
        if not sep:
            return
        name = name.strip().lower()
        value = value.strip()

        if name in self._headers:
            self._headers[name] = f"{self._headers[name]}, {value}"
        else:
            self._headers[name] = value
        self._last_header = name
        if name == "set-cookie":
            self._cookies.append(parse_cookie(value))

    def get_header(self, name: Optional[str] = None):
        """Return a header value, or all headers when name is None."""
        if name is None:
            return dict(self._headers)
        return self._headers.get(name.lower())

    @property
    def headers(self) -> Dict[str, str]:
        return dict(self._headers)

    @property
    def cookies(self) -> List[Dict[str, object]]:
        return list(self._cookies)

    def get_cookies(self) -> List[Dict[str, object]]:
        return list(self._cookies)

    def append_body(self, data: bytes) -> None:
        self._body.extend(data)

    @property
    def raw_body(self) -> bytes:
        return bytes(self._body)

    @property
    def body(self) -> bytes:
        """The body, with gzip / deflate content-encoding removed.

        Raises:
            MessageError: If the compressed body cannot be decoded
        """
        if not self.decode_body or not self._body:
            return bytes(self._body)
        encoding = (self._headers.get("content-encoding") or "").lower()
        if encoding == "gzip":
            return decode_gzip(bytes(self._body))
        if encoding == "deflate":
            return decode_deflate(bytes(self._body))
        return bytes(self._body)

    def get_body(self) -> bytes:
        return self.body

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")

    def is_redirect(self) -> bool:
        return 300 <= self.status < 400 and "location" in self._headers

    def __repr__(self) -> str:
        return f"<Response HTTP/{self.version} {self.status} {self.reason_phrase}>"
