"""HTTP/1.1 framing for Misskey API requests.

Requests are encoded by hand and responses are parsed from the raw bytes a
transport hands back. Only ``Content-Length`` delimited bodies are supported;
``Transfer-Encoding: chunked`` responses are not decoded and their body is
read as empty.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Final

from multidict import CIMultiDict, CIMultiDictProxy

from .errors import MisskeyEncodingError, MisskeyProtocolError

_LOGGER = logging.getLogger(__name__)

CRLF: Final = b"\r\n"
HEADER_TERMINATOR: Final = b"\r\n\r\n"
HTTP_11: Final = "HTTP/1.1"

SUPPORTED_VERSIONS: tuple[str, ...] = (
    "HTTP/0.9",
    "HTTP/1.0",
    "HTTP/1.1",
    "HTTP/2",
    "HTTP/3",
)

STATUS_NO_CONTENT: Final = 204


@dataclass(frozen=True)
class HttpRequest:
    """A request ready to be written to the wire.

    Headers are kept in insertion order so the encoded bytes are
    deterministic.
    """

    method: str
    path: str
    version: str = HTTP_11
    headers: tuple[tuple[str, str], ...] = ()
    body: bytes = b""

    def encode(self) -> bytes:
        """Return the full request as bytes."""
        return encode_request(self)


@dataclass(frozen=True)
class ResponseHead:
    """Status line and headers of a response."""

    version: str
    status: int
    reason: str
    headers: CIMultiDictProxy[str] = field(
        default_factory=lambda: CIMultiDictProxy(CIMultiDict())
    )
    content_length: int = 0


@dataclass(frozen=True)
class HttpResponse:
    """A fully read response."""

    version: str
    status: int
    reason: str
    headers: CIMultiDictProxy[str]
    body: bytes

    @classmethod
    def from_head(cls, head: ResponseHead, body: bytes) -> HttpResponse:
        return cls(
            version=head.version,
            status=head.status,
            reason=head.reason,
            headers=head.headers,
            body=body,
        )

    def text(self) -> str:
        """Decode the body as UTF-8."""
        return decode_body(self.body)


def build_request(
    path: str,
    *,
    host: str,
    body: bytes,
    content_type: str | None = None,
    method: str = "POST",
) -> HttpRequest:
    """Build a request carrying the headers every API call sends."""
    headers: list[tuple[str, str]] = [
        ("Accept-Charset", "UTF-8"),
        ("Accept-Encoding", "identity"),
        ("Connection", "keep-alive"),
        ("Content-Length", str(len(body))),
        ("Host", host),
    ]
    if content_type is not None:
        headers.append(("Content-Type", f"{content_type}; Charset=UTF-8"))
    return HttpRequest(
        method=method,
        path=path,
        headers=tuple(headers),
        body=body,
    )


def encode_request(request: HttpRequest) -> bytes:
    """Frame a request as ``METHOD SP path SP VERSION CRLF`` + headers + body."""
    lines: list[bytes] = [
        f"{request.method} {request.path} {request.version}".encode("ascii")
    ]
    lines.extend(_encode_headers(request.headers))
    return CRLF.join(lines) + HEADER_TERMINATOR + request.body


def _encode_headers(headers: Iterable[tuple[str, str]]) -> Iterable[bytes]:
    for name, value in headers:
        yield f"{name}: {value}".encode("latin-1")


def _is_decimal(value: str) -> bool:
    # str.isdigit() also accepts digits such as "²" that int() rejects.
    return value.isascii() and value.isdigit()


def parse_head(raw: bytes) -> ResponseHead:
    """Parse the bytes up to and including the blank line ending the head.

    Raises:
        MisskeyProtocolError: If the status line is malformed or carries an
            HTTP version we do not handle.
    """
    text = raw.decode("utf-8", errors="replace")
    lines = [line.strip() for line in text.split("\n")]
    tokens = lines[0].split() if lines else []
    if len(tokens) < 2:
        raise MisskeyProtocolError(f"Malformed status line: {lines[0]!r}")

    version, code, *reason = tokens
    if version not in SUPPORTED_VERSIONS:
        raise MisskeyProtocolError(f"Unsupported HTTP version: {version!r}")
    if not _is_decimal(code):
        raise MisskeyProtocolError(f"Malformed status code: {code!r}")

    headers: CIMultiDict[str] = CIMultiDict()
    content_length = 0
    for line in lines[1:]:
        if not line:
            continue
        key, _, value = line.partition(":")
        key = key.strip().lower()
        value = value.strip()
        if key == "content-length":
            if _is_decimal(value):
                content_length = int(value)
            else:
                _LOGGER.warning("Ignoring non-numeric Content-Length: %r", value)
                content_length = 0
        headers.add(key, value)

    if headers.get("transfer-encoding", "").lower() == "chunked":
        _LOGGER.warning("Chunked transfer-encoding is not supported")

    return ResponseHead(
        version=version,
        status=int(code),
        reason=" ".join(reason),
        headers=CIMultiDictProxy(headers),
        content_length=content_length,
    )


def decode_body(body: bytes) -> str:
    """Decode a response body as UTF-8.

    Raises:
        MisskeyEncodingError: If the bytes are not valid UTF-8.
    """
    try:
        return body.decode("utf-8")
    except UnicodeDecodeError as err:
        raise MisskeyEncodingError("Response body is not valid UTF-8") from err
