"""Misskey API clients over a single HTTP/1.1 connection.

A client exclusively owns one transport and sends one request at a time on
it. ``login``, ``logout`` and ``miauth`` hand the transport over to a new
object; the old client cannot be used afterwards. The new object shares the
old one's lock, so a request already in flight finishes first.

Usage:
    transport = open_connection("misskey.example", 80)
    client = MisskeyHttpClient(transport, "misskey.example").login(token)
    response = client.request(CreateNote.note("hello"))
    print(response.body.created_note.id)
"""

from __future__ import annotations

import asyncio
import json
import logging
import threading
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Generic, Self, TypeVar
from urllib.parse import urlsplit

from multidict import CIMultiDictProxy
from pydantic import TypeAdapter, ValidationError

from .contract import MisskeyRequest
from .errors import (
    MisskeyClientConsumedError,
    MisskeyInvalidAuthorityError,
    MisskeyResponseDecodeError,
    MisskeyServerError,
)
from .http import (
    STATUS_NO_CONTENT,
    HttpRequest,
    HttpResponse,
    build_request,
    parse_head,
)
from .miauth import AsyncMiAuth, MiAuth, MiAuthBuilder
from .models import ServerErrorEnvelope
from .transport import AsyncStreamTransport, StreamTransport

_LOGGER = logging.getLogger(__name__)

API_ROOT = "/api"

T = TypeVar("T")


@dataclass(frozen=True)
class Authority:
    """Host and optional port of the target server."""

    host: str
    port: int | None = None

    @classmethod
    def parse(cls, value: str | Authority) -> Authority:
        """Parse ``host[:port]``.

        Raises:
            MisskeyInvalidAuthorityError: If the value is not a bare authority.
        """
        if isinstance(value, Authority):
            return value
        if not value or any(ch.isspace() for ch in value):
            raise MisskeyInvalidAuthorityError(f"Invalid authority: {value!r}")
        if any(ch in value for ch in "/?#@"):
            raise MisskeyInvalidAuthorityError(
                f"Authority must be host[:port] only: {value!r}"
            )
        try:
            parts = urlsplit(f"//{value}")
            port = parts.port
        except ValueError as err:
            raise MisskeyInvalidAuthorityError(f"Invalid authority: {value!r}") from err
        host = parts.hostname
        if not host or value.endswith(":"):
            raise MisskeyInvalidAuthorityError(f"Invalid authority: {value!r}")
        if value.startswith("["):
            # Keep IPv6 literals bracketed for Host headers and URIs.
            host = f"[{host}]"
        return cls(host=host, port=port)

    def __str__(self) -> str:
        if self.port is None:
            return self.host
        return f"{self.host}:{self.port}"


@dataclass(frozen=True)
class MisskeyResponse(Generic[T]):
    """Decoded response together with its status line and headers.

    ``empty`` is True when the server answered 204 with no body on a request
    that allows it; ``body`` is None in that case.
    """

    status: int
    reason: str
    version: str
    headers: CIMultiDictProxy[str]
    body: T | None
    empty: bool = False


@lru_cache(maxsize=None)
def _adapter(response_type: Any) -> TypeAdapter[Any]:
    return TypeAdapter(response_type)


def _validate(response_type: Any, text: str) -> Any:
    return _adapter(response_type).validate_python(json.loads(text))


def _is_unexpected_eof(err: Exception) -> bool:
    """Whether decoding failed only because the input ended too early."""
    return isinstance(err, json.JSONDecodeError) and err.pos >= len(err.doc.rstrip())


def decode_response(
    request: MisskeyRequest, response: HttpResponse
) -> MisskeyResponse[Any]:
    """Turn a raw response into a typed result.

    The body is decoded as the request's response type first. If that fails,
    an empty 204 is accepted for requests that allow it; otherwise the body
    is decoded as the server's error envelope.

    Raises:
        MisskeyEncodingError: If the body is not UTF-8.
        MisskeyServerError: If the server returned its error envelope.
        MisskeyResponseDecodeError: If the body matches neither shape.
    """
    text = response.text()
    try:
        value = _validate(request.response_type(), text)
    except (json.JSONDecodeError, ValidationError) as success_error:
        if (
            _is_unexpected_eof(success_error)
            and request.can_be_empty()
            and response.status == STATUS_NO_CONTENT
        ):
            return MisskeyResponse(
                status=response.status,
                reason=response.reason,
                version=response.version,
                headers=response.headers,
                body=None,
                empty=True,
            )
        try:
            envelope: ServerErrorEnvelope = _validate(ServerErrorEnvelope, text)
        except (json.JSONDecodeError, ValidationError) as error_error:
            raise MisskeyResponseDecodeError(
                success_error, error_error, text
            ) from error_error
        error = envelope.error
        _LOGGER.debug(
            "Server error %s (%s) for %s", error.code, error.kind, request.endpoint()
        )
        raise MisskeyServerError(
            status=response.status,
            message=error.message,
            code=error.code,
            error_id=error.id,
            kind=error.kind,
        ) from None

    return MisskeyResponse(
        status=response.status,
        reason=response.reason,
        version=response.version,
        headers=response.headers,
        body=value,
    )


class _ClientBase:
    """State and request framing shared by the blocking and asyncio clients."""

    _lock: Any

    def __init__(
        self,
        transport: Any,
        authority: str | Authority,
        *,
        access_token: str | None = None,
    ) -> None:
        self._authority = Authority.parse(authority)
        self._transport = transport
        self._access_token = access_token

    @property
    def authority(self) -> Authority:
        return self._authority

    @property
    def access_token(self) -> str | None:
        return self._access_token

    @property
    def is_logged_in(self) -> bool:
        return self._access_token is not None

    @property
    def is_consumed(self) -> bool:
        return self._transport is None

    @property
    def transport(self) -> Any:
        """The owned transport; close it through here when done."""
        return self._live_transport()

    def login(self, access_token: str) -> Self:
        """Return a client sending ``access_token`` with every request."""
        return self._hand_over(access_token)

    def logout(self) -> Self:
        """Return a client sending anonymous requests."""
        return self._hand_over(None)

    def _hand_over(self, access_token: str | None) -> Self:
        # Sharing the lock makes a request still in flight here finish before
        # the new owner touches the stream.
        transport = self._live_transport()
        self._transport = None
        return type(self)(
            transport,
            self._authority,
            access_token=access_token,
            lock=self._lock,
        )

    def _live_transport(self) -> Any:
        if self._transport is None:
            raise MisskeyClientConsumedError(
                "Client handed its connection over and can no longer be used"
            )
        return self._transport

    def _build_request(self, request: MisskeyRequest) -> HttpRequest:
        data = request.body(self._access_token).encode("utf-8")
        http_request = build_request(
            f"{API_ROOT}{request.endpoint()}",
            host=self._authority.host,
            body=data,
            content_type=request.content_type(),
        )
        _LOGGER.debug(
            "%s %s (%d bytes, %s)",
            http_request.method,
            http_request.path,
            len(data),
            "authenticated" if self._access_token is not None else "anonymous",
        )
        return http_request

    def __repr__(self) -> str:
        if self.is_consumed:
            state = "consumed"
        elif self.is_logged_in:
            state = "logged in"
        else:
            state = "anonymous"
        return f"<{type(self).__name__} {self._authority} {state}>"


class MisskeyHttpClient(_ClientBase):
    """Blocking client over a :class:`StreamTransport`."""

    def __init__(
        self,
        transport: StreamTransport,
        authority: str | Authority,
        *,
        access_token: str | None = None,
        lock: threading.Lock | None = None,
    ) -> None:
        super().__init__(transport, authority, access_token=access_token)
        self._lock = lock if lock is not None else threading.Lock()

    def request(self, request: MisskeyRequest) -> MisskeyResponse[Any]:
        """Send ``request`` and wait for its response."""
        http_request = self._build_request(request)
        with self._lock:
            transport: StreamTransport = self._live_transport()
            transport.write_all(http_request.encode())
            head = parse_head(transport.read_until_boundary())
            body = transport.read_exact(head.content_length)
        _LOGGER.debug(
            "%s %d %s (%d bytes)", head.version, head.status, head.reason, len(body)
        )
        return decode_response(request, HttpResponse.from_head(head, body))

    def miauth(self, scheme: str = "https") -> MiAuthBuilder:
        """Start a MiAuth flow; the builder takes over this client."""
        return MiAuthBuilder(
            self._hand_over(self._access_token), scheme=scheme, session_class=MiAuth
        )


class AsyncMisskeyHttpClient(_ClientBase):
    """Asyncio client over an :class:`AsyncStreamTransport`."""

    def __init__(
        self,
        transport: AsyncStreamTransport,
        authority: str | Authority,
        *,
        access_token: str | None = None,
        lock: asyncio.Lock | None = None,
    ) -> None:
        super().__init__(transport, authority, access_token=access_token)
        self._lock = lock if lock is not None else asyncio.Lock()

    async def request(self, request: MisskeyRequest) -> MisskeyResponse[Any]:
        """Send ``request`` and wait for its response."""
        http_request = self._build_request(request)
        async with self._lock:
            transport: AsyncStreamTransport = self._live_transport()
            await transport.write_all(http_request.encode())
            head = parse_head(await transport.read_until_boundary())
            body = await transport.read_exact(head.content_length)
        _LOGGER.debug(
            "%s %d %s (%d bytes)", head.version, head.status, head.reason, len(body)
        )
        return decode_response(request, HttpResponse.from_head(head, body))

    def miauth(self, scheme: str = "https") -> MiAuthBuilder:
        """Start a MiAuth flow; the builder takes over this client."""
        return MiAuthBuilder(
            self._hand_over(self._access_token),
            scheme=scheme,
            session_class=AsyncMiAuth,
        )
