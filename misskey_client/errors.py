"""Client error types for Misskey server interactions."""

from __future__ import annotations

from typing import Any


class MisskeyClientError(Exception):
    """Base error for Misskey client failures."""


class MisskeyTimeout(MisskeyClientError):
    """Timeout while communicating with the server."""


class MisskeyConnectionError(MisskeyClientError):
    """Reading from or writing to the connection failed."""


class MisskeyProtocolError(MisskeyClientError):
    """The peer sent something that is not an HTTP response we can handle."""


class MisskeyEncodingError(MisskeyClientError):
    """Response body is not valid UTF-8."""


class MisskeyInvalidAuthorityError(MisskeyClientError, ValueError):
    """Authority is not a valid host[:port]."""


class MisskeyClientConsumedError(MisskeyClientError):
    """A client or auth session was used after handing its stream over."""


class MisskeyResponseDecodeError(MisskeyClientError):
    """Response body matched neither the expected type nor the error envelope.

    Both parse errors and the raw response text are kept for diagnosis.
    """

    def __init__(
        self, success_error: Exception, error_error: Exception, raw: str
    ) -> None:
        super().__init__(
            f"Response could not be decoded: {success_error}; "
            f"as error envelope: {error_error}"
        )
        self.success_error = success_error
        self.error_error = error_error
        self.raw = raw


class MisskeyServerError(MisskeyClientError):
    """Error envelope returned by the server."""

    def __init__(
        self,
        status: int,
        message: str,
        code: str,
        error_id: str,
        kind: str,
    ) -> None:
        super().__init__(f"{code}: {message}")
        self.status = status
        self.message = message
        self.code = code
        self.error_id = error_id
        self.kind = kind


class MisskeyAuthError(MisskeyClientError):
    """MiAuth check returned a payload that is neither pending nor approved."""

    def __init__(self, message: str, payload: Any = None) -> None:
        super().__init__(message)
        self.payload = payload
