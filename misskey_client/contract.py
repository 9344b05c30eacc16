"""Request contract shared by every Misskey API call.

Anything implementing :class:`MisskeyRequest` can be sent by a client. Most
endpoints are JSON requests: subclass :class:`JsonRequest`, declare the
fields, and set ``ENDPOINT`` and ``RESPONSE``. Endpoints whose path depends on
the request override :meth:`JsonRequest.endpoint` instead.
"""

from __future__ import annotations

import json
from typing import Any, ClassVar, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from .models import JsonObject

JSON_CONTENT_TYPE = "application/json"
TOKEN_FIELD = "i"


@runtime_checkable
class MisskeyRequest(Protocol):
    """Capabilities a request needs so a client can send it."""

    def endpoint(self) -> str:
        """Path under ``/api``, with a leading slash."""
        ...

    def content_type(self) -> str | None:
        """MIME type of the body, or None for bodyless requests."""
        ...

    def body(self, access_token: str | None) -> str:
        """Serialized body with the access token embedded when present."""
        ...

    def can_be_empty(self) -> bool:
        """Whether a 204 with no body counts as success."""
        ...

    def response_type(self) -> Any:
        """Type the response body is validated against."""
        ...


class JsonRequest(BaseModel):
    """Base for requests sent as a JSON object.

    The access token travels in the body as ``i``, at the same level as the
    request's own fields. Fields are sent under their camelCase names and
    fields left as None are omitted.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    ENDPOINT: ClassVar[str]
    RESPONSE: ClassVar[Any] = JsonObject
    CAN_BE_EMPTY: ClassVar[bool] = False

    def endpoint(self) -> str:
        return self.ENDPOINT

    def content_type(self) -> str | None:
        return JSON_CONTENT_TYPE

    def body(self, access_token: str | None) -> str:
        return json.dumps(
            self.payload(access_token),
            ensure_ascii=False,
            separators=(",", ":"),
        )

    def can_be_empty(self) -> bool:
        return self.CAN_BE_EMPTY

    def response_type(self) -> Any:
        return self.RESPONSE

    def payload(self, access_token: str | None = None) -> dict[str, Any]:
        """Return the JSON object sent to the server."""
        payload: dict[str, Any] = {}
        if access_token is not None:
            payload[TOKEN_FIELD] = access_token
        payload.update(self.model_dump(mode="json", by_alias=True, exclude_none=True))
        return payload
