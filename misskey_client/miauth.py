"""MiAuth token issuance.

The flow has three steps:
1. ``client.miauth()`` returns a :class:`MiAuthBuilder`; set the app's
   display data and the permissions it needs.
2. ``build()`` creates a session with a fresh id and the URI the user has to
   open in a browser.
3. ``check()`` asks the server whether the user approved the session. It
   returns :class:`MiAuthPending` until they do, then
   :class:`MiAuthSucceeded` with a logged-in client and the user's profile.

The caller decides how often to poll. A session is single use: once it
succeeded it cannot be checked again.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Generic, TypeVar
from urllib.parse import quote, urlencode

from .errors import MisskeyAuthError, MisskeyClientConsumedError
from .models import MisskeyModel, Permission, UserDetailed

if TYPE_CHECKING:
    from .client import AsyncMisskeyHttpClient, MisskeyHttpClient, MisskeyResponse
    from .config import MiAuthConfig

_LOGGER = logging.getLogger(__name__)

# Characters left unescaped in query values; permission lists and callback
# URIs stay readable.
_QUERY_SAFE = ":/,"

ClientT = TypeVar("ClientT")


class MiAuthCheckResponse(MisskeyModel):
    """Payload of ``/api/miauth/{session}/check``."""

    ok: bool
    token: str | None = None
    user: UserDetailed | None = None


@dataclass(frozen=True)
class MiAuthCheck:
    """Bodyless request asking whether a session was approved."""

    session_id: uuid.UUID

    def endpoint(self) -> str:
        return f"/miauth/{self.session_id}/check"

    def content_type(self) -> str | None:
        return None

    def body(self, access_token: str | None) -> str:
        return ""

    def can_be_empty(self) -> bool:
        return False

    def response_type(self) -> Any:
        return MiAuthCheckResponse


@dataclass(frozen=True)
class MiAuthPending(Generic[ClientT]):
    """The user has not approved yet; check the same session again later."""

    session: _MiAuthSession[ClientT]


@dataclass(frozen=True)
class MiAuthSucceeded(Generic[ClientT]):
    """Approval received; ``client`` is logged in with the issued token."""

    client: ClientT
    user: UserDetailed


MiAuthStatus = MiAuthPending[ClientT] | MiAuthSucceeded[ClientT]


class _MiAuthSession(Generic[ClientT]):
    """Pending MiAuth session bound to the client that will poll it."""

    def __init__(self, client: ClientT, session_id: uuid.UUID, uri: str) -> None:
        self._client: ClientT | None = client
        self._session_id = session_id
        self._uri = uri

    @property
    def session_id(self) -> uuid.UUID:
        return self._session_id

    @property
    def uri(self) -> str:
        """Authorization URI the user has to open."""
        return self._uri

    @property
    def check_request(self) -> MiAuthCheck:
        return MiAuthCheck(self._session_id)

    def _pending_client(self) -> ClientT:
        if self._client is None:
            raise MisskeyClientConsumedError(
                f"MiAuth session {self._session_id} already succeeded"
            )
        return self._client

    def _resolve(self, response: MisskeyResponse[Any]) -> MiAuthStatus[ClientT]:
        payload: MiAuthCheckResponse = response.body
        if payload.ok and payload.token is not None and payload.user is not None:
            client = self._pending_client()
            self._client = None
            _LOGGER.info(
                "MiAuth session %s approved by @%s",
                self._session_id,
                payload.user.username,
            )
            return MiAuthSucceeded(
                client=client.login(payload.token),  # type: ignore[attr-defined]
                user=payload.user,
            )
        if not payload.ok and payload.token is None and payload.user is None:
            _LOGGER.debug("MiAuth session %s still pending", self._session_id)
            return MiAuthPending(self)
        raise MisskeyAuthError(
            f"Unexpected MiAuth check response for session {self._session_id}",
            payload,
        )

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self._session_id} {self._uri}>"


class MiAuth(_MiAuthSession["MisskeyHttpClient"]):
    """MiAuth session polled with a blocking client."""

    def check(self) -> MiAuthStatus[MisskeyHttpClient]:
        """Ask the server whether the user approved this session.

        Raises:
            MisskeyAuthError: If the response is neither pending nor approved.
                The session can still be checked again.
            MisskeyClientConsumedError: If the session already succeeded.
        """
        response = self._pending_client().request(self.check_request)
        return self._resolve(response)


class AsyncMiAuth(_MiAuthSession["AsyncMisskeyHttpClient"]):
    """MiAuth session polled with an asyncio client."""

    async def check(self) -> MiAuthStatus[AsyncMisskeyHttpClient]:
        """Ask the server whether the user approved this session.

        Raises:
            MisskeyAuthError: If the response is neither pending nor approved.
                The session can still be checked again.
            MisskeyClientConsumedError: If the session already succeeded.
        """
        response = await self._pending_client().request(self.check_request)
        return self._resolve(response)


class MiAuthBuilder:
    """Collects app metadata and permissions for a MiAuth session."""

    def __init__(
        self,
        client: Any,
        *,
        scheme: str = "https",
        session_class: type[_MiAuthSession[Any]] = MiAuth,
        session_id: uuid.UUID | None = None,
    ) -> None:
        self._client = client
        self._scheme = scheme
        self._session_class = session_class
        self._session_id = session_id or uuid.uuid4()
        self._built = False
        self._name: str | None = None
        self._icon: str | None = None
        self._callback: str | None = None
        self._uri: str | None = None
        # dict keeps the order permissions were requested in
        self._permissions: dict[Permission, None] = {}

    @property
    def session_id(self) -> uuid.UUID:
        return self._session_id

    @property
    def permissions(self) -> tuple[Permission, ...]:
        return tuple(self._permissions)

    def set_app_name(self, name: str) -> MiAuthBuilder:
        self._name = name
        return self

    def set_app_icon(self, icon: str) -> MiAuthBuilder:
        self._icon = icon
        return self

    def set_callback_uri(self, callback: str) -> MiAuthBuilder:
        """URI the server redirects to after the user approves."""
        self._callback = callback
        return self

    def set_app_uri(self, uri: str) -> MiAuthBuilder:
        """Homepage of the app, shown on the approval page."""
        self._uri = uri
        return self

    def require(self, permission: Permission) -> MiAuthBuilder:
        self._permissions[permission] = None
        return self

    def require_all(self, permissions: Iterable[Permission]) -> MiAuthBuilder:
        for permission in permissions:
            self._permissions[permission] = None
        return self

    def apply(self, config: MiAuthConfig) -> MiAuthBuilder:
        """Copy the fields set in a loaded configuration onto the builder."""
        if config.name is not None:
            self.set_app_name(config.name)
        if config.icon is not None:
            self.set_app_icon(config.icon)
        if config.callback is not None:
            self.set_callback_uri(config.callback)
        if config.uri is not None:
            self.set_app_uri(config.uri)
        return self.require_all(config.permissions)

    def query(self) -> str:
        """Query string of the authorization URI; only set fields appear."""
        params: list[tuple[str, str]] = []
        if self._permissions:
            params.append(
                ("permission", ",".join(p.value for p in self._permissions))
            )
        for key, value in (
            ("callback", self._callback),
            ("icon", self._icon),
            ("name", self._name),
            ("uri", self._uri),
        ):
            if value is not None:
                params.append((key, value))
        return urlencode(params, safe=_QUERY_SAFE, quote_via=quote)

    def build(self) -> _MiAuthSession[Any]:
        """Create the session and its authorization URI.

        The session takes over the builder's client, so a builder can only
        be built once.

        Raises:
            MisskeyClientConsumedError: If ``build`` was already called.
        """
        if self._built:
            raise MisskeyClientConsumedError(
                f"MiAuth session {self._session_id} was already built"
            )
        self._built = True
        authority = self._client.authority
        uri = f"{self._scheme}://{authority}/miauth/{self._session_id}"
        if query := self.query():
            uri = f"{uri}?{query}"
        _LOGGER.info("MiAuth session %s created", self._session_id)
        return self._session_class(self._client, self._session_id, uri)
