"""Typed client for the Misskey HTTP API."""

from .client import (
    API_ROOT,
    AsyncMisskeyHttpClient,
    Authority,
    MisskeyHttpClient,
    MisskeyResponse,
    decode_response,
)
from .config import (
    ClientConfig,
    ConfigLoadError,
    MiAuthConfig,
    connect,
    connect_async,
    load_config,
)
from .contract import JsonRequest, MisskeyRequest
from .errors import (
    MisskeyAuthError,
    MisskeyClientConsumedError,
    MisskeyClientError,
    MisskeyConnectionError,
    MisskeyEncodingError,
    MisskeyInvalidAuthorityError,
    MisskeyProtocolError,
    MisskeyResponseDecodeError,
    MisskeyServerError,
    MisskeyTimeout,
)
from .miauth import (
    AsyncMiAuth,
    MiAuth,
    MiAuthBuilder,
    MiAuthPending,
    MiAuthSucceeded,
)
from .models import (
    MaybeMultiple,
    Multiple,
    NoteVisibility,
    NotificationType,
    Permission,
    Single,
    maybe_multiple,
)
from .requests import (
    CreateNote,
    DeleteNote,
    GetI,
    GetNotifications,
    MarkAllNotificationsAsRead,
    SearchNotes,
    ShowNote,
)
from .transport import (
    AsyncStreamTransport,
    StreamTransport,
    open_async_connection,
    open_connection,
)

__version__ = "0.1.0"

__all__ = [
    "API_ROOT",
    "AsyncMiAuth",
    "AsyncMisskeyHttpClient",
    "AsyncStreamTransport",
    "Authority",
    "ClientConfig",
    "ConfigLoadError",
    "CreateNote",
    "DeleteNote",
    "GetI",
    "GetNotifications",
    "JsonRequest",
    "MarkAllNotificationsAsRead",
    "MaybeMultiple",
    "MiAuth",
    "MiAuthBuilder",
    "MiAuthConfig",
    "MiAuthPending",
    "MiAuthSucceeded",
    "MisskeyAuthError",
    "MisskeyClientConsumedError",
    "MisskeyClientError",
    "MisskeyConnectionError",
    "MisskeyEncodingError",
    "MisskeyHttpClient",
    "MisskeyInvalidAuthorityError",
    "MisskeyProtocolError",
    "MisskeyRequest",
    "MisskeyResponse",
    "MisskeyResponseDecodeError",
    "MisskeyServerError",
    "MisskeyTimeout",
    "Multiple",
    "NoteVisibility",
    "NotificationType",
    "Permission",
    "SearchNotes",
    "ShowNote",
    "Single",
    "StreamTransport",
    "connect",
    "connect_async",
    "decode_response",
    "load_config",
    "maybe_multiple",
    "open_async_connection",
    "open_connection",
]
