"""Response models and shared enums for the Misskey API.

Models accept the server's camelCase keys and keep any field they do not
declare, so newer server versions still decode.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Generic, TypeVar

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    Field,
    PlainValidator,
    TypeAdapter,
)
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class NoteVisibility(Enum):
    """Who can see a note."""

    PUBLIC = "public"
    HOME = "home"
    FOLLOWERS = "followers"
    SPECIFIED = "specified"


class ReactionAcceptance(Enum):
    """Which reactions a note accepts."""

    LIKE_ONLY = "likeOnly"
    LIKE_ONLY_FOR_REMOTE = "likeOnlyForRemote"
    NON_SENSITIVE_ONLY = "nonSensitiveOnly"
    NON_SENSITIVE_ONLY_FOR_LOCAL_LIKE_ONLY_FOR_REMOTE = (
        "nonSensitiveOnlyForLocalLikeOnlyForRemote"
    )


class NotificationType(Enum):
    """Notification kinds reported by ``/i/notifications``."""

    NOTE = "note"
    FOLLOW = "follow"
    MENTION = "mention"
    REPLY = "reply"
    RENOTE = "renote"
    QUOTE = "quote"
    REACTION = "reaction"
    POLL_ENDED = "pollEnded"
    RECEIVE_FOLLOW_REQUEST = "receiveFollowRequest"
    FOLLOW_REQUEST_ACCEPTED = "followRequestAccepted"
    ROLE_ASSIGNED = "roleAssigned"
    ACHIEVEMENT_EARNED = "achievementEarned"
    APP = "app"
    TEST = "test"
    POLL_VOTE = "pollVote"
    GROUP_INVITED = "groupInvited"


class OnlineStatus(Enum):
    ONLINE = "online"
    ACTIVE = "active"
    OFFLINE = "offline"
    UNKNOWN = "unknown"


class Permission(Enum):
    """Permission scopes an app can request through MiAuth."""

    READ_ACCOUNT = "read:account"
    WRITE_ACCOUNT = "write:account"
    READ_BLOCKS = "read:blocks"
    WRITE_BLOCKS = "write:blocks"
    READ_DRIVE = "read:drive"
    WRITE_DRIVE = "write:drive"
    READ_FAVORITES = "read:favorites"
    WRITE_FAVORITES = "write:favorites"
    READ_FOLLOWING = "read:following"
    WRITE_FOLLOWING = "write:following"
    READ_MESSAGING = "read:messaging"
    WRITE_MESSAGING = "write:messaging"
    READ_MUTES = "read:mutes"
    WRITE_MUTES = "write:mutes"
    WRITE_NOTES = "write:notes"
    READ_NOTIFICATIONS = "read:notifications"
    WRITE_NOTIFICATIONS = "write:notifications"
    READ_REACTIONS = "read:reactions"
    WRITE_REACTIONS = "write:reactions"
    WRITE_VOTES = "write:votes"
    READ_PAGES = "read:pages"
    WRITE_PAGES = "write:pages"
    WRITE_PAGE_LIKES = "write:page-likes"
    READ_PAGE_LIKES = "read:page-likes"
    READ_USER_GROUPS = "read:user-groups"
    WRITE_USER_GROUPS = "write:user-groups"
    READ_CHANNELS = "read:channels"
    WRITE_CHANNELS = "write:channels"
    READ_GALLERY = "read:gallery"
    WRITE_GALLERY = "write:gallery"
    READ_GALLERY_LIKES = "read:gallery-likes"
    WRITE_GALLERY_LIKES = "write:gallery-likes"
    READ_FLASH = "read:flash"
    WRITE_FLASH = "write:flash"
    READ_FLASH_LIKES = "read:flash-likes"
    WRITE_FLASH_LIKES = "write:flash-likes"
    READ_ADMIN_ABUSE_USER_REPORTS = "read:admin:abuse-user-reports"
    WRITE_ADMIN_DELETE_ACCOUNT = "write:admin:delete-account"
    WRITE_ADMIN_DELETE_ALL_FILES_OF_A_USER = "write:admin:delete-all-files-of-a-user"
    READ_ADMIN_INDEX_STATS = "read:admin:index-stats"
    READ_ADMIN_TABLE_STATS = "read:admin:table-stats"
    READ_ADMIN_USER_IPS = "read:admin:user-ips"
    READ_ADMIN_META = "read:admin:meta"
    WRITE_ADMIN_RESET_PASSWORD = "write:admin:reset-password"
    WRITE_ADMIN_RESOLVE_ABUSE_USER_REPORT = "write:admin:resolve-abuse-user-report"
    WRITE_ADMIN_SEND_EMAIL = "write:admin:send-email"
    READ_ADMIN_SERVER_INFO = "read:admin:server-info"
    READ_ADMIN_SHOW_MODERATION_LOG = "read:admin:show-moderation-log"
    READ_ADMIN_SHOW_USER = "read:admin:show-user"
    WRITE_ADMIN_SUSPEND_USER = "write:admin:suspend-user"
    WRITE_ADMIN_UNSET_USER_AVATAR = "write:admin:unset-user-avatar"
    WRITE_ADMIN_UNSET_USER_BANNER = "write:admin:unset-user-banner"
    WRITE_ADMIN_UNSUSPEND_USER = "write:admin:unsuspend-user"
    WRITE_ADMIN_META = "write:admin:meta"
    WRITE_ADMIN_USERNOTE = "write:admin:user-note"
    WRITE_ADMIN_ROLES = "write:admin:roles"
    READ_ADMIN_ROLES = "read:admin:roles"
    WRITE_ADMIN_RELAYS = "write:admin:relays"
    READ_ADMIN_RELAYS = "read:admin:relays"
    WRITE_ADMIN_INVITE_CODES = "write:admin:invite-codes"
    READ_ADMIN_INVITE_CODES = "read:admin:invite-codes"
    WRITE_ADMIN_ANNOUNCEMENTS = "write:admin:announcements"
    READ_ADMIN_ANNOUNCEMENTS = "read:admin:announcements"
    WRITE_ADMIN_AVATAR_DECORATIONS = "write:admin:avatar-decorations"
    READ_ADMIN_AVATAR_DECORATIONS = "read:admin:avatar-decorations"
    WRITE_ADMIN_FEDERATION = "write:admin:federation"
    WRITE_ADMIN_ACCOUNT = "write:admin:account"
    READ_ADMIN_ACCOUNT = "read:admin:account"
    WRITE_ADMIN_EMOJI = "write:admin:emoji"
    READ_ADMIN_EMOJI = "read:admin:emoji"
    WRITE_ADMIN_QUEUE = "write:admin:queue"
    READ_ADMIN_QUEUE = "read:admin:queue"
    WRITE_ADMIN_PROMO = "write:admin:promo"
    WRITE_ADMIN_DRIVE = "write:admin:drive"
    READ_ADMIN_DRIVE = "read:admin:drive"
    WRITE_ADMIN_AD = "write:admin:ad"
    READ_ADMIN_AD = "read:admin:ad"
    WRITE_INVITE_CODES = "write:invite-codes"
    READ_INVITE_CODES = "read:invite-codes"
    WRITE_CLIP_FAVORITE = "write:clip-favorite"
    READ_CLIP_FAVORITE = "read:clip-favorite"
    READ_FEDERATION = "read:federation"
    WRITE_REPORT_ABUSE = "write:report-abuse"


class MisskeyModel(BaseModel):
    """Base for decoded server payloads."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
        frozen=True,
    )


class ServerErrorBody(MisskeyModel):
    message: str
    code: str
    id: str
    kind: str


class ServerErrorEnvelope(MisskeyModel):
    """Shape of every error response: ``{"error": {...}}``."""

    error: ServerErrorBody


class UserLite(MisskeyModel):
    id: str
    username: str
    name: str | None = None
    host: str | None = None
    avatar_url: str | None = None
    avatar_blurhash: str | None = None
    is_bot: bool = False
    is_cat: bool = False
    # Unknown values from newer servers are kept as plain strings.
    online_status: OnlineStatus | str | None = Field(
        default=None, union_mode="left_to_right"
    )


class UserDetailed(UserLite):
    """Full profile, as returned by ``/i`` and MiAuth approval."""

    url: str | None = None
    uri: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    description: str | None = None
    location: str | None = None
    birthday: str | None = None
    lang: str | None = None
    banner_url: str | None = None
    followers_count: int = 0
    following_count: int = 0
    notes_count: int = 0
    is_locked: bool = False
    is_suspended: bool = False
    pinned_note_ids: list[str] = Field(default_factory=list)


class Note(MisskeyModel):
    id: str
    created_at: datetime | None = None
    user_id: str | None = None
    user: UserLite | None = None
    text: str | None = None
    cw: str | None = None
    visibility: NoteVisibility | None = None
    local_only: bool = False
    reaction_acceptance: ReactionAcceptance | None = None
    reply_id: str | None = None
    renote_id: str | None = None
    channel_id: str | None = None
    renote_count: int = 0
    replies_count: int = 0
    reactions: dict[str, int] = Field(default_factory=dict)
    file_ids: list[str] = Field(default_factory=list)
    uri: str | None = None
    url: str | None = None


class CreatedNote(MisskeyModel):
    """Response of ``/notes/create``."""

    created_note: Note


class Notification(MisskeyModel):
    id: str
    type: NotificationType | str = Field(union_mode="left_to_right")
    created_at: datetime | None = None
    user_id: str | None = None
    user: UserLite | None = None
    note: Note | None = None
    reaction: str | None = None


def _reject_error_envelope(value: dict[str, Any]) -> dict[str, Any]:
    if "error" in value:
        raise ValueError("object is a server error envelope")
    return value


# Any JSON object except the server's error envelope.
JsonObject = Annotated[dict[str, Any], AfterValidator(_reject_error_envelope)]


@dataclass(frozen=True)
class Single(Generic[T]):
    """A payload that arrived as one value."""

    value: T

    def as_list(self) -> list[T]:
        return [self.value]


@dataclass(frozen=True)
class Multiple(Generic[T]):
    """A payload that arrived as a list of values."""

    values: tuple[T, ...]

    def as_list(self) -> list[T]:
        return list(self.values)


MaybeMultiple = Single[T] | Multiple[T]


def maybe_multiple(item_type: Any) -> Any:
    """Return a response type decoding ``item_type`` or a list of it.

    The result is a :class:`Single` or a :class:`Multiple`, never a bare
    value, so callers branch on the variant instead of guessing the shape.
    """
    single = TypeAdapter(item_type)
    many = TypeAdapter(list[item_type])  # type: ignore[valid-type]

    def validate(value: Any) -> Single[Any] | Multiple[Any]:
        if isinstance(value, list):
            return Multiple(tuple(many.validate_python(value)))
        return Single(single.validate_python(value))

    return Annotated[Any, PlainValidator(validate)]
