"""Request types for commonly used endpoints.

Each request is an immutable model. Builder methods return a modified copy,
so a base request can be reused:

    base = CreateNote.note("hello").with_visibility(NoteVisibility.HOME)
    client.request(base.with_cw("spoiler"))
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any, ClassVar

from pydantic import Field

from .contract import JsonRequest
from .models import (
    CreatedNote,
    Note,
    Notification,
    NotificationType,
    NoteVisibility,
    ReactionAcceptance,
    UserDetailed,
)

DEFAULT_LIMIT = 10


class CreateNote(JsonRequest):
    """Post a note, renote or quote.

    With ``no_created_note`` set the server answers 204 without a body, so
    the response may be empty.
    """

    ENDPOINT: ClassVar[str] = "/notes/create"
    RESPONSE: ClassVar[Any] = CreatedNote
    CAN_BE_EMPTY: ClassVar[bool] = True

    visibility: NoteVisibility = NoteVisibility.PUBLIC
    visible_user_ids: list[str] | None = None
    cw: str | None = None
    local_only: bool = False
    reaction_acceptance: ReactionAcceptance | None = None
    no_extract_mentions: bool = False
    no_extract_hashtags: bool = False
    no_extract_emojis: bool = False
    reply_id: str | None = None
    renote_id: str | None = None
    channel_id: str | None = None
    text: str | None = None
    no_created_note: bool = False

    @classmethod
    def note(cls, text: str) -> CreateNote:
        return cls(text=text)

    @classmethod
    def renote(cls, note_id: str) -> CreateNote:
        return cls(renote_id=note_id)

    @classmethod
    def quote(cls, text: str, note_id: str) -> CreateNote:
        return cls(text=text, renote_id=note_id)

    def with_visibility(self, visibility: NoteVisibility) -> CreateNote:
        return self.model_copy(update={"visibility": visibility})

    def with_visible_users(self, user_ids: Iterable[str]) -> CreateNote:
        """Restrict the note to the given users; sets visibility to specified."""
        return self.model_copy(
            update={
                "visibility": NoteVisibility.SPECIFIED,
                "visible_user_ids": list(user_ids),
            }
        )

    def with_cw(self, cw: str) -> CreateNote:
        return self.model_copy(update={"cw": cw})

    def with_local_only(self, local_only: bool = True) -> CreateNote:
        return self.model_copy(update={"local_only": local_only})

    def with_reaction_acceptance(self, acceptance: ReactionAcceptance) -> CreateNote:
        return self.model_copy(update={"reaction_acceptance": acceptance})

    def in_reply_to(self, note_id: str) -> CreateNote:
        return self.model_copy(update={"reply_id": note_id})

    def in_channel(self, channel_id: str) -> CreateNote:
        return self.model_copy(update={"channel_id": channel_id})

    def without_created_note(self, no_created_note: bool = True) -> CreateNote:
        """Ask the server to answer 204 instead of echoing the note."""
        return self.model_copy(update={"no_created_note": no_created_note})


class DeleteNote(JsonRequest):
    ENDPOINT: ClassVar[str] = "/notes/delete"
    RESPONSE: ClassVar[Any] = None
    CAN_BE_EMPTY: ClassVar[bool] = True

    note_id: str


class ShowNote(JsonRequest):
    ENDPOINT: ClassVar[str] = "/notes/show"
    RESPONSE: ClassVar[Any] = Note

    note_id: str


class SearchNotes(JsonRequest):
    """Full-text note search."""

    ENDPOINT: ClassVar[str] = "/notes/search"
    RESPONSE: ClassVar[Any] = list[Note]

    query: str
    since_id: str | None = None
    until_id: str | None = None
    limit: int = Field(default=DEFAULT_LIMIT, ge=1, le=100)
    offset: int = Field(default=0, ge=0)
    host: str | None = None
    user_id: str | None = None
    channel_id: str | None = None

    def since(self, note_id: str) -> SearchNotes:
        return self.model_copy(update={"since_id": note_id})

    def until(self, note_id: str) -> SearchNotes:
        return self.model_copy(update={"until_id": note_id})

    def with_limit(self, limit: int) -> SearchNotes:
        return self.model_validate({**self.model_dump(), "limit": limit})

    def with_offset(self, offset: int) -> SearchNotes:
        return self.model_validate({**self.model_dump(), "offset": offset})

    def on_host(self, host: str) -> SearchNotes:
        return self.model_copy(update={"host": host})

    def by_user(self, user_id: str) -> SearchNotes:
        return self.model_copy(update={"user_id": user_id})

    def in_channel(self, channel_id: str) -> SearchNotes:
        return self.model_copy(update={"channel_id": channel_id})


class GetI(JsonRequest):
    """Profile of the logged-in user."""

    ENDPOINT: ClassVar[str] = "/i"
    RESPONSE: ClassVar[Any] = UserDetailed


class GetNotifications(JsonRequest):
    """Notifications of the logged-in user, newest first.

    Type filters keep the order they were added in and ignore repeats.
    """

    ENDPOINT: ClassVar[str] = "/i/notifications"
    RESPONSE: ClassVar[Any] = list[Notification]

    limit: int = Field(default=DEFAULT_LIMIT, ge=1, le=100)
    since_id: str | None = None
    until_id: str | None = None
    mark_as_read: bool = True
    include_types: list[NotificationType] = Field(default_factory=list)
    exclude_types: list[NotificationType] = Field(default_factory=list)

    def with_limit(self, limit: int) -> GetNotifications:
        return self.model_validate({**self.model_dump(), "limit": limit})

    def since(self, notification_id: str) -> GetNotifications:
        return self.model_copy(update={"since_id": notification_id})

    def until(self, notification_id: str) -> GetNotifications:
        return self.model_copy(update={"until_id": notification_id})

    def with_mark_as_read(self, mark_as_read: bool) -> GetNotifications:
        return self.model_copy(update={"mark_as_read": mark_as_read})

    def include(self, *types: NotificationType) -> GetNotifications:
        return self.model_copy(
            update={"include_types": _merge(self.include_types, types)}
        )

    def exclude(self, *types: NotificationType) -> GetNotifications:
        return self.model_copy(
            update={"exclude_types": _merge(self.exclude_types, types)}
        )


class MarkAllNotificationsAsRead(JsonRequest):
    ENDPOINT: ClassVar[str] = "/notifications/mark-all-as-read"
    RESPONSE: ClassVar[Any] = None
    CAN_BE_EMPTY: ClassVar[bool] = True


def _merge(
    current: list[NotificationType], extra: Iterable[NotificationType]
) -> list[NotificationType]:
    merged = dict.fromkeys(current)
    merged.update(dict.fromkeys(extra))
    return list(merged)
