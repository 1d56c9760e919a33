from __future__ import annotations

from dataclasses import dataclass, field

from chat_client.domain.value_objects.enums import MessageStatus, MessageType


@dataclass(frozen=True, slots=True)
class ReplyRef:
    """Denormalized copy of the quoted message taken at send time."""

    message_id: str
    text: str
    sender_name: str


@dataclass(frozen=True, slots=True)
class Reaction:
    emoji: str
    user_id: str
    timestamp: int


@dataclass(frozen=True, slots=True)
class Message:
    id: str
    text: str
    sender_id: str
    sender_name: str
    created_at: int
    type: MessageType = MessageType.TEXT
    edited: bool = False
    edited_at: int | None = None
    deleted: bool = False
    deleted_at: int | None = None
    pinned: bool = False
    pinned_by: str | None = None
    pinned_at: int | None = None
    image_url: str | None = None
    audio_payload: str | None = None
    duration_seconds: int | None = None
    reply_to: ReplyRef | None = None
    reactions: dict[str, Reaction] = field(default_factory=dict)
    read_by: dict[str, bool] = field(default_factory=dict)
    status: MessageStatus = MessageStatus.SENT

    @property
    def is_tombstone(self) -> bool:
        return self.deleted
