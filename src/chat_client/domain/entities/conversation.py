from __future__ import annotations

from dataclasses import dataclass, field

from chat_client.domain.value_objects.enums import ConversationKind, MemberRole
from chat_client.domain.value_objects.ids import ConversationId, direct_chat_id


@dataclass(frozen=True, slots=True)
class ConversationRef:
    """Addresses one conversation subtree in the store."""

    kind: ConversationKind
    id: ConversationId
    peer_id: str | None = None

    @classmethod
    def direct(cls, uid: str, peer_id: str) -> ConversationRef:
        return cls(kind=ConversationKind.DIRECT, id=direct_chat_id(uid, peer_id), peer_id=peer_id)

    @classmethod
    def group(cls, group_id: str) -> ConversationRef:
        return cls(kind=ConversationKind.GROUP, id=ConversationId(group_id))

    @property
    def is_group(self) -> bool:
        return self.kind == ConversationKind.GROUP


@dataclass(frozen=True, slots=True)
class Member:
    user_id: str
    role: MemberRole
    joined_at: int


@dataclass(frozen=True, slots=True)
class Group:
    id: str
    name: str
    description: str
    created_by: str
    created_at: int
    members: dict[str, Member] = field(default_factory=dict)
    last_activity: int | None = None
    last_message: str = ""
    avatar: str | None = None

    @property
    def member_count(self) -> int:
        return len(self.members)


@dataclass(frozen=True, slots=True)
class UserProfile:
    uid: str
    email: str | None
    display_name: str
    photo_url: str | None = None
    online: bool = False
    last_seen: int | None = None
