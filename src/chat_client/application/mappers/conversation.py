from __future__ import annotations

from typing import Any, Mapping

from chat_client.application.exceptions import MalformedRecordError
from chat_client.domain.entities.conversation import Group, Member, UserProfile
from chat_client.domain.value_objects.enums import MemberRole


def _members(raw: Any) -> dict[str, Member]:
    if not isinstance(raw, Mapping):
        return {}
    members: dict[str, Member] = {}
    for uid, value in raw.items():
        if not value:
            continue
        info = value if isinstance(value, Mapping) else {}
        role = info.get("role", MemberRole.MEMBER)
        members[uid] = Member(
            user_id=uid,
            role=MemberRole(role) if role in MemberRole._value2member_map_ else MemberRole.MEMBER,
            joined_at=int(info.get("joinedAt") or 0),
        )
    return members


def group_to_entity(group_id: str, record: Mapping[str, Any]) -> Group:
    if not record.get("name"):
        raise MalformedRecordError(f"group {group_id!r} has no name")
    return Group(
        id=group_id,
        name=str(record["name"]),
        description=str(record.get("description") or ""),
        created_by=str(record.get("createdBy") or ""),
        created_at=int(record.get("createdAt") or 0),
        members=_members(record.get("members")),
        last_activity=record.get("lastActivity"),
        last_message=str(record.get("lastMessage") or ""),
        avatar=record.get("avatar"),
    )


def group_to_record(group: Group) -> dict[str, Any]:
    return {
        "id": group.id,
        "name": group.name,
        "description": group.description,
        "createdBy": group.created_by,
        "createdAt": group.created_at,
        "members": {
            m.user_id: {"joinedAt": m.joined_at, "role": m.role.value}
            for m in group.members.values()
        },
        "memberCount": group.member_count,
        "lastActivity": group.last_activity,
        "lastMessage": group.last_message,
        "avatar": group.avatar,
    }


def profile_to_entity(uid: str, record: Mapping[str, Any]) -> UserProfile:
    email = record.get("email")
    return UserProfile(
        uid=uid,
        email=email,
        display_name=str(record.get("displayName") or email or uid),
        photo_url=record.get("photoURL"),
        online=bool(record.get("online", False)),
        last_seen=record.get("lastSeen"),
    )
