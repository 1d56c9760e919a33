from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Mapping

from chat_client.application import paths
from chat_client.application.dto.session import CurrentUser
from chat_client.application.exceptions import MalformedRecordError, ValidationError
from chat_client.application.mappers import conversation as mapper
from chat_client.application.ports.clock import Clock, SystemClock
from chat_client.application.ports.store import LiveStore
from chat_client.domain.entities.conversation import ConversationRef, Group, Member, UserProfile
from chat_client.domain.value_objects.enums import MemberRole

logger = logging.getLogger(__name__)


def open_direct(user: CurrentUser, peer_id: str) -> ConversationRef:
    if peer_id == user.uid:
        raise ValidationError("Cannot open a chat with yourself")
    return ConversationRef.direct(user.uid, peer_id)


async def create_group(
    store: LiveStore,
    creator: CurrentUser,
    name: str,
    member_ids: list[str],
    *,
    description: str = "",
    clock: Clock | None = None,
) -> Group:
    """Create a group with the creator as admin and the others as members."""
    name = name.strip()
    if not name:
        raise ValidationError("Group name is required")
    others = [uid for uid in dict.fromkeys(member_ids) if uid != creator.uid]
    if not others:
        raise ValidationError("Select at least one member")

    now = (clock or SystemClock()).now_ms()
    members = {uid: Member(user_id=uid, role=MemberRole.MEMBER, joined_at=now) for uid in others}
    members[creator.uid] = Member(user_id=creator.uid, role=MemberRole.ADMIN, joined_at=now)

    group = Group(
        id="",
        name=name,
        description=description.strip(),
        created_by=creator.uid,
        created_at=now,
        members=members,
        last_activity=now,
    )
    record = mapper.group_to_record(group)
    del record["id"]
    group_id = await store.push(paths.GROUPS, record)
    group = replace(group, id=group_id)
    logger.info("Group %s created by %s with %d members", group_id, creator.uid, group.member_count)
    return group


def select_member_groups(snapshot: Any, uid: str) -> list[Group]:
    """Groups from a ``groups`` snapshot that list `uid` as a member, most recent activity first."""
    if not isinstance(snapshot, Mapping):
        return []
    groups: list[Group] = []
    for group_id, record in snapshot.items():
        if not isinstance(record, Mapping):
            continue
        members = record.get("members")
        if not isinstance(members, Mapping) or not members.get(uid):
            continue
        try:
            groups.append(mapper.group_to_entity(group_id, record))
        except (MalformedRecordError, ValueError, TypeError):
            logger.warning("Skipping malformed group %s", group_id, exc_info=True)
    return sorted(groups, key=lambda g: g.last_activity or 0, reverse=True)


def select_other_users(snapshot: Any, uid: str) -> list[UserProfile]:
    """Everyone but `uid` from a ``users`` snapshot; online first, then by name."""
    if not isinstance(snapshot, Mapping):
        return []
    profiles = [
        mapper.profile_to_entity(other, record)
        for other, record in snapshot.items()
        if other != uid and isinstance(record, Mapping)
    ]
    return sorted(profiles, key=lambda p: (not p.online, p.display_name.lower()))
