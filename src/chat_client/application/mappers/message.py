from __future__ import annotations

from typing import Any, Mapping

from chat_client.application.exceptions import MalformedRecordError
from chat_client.application.ports.store import SERVER_TIMESTAMP
from chat_client.domain.entities.message import Message, Reaction, ReplyRef
from chat_client.domain.value_objects.enums import MessageStatus, MessageType


def _opt_int(record: Mapping[str, Any], key: str) -> int | None:
    value = record.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise MalformedRecordError(f"{key} must be a number, got {value!r}")
    return int(value)


def _reply_to(raw: Any) -> ReplyRef | None:
    if not raw:
        return None
    if not isinstance(raw, Mapping) or "messageId" not in raw:
        raise MalformedRecordError("replyTo must carry messageId")
    return ReplyRef(
        message_id=str(raw["messageId"]),
        text=str(raw.get("text") or ""),
        sender_name=str(raw.get("senderName") or ""),
    )


def _reactions(raw: Any) -> dict[str, Reaction]:
    if not isinstance(raw, Mapping):
        return {}
    reactions: dict[str, Reaction] = {}
    for uid, value in raw.items():
        if not isinstance(value, Mapping) or not value.get("emoji"):
            continue
        reactions[uid] = Reaction(
            emoji=str(value["emoji"]),
            user_id=str(value.get("userId") or uid),
            timestamp=_opt_int(value, "timestamp") or 0,
        )
    return reactions


def record_to_entity(entry: Mapping[str, Any]) -> Message:
    """Map one decoded snapshot entry (``{"id": ..., **record}``) to a Message."""
    sender_id = entry.get("senderId")
    if not isinstance(sender_id, str) or not sender_id:
        raise MalformedRecordError(f"message {entry.get('id')!r} has no senderId")
    try:
        msg_type = MessageType(entry.get("type") or MessageType.TEXT)
        status = MessageStatus(entry.get("status") or MessageStatus.SENT)
    except ValueError as exc:
        raise MalformedRecordError(str(exc)) from exc

    read_by = entry.get("readBy")
    return Message(
        id=str(entry["id"]),
        text=str(entry.get("text") or ""),
        sender_id=sender_id,
        sender_name=str(entry.get("senderName") or sender_id),
        created_at=_opt_int(entry, "createdAt") or 0,
        type=msg_type,
        edited=bool(entry.get("edited", False)),
        edited_at=_opt_int(entry, "editedAt"),
        deleted=bool(entry.get("deleted", False)),
        deleted_at=_opt_int(entry, "deletedAt"),
        pinned=bool(entry.get("pinned", False)),
        pinned_by=entry.get("pinnedBy"),
        pinned_at=_opt_int(entry, "pinnedAt"),
        image_url=entry.get("imageUrl"),
        audio_payload=entry.get("audioData"),
        duration_seconds=_opt_int(entry, "duration"),
        reply_to=_reply_to(entry.get("replyTo")),
        reactions=_reactions(entry.get("reactions")),
        read_by={uid: True for uid, flag in read_by.items() if flag} if isinstance(read_by, Mapping) else {},
        status=status,
    )


def entity_to_record(message: Message) -> dict[str, Any]:
    """Record for a brand-new message. The id is assigned by the store."""
    record: dict[str, Any] = {
        "text": message.text,
        "senderId": message.sender_id,
        "senderName": message.sender_name,
        "createdAt": message.created_at,
        "timestamp": dict(SERVER_TIMESTAMP),
        "type": message.type.value,
        "edited": False,
        "status": message.status.value,
        "readBy": {},
        "reactions": {},
        "replyTo": None,
    }
    if message.reply_to is not None:
        record["replyTo"] = {
            "messageId": message.reply_to.message_id,
            "text": message.reply_to.text,
            "senderName": message.reply_to.sender_name,
        }
    if message.image_url is not None:
        record["imageUrl"] = message.image_url
    if message.audio_payload is not None:
        record["audioData"] = message.audio_payload
        record["duration"] = message.duration_seconds or 0
    return record
