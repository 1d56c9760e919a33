from __future__ import annotations

from typing import Any, Mapping

from chat_client.application.exceptions import MalformedRecordError
from chat_client.domain.entities.notification import NotificationRecord


def record_to_entity(entry: Mapping[str, Any]) -> NotificationRecord:
    sender_id = entry.get("senderId")
    if not isinstance(sender_id, str):
        raise MalformedRecordError(f"notification {entry.get('id')!r} has no senderId")
    created_at = entry.get("createdAt", 0)
    if isinstance(created_at, bool) or not isinstance(created_at, (int, float)):
        raise MalformedRecordError(f"notification {entry.get('id')!r} has a bad createdAt")
    return NotificationRecord(
        id=str(entry["id"]),
        title=str(entry.get("title") or ""),
        body=str(entry.get("body") or ""),
        chat_id=entry.get("chatId"),
        sender_id=sender_id,
        sender_name=str(entry.get("senderName") or "User"),
        type=str(entry.get("type") or "message"),
        read=bool(entry.get("read", False)),
        created_at=int(created_at),
        message_text=str(entry.get("messageText") or ""),
    )


def entity_to_record(notification: NotificationRecord, recipient_token: str | None) -> dict[str, Any]:
    return {
        "title": notification.title,
        "body": notification.body,
        "chatId": notification.chat_id,
        "senderId": notification.sender_id,
        "senderName": notification.sender_name,
        "messageText": notification.message_text,
        "type": notification.type,
        "read": notification.read,
        "createdAt": notification.created_at,
        "recipientToken": recipient_token,
    }
