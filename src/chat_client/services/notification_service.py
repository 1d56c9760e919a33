from __future__ import annotations

import logging
import secrets
import string
from typing import Any, Mapping

from chat_client.application import paths
from chat_client.application.exceptions import MalformedRecordError
from chat_client.application.mappers import notification as mapper
from chat_client.application.ports.clock import Clock, SystemClock
from chat_client.application.ports.store import LiveStore
from chat_client.domain.entities.notification import NotificationRecord
from chat_client.services.snapshot_decoder import decode_snapshot

logger = logging.getLogger(__name__)

_BASE36 = string.digits + string.ascii_lowercase


def new_notification_key(now_ms: int) -> str:
    suffix = "".join(secrets.choice(_BASE36) for _ in range(9))
    return f"notification_{now_ms}_{suffix}"


async def get_recipient_token(store: LiveStore, recipient_id: str) -> str | None:
    raw = await store.get(paths.push_token(recipient_id))
    if isinstance(raw, str):
        return raw
    # Older clients stored {token: ...}.
    if isinstance(raw, Mapping) and isinstance(raw.get("token"), str):
        return raw["token"]
    return None


async def send_notification(
    store: LiveStore,
    *,
    recipient_id: str,
    sender_id: str,
    sender_name: str | None,
    chat_id: str | None,
    title: str | None = None,
    body: str | None = None,
    message_text: str | None = None,
    type: str = "message",
    clock: Clock | None = None,
) -> str:
    """Write a NotificationRecord into the recipient's inbox and return its key."""
    now = (clock or SystemClock()).now_ms()
    token = await get_recipient_token(store, recipient_id)
    if token is None:
        logger.debug("Recipient %s has no push token, inbox only", recipient_id)

    record = NotificationRecord(
        id=new_notification_key(now),
        title=title or sender_name or "New Message",
        body=body or message_text or "You have a new message",
        chat_id=chat_id,
        sender_id=sender_id,
        sender_name=sender_name or "User",
        message_text=message_text or "",
        type=type,
        read=False,
        created_at=now,
    )
    await store.set(
        paths.notification(recipient_id, record.id),
        mapper.entity_to_record(record, token),
    )
    logger.info("Notification %s saved for %s", record.id, recipient_id)
    return record.id


async def mark_notification_read(store: LiveStore, user_id: str, notification_id: str) -> None:
    await store.set(f"{paths.notification(user_id, notification_id)}/read", True)
    logger.debug("Notification %s marked read", notification_id)


async def clear_notifications(store: LiveStore, user_id: str) -> None:
    await store.remove(paths.notifications(user_id))
    logger.info("Cleared all notifications for %s", user_id)


def decode_notifications(snapshot: Any) -> list[NotificationRecord]:
    """Decode an inbox snapshot, skipping malformed records."""
    records: list[NotificationRecord] = []
    for entry in decode_snapshot(snapshot):
        try:
            records.append(mapper.record_to_entity(entry))
        except MalformedRecordError:
            logger.warning("Skipping malformed notification %s", entry.get("id"), exc_info=True)
    return records


async def list_notifications(store: LiveStore, user_id: str) -> list[NotificationRecord]:
    """Newest first."""
    records = decode_notifications(await store.get(paths.notifications(user_id)))
    return sorted(records, key=lambda n: n.created_at, reverse=True)


async def get_unread_count(store: LiveStore, user_id: str) -> int:
    records = decode_notifications(await store.get(paths.notifications(user_id)))
    return sum(1 for n in records if not n.read)
