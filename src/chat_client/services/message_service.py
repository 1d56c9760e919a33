"""Message write operations.

Every operation issues its write and returns; nothing here touches local
state. The sender's own timeline changes only when the store echoes the
write back through the timeline subscription.
"""
from __future__ import annotations

import logging
from collections import Counter

from chat_client.application import paths
from chat_client.application.dto.message import SentMessageDTO, VoiceClipDTO
from chat_client.application.dto.session import CurrentUser
from chat_client.application.exceptions import ValidationError
from chat_client.application.mappers import message as mapper
from chat_client.application.policies.permissions import (
    assert_can_delete,
    assert_can_edit,
    assert_not_deleted,
)
from chat_client.application.ports.clock import Clock, SystemClock
from chat_client.application.ports.store import LiveStore
from chat_client.application.ports.uploads import ImageUploader
from chat_client.config import settings
from chat_client.domain.entities.conversation import ConversationRef
from chat_client.domain.entities.message import Message, ReplyRef
from chat_client.domain.value_objects.enums import MessageStatus, MessageType
from chat_client.services import notification_service, voice

logger = logging.getLogger(__name__)

IMAGE_SUMMARY = "[Image]"

# Quick reactions offered by the message menu.
REACTIONS = ("👍", "❤️", "😂", "😮", "😢", "😡")


def reply_ref(target: Message) -> ReplyRef:
    """Snapshot of the quoted message. Later edits to the target are not reflected."""
    return ReplyRef(
        message_id=target.id,
        text=target.text or IMAGE_SUMMARY,
        sender_name=target.sender_name,
    )


async def send_text(
    store: LiveStore,
    conversation: ConversationRef,
    user: CurrentUser,
    text: str,
    *,
    reply_to: Message | None = None,
    clock: Clock | None = None,
) -> SentMessageDTO:
    body = text.strip()
    if not body:
        raise ValidationError("Message is empty")
    now = (clock or SystemClock()).now_ms()
    message = Message(
        id="",
        text=body,
        sender_id=user.uid,
        sender_name=user.name,
        created_at=now,
        type=MessageType.TEXT,
        reply_to=reply_ref(reply_to) if reply_to else None,
    )
    return await _dispatch(
        store, conversation, user, message,
        summary=body, notify_text=body, notify_type="message", now=now,
    )


async def send_image(
    store: LiveStore,
    conversation: ConversationRef,
    user: CurrentUser,
    image_url: str,
    *,
    reply_to: Message | None = None,
    clock: Clock | None = None,
) -> SentMessageDTO:
    if not image_url:
        raise ValidationError("Image URL is required")
    now = (clock or SystemClock()).now_ms()
    message = Message(
        id="",
        text="",
        sender_id=user.uid,
        sender_name=user.name,
        created_at=now,
        type=MessageType.IMAGE,
        image_url=image_url,
        reply_to=reply_ref(reply_to) if reply_to else None,
    )
    return await _dispatch(
        store, conversation, user, message,
        summary=IMAGE_SUMMARY, notify_text=IMAGE_SUMMARY, notify_type="image", now=now,
    )


async def upload_image(
    store: LiveStore,
    conversation: ConversationRef,
    user: CurrentUser,
    uploader: ImageUploader,
    data: bytes,
    *,
    filename: str,
    content_type: str,
    reply_to: Message | None = None,
    max_bytes: int | None = None,
    clock: Clock | None = None,
) -> SentMessageDTO:
    """Validate, upload, then send the resulting URL as an image message."""
    if not content_type.startswith("image/"):
        raise ValidationError("Please select an image file")
    limit = max_bytes if max_bytes is not None else settings.MAX_IMAGE_BYTES
    if len(data) > limit:
        raise ValidationError(f"Image size should be less than {limit // (1024 * 1024)}MB")
    url = await uploader.upload(data, filename=filename, content_type=content_type)
    return await send_image(store, conversation, user, url, reply_to=reply_to, clock=clock)


async def send_voice(
    store: LiveStore,
    conversation: ConversationRef,
    user: CurrentUser,
    clip: VoiceClipDTO,
    *,
    reply_to: Message | None = None,
    clock: Clock | None = None,
) -> SentMessageDTO:
    payload = voice.encode_audio(clip.audio, clip.mime_type)
    now = (clock or SystemClock()).now_ms()
    message = Message(
        id="",
        text=voice.voice_caption(clip.duration_seconds),
        sender_id=user.uid,
        sender_name=user.name,
        created_at=now,
        type=MessageType.VOICE,
        audio_payload=payload,
        duration_seconds=clip.duration_seconds,
        reply_to=reply_ref(reply_to) if reply_to else None,
    )
    return await _dispatch(
        store, conversation, user, message,
        summary=voice.VOICE_SUMMARY, notify_text="Voice message", notify_type="voice", now=now,
        extra={"formattedDuration": voice.format_duration(clip.duration_seconds)},
    )


async def _dispatch(
    store: LiveStore,
    conversation: ConversationRef,
    user: CurrentUser,
    message: Message,
    *,
    summary: str,
    notify_text: str,
    notify_type: str,
    now: int,
    extra: dict[str, object] | None = None,
) -> SentMessageDTO:
    record = mapper.entity_to_record(message)
    if extra:
        record.update(extra)
    message_id = await store.push(paths.messages(conversation), record)
    logger.debug("Message %s sent to %s", message_id, conversation.id)

    # The message exists from here on; summary and recipient inbox are best effort
    # so that a retry by the user never duplicates it.
    try:
        await store.update(
            paths.conversation_root(conversation),
            {"lastActivity": now, "lastMessage": summary},
        )
    except Exception:
        logger.exception("Failed to update summary of %s", conversation.id)

    if not conversation.is_group and conversation.peer_id:
        try:
            await notification_service.send_notification(
                store,
                recipient_id=conversation.peer_id,
                sender_id=user.uid,
                sender_name=user.name,
                chat_id=conversation.id,
                title=user.name,
                body=summary if message.type != MessageType.TEXT else message.text,
                message_text=notify_text,
                type=notify_type,
            )
        except Exception:
            logger.exception("Failed to notify %s", conversation.peer_id)

    return SentMessageDTO(message_id=message_id, type=message.type, summary=summary)


async def edit_message(
    store: LiveStore,
    conversation: ConversationRef,
    user: CurrentUser,
    message: Message,
    new_text: str,
    *,
    clock: Clock | None = None,
) -> None:
    assert_can_edit(user, message)
    text = new_text.strip()
    if not text:
        raise ValidationError("Message is empty")
    await store.update(
        paths.message(conversation, message.id),
        {"text": text, "edited": True, "editedAt": (clock or SystemClock()).now_ms()},
    )


async def delete_message(
    store: LiveStore,
    conversation: ConversationRef,
    user: CurrentUser,
    message: Message,
    *,
    clock: Clock | None = None,
) -> None:
    """Leave a tombstone: payload cleared, record kept."""
    assert_can_delete(user, message)
    await store.update(
        paths.message(conversation, message.id),
        {
            "deleted": True,
            "deletedAt": (clock or SystemClock()).now_ms(),
            "text": "",
            "imageUrl": None,
            "audioData": None,
        },
    )


async def pin_message(
    store: LiveStore,
    conversation: ConversationRef,
    user: CurrentUser,
    message: Message,
    *,
    clock: Clock | None = None,
) -> None:
    assert_not_deleted(message)
    await store.update(
        paths.message(conversation, message.id),
        {"pinned": True, "pinnedBy": user.uid, "pinnedAt": (clock or SystemClock()).now_ms()},
    )


async def unpin_message(
    store: LiveStore,
    conversation: ConversationRef,
    message: Message,
) -> None:
    await store.update(
        paths.message(conversation, message.id),
        {"pinned": False, "pinnedBy": None, "pinnedAt": None},
    )


async def react(
    store: LiveStore,
    conversation: ConversationRef,
    user: CurrentUser,
    message: Message,
    emoji: str,
    *,
    clock: Clock | None = None,
) -> None:
    """One reaction per user; reacting again replaces the previous emoji."""
    assert_not_deleted(message)
    if emoji not in REACTIONS:
        raise ValidationError(f"Unsupported reaction: {emoji!r}")
    await store.set(
        paths.reaction(conversation, message.id, user.uid),
        {"emoji": emoji, "userId": user.uid, "timestamp": (clock or SystemClock()).now_ms()},
    )


async def unreact(
    store: LiveStore,
    conversation: ConversationRef,
    user: CurrentUser,
    message: Message,
) -> None:
    await store.remove(paths.reaction(conversation, message.id, user.uid))


async def mark_read(
    store: LiveStore,
    conversation: ConversationRef,
    user: CurrentUser,
    messages: list[Message],
) -> int:
    """Flag peers' unread messages as read in a single write. Returns how many."""
    pending = [
        m for m in messages
        if m.sender_id != user.uid and not m.deleted and user.uid not in m.read_by
    ]
    if not pending:
        return 0
    values: dict[str, object] = {}
    for m in pending:
        values[f"{m.id}/readBy/{user.uid}"] = True
        values[f"{m.id}/status"] = MessageStatus.READ.value
    await store.update(paths.messages(conversation), values)
    return len(pending)


def reaction_counts(message: Message) -> dict[str, int]:
    return dict(Counter(r.emoji for r in message.reactions.values()))


def has_reacted(message: Message, uid: str, emoji: str) -> bool:
    reaction = message.reactions.get(uid)
    return reaction is not None and reaction.emoji == emoji
