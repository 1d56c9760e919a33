"""Store path layout shared by every client."""
from __future__ import annotations

from chat_client.domain.entities.conversation import ConversationRef


def conversation_root(conversation: ConversationRef) -> str:
    if conversation.is_group:
        return f"groups/{conversation.id}"
    return f"chats/{conversation.id}"


def messages(conversation: ConversationRef) -> str:
    return f"{conversation_root(conversation)}/messages"


def message(conversation: ConversationRef, message_id: str) -> str:
    return f"{messages(conversation)}/{message_id}"


def reaction(conversation: ConversationRef, message_id: str, uid: str) -> str:
    return f"{message(conversation, message_id)}/reactions/{uid}"


def typing(conversation: ConversationRef) -> str:
    return f"{conversation_root(conversation)}/typing"


def typing_signal(conversation: ConversationRef, uid: str) -> str:
    return f"{typing(conversation)}/{uid}"


USERS = "users"
GROUPS = "groups"


def user(uid: str) -> str:
    return f"{USERS}/{uid}"


def push_token(uid: str) -> str:
    return f"{user(uid)}/fcmToken"


def push_token_metadata(uid: str) -> str:
    return f"{user(uid)}/fcmTokenMetadata"


def notifications(uid: str) -> str:
    return f"{user(uid)}/notifications"


def notification(uid: str, notification_id: str) -> str:
    return f"{notifications(uid)}/{notification_id}"
