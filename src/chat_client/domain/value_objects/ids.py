from __future__ import annotations

from typing import NewType

ConversationId = NewType("ConversationId", str)


def direct_chat_id(uid_a: str, uid_b: str) -> ConversationId:
    """Key shared by both participants of a direct chat, computed without coordination."""
    first, second = sorted((uid_a, uid_b))
    return ConversationId(f"{first}_{second}")
