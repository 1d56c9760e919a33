from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class NotificationRecord:
    id: str
    title: str
    body: str
    chat_id: str | None
    sender_id: str
    sender_name: str
    type: str
    read: bool
    created_at: int
    message_text: str = ""
