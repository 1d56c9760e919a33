from __future__ import annotations

from dataclasses import dataclass

from chat_client.domain.value_objects.enums import MessageType


@dataclass(frozen=True, slots=True)
class VoiceClipDTO:
    audio: bytes
    mime_type: str
    duration_seconds: int


@dataclass(frozen=True, slots=True)
class SentMessageDTO:
    """What a send produced; `summary` is the conversation's new lastMessage."""

    message_id: str
    type: MessageType
    summary: str
