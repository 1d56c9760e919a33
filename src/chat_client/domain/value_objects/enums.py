from __future__ import annotations

from enum import StrEnum


class ConversationKind(StrEnum):
    DIRECT = "direct"
    GROUP = "group"


class MessageType(StrEnum):
    TEXT = "text"
    IMAGE = "image"
    VOICE = "voice"


class MessageStatus(StrEnum):
    SENT = "sent"
    DELIVERED = "delivered"
    READ = "read"


class MemberRole(StrEnum):
    ADMIN = "admin"
    MEMBER = "member"


class NotificationPermission(StrEnum):
    DEFAULT = "default"
    GRANTED = "granted"
    DENIED = "denied"


class TypingState(StrEnum):
    IDLE = "idle"
    TYPING = "typing"


class PushState(StrEnum):
    UNINITIALIZED = "uninitialized"
    UNSUPPORTED = "unsupported"
    READY = "ready"
    REGISTERED = "registered"


class UploadState(StrEnum):
    IDLE = "idle"
    UPLOADING = "uploading"
