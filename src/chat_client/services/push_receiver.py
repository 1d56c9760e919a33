"""Background push delivery: turn an incoming push payload into a notification."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Mapping

from chat_client.application.ports.clock import Clock, SystemClock
from chat_client.application.ports.notifier import NotificationSurface

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "New Message"
DEFAULT_BODY = "You have a new message"
DEFAULT_ICON = "/favicon.ico"

CHAT_ACTIONS = (
    {"action": "open-chat", "title": "💬 Open Chat"},
    {"action": "mark-read", "title": "✓ Mark as Read"},
)


@dataclass(frozen=True, slots=True)
class PushNotification:
    title: str
    body: str
    icon: str
    tag: str
    data: dict[str, str | int]
    actions: list[dict[str, str]] = field(default_factory=list)


def render_push(
    notification: Mapping[str, str | None],
    data: Mapping[str, str],
    now_ms: int,
) -> PushNotification:
    """Display fields come from the notification block, then the data block, then defaults."""

    def pick(name: str, default: str) -> str:
        return notification.get(name) or data.get(name) or default

    chat_id = data.get("chatId")
    tag = f"chat-{chat_id or 'general'}-{data.get('messageId') or now_ms}"
    return PushNotification(
        title=pick("title", DEFAULT_TITLE),
        body=pick("body", DEFAULT_BODY),
        icon=pick("icon", DEFAULT_ICON),
        tag=tag,
        data={**data, "receivedAt": now_ms, "source": "push"},
        actions=[dict(a) for a in CHAT_ACTIONS] if chat_id else [],
    )


def deliver_push(
    surface: NotificationSurface,
    notification: Mapping[str, str | None],
    data: Mapping[str, str],
    *,
    clock: Clock | None = None,
) -> PushNotification:
    rendered = render_push(notification, data, (clock or SystemClock()).now_ms())
    surface.show(
        rendered.title,
        body=rendered.body,
        tag=rendered.tag,
        data=dict(rendered.data),
        actions=rendered.actions or None,
    )
    logger.info("Push notification shown: %s", rendered.tag)
    return rendered
