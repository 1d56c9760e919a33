"""Headless notification surface: logs what it would display."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable

from chat_client.domain.value_objects.enums import NotificationPermission

logger = logging.getLogger(__name__)


@dataclass
class LoggedNotification:
    title: str
    body: str
    tag: str
    data: dict[str, Any]
    actions: list[dict[str, str]] = field(default_factory=list)
    on_click: Callable[[], None] | None = None
    closed: bool = False

    def close(self) -> None:
        self.closed = True

    def click(self) -> None:
        if self.on_click is not None:
            self.on_click()


class LoggingNotificationSurface:
    """Implements application.ports.notifier.NotificationSurface.

    Permission is granted by construction and the "window" never has focus,
    so every eligible notification is surfaced to the log.
    """

    def __init__(self, permission: NotificationPermission = NotificationPermission.GRANTED) -> None:
        self._permission = permission
        self.shown: list[LoggedNotification] = []

    def permission(self) -> NotificationPermission:
        return self._permission

    async def request_permission(self) -> NotificationPermission:
        if self._permission == NotificationPermission.DEFAULT:
            self._permission = NotificationPermission.GRANTED
        return self._permission

    def has_focus(self) -> bool:
        return False

    def is_visible(self) -> bool:
        return False

    def focus_window(self) -> None:
        logger.debug("focus_window requested")

    def show(
        self,
        title: str,
        *,
        body: str,
        tag: str,
        data: dict[str, Any],
        actions: list[dict[str, str]] | None = None,
        on_click: Callable[[], None] | None = None,
    ) -> LoggedNotification:
        notification = LoggedNotification(
            title=title, body=body, tag=tag, data=data, actions=actions or [], on_click=on_click,
        )
        self.shown.append(notification)
        logger.info("[notification] %s: %s (tag=%s)", title, body, tag)
        return notification
