from __future__ import annotations

from typing import Any, Callable, Protocol

from chat_client.domain.value_objects.enums import NotificationPermission


class NotificationHandle(Protocol):
    def close(self) -> None: ...


class NotificationSurface(Protocol):
    """OS-level notification area plus the window focus probes it is gated on."""

    def permission(self) -> NotificationPermission: ...

    async def request_permission(self) -> NotificationPermission: ...

    def has_focus(self) -> bool: ...

    def is_visible(self) -> bool: ...

    def focus_window(self) -> None: ...

    def show(
        self,
        title: str,
        *,
        body: str,
        tag: str,
        data: dict[str, Any],
        actions: list[dict[str, str]] | None = None,
        on_click: Callable[[], None] | None = None,
    ) -> NotificationHandle: ...
