"""Surfaces unread inbox records as OS notifications, once per record per session."""
from __future__ import annotations

import asyncio
import logging
import secrets
from typing import Any

from chat_client.application import paths
from chat_client.application.dto.session import CurrentUser
from chat_client.application.ports.clock import Clock, SystemClock
from chat_client.application.ports.notifier import NotificationHandle, NotificationSurface
from chat_client.application.ports.store import LiveStore, Subscription
from chat_client.config import settings
from chat_client.domain.entities.notification import NotificationRecord
from chat_client.domain.value_objects.enums import NotificationPermission
from chat_client.services import notification_service

logger = logging.getLogger(__name__)


class NotificationReconciler:
    def __init__(
        self,
        store: LiveStore,
        user: CurrentUser,
        surface: NotificationSurface,
        *,
        auto_close_seconds: float | None = None,
        auto_read_delay_seconds: float | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._store = store
        self._user = user
        self._surface = surface
        self._auto_close = (
            settings.NOTIFICATION_AUTO_CLOSE_SECONDS if auto_close_seconds is None else auto_close_seconds
        )
        self._auto_read_delay = (
            settings.NOTIFICATION_AUTO_READ_DELAY_SECONDS
            if auto_read_delay_seconds is None
            else auto_read_delay_seconds
        )
        self._clock = clock or SystemClock()
        self._shown: set[str] = set()
        self._tasks: set[asyncio.Task[None]] = set()
        self._subscription: Subscription | None = None
        self.unread_count = 0

    @property
    def shown(self) -> frozenset[str]:
        return frozenset(self._shown)

    async def start(self) -> None:
        if self._subscription is None:
            self._subscription = await self._store.subscribe(
                paths.notifications(self._user.uid), self.apply_snapshot,
            )

    async def stop(self) -> None:
        if self._subscription is not None:
            await self._subscription.cancel()
            self._subscription = None
        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks.clear()
        self._shown.clear()

    async def apply_snapshot(self, snapshot: Any) -> None:
        candidates = [
            n for n in notification_service.decode_notifications(snapshot)
            if not n.read and n.sender_id != self._user.uid
        ]
        self.unread_count = len(candidates)
        candidates.sort(key=lambda n: n.created_at, reverse=True)

        for record in candidates:
            if self._surface.permission() != NotificationPermission.GRANTED:
                continue
            if record.id in self._shown:
                continue
            if self._surface.has_focus() and self._surface.is_visible():
                logger.debug("App in focus, not alerting for %s", record.id)
                continue
            try:
                self._display(record)
            except Exception:
                logger.exception("Error showing notification %s", record.id)

    def _tag(self, record: NotificationRecord) -> str:
        # Distinct per display so the OS never folds two messages into one slot.
        return f"chat-{record.chat_id or 'general'}-{record.id}-{self._clock.now_ms()}-{secrets.token_hex(4)}"

    def _display(self, record: NotificationRecord) -> None:
        holder: list[NotificationHandle] = []
        handle = self._surface.show(
            record.title or "New Message",
            body=record.body or "You have a new message",
            tag=self._tag(record),
            data={"id": record.id, "chatId": record.chat_id, "senderId": record.sender_id},
            on_click=lambda: self._on_click(record.id, holder),
        )
        holder.append(handle)
        self._shown.add(record.id)
        self._spawn(self._expire(record.id, handle))
        logger.info("Notification shown: %s", record.title)

    def _on_click(self, notification_id: str, holder: list[NotificationHandle]) -> None:
        self._surface.focus_window()
        for handle in holder:
            _close_quietly(handle)
        # Allows the record to alert again if it ever comes back unread.
        self._shown.discard(notification_id)
        self._spawn(self._mark_read(notification_id))

    async def _expire(self, notification_id: str, handle: NotificationHandle) -> None:
        await asyncio.sleep(self._auto_close)
        _close_quietly(handle)
        await asyncio.sleep(self._auto_read_delay)
        await self._mark_read(notification_id)

    async def _mark_read(self, notification_id: str) -> None:
        try:
            await notification_service.mark_notification_read(
                self._store, self._user.uid, notification_id,
            )
        except Exception:
            logger.exception("Failed to mark notification %s read", notification_id)

    def _spawn(self, coro: Any) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)


def _close_quietly(handle: NotificationHandle) -> None:
    try:
        handle.close()
    except Exception:
        logger.debug("Notification already closed", exc_info=True)
