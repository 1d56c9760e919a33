"""Typing presence: the debouncer writes our own signal, the watcher reads peers'."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Mapping

from chat_client.application import paths
from chat_client.application.dto.session import CurrentUser
from chat_client.application.exceptions import MalformedRecordError
from chat_client.application.mappers import typing_signal as mapper
from chat_client.application.ports.clock import Clock, SystemClock
from chat_client.application.ports.store import LiveStore, Subscription
from chat_client.config import settings
from chat_client.domain.entities.conversation import ConversationRef
from chat_client.domain.entities.typing_signal import TypingSignal
from chat_client.domain.value_objects.enums import TypingState

logger = logging.getLogger(__name__)


class TypingDebouncer:
    """IDLE -> TYPING on a keystroke with text; back to IDLE after a quiet
    period, on send, or on close. Only the two edges write to the store.

    The state flips before the write is awaited, so keystrokes that land
    while the first write is in flight only push the deadline back. Edge
    writes are serialized: a clear never overtakes the set it follows.
    """

    def __init__(
        self,
        store: LiveStore,
        conversation: ConversationRef,
        user: CurrentUser,
        *,
        idle_seconds: float | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._store = store
        self._path = paths.typing_signal(conversation, user.uid)
        self._user = user
        self._idle_seconds = settings.TYPING_IDLE_SECONDS if idle_seconds is None else idle_seconds
        self._clock = clock or SystemClock()
        self._state = TypingState.IDLE
        self._timer: asyncio.Task[None] | None = None
        self._writes = asyncio.Lock()

    @property
    def state(self) -> TypingState:
        return self._state

    async def keystroke(self, value: str) -> None:
        """Feed the current input value after every change."""
        if self._state == TypingState.TYPING:
            self._arm_timer()
            return
        if not value:
            return
        self._state = TypingState.TYPING
        self._arm_timer()
        async with self._writes:
            if self._state != TypingState.TYPING:
                return
            try:
                await self._store.set(self._path, mapper.new_record(self._user, self._clock.now_ms()))
                await self._store.on_disconnect_remove(self._path)
            except Exception:
                if self._state == TypingState.TYPING:
                    self._state = TypingState.IDLE
                    self._cancel_timer()
                raise
        logger.debug("Typing started: %s", self._path)

    async def message_sent(self) -> None:
        await self._go_idle()

    async def close(self) -> None:
        await self._go_idle()

    async def _idle_after_quiet(self) -> None:
        await asyncio.sleep(self._idle_seconds)
        self._timer = None
        await self._go_idle()

    async def _go_idle(self) -> None:
        self._cancel_timer()
        if self._state != TypingState.TYPING:
            return
        self._state = TypingState.IDLE
        async with self._writes:
            logger.debug("Typing stopped: %s", self._path)
            try:
                await self._store.remove(self._path)
                await self._store.cancel_on_disconnect(self._path)
            except Exception:
                logger.exception("Failed to clear typing signal %s", self._path)

    def _arm_timer(self) -> None:
        self._cancel_timer()
        self._timer = asyncio.get_running_loop().create_task(self._idle_after_quiet())

    def _cancel_timer(self) -> None:
        timer, self._timer = self._timer, None
        if timer is not None and timer is not asyncio.current_task():
            timer.cancel()


TypingListener = Callable[[list[TypingSignal]], None]


class TypingWatcher:
    """Peers currently typing in one conversation.

    Signals older than the stale window are ignored, which covers peers that
    dropped without clearing their record. An expiry timer re-evaluates the
    set when the oldest signal goes stale, so listeners hear about it even if
    no further snapshot arrives.
    """

    def __init__(
        self,
        store: LiveStore,
        conversation: ConversationRef,
        user: CurrentUser,
        *,
        stale_seconds: float | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._store = store
        self._conversation = conversation
        self._user = user
        self._stale_ms = int(
            (settings.TYPING_STALE_SECONDS if stale_seconds is None else stale_seconds) * 1000
        )
        self._clock = clock or SystemClock()
        self._signals: dict[str, TypingSignal] = {}
        self._listeners: list[TypingListener] = []
        self._subscription: Subscription | None = None
        self._expiry: asyncio.Task[None] | None = None
        self._notified: list[str] = []

    def add_listener(self, listener: TypingListener) -> None:
        self._listeners.append(listener)

    async def start(self) -> None:
        if self._subscription is None:
            self._subscription = await self._store.subscribe(
                paths.typing(self._conversation), self.apply_snapshot,
            )

    async def stop(self) -> None:
        if self._subscription is not None:
            await self._subscription.cancel()
            self._subscription = None
        self._cancel_expiry()
        self._signals = {}
        self._notified = []

    async def apply_snapshot(self, snapshot: Any) -> None:
        signals: dict[str, TypingSignal] = {}
        if isinstance(snapshot, Mapping):
            for uid, record in snapshot.items():
                if uid == self._user.uid or not record:
                    continue
                try:
                    signals[uid] = mapper.record_to_entity(uid, record)
                except MalformedRecordError:
                    logger.warning("Skipping malformed typing signal for %s", uid)
        self._signals = signals
        self._notify(self.typists())
        self._schedule_expiry()

    def typists(self) -> list[TypingSignal]:
        cutoff = self._clock.now_ms() - self._stale_ms
        fresh = [s for s in self._signals.values() if s.timestamp >= cutoff]
        return sorted(fresh, key=lambda s: (s.timestamp, s.user_id))

    def display_text(self) -> str | None:
        return typing_display_text(self.typists())

    def _notify(self, typists: list[TypingSignal]) -> None:
        self._notified = [s.user_id for s in typists]
        for listener in list(self._listeners):
            try:
                listener(typists)
            except Exception:
                logger.exception("Typing listener failed")

    def _schedule_expiry(self) -> None:
        self._cancel_expiry()
        typists = self.typists()
        if not typists:
            return
        deadline = min(s.timestamp for s in typists) + self._stale_ms
        delay = (max(deadline - self._clock.now_ms(), 0) + 1) / 1000
        self._expiry = asyncio.get_running_loop().create_task(self._expire_after(delay))

    async def _expire_after(self, delay: float) -> None:
        await asyncio.sleep(delay)
        self._expiry = None
        typists = self.typists()
        if [s.user_id for s in typists] != self._notified:
            logger.debug("Typing signal expired in %s", self._conversation.id)
            self._notify(typists)
        self._schedule_expiry()

    def _cancel_expiry(self) -> None:
        expiry, self._expiry = self._expiry, None
        if expiry is not None and expiry is not asyncio.current_task():
            expiry.cancel()


def typing_display_text(typists: list[TypingSignal]) -> str | None:
    if not typists:
        return None
    names = [s.first_name for s in typists[:2]]
    extra = len(typists) - len(names)
    if extra > 0:
        return f"{names[0]}, {names[1]} and +{extra} more are typing..."
    if len(names) == 2:
        return f"{names[0]} and {names[1]} are typing..."
    return f"{names[0]} is typing..."
