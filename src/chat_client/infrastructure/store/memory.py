"""Single-process live store. Writes echo synchronously to every matching subscriber."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping

from chat_client.application.ports.clock import Clock, SystemClock
from chat_client.application.ports.store import SnapshotCallback
from chat_client.infrastructure.store import tree
from chat_client.infrastructure.store.push_keys import PushKeyGenerator

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class _MemorySubscription:
    store: InMemoryLiveStore
    path: str
    callback: SnapshotCallback
    active: bool = field(default=True)

    async def cancel(self) -> None:
        if self.active:
            self.active = False
            self.store._subscriptions.discard(self)
            logger.debug("Subscription cancelled: %s", self.path)


class InMemoryLiveStore:
    """Implements application.ports.store.LiveStore."""

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock = clock or SystemClock()
        self._data: dict[str, Any] = {}
        self._subscriptions: set[_MemorySubscription] = set()
        self._on_disconnect: dict[str, Any] = {}
        self._push_key = PushKeyGenerator(self._clock)

    async def get(self, path: str) -> Any:
        return tree.get_at(self._data, tree.split_path(path))

    async def set(self, path: str, value: Any) -> None:
        await self._write({path: value})

    async def update(self, path: str, values: Mapping[str, Any]) -> None:
        await self._write({tree.join_path(path, key): value for key, value in values.items()})

    async def remove(self, path: str) -> None:
        await self._write({path: None})

    async def push(self, path: str, value: Any) -> str:
        key = self._push_key()
        await self._write({tree.join_path(path, key): value})
        return key

    async def subscribe(self, path: str, callback: SnapshotCallback) -> _MemorySubscription:
        sub = _MemorySubscription(self, path, callback)
        self._subscriptions.add(sub)
        logger.debug("Subscribed to %s", path)
        await self._deliver(sub)
        return sub

    async def on_disconnect_set(self, path: str, value: Any) -> None:
        self._on_disconnect[path] = value

    async def on_disconnect_remove(self, path: str) -> None:
        self._on_disconnect[path] = None

    async def cancel_on_disconnect(self, path: str) -> None:
        self._on_disconnect.pop(path, None)

    async def disconnect(self) -> None:
        """Drop the connection: run deferred writes and forget subscribers."""
        pending, self._on_disconnect = self._on_disconnect, {}
        if pending:
            await self._write(pending)
        for sub in list(self._subscriptions):
            await sub.cancel()

    async def _write(self, writes: Mapping[str, Any]) -> None:
        now = self._clock.now_ms()
        for path, value in writes.items():
            tree.set_at(self._data, tree.split_path(path), tree.normalize(value, now))
        logger.debug("Wrote %s", list(writes))

        changed = list(writes)
        for sub in list(self._subscriptions):
            if any(tree.is_related(sub.path, path) for path in changed):
                await self._deliver(sub)

    async def _deliver(self, sub: _MemorySubscription) -> None:
        if not sub.active:
            return
        try:
            await sub.callback(await self.get(sub.path))
        except Exception:
            logger.exception("Error delivering snapshot for %s", sub.path)
