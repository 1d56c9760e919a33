"""Redis-backed live store.

Leaves live in one hash (``<prefix>:tree``, leaf path -> JSON scalar) and a
sorted set (``<prefix>:index``, all scores 0) that makes subtree reads a
lexicographic range query. Every write publishes the touched paths on a
Pub/Sub channel; each client's listener task re-reads the subscriptions
those paths affect and hands them the fresh snapshot, the writer included.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Mapping

import redis.asyncio as aioredis

from chat_client.application.exceptions import CollaboratorUnavailableError
from chat_client.application.ports.clock import Clock, SystemClock
from chat_client.application.ports.store import SnapshotCallback
from chat_client.infrastructure.store import tree
from chat_client.infrastructure.store.push_keys import PushKeyGenerator
from chat_client.infrastructure.store.serializer import (
    decode_leaf,
    deserialize_change,
    encode_leaf,
    serialize_change,
)

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class _RedisSubscription:
    store: RedisLiveStore
    path: str
    callback: SnapshotCallback
    active: bool = field(default=True)

    async def cancel(self) -> None:
        if self.active:
            self.active = False
            self.store._subscriptions.discard(self)
            logger.debug("Subscription cancelled: %s", self.path)


class RedisLiveStore:
    """Implements application.ports.store.LiveStore."""

    def __init__(
        self,
        redis: aioredis.Redis,
        *,
        prefix: str = "chat",
        channel: str = "chat.store.changes",
        clock: Clock | None = None,
    ) -> None:
        self._redis = redis
        self._tree_key = f"{prefix}:tree"
        self._index_key = f"{prefix}:index"
        self._channel = channel
        self._clock = clock or SystemClock()
        self._push_key = PushKeyGenerator(self._clock)
        self._subscriptions: set[_RedisSubscription] = set()
        self._on_disconnect: dict[str, Any] = {}
        self._task: asyncio.Task[None] | None = None
        self._listener_lock = asyncio.Lock()

    # -- reads ---------------------------------------------------------

    async def get(self, path: str) -> Any:
        try:
            return await self._read(path)
        except aioredis.RedisError as exc:
            raise CollaboratorUnavailableError(f"Store read failed: {exc}") from exc

    async def _read(self, path: str) -> Any:
        base = tree.join_path(*tree.split_path(path))
        if base:
            exact = await self._redis.hget(self._tree_key, base)
            if exact is not None:
                return decode_leaf(exact)

        leaves = await self._leaf_paths_under(base)
        if not leaves:
            return None
        values = await self._redis.hmget(self._tree_key, leaves)
        offset = len(base) + 1 if base else 0
        relative = {
            leaf[offset:]: decode_leaf(raw)
            for leaf, raw in zip(leaves, values)
            if raw is not None
        }
        return tree.unflatten(relative) if relative else None

    async def _leaf_paths_under(self, base: str) -> list[str]:
        if not base:
            return await self._redis.zrangebylex(self._index_key, "-", "+")
        # "0" sorts right after "/", so this range is exactly the "<base>/" prefix.
        return await self._redis.zrangebylex(self._index_key, f"[{base}/", f"({base}0")

    # -- writes --------------------------------------------------------

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

    async def _write(self, writes: Mapping[str, Any]) -> None:
        try:
            changed = await self._apply(writes)
        except aioredis.RedisError as exc:
            raise CollaboratorUnavailableError(f"Store write failed: {exc}") from exc
        logger.debug("Wrote %s", changed)

    async def _apply(self, writes: Mapping[str, Any]) -> list[str]:
        now = self._clock.now_ms()
        drop: set[str] = set()
        new: dict[str, str] = {}
        changed: list[str] = []
        for path, value in writes.items():
            segments = tree.split_path(path)
            base = tree.join_path(*segments)
            changed.append(base)
            drop.update(await self._leaf_paths_under(base))
            # The target and any ancestor may currently be a scalar leaf.
            for depth in range(1, len(segments) + 1):
                drop.add(tree.join_path(*segments[:depth]))
            for leaf, scalar in tree.flatten(tree.normalize(value, now), base).items():
                new[leaf] = encode_leaf(scalar)

        async with self._redis.pipeline(transaction=True) as pipe:
            if drop:
                pipe.hdel(self._tree_key, *drop)
                pipe.zrem(self._index_key, *drop)
            if new:
                pipe.hset(self._tree_key, mapping=new)
                pipe.zadd(self._index_key, {leaf: 0 for leaf in new})
            pipe.publish(self._channel, serialize_change(changed))
            await pipe.execute()
        return changed

    # -- subscriptions -------------------------------------------------

    async def subscribe(self, path: str, callback: SnapshotCallback) -> _RedisSubscription:
        await self._ensure_listener()
        sub = _RedisSubscription(self, path, callback)
        self._subscriptions.add(sub)
        logger.debug("Subscribed to %s", path)
        await self._deliver(sub)
        return sub

    async def _ensure_listener(self) -> None:
        async with self._listener_lock:
            if self._task is not None:
                return
            pubsub = self._redis.pubsub()
            try:
                await pubsub.subscribe(self._channel)
            except aioredis.RedisError as exc:
                await pubsub.aclose()
                raise CollaboratorUnavailableError(f"Store subscribe failed: {exc}") from exc
            self._task = asyncio.create_task(self._listen(pubsub), name="live-store-listener")
            self._task.add_done_callback(self._listener_done)
            logger.info("Live store listener started on channel=%s", self._channel)

    def _listener_done(self, task: asyncio.Task[None]) -> None:
        if self._task is task:
            self._task = None
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Live store listener died; next subscribe restarts it", exc_info=exc)

    async def _listen(self, pubsub: aioredis.client.PubSub) -> None:
        try:
            async for message in pubsub.listen():
                if message["type"] != "message":
                    continue
                try:
                    await self._dispatch(deserialize_change(message["data"]))
                except Exception:
                    logger.exception("Error processing store change")
        finally:
            try:
                await pubsub.unsubscribe(self._channel)
            except aioredis.RedisError:
                logger.debug("Unsubscribe failed on a dead connection")
            await pubsub.aclose()

    async def _dispatch(self, changed: list[str]) -> None:
        for sub in list(self._subscriptions):
            if any(tree.is_related(sub.path, path) for path in changed):
                await self._deliver(sub)

    async def _deliver(self, sub: _RedisSubscription) -> None:
        if not sub.active:
            return
        try:
            await sub.callback(await self.get(sub.path))
        except Exception:
            logger.exception("Error delivering snapshot for %s", sub.path)

    # -- disconnect ----------------------------------------------------

    async def on_disconnect_set(self, path: str, value: Any) -> None:
        self._on_disconnect[path] = value

    async def on_disconnect_remove(self, path: str) -> None:
        self._on_disconnect[path] = None

    async def cancel_on_disconnect(self, path: str) -> None:
        self._on_disconnect.pop(path, None)

    async def disconnect(self) -> None:
        """Best effort: deferred writes only run when the client closes cleanly."""
        pending, self._on_disconnect = self._on_disconnect, {}
        if pending:
            try:
                await self._write(pending)
            except Exception:
                logger.exception("On-disconnect writes failed")
        for sub in list(self._subscriptions):
            await sub.cancel()
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
            logger.info("Live store listener stopped")
