from __future__ import annotations

from typing import Any, Awaitable, Callable, Mapping, Protocol

SnapshotCallback = Callable[[Any], Awaitable[None]]

# Placeholder resolved by the store to its own clock at write time.
SERVER_TIMESTAMP: Mapping[str, str] = {".sv": "timestamp"}


class Subscription(Protocol):
    async def cancel(self) -> None: ...


class LiveStore(Protocol):
    """Hierarchical key-value store pushing full subtree snapshots to subscribers."""

    async def get(self, path: str) -> Any: ...

    async def set(self, path: str, value: Any) -> None: ...

    async def update(self, path: str, values: Mapping[str, Any]) -> None:
        """Write several children at once. Keys may be nested paths; None deletes."""
        ...

    async def remove(self, path: str) -> None: ...

    async def push(self, path: str, value: Any) -> str:
        """Append under a generated, time-ordered key and return the key."""
        ...

    async def subscribe(self, path: str, callback: SnapshotCallback) -> Subscription: ...

    async def on_disconnect_set(self, path: str, value: Any) -> None: ...

    async def on_disconnect_remove(self, path: str) -> None: ...

    async def cancel_on_disconnect(self, path: str) -> None: ...
