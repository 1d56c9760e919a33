from __future__ import annotations

import pytest

from chat_client.application.exceptions import ValidationError
from chat_client.application.ports.store import SERVER_TIMESTAMP
from chat_client.infrastructure.store import tree
from chat_client.infrastructure.store.memory import InMemoryLiveStore
from chat_client.infrastructure.store.push_keys import PUSH_CHARS, PushKeyGenerator
from chat_client.infrastructure.store.serializer import deserialize_change, serialize_change
from tests.conftest import T0, ManualClock


class Collector:
    def __init__(self) -> None:
        self.snapshots: list = []

    async def __call__(self, snapshot) -> None:
        self.snapshots.append(snapshot)

    @property
    def last(self):
        return self.snapshots[-1]


# -- tree helpers --------------------------------------------------------


def test_split_path_rejects_forbidden_characters():
    with pytest.raises(ValidationError):
        tree.split_path("users/a.b")
    assert tree.split_path("/users//alice/") == ["users", "alice"]


def test_is_related_covers_equal_above_and_below():
    assert tree.is_related("chats/c1", "chats/c1")
    assert tree.is_related("chats/c1", "chats/c1/messages/m1")
    assert tree.is_related("chats/c1/messages", "chats")
    assert not tree.is_related("chats/c1", "chats/c2")


def test_normalize_resolves_timestamps_and_prunes_empties():
    value = {
        "at": dict(SERVER_TIMESTAMP),
        "gone": None,
        "empty": {},
        "nested": {"inner": None},
        "items": ["a", "b"],
    }
    assert tree.normalize(value, 123) == {"at": 123, "items": {"0": "a", "1": "b"}}
    assert tree.normalize({"only": None}, 1) is None


def test_normalize_rejects_unsupported_values():
    with pytest.raises(ValidationError):
        tree.normalize({"when": object()}, 1)


def test_set_at_prunes_emptied_parents():
    data = {"a": {"b": {"c": 1}}, "keep": True}
    tree.set_at(data, ["a", "b", "c"], None)
    assert data == {"keep": True}


def test_flatten_and_unflatten_agree():
    value = {"m1": {"text": "hi", "readBy": {"bob": True}}}
    leaves = tree.flatten(value, "chats/c1")
    assert leaves == {"chats/c1/m1/text": "hi", "chats/c1/m1/readBy/bob": True}
    relative = {k[len("chats/c1/"):]: v for k, v in leaves.items()}
    assert tree.unflatten(relative) == value


# -- push keys -----------------------------------------------------------


def test_push_keys_sort_by_creation_time():
    clock = ManualClock()
    gen = PushKeyGenerator(clock)
    keys = []
    for step in range(5):
        keys.append(gen())
        keys.append(gen())  # same millisecond
        clock.advance(1 if step % 2 else 1000)
    assert keys == sorted(keys)
    assert len(set(keys)) == len(keys)
    assert all(len(k) == 20 and set(k) <= set(PUSH_CHARS) for k in keys)


# -- serializer ----------------------------------------------------------


def test_change_envelope():
    raw = serialize_change(["chats/c1/messages"])
    assert '"event": "store.changed"' in raw
    assert deserialize_change(raw) == ["chats/c1/messages"]


# -- in-memory store -----------------------------------------------------


@pytest.mark.asyncio
async def test_subscribe_delivers_current_value_immediately():
    store = InMemoryLiveStore(ManualClock())
    await store.set("chats/c1/messages/m1", {"text": "hi"})
    seen = Collector()

    await store.subscribe("chats/c1/messages", seen)

    assert seen.snapshots == [{"m1": {"text": "hi"}}]


@pytest.mark.asyncio
async def test_empty_path_delivers_none():
    store = InMemoryLiveStore(ManualClock())
    seen = Collector()
    await store.subscribe("chats/c1/messages", seen)
    assert seen.snapshots == [None]


@pytest.mark.asyncio
async def test_writes_below_deliver_full_subtree_to_writer_too():
    store = InMemoryLiveStore(ManualClock())
    seen = Collector()
    await store.subscribe("chats/c1/messages", seen)

    await store.set("chats/c1/messages/m1", {"text": "one"})
    await store.update("chats/c1/messages", {"m2/text": "two", "m1/edited": True})

    assert seen.last == {"m1": {"text": "one", "edited": True}, "m2": {"text": "two"}}
    assert len(seen.snapshots) == 3


@pytest.mark.asyncio
async def test_removing_an_ancestor_delivers_none():
    store = InMemoryLiveStore(ManualClock())
    await store.set("chats/c1/messages/m1", {"text": "one"})
    seen = Collector()
    await store.subscribe("chats/c1/messages", seen)

    await store.remove("chats/c1")

    assert seen.last is None


@pytest.mark.asyncio
async def test_unrelated_writes_are_not_delivered():
    store = InMemoryLiveStore(ManualClock())
    seen = Collector()
    await store.subscribe("chats/c1/messages", seen)

    await store.set("chats/c2/messages/m1", {"text": "elsewhere"})
    await store.set("chats/c1/typing/bob", {"userId": "bob"})

    assert seen.snapshots == [None]


@pytest.mark.asyncio
async def test_update_with_none_deletes_and_prunes():
    store = InMemoryLiveStore(ManualClock())
    await store.set("users/alice", {"fcmToken": "t", "online": True})

    await store.update("users/alice", {"fcmToken": None, "online": None})

    assert await store.get("users/alice") is None
    assert await store.get("users") is None


@pytest.mark.asyncio
async def test_server_timestamp_resolves_to_store_clock():
    clock = ManualClock()
    store = InMemoryLiveStore(clock)
    await store.set("users/alice/lastSeen", dict(SERVER_TIMESTAMP))
    assert await store.get("users/alice/lastSeen") == T0


@pytest.mark.asyncio
async def test_push_appends_in_creation_order():
    clock = ManualClock()
    store = InMemoryLiveStore(clock)
    first = await store.push("groups", {"name": "a"})
    clock.advance(5)
    second = await store.push("groups", {"name": "b"})
    assert first < second
    assert list((await store.get("groups")).keys()) == [first, second]


@pytest.mark.asyncio
async def test_get_returns_a_copy():
    store = InMemoryLiveStore(ManualClock())
    await store.set("users/alice", {"name": "Alice"})
    value = await store.get("users/alice")
    value["name"] = "Mallory"
    assert await store.get("users/alice/name") == "Alice"


@pytest.mark.asyncio
async def test_cancelled_subscription_stops_receiving():
    store = InMemoryLiveStore(ManualClock())
    seen = Collector()
    sub = await store.subscribe("chats/c1", seen)
    await sub.cancel()
    await store.set("chats/c1/lastMessage", "hi")
    assert seen.snapshots == [None]


@pytest.mark.asyncio
async def test_failing_callback_does_not_starve_other_subscribers():
    store = InMemoryLiveStore(ManualClock())

    async def broken(_snapshot) -> None:
        raise RuntimeError("boom")

    await store.subscribe("chats/c1", broken)
    seen = Collector()
    await store.subscribe("chats/c1", seen)

    await store.set("chats/c1/lastMessage", "hi")

    assert seen.last == {"lastMessage": "hi"}


@pytest.mark.asyncio
async def test_disconnect_runs_pending_writes_unless_cancelled():
    store = InMemoryLiveStore(ManualClock())
    await store.set("users/alice/online", True)
    await store.set("chats/c1/typing/alice", {"userId": "alice"})
    await store.on_disconnect_set("users/alice/online", False)
    await store.on_disconnect_remove("chats/c1/typing/alice")
    await store.on_disconnect_set("users/alice/lastSeen", dict(SERVER_TIMESTAMP))
    await store.cancel_on_disconnect("users/alice/lastSeen")
    seen = Collector()
    await store.subscribe("users/alice", seen)

    await store.disconnect()

    assert await store.get("users/alice") == {"online": False}
    assert await store.get("chats/c1/typing") is None
    assert seen.last == {"online": False}
    # Subscriptions are gone after the disconnect.
    await store.set("users/alice/online", True)
    assert len(seen.snapshots) == 2
