from __future__ import annotations

import asyncio

import pytest

import cloudinary.uploader
from redis.exceptions import ConnectionError as RedisConnectionError

from chat_client import bootstrap
from chat_client.application.exceptions import CollaboratorUnavailableError, UploadFailedError
from chat_client.config import Settings
from chat_client.domain.value_objects.enums import NotificationPermission
from chat_client.infrastructure.notify.log_surface import LoggingNotificationSurface
from chat_client.infrastructure.store import factory
from chat_client.infrastructure.store.memory import InMemoryLiveStore
from chat_client.infrastructure.store.redis_store import RedisLiveStore
from chat_client.infrastructure.uploads import factory as upload_factory
from chat_client.infrastructure.uploads.cloudinary_uploader import CloudinaryImageUploader
from tests.conftest import FakeSurface, FakeTokenProvider, make_user


@pytest.mark.asyncio
async def test_cloudinary_uploader_uses_unsigned_preset(monkeypatch):
    calls = []

    def fake_upload(data, preset, **options):
        calls.append((data, preset, options))
        return {"secure_url": "https://res.cloudinary.com/demo/image/upload/v1/chat_app/x.png"}

    monkeypatch.setattr(cloudinary.uploader, "unsigned_upload", fake_upload)
    uploader = CloudinaryImageUploader("demo", "chat_preset")

    url = await uploader.upload(b"png", filename="x.png", content_type="image/png")

    assert url.endswith("/x.png")
    [(data, preset, options)] = calls
    assert data == b"png" and preset == "chat_preset"
    assert options["folder"] == "chat_app/"
    assert options["cloud_name"] == "demo"


@pytest.mark.asyncio
async def test_cloudinary_failures_become_upload_errors(monkeypatch):
    def broken(*_args, **_kwargs):
        raise RuntimeError("401 Unauthorized")

    monkeypatch.setattr(cloudinary.uploader, "unsigned_upload", broken)
    uploader = CloudinaryImageUploader("demo", "chat_preset")

    with pytest.raises(UploadFailedError, match="401"):
        await uploader.upload(b"png", filename="x.png", content_type="image/png")

    monkeypatch.setattr(cloudinary.uploader, "unsigned_upload", lambda *a, **k: {})
    with pytest.raises(UploadFailedError):
        await uploader.upload(b"png", filename="x.png", content_type="image/png")


def test_cloudinary_uploader_requires_configuration():
    with pytest.raises(ValueError):
        CloudinaryImageUploader("", "")


@pytest.mark.asyncio
async def test_logging_surface_records_notifications():
    surface = LoggingNotificationSurface(NotificationPermission.DEFAULT)
    assert await surface.request_permission() == NotificationPermission.GRANTED
    clicked = []

    handle = surface.show("Title", body="Body", tag="t1", data={}, on_click=lambda: clicked.append(1))
    handle.click()
    handle.close()

    assert surface.shown == [handle]
    assert handle.closed and clicked == [1]
    assert not surface.has_focus()


def test_build_store_follows_settings(monkeypatch):
    monkeypatch.setattr(factory, "settings", Settings(STORE_BACKEND="memory"))
    assert isinstance(factory.build_store(), InMemoryLiveStore)

    monkeypatch.setattr(factory, "settings", Settings(STORE_BACKEND="redis", STORE_KEY_PREFIX="t"))
    store = factory.build_store()
    assert isinstance(store, RedisLiveStore)
    assert store._tree_key == "t:tree"


def test_build_uploader_follows_settings(monkeypatch):
    monkeypatch.setattr(upload_factory, "settings", Settings(CLOUDINARY_CLOUD_NAME=""))
    assert upload_factory.build_uploader() is None

    monkeypatch.setattr(
        upload_factory,
        "settings",
        Settings(CLOUDINARY_CLOUD_NAME="demo", CLOUDINARY_UPLOAD_PRESET="p", CLOUDINARY_FOLDER="pics/"),
    )
    uploader = upload_factory.build_uploader()
    assert isinstance(uploader, CloudinaryImageUploader)
    assert uploader._folder == "pics/"


def test_open_session_wires_store_and_uploader(monkeypatch):
    monkeypatch.setattr(factory, "settings", Settings(STORE_BACKEND="memory"))
    monkeypatch.setattr(
        upload_factory,
        "settings",
        Settings(CLOUDINARY_CLOUD_NAME="demo", CLOUDINARY_UPLOAD_PRESET="p"),
    )

    session = bootstrap.open_session(make_user(), FakeSurface(), FakeTokenProvider())

    assert isinstance(session.store, InMemoryLiveStore)
    assert isinstance(session.uploader, CloudinaryImageUploader)


class _PubSub:
    def __init__(self, *, refuse: bool = False, drop: bool = False) -> None:
        self.refuse = refuse
        self.drop = drop
        self.closed = False

    async def subscribe(self, *channels):
        if self.refuse:
            raise RedisConnectionError("Error 111 connecting to 127.0.0.1:1. Connection refused.")

    async def listen(self):
        if self.drop:
            raise RedisConnectionError("Connection closed by server.")
        await asyncio.Event().wait()
        yield {}

    async def unsubscribe(self, *channels):
        if self.drop:
            raise RedisConnectionError("Connection closed by server.")

    async def aclose(self):
        self.closed = True


class _Redis:
    """Just enough of redis.asyncio.Redis for subscribe() against an empty tree."""

    def __init__(self, *pubsubs: _PubSub) -> None:
        self._pubsubs = list(pubsubs)
        self.opened: list[_PubSub] = []

    def pubsub(self) -> _PubSub:
        pubsub = self._pubsubs.pop(0)
        self.opened.append(pubsub)
        return pubsub

    async def hget(self, key, field):
        return None

    async def zrangebylex(self, key, lo, hi):
        return []


async def _noop(snapshot) -> None:
    return None


@pytest.mark.asyncio
async def test_redis_subscribe_fails_fast_when_server_unreachable():
    redis = _Redis(_PubSub(refuse=True))
    store = RedisLiveStore(redis)

    with pytest.raises(CollaboratorUnavailableError, match="Connection refused"):
        await asyncio.wait_for(store.subscribe("chats", _noop), 1)

    assert redis.opened[0].closed
    assert store._task is None


@pytest.mark.asyncio
async def test_redis_listener_death_is_logged_and_restarted(caplog):
    redis = _Redis(_PubSub(drop=True), _PubSub())
    store = RedisLiveStore(redis)

    await store.subscribe("chats", _noop)
    for _ in range(5):
        await asyncio.sleep(0)

    assert store._task is None
    assert redis.opened[0].closed
    assert "listener died" in caplog.text

    await store.subscribe("chats", _noop)
    assert store._task is not None
    await store.disconnect()
    assert store._task is None
