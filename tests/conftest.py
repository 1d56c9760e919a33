"""Shared test fixtures."""
from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

import jwt
import pytest

from chat_client.application import paths
from chat_client.application.dto.session import CurrentUser
from chat_client.application.mappers import message as message_mapper
from chat_client.application.ports.auth import IdentityProviderError
from chat_client.domain.entities.conversation import ConversationRef
from chat_client.domain.entities.message import Message
from chat_client.domain.value_objects.enums import NotificationPermission
from chat_client.infrastructure.store.memory import InMemoryLiveStore
from chat_client.services.snapshot_decoder import decode_snapshot

T0 = 1_700_000_000_000
TEST_SECRET = "test-secret-for-id-tokens-0123456789"


class ManualClock:
    def __init__(self, now: int = T0) -> None:
        self.now = now

    def now_ms(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class RecordingStore(InMemoryLiveStore):
    """In-memory store that also keeps a log of every write call."""

    def __init__(self, clock: ManualClock | None = None) -> None:
        super().__init__(clock)
        self.calls: list[tuple[str, str]] = []
        self.fail_prefixes: tuple[str, ...] = ()

    def _check(self, op: str, path: str) -> None:
        self.calls.append((op, path))
        if self.fail_prefixes and path.startswith(self.fail_prefixes):
            raise RuntimeError(f"write to {path} rejected")

    async def set(self, path: str, value: Any) -> None:
        self._check("set", path)
        await super().set(path, value)

    async def update(self, path: str, values: Mapping[str, Any]) -> None:
        self._check("update", path)
        await super().update(path, values)

    async def remove(self, path: str) -> None:
        self._check("remove", path)
        await super().remove(path)

    async def push(self, path: str, value: Any) -> str:
        self._check("push", path)
        return await super().push(path, value)


class LaggyStore(RecordingStore):
    """Recording store whose writes yield to the loop before landing, like a networked backend."""

    def __init__(self, clock: ManualClock | None = None, *, latency: float = 0.01) -> None:
        super().__init__(clock)
        self.latency = latency

    async def set(self, path: str, value: Any) -> None:
        self._check("set", path)
        await asyncio.sleep(self.latency)
        await InMemoryLiveStore.set(self, path, value)

    async def remove(self, path: str) -> None:
        self._check("remove", path)
        await asyncio.sleep(self.latency)
        await InMemoryLiveStore.remove(self, path)

    async def on_disconnect_remove(self, path: str) -> None:
        await asyncio.sleep(self.latency)
        await super().on_disconnect_remove(path)


@dataclass
class FakeHandle:
    title: str
    body: str
    tag: str
    data: dict[str, Any]
    actions: list[dict[str, str]] | None = None
    on_click: Callable[[], None] | None = None
    closed: bool = False

    def close(self) -> None:
        self.closed = True

    def click(self) -> None:
        assert self.on_click is not None
        self.on_click()


@dataclass
class FakeSurface:
    granted: NotificationPermission = NotificationPermission.GRANTED
    answer: NotificationPermission = NotificationPermission.GRANTED
    focused: bool = False
    visible: bool = False
    shown: list[FakeHandle] = field(default_factory=list)
    focus_requests: int = 0
    permission_requests: int = 0
    fail_titles: set[str] = field(default_factory=set)

    def permission(self) -> NotificationPermission:
        return self.granted

    async def request_permission(self) -> NotificationPermission:
        self.permission_requests += 1
        self.granted = self.answer
        return self.granted

    def has_focus(self) -> bool:
        return self.focused

    def is_visible(self) -> bool:
        return self.visible

    def focus_window(self) -> None:
        self.focus_requests += 1

    def show(self, title, *, body, tag, data, actions=None, on_click=None) -> FakeHandle:
        if title in self.fail_titles:
            raise RuntimeError("notification area unavailable")
        handle = FakeHandle(title, body, tag, data, actions, on_click)
        self.shown.append(handle)
        return handle


@dataclass
class FakeTokenProvider:
    supported: bool = True
    token: str | None = "push-token-1"
    requested_keys: list[str] = field(default_factory=list)

    async def is_supported(self) -> bool:
        return self.supported

    async def get_token(self, public_key: str) -> str | None:
        self.requested_keys.append(public_key)
        return self.token


@dataclass
class FakeUploader:
    url: str = "https://res.cloudinary.com/demo/image/upload/v1/chat_app/cat.png"
    uploads: list[tuple[bytes, str, str]] = field(default_factory=list)

    async def upload(self, data: bytes, *, filename: str, content_type: str) -> str:
        self.uploads.append((data, filename, content_type))
        return self.url


def make_id_token(uid: str, *, email: str | None = None, name: str | None = None,
                  verified: bool = False, provider: str = "password") -> str:
    claims: dict[str, Any] = {
        "sub": uid,
        "email": email,
        "name": name,
        "email_verified": verified,
        "firebase": {"sign_in_provider": provider},
    }
    return jwt.encode(claims, TEST_SECRET, algorithm="HS256")


@dataclass
class FakeIdentityProvider:
    """Password accounts keyed by email; `errors` maps a method name to the error it raises."""

    accounts: dict[str, dict[str, Any]] = field(default_factory=dict)
    errors: dict[str, IdentityProviderError] = field(default_factory=dict)
    verification_sent: list[str] = field(default_factory=list)
    resets_sent: list[str] = field(default_factory=list)

    def _maybe_fail(self, method: str) -> None:
        if method in self.errors:
            raise self.errors[method]

    def _token(self, email: str) -> str:
        account = self.accounts[email]
        return make_id_token(
            account["uid"], email=email, name=account.get("name"), verified=account.get("verified", False),
        )

    async def create_user(self, email: str, password: str) -> str:
        self._maybe_fail("create_user")
        self.accounts[email] = {"uid": f"uid-{len(self.accounts) + 1}", "password": password}
        return self._token(email)

    async def sign_in(self, email: str, password: str) -> str:
        self._maybe_fail("sign_in")
        account = self.accounts.get(email)
        if account is None:
            raise IdentityProviderError("auth/user-not-found")
        if account["password"] != password:
            raise IdentityProviderError("auth/wrong-password")
        return self._token(email)

    async def sign_in_with_popup(self, provider: str) -> str:
        self._maybe_fail("sign_in_with_popup")
        return make_id_token("google-uid", email="g@example.com", name="Gina Google",
                             verified=True, provider="google.com")

    async def update_profile(self, id_token: str, *, display_name: str) -> str:
        self._maybe_fail("update_profile")
        uid = jwt.decode(id_token, TEST_SECRET, algorithms=["HS256"])["sub"]
        email = next(e for e, a in self.accounts.items() if a["uid"] == uid)
        self.accounts[email]["name"] = display_name
        return self._token(email)

    async def send_email_verification(self, id_token: str) -> None:
        self._maybe_fail("send_email_verification")
        self.verification_sent.append(id_token)

    async def send_password_reset(self, email: str) -> None:
        self._maybe_fail("send_password_reset")
        self.resets_sent.append(email)

    async def sign_out(self) -> None:
        pass


def make_user(uid: str = "alice", name: str | None = "Alice Smith", email: str | None = None) -> CurrentUser:
    return CurrentUser(uid=uid, email=email or f"{uid}@example.com", display_name=name, email_verified=True)


async def read_messages(store: InMemoryLiveStore, conversation: ConversationRef) -> list[Message]:
    snapshot = await store.get(paths.messages(conversation))
    return [message_mapper.record_to_entity(e) for e in decode_snapshot(snapshot)]


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def store(clock) -> RecordingStore:
    return RecordingStore(clock)


@pytest.fixture
def alice() -> CurrentUser:
    return make_user("alice", "Alice Smith")


@pytest.fixture
def bob() -> CurrentUser:
    return make_user("bob", "Bob Jones")


@pytest.fixture
def direct(alice, bob) -> ConversationRef:
    return ConversationRef.direct(alice.uid, bob.uid)


@pytest.fixture
def surface() -> FakeSurface:
    return FakeSurface()
