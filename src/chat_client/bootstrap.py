"""Wire a ChatSession from settings."""
from __future__ import annotations

from chat_client.application.dto.session import CurrentUser
from chat_client.application.ports.clock import Clock
from chat_client.application.ports.notifier import NotificationSurface
from chat_client.application.ports.push import PushTokenProvider
from chat_client.application.ports.store import LiveStore
from chat_client.infrastructure.store.factory import build_store
from chat_client.infrastructure.uploads.factory import build_uploader
from chat_client.services.session import ChatSession


def open_session(
    user: CurrentUser,
    surface: NotificationSurface,
    token_provider: PushTokenProvider,
    *,
    store: LiveStore | None = None,
    clock: Clock | None = None,
) -> ChatSession:
    return ChatSession(
        store if store is not None else build_store(clock=clock),
        user,
        surface,
        token_provider,
        uploader=build_uploader(),
        clock=clock,
    )
