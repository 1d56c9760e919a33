"""Push-token lifecycle for one signed-in session."""
from __future__ import annotations

import logging

from chat_client.application import paths
from chat_client.application.dto.session import CurrentUser
from chat_client.application.ports.clock import Clock, SystemClock
from chat_client.application.ports.notifier import NotificationSurface
from chat_client.application.ports.push import PushTokenProvider
from chat_client.application.ports.store import LiveStore
from chat_client.config import settings
from chat_client.domain.value_objects.enums import NotificationPermission, PushState

logger = logging.getLogger(__name__)


class PushRegistration:
    def __init__(
        self,
        store: LiveStore,
        user: CurrentUser,
        surface: NotificationSurface,
        provider: PushTokenProvider,
        *,
        public_key: str | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._store = store
        self._user = user
        self._surface = surface
        self._provider = provider
        self._public_key = settings.PUSH_PUBLIC_KEY if public_key is None else public_key
        self._clock = clock or SystemClock()
        self.state = PushState.UNINITIALIZED
        self.token: str | None = None

    async def init(self) -> bool:
        if self.state in (PushState.READY, PushState.REGISTERED):
            return True
        if not await self._provider.is_supported():
            logger.info("Push delivery not supported here")
            self.state = PushState.UNSUPPORTED
            return False
        self.state = PushState.READY
        return True

    async def request_permission(self) -> str | None:
        """Ask for permission if still undecided and register a token when granted."""
        if not await self.init():
            return None
        permission = self._surface.permission()
        if permission == NotificationPermission.DENIED:
            logger.info("Notification permission was previously denied")
            return None
        if permission == NotificationPermission.DEFAULT:
            permission = await self._surface.request_permission()
        if permission != NotificationPermission.GRANTED:
            return None
        return await self.register_token()

    async def register_token(self) -> str | None:
        if self.state == PushState.UNINITIALIZED and not await self.init():
            return None
        if self.state == PushState.UNSUPPORTED:
            return None
        token = await self._provider.get_token(self._public_key)
        if not token:
            logger.info("No push token available")
            return None

        now = self._clock.now_ms()
        await self._store.set(paths.push_token(self._user.uid), token)
        await self._store.set(
            paths.push_token_metadata(self._user.uid),
            {
                "userId": self._user.uid,
                "email": self._user.email,
                "createdAt": now,
                "updatedAt": now,
                "platform": "web",
            },
        )
        self.token = token
        self.state = PushState.REGISTERED
        logger.info("Push token saved for %s", self._user.uid)
        return token

    async def teardown(self) -> None:
        if self.state == PushState.REGISTERED:
            try:
                await self._store.remove(paths.push_token(self._user.uid))
                await self._store.remove(paths.push_token_metadata(self._user.uid))
                logger.info("Push token deleted for %s", self._user.uid)
            except Exception:
                logger.exception("Failed to delete push token for %s", self._user.uid)
        self.token = None
        self.state = PushState.UNINITIALIZED
