"""One signed-in user's live session.

Everything that used to hang off process-wide singletons (push token,
shown-notification set, per-conversation listeners) is owned here and torn
down in ``close()``.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from types import TracebackType

from chat_client.application.dto.session import CurrentUser
from chat_client.application.ports.clock import Clock, SystemClock
from chat_client.application.ports.notifier import NotificationSurface
from chat_client.application.ports.push import PushTokenProvider
from chat_client.application.ports.store import LiveStore
from chat_client.application.ports.uploads import ImageUploader
from chat_client.domain.entities.conversation import ConversationRef
from chat_client.domain.value_objects.enums import NotificationPermission
from chat_client.services import presence_service
from chat_client.services.notification_reconciler import NotificationReconciler
from chat_client.services.push_registration import PushRegistration
from chat_client.services.timeline import MessageTimeline
from chat_client.services.typing_service import TypingDebouncer, TypingWatcher

logger = logging.getLogger(__name__)


@dataclass
class ConversationView:
    timeline: MessageTimeline
    typing: TypingDebouncer
    typists: TypingWatcher

    @property
    def conversation(self) -> ConversationRef:
        return self.timeline.conversation

    async def start(self) -> None:
        await self.timeline.start()
        await self.typists.start()

    async def close(self) -> None:
        await self.typing.close()
        await self.typists.stop()
        await self.timeline.stop()


class ChatSession:
    def __init__(
        self,
        store: LiveStore,
        user: CurrentUser,
        surface: NotificationSurface,
        token_provider: PushTokenProvider,
        *,
        uploader: ImageUploader | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._store = store
        self._user = user
        self._surface = surface
        self._uploader = uploader
        self._clock = clock or SystemClock()
        self.push = PushRegistration(store, user, surface, token_provider, clock=self._clock)
        self.notifications = NotificationReconciler(store, user, surface, clock=self._clock)
        self._view: ConversationView | None = None
        self._started = False

    @property
    def user(self) -> CurrentUser:
        return self._user

    @property
    def store(self) -> LiveStore:
        return self._store

    @property
    def uploader(self) -> ImageUploader | None:
        return self._uploader

    @property
    def view(self) -> ConversationView | None:
        return self._view

    async def start(self) -> None:
        if self._started:
            return
        await presence_service.go_online(self._store, self._user)
        # Only register silently; asking for permission needs a user gesture.
        if await self.push.init() and self._surface.permission() == NotificationPermission.GRANTED:
            await self.push.register_token()
        await self.notifications.start()
        self._started = True
        logger.info("Session started for %s", self._user.uid)

    async def open_conversation(self, conversation: ConversationRef) -> ConversationView:
        """Switch the active conversation; the previous view's listeners are dropped first."""
        await self.close_conversation()
        view = ConversationView(
            timeline=MessageTimeline(
                self._store, conversation, self._user, clock=self._clock,
            ),
            typing=TypingDebouncer(self._store, conversation, self._user, clock=self._clock),
            typists=TypingWatcher(self._store, conversation, self._user, clock=self._clock),
        )
        await view.start()
        self._view = view
        logger.debug("Opened conversation %s", conversation.id)
        return view

    async def close_conversation(self) -> None:
        if self._view is not None:
            view, self._view = self._view, None
            await view.close()

    async def close(self) -> None:
        if not self._started:
            return
        self._started = False
        await self.close_conversation()
        await self.notifications.stop()
        await self.push.teardown()
        try:
            await presence_service.go_offline(self._store, self._user)
        except Exception:
            logger.exception("Failed to mark %s offline", self._user.uid)
        logger.info("Session closed for %s", self._user.uid)

    async def __aenter__(self) -> ChatSession:
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()
