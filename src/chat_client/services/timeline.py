from __future__ import annotations

import logging
from typing import Any, Callable

from chat_client.application import paths
from chat_client.application.dto.message import SentMessageDTO, VoiceClipDTO
from chat_client.application.dto.session import CurrentUser
from chat_client.application.exceptions import ConflictError, MalformedRecordError
from chat_client.application.mappers import message as mapper
from chat_client.application.policies.permissions import assert_message_exists
from chat_client.application.ports.clock import Clock, SystemClock
from chat_client.application.ports.store import LiveStore, Subscription
from chat_client.application.ports.uploads import ImageUploader
from chat_client.domain.entities.conversation import ConversationRef
from chat_client.domain.entities.message import Message
from chat_client.domain.value_objects.enums import UploadState
from chat_client.services import message_service
from chat_client.services.snapshot_decoder import decode_snapshot

logger = logging.getLogger(__name__)

TimelineListener = Callable[["MessageTimeline"], None]


class MessageTimeline:
    """Ordered message view of one conversation, rebuilt from every snapshot.

    Write methods go straight to the store; the list only changes when the
    store pushes the resulting snapshot back.
    """

    def __init__(
        self,
        store: LiveStore,
        conversation: ConversationRef,
        user: CurrentUser,
        *,
        clock: Clock | None = None,
    ) -> None:
        self._store = store
        self._conversation = conversation
        self._user = user
        self._clock = clock or SystemClock()
        self._messages: list[Message] = []
        self._by_id: dict[str, Message] = {}
        self._listeners: list[TimelineListener] = []
        self._subscription: Subscription | None = None
        self.upload_state = UploadState.IDLE

    @property
    def conversation(self) -> ConversationRef:
        return self._conversation

    @property
    def messages(self) -> list[Message]:
        return list(self._messages)

    @property
    def pinned_messages(self) -> list[Message]:
        return [m for m in self._messages if m.pinned and not m.deleted]

    def get(self, message_id: str) -> Message | None:
        return self._by_id.get(message_id)

    def add_listener(self, listener: TimelineListener) -> None:
        self._listeners.append(listener)

    async def start(self) -> None:
        if self._subscription is None:
            self._subscription = await self._store.subscribe(
                paths.messages(self._conversation), self._on_snapshot,
            )

    async def stop(self) -> None:
        if self._subscription is not None:
            await self._subscription.cancel()
            self._subscription = None

    async def _on_snapshot(self, snapshot: Any) -> None:
        self.apply_snapshot(snapshot)

    def apply_snapshot(self, snapshot: Any) -> None:
        """Replace the whole list with the decoded snapshot."""
        messages: list[Message] = []
        for entry in decode_snapshot(snapshot):
            try:
                messages.append(mapper.record_to_entity(entry))
            except MalformedRecordError:
                logger.warning("Skipping malformed message %s", entry.get("id"), exc_info=True)
        self._messages = messages
        self._by_id = {m.id: m for m in messages}
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:
                logger.exception("Timeline listener failed")

    def _require(self, message_id: str) -> Message:
        return assert_message_exists(self._by_id.get(message_id), message_id)

    # -- writes --------------------------------------------------------

    async def send_text(self, text: str, *, reply_to_id: str | None = None) -> SentMessageDTO:
        return await message_service.send_text(
            self._store, self._conversation, self._user, text,
            reply_to=self._reply_target(reply_to_id), clock=self._clock,
        )

    async def send_image(self, image_url: str, *, reply_to_id: str | None = None) -> SentMessageDTO:
        return await message_service.send_image(
            self._store, self._conversation, self._user, image_url,
            reply_to=self._reply_target(reply_to_id), clock=self._clock,
        )

    async def upload_image(
        self,
        uploader: ImageUploader,
        data: bytes,
        *,
        filename: str,
        content_type: str,
        reply_to_id: str | None = None,
    ) -> SentMessageDTO:
        if self.upload_state == UploadState.UPLOADING:
            raise ConflictError("An upload is already in progress")
        reply_to = self._reply_target(reply_to_id)
        self.upload_state = UploadState.UPLOADING
        try:
            return await message_service.upload_image(
                self._store, self._conversation, self._user, uploader, data,
                filename=filename, content_type=content_type,
                reply_to=reply_to, clock=self._clock,
            )
        finally:
            self.upload_state = UploadState.IDLE

    async def send_voice(self, clip: VoiceClipDTO, *, reply_to_id: str | None = None) -> SentMessageDTO:
        return await message_service.send_voice(
            self._store, self._conversation, self._user, clip,
            reply_to=self._reply_target(reply_to_id), clock=self._clock,
        )

    def _reply_target(self, reply_to_id: str | None) -> Message | None:
        return self._require(reply_to_id) if reply_to_id else None

    async def edit(self, message_id: str, new_text: str) -> None:
        await message_service.edit_message(
            self._store, self._conversation, self._user, self._require(message_id), new_text,
            clock=self._clock,
        )

    async def delete(self, message_id: str) -> None:
        await message_service.delete_message(
            self._store, self._conversation, self._user, self._require(message_id),
            clock=self._clock,
        )

    async def pin(self, message_id: str) -> None:
        await message_service.pin_message(
            self._store, self._conversation, self._user, self._require(message_id),
            clock=self._clock,
        )

    async def unpin(self, message_id: str) -> None:
        await message_service.unpin_message(
            self._store, self._conversation, self._require(message_id),
        )

    async def react(self, message_id: str, emoji: str) -> None:
        await message_service.react(
            self._store, self._conversation, self._user, self._require(message_id), emoji,
            clock=self._clock,
        )

    async def unreact(self, message_id: str) -> None:
        await message_service.unreact(
            self._store, self._conversation, self._user, self._require(message_id),
        )

    async def mark_read(self) -> int:
        return await message_service.mark_read(
            self._store, self._conversation, self._user, self._messages,
        )
