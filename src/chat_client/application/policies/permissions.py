from __future__ import annotations

from chat_client.application.dto.session import CurrentUser
from chat_client.application.exceptions import ForbiddenError, NotFoundError, ValidationError
from chat_client.domain.entities.conversation import Group
from chat_client.domain.entities.message import Message
from chat_client.domain.value_objects.enums import MessageType


def assert_message_exists(message: Message | None, message_id: str) -> Message:
    if message is None:
        raise NotFoundError(f"Message {message_id} not found")
    return message


def assert_can_edit(user: CurrentUser, message: Message) -> None:
    if message.sender_id != user.uid:
        raise ForbiddenError("Only the sender can edit a message")
    if message.deleted:
        raise ValidationError("Deleted messages cannot be edited")
    if message.type == MessageType.VOICE:
        raise ValidationError("Voice messages cannot be edited")


def assert_can_delete(user: CurrentUser, message: Message) -> None:
    if message.sender_id != user.uid:
        raise ForbiddenError("Only the sender can delete a message")


def assert_not_deleted(message: Message) -> None:
    if message.deleted:
        raise ValidationError("Message was deleted")


def assert_group_member(user: CurrentUser, group: Group) -> None:
    if user.uid not in group.members:
        raise ForbiddenError("Not a member of this group")
