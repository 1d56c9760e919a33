from __future__ import annotations

import re

import pytest

from chat_client.application import paths
from chat_client.services import notification_service


@pytest.mark.asyncio
async def test_send_notification_defaults(store, clock):
    key = await notification_service.send_notification(
        store, recipient_id="bob", sender_id="alice", sender_name=None, chat_id=None, clock=clock,
    )

    assert re.fullmatch(r"notification_\d+_[0-9a-z]{9}", key)
    record = await store.get(paths.notification("bob", key))
    assert record["title"] == "New Message"
    assert record["body"] == "You have a new message"
    assert record["senderName"] == "User"
    assert record["read"] is False
    assert record["createdAt"] == clock.now
    assert "chatId" not in record
    assert "recipientToken" not in record


@pytest.mark.asyncio
async def test_send_notification_copies_recipient_token(store):
    await store.set(paths.push_token("bob"), "tok-bob")
    key = await notification_service.send_notification(
        store, recipient_id="bob", sender_id="alice", sender_name="Alice",
        chat_id="alice_bob", message_text="hey",
    )
    record = await store.get(paths.notification("bob", key))
    assert record["recipientToken"] == "tok-bob"
    assert record["body"] == "hey"
    assert record["messageText"] == "hey"


@pytest.mark.asyncio
async def test_legacy_token_shape_is_accepted(store):
    await store.set(paths.push_token("bob"), {"token": "legacy"})
    assert await notification_service.get_recipient_token(store, "bob") == "legacy"
    assert await notification_service.get_recipient_token(store, "nobody") is None


@pytest.mark.asyncio
async def test_inbox_housekeeping(store, clock):
    first = await notification_service.send_notification(
        store, recipient_id="bob", sender_id="alice", sender_name="Alice", chat_id="c", clock=clock,
    )
    clock.advance(1000)
    second = await notification_service.send_notification(
        store, recipient_id="bob", sender_id="carol", sender_name="Carol", chat_id="c", clock=clock,
    )
    await store.set(f"{paths.notifications('bob')}/junk", {"title": "no sender"})

    listed = await notification_service.list_notifications(store, "bob")
    assert [n.id for n in listed] == [second, first]
    assert await notification_service.get_unread_count(store, "bob") == 2

    await notification_service.mark_notification_read(store, "bob", first)
    assert await notification_service.get_unread_count(store, "bob") == 1

    await notification_service.clear_notifications(store, "bob")
    assert await notification_service.list_notifications(store, "bob") == []
