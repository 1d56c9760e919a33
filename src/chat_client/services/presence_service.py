from __future__ import annotations

import logging

from chat_client.application import paths
from chat_client.application.dto.session import CurrentUser
from chat_client.application.ports.store import SERVER_TIMESTAMP, LiveStore

logger = logging.getLogger(__name__)


async def go_online(store: LiveStore, user: CurrentUser) -> None:
    """Publish the profile as online and arm the disconnect fallback."""
    await store.update(
        paths.user(user.uid),
        {
            "uid": user.uid,
            "email": user.email,
            "displayName": user.name,
            "photoURL": user.photo_url,
            "emailVerified": user.email_verified,
            "online": True,
            "lastSeen": dict(SERVER_TIMESTAMP),
        },
    )
    await store.on_disconnect_set(f"{paths.user(user.uid)}/online", False)
    await store.on_disconnect_set(f"{paths.user(user.uid)}/lastSeen", dict(SERVER_TIMESTAMP))
    logger.info("User %s online", user.uid)


async def go_offline(store: LiveStore, user: CurrentUser) -> None:
    await store.update(
        paths.user(user.uid),
        {"online": False, "lastSeen": dict(SERVER_TIMESTAMP)},
    )
    await store.cancel_on_disconnect(f"{paths.user(user.uid)}/online")
    await store.cancel_on_disconnect(f"{paths.user(user.uid)}/lastSeen")
    logger.info("User %s offline", user.uid)
