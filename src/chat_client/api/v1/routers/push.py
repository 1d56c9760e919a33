from __future__ import annotations

import logging

from fastapi import APIRouter, status

from chat_client.api.deps import CurrentUserDep, SurfaceDep
from chat_client.api.v1.schemas.push import PushAction, PushPayload, RenderedNotification
from chat_client.services.push_receiver import deliver_push

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["push"])


@router.post("/push", response_model=RenderedNotification, status_code=status.HTTP_202_ACCEPTED)
async def receive_push(
    body: PushPayload,
    user: CurrentUserDep,
    surface: SurfaceDep,
) -> RenderedNotification:
    logger.debug("Push received for %s", user.uid)
    rendered = deliver_push(surface, body.notification.model_dump(), body.data)
    return RenderedNotification(
        title=rendered.title,
        body=rendered.body,
        icon=rendered.icon,
        tag=rendered.tag,
        data=rendered.data,
        actions=[PushAction(**a) for a in rendered.actions],
    )
