from __future__ import annotations

from pydantic import BaseModel, Field


class PushNotificationBody(BaseModel):
    title: str | None = None
    body: str | None = None
    icon: str | None = None


class PushPayload(BaseModel):
    notification: PushNotificationBody = Field(default_factory=PushNotificationBody)
    # Data messages carry string values only.
    data: dict[str, str] = Field(default_factory=dict)


class PushAction(BaseModel):
    action: str
    title: str


class RenderedNotification(BaseModel):
    title: str
    body: str
    icon: str
    tag: str
    data: dict[str, str | int]
    actions: list[PushAction] = []
