from datetime import datetime
from typing import Literal

from pydantic import BaseModel

from introbot.models.action import ActionPayload


class MessageField(BaseModel):
    name: str
    value: str
    inline: bool = False


class FormattedMessage(BaseModel):
    """Platform-neutral description of a published intro embed."""

    title: str
    description: str
    color: int
    icon: str
    owner_id: str
    fields: list[MessageField]
    footer: str
    timestamp: datetime
    thumbnail_url: str | None = None
    footer_icon_url: str | None = None


class PublishedMessage(BaseModel):
    message_id: str
    jump_url: str | None = None


class Control(BaseModel):
    """A button attached to a reply."""

    label: str
    payload: ActionPayload
    style: Literal["primary", "secondary", "danger", "success"] = "secondary"
    emoji: str | None = None
