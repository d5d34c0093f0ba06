from datetime import datetime, timezone
from typing import Any, Protocol

from pydantic import BaseModel, ConfigDict

from introbot.core.constants import (
    EMBED_DESCRIPTION_LIMIT,
    EMBED_FIELD_VALUE_LIMIT,
    EXPERIENCE_STYLES,
    FOOTER_TEXT,
    NEUTRAL_STYLE,
    NOT_SPECIFIED,
)
from introbot.models.message import FormattedMessage, MessageField, PublishedMessage
from introbot.models.profile import ProfileRecord


def experience_style(level: str | None) -> tuple[int, str]:
    """Return (color, icon) for an experience label; unknown labels get the neutral style."""
    return EXPERIENCE_STYLES.get(level or "", NEUTRAL_STYLE)


def _truncate(value: str, limit: int) -> str:
    if len(value) <= limit:
        return value
    return value[: limit - 1] + "…"


def render_profile(
    record: ProfileRecord,
    *,
    thumbnail_url: str | None = None,
    footer_icon_url: str | None = None,
    timestamp: datetime | None = None,
) -> FormattedMessage:
    color, icon = experience_style(record.experience_level)
    intro = record.intro_data

    fields = [
        MessageField(name="🎓 Name", value=intro.name, inline=True),
        MessageField(name="💼 Role / Study", value=intro.role, inline=True),
        MessageField(name="📊 Experience", value=f"{icon} {record.experience_level}", inline=True),
    ]
    if intro.institution and intro.institution != NOT_SPECIFIED:
        fields.append(MessageField(name="🏫 Institution", value=intro.institution, inline=True))
    fields.extend(
        [
            MessageField(name="🤖 Interests", value=intro.interests),
            MessageField(name="🧠 Skills", value=record.skills),
        ]
    )
    for field in fields:
        field.value = _truncate(field.value, EMBED_FIELD_VALUE_LIMIT)

    return FormattedMessage(
        title=f"{icon} Member Introduction",
        description=_truncate(f"<@{record.user_id}>\n\n{record.summary}", EMBED_DESCRIPTION_LIMIT),
        color=color,
        icon=icon,
        owner_id=record.user_id,
        fields=fields,
        footer=FOOTER_TEXT,
        timestamp=timestamp or datetime.now(timezone.utc),
        thumbnail_url=thumbnail_url,
        footer_icon_url=footer_icon_url,
    )


class ChannelTarget(BaseModel):
    """A resolved, writable publication channel."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    channel_id: int
    mention: str
    handle: Any = None  # platform channel object


class Publisher(Protocol):
    async def resolve_target(self, channel_id: int, check_permissions: bool = True) -> ChannelTarget:
        """Fetch the channel and, unless told otherwise, check send/embed permission.

        Raises:
            ChannelAccessError: channel missing or not writable
        """
        ...

    async def publish(self, target: ChannelTarget, doc: FormattedMessage) -> PublishedMessage:
        """Raises PublishError when the message could not be sent."""
        ...

    async def unpublish(self, target: ChannelTarget, message_id: str) -> bool:
        """Delete a message. Returns False when it was already gone."""
        ...

    async def fetch(self, target: ChannelTarget, message_id: str) -> FormattedMessage | None:
        ...
