import re
from datetime import datetime, timezone

import discord
from loguru import logger

from introbot.core.constants import NEUTRAL_STYLE
from introbot.core.exceptions import ChannelAccessError, PublishError
from introbot.models.message import FormattedMessage, MessageField, PublishedMessage
from introbot.services.publisher import ChannelTarget

MENTION = re.compile(r"<@!?(\d+)>")


def to_embed(doc: FormattedMessage, footer_icon_url: str | None = None) -> discord.Embed:
    embed = discord.Embed(
        title=doc.title,
        description=doc.description,
        color=doc.color,
        timestamp=doc.timestamp,
    )
    if doc.thumbnail_url:
        embed.set_thumbnail(url=doc.thumbnail_url)
    for field in doc.fields:
        embed.add_field(name=field.name, value=field.value, inline=field.inline)
    embed.set_footer(text=doc.footer, icon_url=doc.footer_icon_url or footer_icon_url)
    return embed


def from_embed(embed: discord.Embed) -> FormattedMessage:
    """Read a published intro embed back into a FormattedMessage."""
    title = embed.title or ""
    description = embed.description or ""
    owner = MENTION.search(description)
    return FormattedMessage(
        title=title,
        description=description,
        color=embed.color.value if embed.color else NEUTRAL_STYLE[0],
        icon=title.split(" ", 1)[0] if title else NEUTRAL_STYLE[1],
        owner_id=owner.group(1) if owner else "",
        fields=[MessageField(name=f.name or "", value=f.value or "", inline=bool(f.inline)) for f in embed.fields],
        footer=embed.footer.text or "",
        timestamp=embed.timestamp or datetime.now(timezone.utc),
        thumbnail_url=embed.thumbnail.url,
        footer_icon_url=embed.footer.icon_url,
    )


class DiscordPublisher:
    """Publishes intro embeds into a Discord text channel."""

    def __init__(self, client: discord.Client):
        self.client = client

    async def resolve_target(self, channel_id: int, check_permissions: bool = True) -> ChannelTarget:
        try:
            channel = self.client.get_channel(channel_id) or await self.client.fetch_channel(channel_id)
        except discord.HTTPException as e:
            logger.error(f"Failed to fetch profile channel {channel_id}: {e}")
            raise ChannelAccessError() from e

        if not isinstance(channel, (discord.TextChannel, discord.Thread)):
            logger.error(f"Profile channel {channel_id} is not a text channel")
            raise ChannelAccessError()

        if check_permissions:
            permissions = channel.permissions_for(channel.guild.me)
            if not (permissions.send_messages and permissions.embed_links):
                logger.error(f"Missing SendMessages/EmbedLinks permission in profile channel {channel_id}")
                raise ChannelAccessError()

        return ChannelTarget(channel_id=channel.id, mention=channel.mention, handle=channel)

    async def publish(self, target: ChannelTarget, doc: FormattedMessage) -> PublishedMessage:
        footer_icon = self.client.user.display_avatar.url if self.client.user else None
        try:
            message = await target.handle.send(embed=to_embed(doc, footer_icon))
        except discord.HTTPException as e:
            logger.error(f"Failed to send profile message to {target.channel_id}: {e}")
            raise PublishError() from e
        return PublishedMessage(message_id=str(message.id), jump_url=message.jump_url)

    async def unpublish(self, target: ChannelTarget, message_id: str) -> bool:
        try:
            await target.handle.get_partial_message(int(message_id)).delete()
        except discord.NotFound:
            return False
        return True

    async def fetch(self, target: ChannelTarget, message_id: str) -> FormattedMessage | None:
        try:
            message = await target.handle.fetch_message(int(message_id))
        except discord.NotFound:
            return None
        if not message.embeds:
            return None
        return from_embed(message.embeds[0])
