from collections.abc import Callable
from typing import Any

import discord
from loguru import logger

from introbot.bot.responder import DiscordResponder
from introbot.core.constants import INTRO_FORM_ID
from introbot.models.action import IntroAction
from introbot.models.member import Member
from introbot.models.profile import INTRO_FIELDS
from introbot.services.lifecycle import IntroLifecycle, Responder
from introbot.shared.custom_ids import parse_action


def member_from(user: discord.abc.User) -> Member:
    avatar = getattr(user, "display_avatar", None)
    return Member(id=str(user.id), tag=user.name, avatar_url=avatar.url if avatar else None)


def extract_form_values(data: dict[str, Any] | None) -> dict[str, str]:
    """Pull intro field values out of a raw modal_submit payload, keyed by IntroData attribute."""
    values: dict[str, str] = {}
    for row in (data or {}).get("components", []):
        children = row.get("components") or ([row["component"]] if row.get("component") else [])
        for child in children:
            custom_id = child.get("custom_id", "")
            key = custom_id.removeprefix("intro_")
            if key in INTRO_FIELDS:
                values[key] = child.get("value") or ""
    return values


class InteractionRouter:
    """Maps Discord interactions onto IntroLifecycle entry points."""

    def __init__(
        self,
        lifecycle: IntroLifecycle,
        responder_factory: Callable[[discord.Interaction], Responder] = DiscordResponder,
    ):
        self.lifecycle = lifecycle
        self.responder_factory = responder_factory

    async def dispatch(self, interaction: discord.Interaction) -> bool:
        """Handle the interaction if it belongs to the intro flow. Returns True when handled."""
        if interaction.type == discord.InteractionType.component:
            return await self.handle_component(interaction)
        if interaction.type == discord.InteractionType.modal_submit:
            return await self.handle_form_submit(interaction)
        return False

    async def open_update_form(self, interaction: discord.Interaction) -> None:
        actor = member_from(interaction.user)
        logger.info(f"🔄 /update_intro command from {actor.tag}")
        await self.lifecycle.open_update_form(actor, self.responder_factory(interaction))

    async def handle_form_submit(self, interaction: discord.Interaction) -> bool:
        data = interaction.data or {}
        if data.get("custom_id") != INTRO_FORM_ID:
            return False
        actor = member_from(interaction.user)
        await self.lifecycle.submit_form(actor, extract_form_values(data), self.responder_factory(interaction))
        return True

    async def handle_component(self, interaction: discord.Interaction) -> bool:
        payload = parse_action((interaction.data or {}).get("custom_id"))
        if payload is None:
            return False

        actor = member_from(interaction.user)
        responder = self.responder_factory(interaction)
        owner_id = payload.owner_id

        if payload.action == IntroAction.START:
            await self.lifecycle.open_create_form(actor, responder)
        elif payload.action == IntroAction.UPDATE:
            await self.lifecycle.open_update_form(actor, responder, owner_id=owner_id)
        elif payload.action == IntroAction.DELETE:
            await self.lifecycle.request_delete(actor, owner_id, responder)
        elif payload.action == IntroAction.CONFIRM_DELETE:
            await self.lifecycle.confirm_delete(actor, owner_id, responder)
        elif payload.action == IntroAction.CANCEL_DELETE:
            await self.lifecycle.cancel_delete(actor, owner_id, responder)
        return True
