import discord
from loguru import logger

from introbot.bot.views import IntroModal, build_view
from introbot.models.form import FormDescriptor
from introbot.models.message import Control


class DiscordResponder:
    """Answers one Discord interaction on behalf of the lifecycle controller."""

    def __init__(self, interaction: discord.Interaction):
        self.interaction = interaction

    async def show_form(self, form: FormDescriptor) -> None:
        await self.interaction.response.send_modal(IntroModal(form))

    async def defer(self) -> bool:
        try:
            await self.interaction.response.defer(ephemeral=True, thinking=True)
        except discord.InteractionResponded:
            return True
        except discord.HTTPException as e:
            logger.error(f"Failed to defer interaction {self.interaction.id}: {e}")
            return False
        return True

    async def reply(self, content: str, controls: list[Control] | None = None) -> None:
        view = build_view(controls)
        if self.interaction.response.is_done():
            await self.interaction.edit_original_response(content=content, view=view)
            return
        kwargs = {"ephemeral": True}
        if view is not None:
            kwargs["view"] = view
        await self.interaction.response.send_message(content, **kwargs)

    async def update(self, content: str, controls: list[Control] | None = None) -> None:
        view = build_view(controls)
        if self.interaction.response.is_done():
            await self.interaction.edit_original_response(content=content, view=view)
        else:
            await self.interaction.response.edit_message(content=content, view=view)

    async def dismiss(self) -> None:
        await self.interaction.delete_original_response()
