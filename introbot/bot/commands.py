import discord
from discord import app_commands
from loguru import logger

from introbot.bot.views import build_view
from introbot.models.action import ActionPayload, IntroAction
from introbot.models.message import Control

PANEL_TEXT = "👋 New here? Introduce yourself to the community!"


def register_commands(tree: app_commands.CommandTree, bot) -> None:
    @tree.command(
        name="update_intro",
        description="Update your introduction - opens a form pre-filled with your current info",
    )
    async def update_intro(interaction: discord.Interaction):
        await bot.router.open_update_form(interaction)

    @tree.command(name="intro_panel", description="Post a button members can use to create their introduction")
    @app_commands.guild_only()
    @app_commands.default_permissions(manage_guild=True)
    async def intro_panel(interaction: discord.Interaction):
        view = build_view(
            [
                Control(
                    label="Create Introduction",
                    emoji="👋",
                    style="success",
                    payload=ActionPayload(action=IntroAction.START),
                )
            ],
            timeout=None,
        )
        await interaction.response.send_message(PANEL_TEXT, view=view)
        logger.info(f"Intro panel posted in {interaction.channel_id} by {interaction.user.name}")

    @tree.command(name="setup_intro_channel", description="Choose the channel where introductions are posted")
    @app_commands.describe(channel="Channel for member introductions")
    @app_commands.guild_only()
    @app_commands.default_permissions(manage_guild=True)
    async def setup_intro_channel(interaction: discord.Interaction, channel: discord.TextChannel):
        permissions = channel.permissions_for(channel.guild.me)
        if not (permissions.send_messages and permissions.embed_links):
            await interaction.response.send_message(
                f"❌ I need **Send Messages** and **Embed Links** in {channel.mention} first.",
                ephemeral=True,
            )
            return

        saved = await bot.lifecycle.channel_config.set_profile_channel_id(channel.id)
        if not saved:
            await interaction.response.send_message(
                "❌ Failed to save the profile channel. Please try again.", ephemeral=True
            )
            return
        await interaction.response.send_message(
            f"✅ Introductions will be posted in {channel.mention}.", ephemeral=True
        )
