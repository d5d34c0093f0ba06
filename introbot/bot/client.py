import discord
from discord import app_commands
from loguru import logger

from introbot.bot.commands import register_commands
from introbot.bot.publisher import DiscordPublisher
from introbot.bot.router import InteractionRouter
from introbot.services.channel_config import ChannelConfigStore, channel_config
from introbot.services.lifecycle import IntroLifecycle
from introbot.services.profile_store import ProfileStore, profile_store
from introbot.services.summarizer import IntroSummarizer, intro_summarizer


class IntroBot(discord.Client):
    def __init__(
        self,
        store: ProfileStore | None = None,
        summarizer: IntroSummarizer | None = None,
        config: ChannelConfigStore | None = None,
    ):
        super().__init__(intents=discord.Intents.default())
        self.tree = app_commands.CommandTree(self)
        self.lifecycle = IntroLifecycle(
            store=store or profile_store,
            summarizer=summarizer or intro_summarizer,
            publisher=DiscordPublisher(self),
            channel_config=config or channel_config,
        )
        self.router = InteractionRouter(self.lifecycle)
        register_commands(self.tree, self)

    async def setup_hook(self) -> None:
        synced = await self.tree.sync()
        logger.info(f"Synced {len(synced)} application commands")

    async def on_ready(self) -> None:
        logger.info(f"Logged in as {self.user} ({len(self.guilds)} guilds)")

    async def on_interaction(self, interaction: discord.Interaction) -> None:
        try:
            await self.router.dispatch(interaction)
        except Exception as e:
            logger.exception(f"Unhandled error routing interaction {interaction.id}: {e}")
