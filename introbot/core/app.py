import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI
from loguru import logger

from introbot.api.main import api_router
from introbot.bot.client import IntroBot
from introbot.services.redis_service import redis_service

from .config import settings
from .version import __version__


def _log_bot_exit(task: asyncio.Task) -> None:
    if not task.cancelled() and task.exception() is not None:
        logger.error(f"Discord bot stopped: {task.exception()}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Run the Discord bot alongside the HTTP server.
    """
    bot: IntroBot | None = None
    bot_task: asyncio.Task | None = None
    if settings.DISCORD_TOKEN:
        bot = IntroBot()
        bot_task = asyncio.create_task(bot.start(settings.DISCORD_TOKEN))
        bot_task.add_done_callback(_log_bot_exit)
        logger.info("Discord bot starting")
    else:
        logger.warning("DISCORD_TOKEN is not set. Running without the Discord bot.")
    app.state.bot = bot

    yield

    if bot is not None:
        try:
            await bot.close()
            logger.info("Discord bot closed")
        except Exception as exc:
            logger.warning(f"Failed to close Discord bot: {exc}")
    if bot_task is not None and not bot_task.done():
        bot_task.cancel()
    await redis_service.close()


app = FastAPI(
    title="IntroBot",
    description="Discord bot for member introduction profiles",
    version=__version__,
    lifespan=lifespan,
    docs_url=None if settings.APP_ENV != "development" else "/docs",
    redoc_url=None if settings.APP_ENV != "development" else "/redoc",
)

app.include_router(api_router)
