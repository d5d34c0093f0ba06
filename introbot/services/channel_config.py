from loguru import logger

from introbot.core.config import settings
from introbot.core.exceptions import ChannelNotConfiguredError
from introbot.services.redis_service import RedisService, redis_service


class ChannelConfigStore:
    """Where intros get published: stored by an admin, else taken from the environment."""

    def __init__(self, redis_backend: RedisService | None = None, fallback_channel_id: int | None = None) -> None:
        self._redis = redis_backend or redis_service
        self._fallback = fallback_channel_id if fallback_channel_id is not None else settings.PROFILE_CHANNEL_ID

    async def get_profile_channel_id(self) -> int | None:
        stored = await self._redis.get(settings.REDIS_CONFIG_KEY)
        if stored:
            try:
                return int(stored)
            except ValueError:
                logger.warning(f"Ignoring malformed stored profile channel id: {stored!r}")
        return self._fallback

    async def require_profile_channel_id(self) -> int:
        channel_id = await self.get_profile_channel_id()
        if not channel_id:
            logger.error("Profile channel not configured")
            raise ChannelNotConfiguredError()
        return channel_id

    async def set_profile_channel_id(self, channel_id: int) -> bool:
        saved = await self._redis.set(settings.REDIS_CONFIG_KEY, channel_id)
        if saved:
            logger.info(f"Profile channel set to {channel_id}")
        return saved


channel_config = ChannelConfigStore()
