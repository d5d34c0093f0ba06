import redis.asyncio as redis
from loguru import logger
from pydantic import ValidationError

from introbot.core.config import settings
from introbot.models.profile import ProfileRecord
from introbot.services.redis_service import RedisService, redis_service


class ProfileStore:
    """Redis-backed mapping of Discord user id -> ProfileRecord.

    Records are always written whole; there is no partial update.
    Redis errors propagate to the caller.
    """

    KEY_PREFIX = settings.REDIS_PROFILE_KEY

    def __init__(self, redis_backend: RedisService | None = None) -> None:
        self._redis = redis_backend or redis_service

    def _format_key(self, user_id: str) -> str:
        return f"{self.KEY_PREFIX}{user_id}"

    async def get(self, user_id: str) -> ProfileRecord | None:
        client = await self._redis.get_client()
        raw = await client.get(self._format_key(user_id))
        if not raw:
            return None
        try:
            return ProfileRecord.model_validate_json(raw)
        except ValidationError as e:
            logger.warning(f"Discarding unreadable profile record for user {user_id}: {e}")
            return None

    async def put(self, user_id: str, record: ProfileRecord) -> None:
        if record.user_id != user_id:
            raise ValueError(f"Record owner {record.user_id} does not match key {user_id}")
        client = await self._redis.get_client()
        await client.set(self._format_key(user_id), record.model_dump_json())
        logger.debug(f"Stored profile for user {user_id} (message {record.message_id})")

    async def delete(self, user_id: str) -> None:
        client = await self._redis.get_client()
        await client.delete(self._format_key(user_id))

    async def count(self) -> int:
        """Count stored profiles by scanning the key prefix."""
        try:
            client = await self._redis.get_client()
        except (redis.RedisError, OSError) as exc:
            logger.warning(f"Cannot count profiles; Redis unavailable: {exc}")
            return 0

        total = 0
        try:
            async for _ in client.scan_iter(match=f"{self.KEY_PREFIX}*", count=500):
                total += 1
        except (redis.RedisError, OSError) as exc:
            logger.warning(f"Failed to scan for profile count: {exc}")
            return 0
        return total


profile_store = ProfileStore()
