"""
Shared fixtures: in-memory stand-ins for Redis, the Discord channel and the
pending interaction, wired into a real IntroLifecycle.
"""

import fnmatch

import pytest

from introbot.core.exceptions import ChannelAccessError, PublishError
from introbot.models.message import FormattedMessage, PublishedMessage
from introbot.services.channel_config import ChannelConfigStore
from introbot.services.lifecycle import IntroLifecycle
from introbot.services.profile_store import ProfileStore
from introbot.services.publisher import ChannelTarget
from introbot.services.redis_service import RedisService
from introbot.services.summarizer import IntroSummarizer, build_fallback_summary

PROFILE_CHANNEL_ID = 555


class FakeRedis:
    """Subset of redis.asyncio.Redis used by the stores."""

    def __init__(self):
        self.data: dict[str, str] = {}
        self.fail_writes = False

    async def get(self, key):
        return self.data.get(key)

    async def set(self, key, value):
        if self.fail_writes:
            raise OSError("redis unavailable")
        self.data[key] = str(value)
        return True

    async def delete(self, *keys):
        removed = 0
        for key in keys:
            removed += int(self.data.pop(key, None) is not None)
        return removed

    async def scan_iter(self, match="*", count=None):
        for key in list(self.data):
            if fnmatch.fnmatch(key, match):
                yield key

    async def close(self):
        pass


class FakePublisher:
    """In-memory profile channels; a message can only be reached through its own channel."""

    def __init__(self, writable: set[int] | None = None):
        self.writable = writable if writable is not None else {PROFILE_CHANNEL_ID}
        self.messages: dict[str, FormattedMessage] = {}
        self.channels: dict[str, int] = {}
        self.fail_publish = False
        self.deleted: list[tuple[int, str]] = []
        self._next_id = 1000

    async def resolve_target(self, channel_id, check_permissions=True):
        if channel_id not in self.writable:
            raise ChannelAccessError()
        return ChannelTarget(channel_id=channel_id, mention=f"<#{channel_id}>")

    async def publish(self, target, doc):
        if self.fail_publish:
            raise PublishError()
        self._next_id += 1
        message_id = str(self._next_id)
        self.messages[message_id] = doc
        self.channels[message_id] = target.channel_id
        return PublishedMessage(message_id=message_id, jump_url=f"https://discord.test/{message_id}")

    async def unpublish(self, target, message_id):
        if message_id not in self.messages or self.channels[message_id] != target.channel_id:
            return False
        del self.messages[message_id]
        self.channels.pop(message_id)
        self.deleted.append((target.channel_id, message_id))
        return True

    async def fetch(self, target, message_id):
        if message_id not in self.messages or self.channels[message_id] != target.channel_id:
            return None
        return self.messages[message_id]


class FakeResponder:
    """Records everything the controller says back to the member."""

    def __init__(self, can_defer: bool = True):
        self.can_defer = can_defer
        self.calls: list[tuple[str, str | None, list | None]] = []
        self.forms = []
        self.dismissed = False

    async def show_form(self, form):
        self.forms.append(form)
        self.calls.append(("show_form", form.title, None))

    async def defer(self):
        self.calls.append(("defer", None, None))
        return self.can_defer

    async def reply(self, content, controls=None):
        self.calls.append(("reply", content, controls))

    async def update(self, content, controls=None):
        self.calls.append(("update", content, controls))

    async def dismiss(self):
        self.dismissed = True

    @property
    def last(self):
        return self.calls[-1]


class DisabledGemini:
    enabled = False


class FailingSummarizer(IntroSummarizer):
    """Always falls back, as if the AI service were down."""

    def __init__(self):
        super().__init__(gemini=DisabledGemini(), timeout=1)

    async def summarize(self, intro):
        return build_fallback_summary(intro)


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def redis_backend(fake_redis):
    return RedisService(client=fake_redis)


@pytest.fixture
def store(redis_backend):
    return ProfileStore(redis_backend)


@pytest.fixture
def channel_config(redis_backend):
    return ChannelConfigStore(redis_backend, fallback_channel_id=PROFILE_CHANNEL_ID)


@pytest.fixture
def publisher():
    return FakePublisher()


@pytest.fixture
def lifecycle(store, publisher, channel_config):
    return IntroLifecycle(
        store=store,
        summarizer=FailingSummarizer(),
        publisher=publisher,
        channel_config=channel_config,
        notice_ttl=0,
    )


@pytest.fixture
def responder():
    return FakeResponder()
