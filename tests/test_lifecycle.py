import asyncio

import pytest

from introbot.core.config import settings
from introbot.core.constants import EXPERIENCE_LEVELS, NOT_PROVIDED, NOT_SPECIFIED
from introbot.models.action import IntroAction
from introbot.models.member import Member
from introbot.models.profile import IntroData, ProfileRecord
from introbot.services.channel_config import ChannelConfigStore
from introbot.services.lifecycle import (
    CANCELLED,
    DELETE_PROMPT,
    DELETED,
    GENERIC_FAILURE,
    NOT_FOUND,
    STILL_PROCESSING,
    IntroLifecycle,
)
from introbot.services.summarizer import IntroSummarizer
from tests.conftest import PROFILE_CHANNEL_ID, FailingSummarizer, FakeResponder

ANA = Member(id="111", tag="ana", avatar_url="https://cdn.test/ana.png")
BOB = Member(id="222", tag="bob")
MOVED_CHANNEL_ID = 777


class ReplyingGemini:
    enabled = True

    async def generate_content_async(self, prompt):
        return '{"summary": "Ana builds NLP systems.", "experienceLevel": "expert", "skills": ["NLP", "RL"]}'


class UnreachableResponder(FakeResponder):
    """Loses the interaction right when the success message is sent."""

    def __init__(self, lost_on: str):
        super().__init__()
        self.lost_on = lost_on

    async def reply(self, content, controls=None):
        await super().reply(content, controls)
        if content.startswith(self.lost_on):
            raise RuntimeError("Unknown interaction")

    async def update(self, content, controls=None):
        await super().update(content, controls)
        if content.startswith(self.lost_on):
            raise RuntimeError("Unknown interaction")


async def _submit(lifecycle, actor, fields):
    responder = FakeResponder()
    await lifecycle.submit_form(actor, fields, responder)
    return responder


# ============================================================================
# Submit
# ============================================================================


@pytest.mark.asyncio
async def test_submit_publishes_and_stores_normalized_record(lifecycle, store, publisher):
    responder = await _submit(lifecycle, ANA, {"name": "  Ana ", "interests": "NLP, RL", "role": "", "details": None})

    record = await store.get(ANA.id)
    assert record is not None
    assert record.intro_data == IntroData(
        name="Ana", interests="NLP, RL", role=NOT_PROVIDED, institution=NOT_SPECIFIED, details=NOT_PROVIDED
    )
    assert record.channel_id == PROFILE_CHANNEL_ID

    doc = await publisher.fetch(await publisher.resolve_target(PROFILE_CHANNEL_ID), record.message_id)
    assert doc is not None
    assert f"<@{ANA.id}>" in doc.description
    assert record.summary in doc.description
    assert doc.thumbnail_url == ANA.avatar_url

    kind, content, controls = responder.last
    assert kind == "reply"
    assert "has been posted" in content
    assert [c.payload.action for c in controls] == [IntroAction.UPDATE, IntroAction.DELETE]
    assert all(c.payload.owner_id == ANA.id for c in controls)


@pytest.mark.asyncio
async def test_submit_acknowledges_before_summarizing(lifecycle):
    responder = await _submit(lifecycle, ANA, {"name": "Ana", "interests": "NLP"})

    kinds = [call[0] for call in responder.calls]
    assert kinds[0] == "defer"
    assert responder.calls[1][1].startswith("⏳")


@pytest.mark.asyncio
async def test_fallback_summary_still_produces_complete_record(lifecycle, store):
    await _submit(lifecycle, ANA, {"name": "Ana", "interests": "NLP, RL"})

    record = await store.get(ANA.id)
    assert record.summary
    assert record.experience_level in EXPERIENCE_LEVELS
    assert record.skills


@pytest.mark.asyncio
async def test_short_name_is_rejected_without_side_effects(lifecycle, store, publisher):
    responder = await _submit(lifecycle, ANA, {"name": "A", "interests": "NLP, RL"})

    assert await store.get(ANA.id) is None
    assert publisher.messages == {}
    assert responder.last[0] == "reply"
    assert "name" in responder.last[1]


@pytest.mark.asyncio
async def test_short_interests_are_rejected(lifecycle, store):
    responder = await _submit(lifecycle, ANA, {"name": "Ana", "interests": "ai"})

    assert await store.get(ANA.id) is None
    assert "interests" in responder.last[1]


@pytest.mark.asyncio
async def test_missing_channel_configuration_is_reported(store, publisher, redis_backend, monkeypatch):
    monkeypatch.setattr(settings, "PROFILE_CHANNEL_ID", None)
    lifecycle = IntroLifecycle(store, FailingSummarizer(), publisher, ChannelConfigStore(redis_backend), notice_ttl=0)
    responder = await _submit(lifecycle, ANA, {"name": "Ana", "interests": "NLP"})

    assert "/setup_intro_channel" in responder.last[1]
    assert publisher.messages == {}


@pytest.mark.asyncio
async def test_channel_without_permissions_is_reported(lifecycle, publisher, store):
    publisher.writable = set()

    responder = await _submit(lifecycle, ANA, {"name": "Ana", "interests": "NLP"})

    assert "permissions" in responder.last[1]
    assert await store.get(ANA.id) is None


@pytest.mark.asyncio
async def test_failed_publish_keeps_previous_record(lifecycle, store, publisher):
    await _submit(lifecycle, ANA, {"name": "Ana", "interests": "NLP"})
    before = await store.get(ANA.id)

    publisher.fail_publish = True
    responder = await _submit(lifecycle, ANA, {"name": "Ana Maria", "interests": "Vision"})

    after = await store.get(ANA.id)
    assert after == before
    assert before.message_id in publisher.messages
    assert "Failed to post" in responder.last[1]


@pytest.mark.asyncio
async def test_failed_save_withdraws_new_message(lifecycle, publisher, fake_redis):
    fake_redis.fail_writes = True

    responder = await _submit(lifecycle, ANA, {"name": "Ana", "interests": "NLP"})

    assert publisher.messages == {}
    assert "Failed to post" in responder.last[1]


@pytest.mark.asyncio
async def test_update_replaces_old_message_and_whole_intro(lifecycle, store, publisher):
    await _submit(lifecycle, ANA, {"name": "Ana", "interests": "NLP", "role": "PhD student", "institution": "MIT"})
    first = await store.get(ANA.id)

    await _submit(lifecycle, ANA, {"name": "Ana B", "interests": "NLP"})
    second = await store.get(ANA.id)

    assert second.message_id != first.message_id
    assert first.message_id not in publisher.messages
    assert second.message_id in publisher.messages
    # full replace: previously set fields fall back to defaults
    assert second.intro_data.role == NOT_PROVIDED
    assert second.intro_data.institution == NOT_SPECIFIED
    assert second.created_at == first.created_at


@pytest.mark.asyncio
async def test_update_when_old_message_was_removed_externally(lifecycle, store, publisher):
    await _submit(lifecycle, ANA, {"name": "Ana", "interests": "NLP"})
    first = await store.get(ANA.id)
    del publisher.messages[first.message_id]

    responder = await _submit(lifecycle, ANA, {"name": "Ana", "interests": "NLP, RL"})

    second = await store.get(ANA.id)
    assert second.message_id in publisher.messages
    assert "has been posted" in responder.last[1]


@pytest.mark.asyncio
async def test_ai_summary_is_stored_and_published(store, publisher, channel_config):
    lifecycle = IntroLifecycle(
        store, IntroSummarizer(gemini=ReplyingGemini(), timeout=1), publisher, channel_config, notice_ttl=0
    )

    await _submit(lifecycle, ANA, {"name": "Ana", "interests": "NLP, RL"})

    record = await store.get(ANA.id)
    assert record.summary == "Ana builds NLP systems."
    assert record.experience_level == "Expert"
    assert record.skills == "NLP, RL"
    doc = await publisher.fetch(await publisher.resolve_target(PROFILE_CHANNEL_ID), record.message_id)
    assert "Ana builds NLP systems." in doc.description


@pytest.mark.asyncio
async def test_update_after_channel_move_removes_message_from_original_channel(
    lifecycle, store, publisher, channel_config
):
    await _submit(lifecycle, ANA, {"name": "Ana", "interests": "NLP"})
    first = await store.get(ANA.id)

    publisher.writable = {PROFILE_CHANNEL_ID, MOVED_CHANNEL_ID}
    await channel_config.set_profile_channel_id(MOVED_CHANNEL_ID)
    await _submit(lifecycle, ANA, {"name": "Ana", "interests": "NLP, RL"})

    second = await store.get(ANA.id)
    assert second.channel_id == MOVED_CHANNEL_ID
    assert publisher.deleted == [(PROFILE_CHANNEL_ID, first.message_id)]
    assert publisher.channels == {second.message_id: MOVED_CHANNEL_ID}


@pytest.mark.asyncio
async def test_lost_success_reply_keeps_submission(lifecycle, store, publisher):
    responder = UnreachableResponder(lost_on="✅ Your introduction has been posted")

    await lifecycle.submit_form(ANA, {"name": "Ana", "interests": "NLP"}, responder)

    record = await store.get(ANA.id)
    assert record is not None
    assert record.message_id in publisher.messages
    assert GENERIC_FAILURE not in [call[1] for call in responder.calls]
    assert responder.last[1].startswith("✅")


@pytest.mark.asyncio
async def test_concurrent_submission_is_rejected(lifecycle):
    lifecycle.guard._keys.add(ANA.id)

    responder = await _submit(lifecycle, ANA, {"name": "Ana", "interests": "NLP"})

    assert responder.last[1] == STILL_PROCESSING


@pytest.mark.asyncio
async def test_undeferrable_submission_does_nothing(lifecycle, store):
    responder = FakeResponder(can_defer=False)

    await lifecycle.submit_form(ANA, {"name": "Ana", "interests": "NLP"}, responder)

    assert await store.get(ANA.id) is None
    assert [call[0] for call in responder.calls] == ["defer"]


@pytest.mark.asyncio
async def test_success_notice_is_dismissed(lifecycle):
    responder = await _submit(lifecycle, ANA, {"name": "Ana", "interests": "NLP"})

    await asyncio.sleep(0.01)
    assert responder.dismissed


# ============================================================================
# Forms
# ============================================================================


@pytest.mark.asyncio
async def test_update_form_is_prefilled_from_stored_intro(lifecycle, responder):
    await _submit(lifecycle, ANA, {"name": "Ana", "interests": "NLP", "role": "Engineer"})

    await lifecycle.open_update_form(ANA, responder)

    values = {f.key: f.value for f in responder.forms[0].fields}
    assert values["name"] == "Ana"
    assert values["role"] == "Engineer"
    assert values["institution"] is None


@pytest.mark.asyncio
async def test_update_form_without_profile_is_blank(lifecycle, responder):
    await lifecycle.open_update_form(ANA, responder)

    assert all(f.value is None for f in responder.forms[0].fields)


@pytest.mark.asyncio
async def test_update_form_for_someone_else_is_refused(lifecycle, responder):
    await lifecycle.open_update_form(BOB, responder, owner_id=ANA.id)

    assert responder.forms == []
    assert "only update your own" in responder.last[1]


@pytest.mark.asyncio
async def test_create_form_is_blank(lifecycle, responder):
    await lifecycle.open_create_form(ANA, responder)

    assert responder.forms[0].title == "Introduce Yourself"


# ============================================================================
# Delete
# ============================================================================


@pytest.mark.asyncio
async def test_request_delete_asks_for_confirmation(lifecycle, store, responder):
    await _submit(lifecycle, ANA, {"name": "Ana", "interests": "NLP"})

    await lifecycle.request_delete(ANA, ANA.id, responder)

    kind, content, controls = responder.last
    assert content == DELETE_PROMPT
    assert [c.payload.action for c in controls] == [IntroAction.CONFIRM_DELETE, IntroAction.CANCEL_DELETE]
    assert await store.get(ANA.id) is not None


@pytest.mark.asyncio
async def test_confirm_delete_removes_message_and_record(lifecycle, store, publisher, responder):
    await _submit(lifecycle, ANA, {"name": "Ana", "interests": "NLP"})
    record = await store.get(ANA.id)

    await lifecycle.confirm_delete(ANA, ANA.id, responder)

    assert await store.get(ANA.id) is None
    assert record.message_id not in publisher.messages
    assert responder.last == ("update", DELETED, None)


@pytest.mark.asyncio
async def test_confirm_delete_twice_is_idempotent(lifecycle, store):
    await _submit(lifecycle, ANA, {"name": "Ana", "interests": "NLP"})

    first, second = FakeResponder(), FakeResponder()
    await lifecycle.confirm_delete(ANA, ANA.id, first)
    await lifecycle.confirm_delete(ANA, ANA.id, second)

    assert await store.get(ANA.id) is None
    assert second.last == ("update", NOT_FOUND, None)


@pytest.mark.asyncio
async def test_confirm_delete_when_message_already_gone(lifecycle, store, publisher, responder):
    await _submit(lifecycle, ANA, {"name": "Ana", "interests": "NLP"})
    publisher.messages.clear()

    await lifecycle.confirm_delete(ANA, ANA.id, responder)

    assert await store.get(ANA.id) is None
    assert responder.last[1] == DELETED


@pytest.mark.asyncio
async def test_confirm_delete_by_another_member_is_refused(lifecycle, store, publisher, responder):
    await _submit(lifecycle, ANA, {"name": "Ana", "interests": "NLP"})
    record = await store.get(ANA.id)

    await lifecycle.confirm_delete(BOB, ANA.id, responder)

    assert await store.get(ANA.id) == record
    assert record.message_id in publisher.messages
    assert "only manage your own" in responder.last[1]


@pytest.mark.asyncio
async def test_cancel_delete_changes_nothing(lifecycle, store, responder):
    await _submit(lifecycle, ANA, {"name": "Ana", "interests": "NLP"})
    record = await store.get(ANA.id)

    await lifecycle.cancel_delete(ANA, ANA.id, responder)

    assert responder.last == ("update", CANCELLED, None)
    assert await store.get(ANA.id) == record


@pytest.mark.asyncio
async def test_confirm_delete_without_message_still_removes_record(lifecycle, store, responder):
    intro = IntroData(name="Ana", interests="NLP")
    record = ProfileRecord(user_id=ANA.id, intro_data=intro, summary="x", experience_level="Beginner", skills="NLP")
    await store.put(ANA.id, record)

    await lifecycle.confirm_delete(ANA, ANA.id, responder)

    assert await store.get(ANA.id) is None


@pytest.mark.asyncio
async def test_confirm_delete_drops_unreadable_record(lifecycle, store, fake_redis, responder):
    key = f"{settings.REDIS_PROFILE_KEY}{ANA.id}"
    fake_redis.data[key] = '{"user_id": "111", "message_id": "42"}'

    await lifecycle.confirm_delete(ANA, ANA.id, responder)

    assert key not in fake_redis.data
    assert await store.count() == 0
    assert responder.last == ("update", NOT_FOUND, None)


@pytest.mark.asyncio
async def test_confirm_delete_after_channel_move_uses_original_channel(lifecycle, store, publisher, channel_config):
    await _submit(lifecycle, ANA, {"name": "Ana", "interests": "NLP"})
    record = await store.get(ANA.id)
    publisher.writable = {PROFILE_CHANNEL_ID, MOVED_CHANNEL_ID}
    await channel_config.set_profile_channel_id(MOVED_CHANNEL_ID)

    await lifecycle.confirm_delete(ANA, ANA.id, FakeResponder())

    assert await store.get(ANA.id) is None
    assert publisher.deleted == [(PROFILE_CHANNEL_ID, record.message_id)]
    assert publisher.messages == {}


@pytest.mark.asyncio
async def test_lost_delete_confirmation_keeps_deletion(lifecycle, store, publisher):
    await _submit(lifecycle, ANA, {"name": "Ana", "interests": "NLP"})
    responder = UnreachableResponder(lost_on=DELETED)

    await lifecycle.confirm_delete(ANA, ANA.id, responder)

    assert await store.get(ANA.id) is None
    assert publisher.messages == {}
    assert responder.calls == [("update", DELETED, None)]
