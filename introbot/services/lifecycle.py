import asyncio
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Protocol

from loguru import logger

from introbot.core.config import settings
from introbot.core.exceptions import ChannelAccessError, IntroBotError, NotProfileOwnerError, PublishError
from introbot.models.action import ActionPayload, IntroAction
from introbot.models.form import FormDescriptor
from introbot.models.member import Member
from introbot.models.message import Control
from introbot.models.profile import IntroData, ProfileRecord
from introbot.services.channel_config import ChannelConfigStore
from introbot.services.form_builder import build_intro_form
from introbot.services.profile_store import ProfileStore
from introbot.services.publisher import ChannelTarget, Publisher, render_profile
from introbot.services.summarizer import IntroSummarizer

GENERIC_FAILURE = "⚠️ Something went wrong while processing your introduction. Please try again."
STILL_PROCESSING = "⏳ Your previous request is still being processed. Please wait a moment."
PROCESSING = "⏳ Processing your introduction with AI... This may take a moment."
NOT_FOUND = "❌ Could not find your introduction."
DELETE_PROMPT = "⚠️ Are you sure you want to delete your introduction? This cannot be undone."
DELETED = "✅ Your introduction has been deleted."
CANCELLED = "✅ Deletion cancelled."


class Responder(Protocol):
    """The pending interaction a lifecycle step reports back through."""

    async def show_form(self, form: FormDescriptor) -> None: ...

    async def defer(self) -> bool:
        """Acknowledge without answering yet. False if the interaction is already dead."""
        ...

    async def reply(self, content: str, controls: list[Control] | None = None) -> None:
        """Answer privately, or replace the deferred/previous answer."""
        ...

    async def update(self, content: str, controls: list[Control] | None = None) -> None:
        """Edit the message whose button triggered the interaction."""
        ...

    async def dismiss(self) -> None: ...


def profile_controls(owner_id: str) -> list[Control]:
    return [
        Control(
            label="Update Intro",
            emoji="🔁",
            style="primary",
            payload=ActionPayload(action=IntroAction.UPDATE, owner_id=owner_id),
        ),
        Control(
            label="Delete Intro",
            emoji="🗑️",
            style="danger",
            payload=ActionPayload(action=IntroAction.DELETE, owner_id=owner_id),
        ),
    ]


def delete_confirmation_controls(owner_id: str) -> list[Control]:
    return [
        Control(
            label="Yes, Delete",
            style="danger",
            payload=ActionPayload(action=IntroAction.CONFIRM_DELETE, owner_id=owner_id),
        ),
        Control(
            label="Cancel",
            style="secondary",
            payload=ActionPayload(action=IntroAction.CANCEL_DELETE, owner_id=owner_id),
        ),
    ]


class InFlightGuard:
    """Per-user mutual exclusion for submit and delete."""

    def __init__(self) -> None:
        self._keys: set[str] = set()

    @contextmanager
    def claim(self, key: str) -> Iterator[bool]:
        if key in self._keys:
            yield False
            return
        self._keys.add(key)
        try:
            yield True
        finally:
            self._keys.discard(key)


class IntroLifecycle:
    """
    Drives a member's introduction through create, update and delete.

    The only persisted state is the ProfileRecord in the store; the
    confirmation prompt for deletion lives in the member's ephemeral reply.
    """

    def __init__(
        self,
        store: ProfileStore,
        summarizer: IntroSummarizer,
        publisher: Publisher,
        channel_config: ChannelConfigStore,
        notice_ttl: float | None = None,
    ):
        self.store = store
        self.summarizer = summarizer
        self.publisher = publisher
        self.channel_config = channel_config
        self.notice_ttl = notice_ttl if notice_ttl is not None else settings.SUCCESS_NOTICE_TTL_SECONDS
        self.guard = InFlightGuard()
        self._background_tasks: set[asyncio.Task] = set()

    # Forms

    async def open_create_form(self, actor: Member, responder: Responder) -> None:
        try:
            await responder.show_form(build_intro_form())
            logger.info(f"📝 Intro form shown to {actor.tag}")
        except Exception as e:
            logger.exception(f"Error showing intro form to {actor.tag}: {e}")
            await self._fail(responder, "❌ Failed to show introduction form. Please try again.")

    async def open_update_form(self, actor: Member, responder: Responder, owner_id: str | None = None) -> None:
        """Show the form pre-filled from the stored intro, or blank when there is none."""
        if owner_id is not None and owner_id != actor.id:
            await self._fail(responder, "❌ You can only update your own introduction.")
            return

        try:
            record = await self.store.get(actor.id)
            await responder.show_form(build_intro_form(record.intro_data if record else None))
            logger.info(f"📝 Update intro form shown to {actor.tag} (prefilled={record is not None})")
        except Exception as e:
            logger.exception(f"Error showing update form to {actor.tag}: {e}")
            await self._fail(responder, "❌ Failed to open the update form. Please try again.")

    # Submission

    async def submit_form(self, actor: Member, raw_fields: Mapping[str, str | None], responder: Responder) -> None:
        if not await responder.defer():
            logger.error(f"Failed to acknowledge intro submission from {actor.tag}")
            return

        with self.guard.claim(actor.id) as claimed:
            if not claimed:
                logger.warning(f"Rejected concurrent intro submission from {actor.tag}")
                await self._fail(responder, STILL_PROCESSING)
                return
            try:
                await self._submit(actor, raw_fields, responder)
            except IntroBotError as e:
                await self._fail(responder, e.user_message)
            except Exception as e:
                logger.exception(f"Error processing intro from {actor.tag}: {e}")
                await self._fail(responder, GENERIC_FAILURE)

    async def _submit(self, actor: Member, raw_fields: Mapping[str, str | None], responder: Responder) -> None:
        intro = IntroData.from_form(raw_fields)
        logger.info(f"📝 Processing introduction from {actor.tag}")

        channel_id = await self.channel_config.require_profile_channel_id()
        try:
            target = await self.publisher.resolve_target(channel_id)
        except ChannelAccessError as e:
            logger.error(f"Cannot publish intros to channel {channel_id}: {e}")
            raise

        await responder.reply(PROCESSING)

        summary = await self.summarizer.summarize(intro)
        if summary.used_fallback:
            logger.warning(f"Using fallback intro summary for {actor.tag}")

        existing = await self.store.get(actor.id)
        now = datetime.now(timezone.utc)
        record = ProfileRecord(
            user_id=actor.id,
            channel_id=target.channel_id,
            intro_data=intro,
            summary=summary.summary,
            experience_level=summary.experience_level,
            skills=summary.skills,
            created_at=existing.created_at if existing else now,
            updated_at=now,
        )

        # New message goes out before the old one is removed: a failure in
        # between leaves a duplicate, never an empty channel.
        published = await self.publisher.publish(target, render_profile(record, thumbnail_url=actor.avatar_url))
        logger.info(f"✅ Intro posted for {actor.tag} (message {published.message_id})")
        record.message_id = published.message_id

        try:
            await self.store.put(actor.id, record)
        except Exception as e:
            logger.exception(f"Failed to save profile for {actor.tag}, withdrawing new message: {e}")
            await self._cleanup_message(target, published.message_id, actor)
            raise PublishError() from e

        if existing and existing.message_id and existing.message_id != published.message_id:
            await self._remove_published(existing, actor, current=target)

        status = "updated" if existing else "created"
        logger.info(f"✅ Profile {status} for {actor.tag} - {record.experience_level}")

        content = f"✅ Your introduction has been posted!\n📋 Check it out in {target.mention}"
        if published.jump_url:
            content += f"\n🔗 {published.jump_url}"
        if await self._report_success(responder, content, controls=profile_controls(actor.id)):
            self._schedule_dismiss(responder)

    async def _remove_published(
        self, record: ProfileRecord, actor: Member, current: ChannelTarget | None = None
    ) -> None:
        """Delete a record's message from the channel it was posted in, which may no longer be the configured one."""
        channel_id = record.channel_id or (current.channel_id if current else None)
        if channel_id is None:
            channel_id = await self.channel_config.get_profile_channel_id()
        if not channel_id:
            logger.warning(f"Profile channel not configured; leaving message {record.message_id} in place")
            return

        if current is not None and current.channel_id == channel_id:
            target = current
        else:
            try:
                target = await self.publisher.resolve_target(channel_id, check_permissions=False)
            except IntroBotError as e:
                logger.warning(f"Could not reach channel {channel_id} to delete intro for {actor.tag}: {e}")
                return
        await self._cleanup_message(target, record.message_id, actor)

    async def _cleanup_message(self, target: ChannelTarget, message_id: str, actor: Member) -> None:
        try:
            removed = await self.publisher.unpublish(target, message_id)
        except Exception as e:
            logger.warning(f"Could not delete intro message {message_id} for {actor.tag}: {e}")
            return
        if removed:
            logger.info(f"🔄 Deleted intro message {message_id} for {actor.tag}")
        else:
            logger.warning(f"Intro message {message_id} for {actor.tag} was already gone")

    def _schedule_dismiss(self, responder: Responder) -> None:
        task = asyncio.create_task(self._dismiss_later(responder))
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)

    async def _dismiss_later(self, responder: Responder) -> None:
        await asyncio.sleep(self.notice_ttl)
        try:
            await responder.dismiss()
        except Exception as e:
            logger.debug(f"Could not dismiss intro notice: {e}")

    # Deletion

    async def request_delete(self, actor: Member, owner_id: str, responder: Responder) -> None:
        if owner_id != actor.id:
            await self._fail(responder, "❌ You can only delete your own introduction.")
            return
        try:
            await responder.reply(DELETE_PROMPT, controls=delete_confirmation_controls(owner_id))
        except Exception as e:
            logger.exception(f"Error showing delete confirmation to {actor.tag}: {e}")
            await self._fail(responder, "❌ Failed to show delete confirmation. Please try again.")

    async def confirm_delete(self, actor: Member, owner_id: str, responder: Responder) -> None:
        if owner_id != actor.id:
            logger.warning(f"{actor.tag} tried to delete the intro of user {owner_id}")
            await self._fail(responder, NotProfileOwnerError.user_message, update=True)
            return

        with self.guard.claim(owner_id) as claimed:
            if not claimed:
                await self._fail(responder, STILL_PROCESSING, update=True)
                return
            try:
                await self._delete(actor, owner_id, responder)
            except Exception as e:
                logger.exception(f"Error deleting intro for {actor.tag}: {e}")
                await self._fail(responder, "❌ Failed to delete your introduction. Please try again.", update=True)

    async def _delete(self, actor: Member, owner_id: str, responder: Responder) -> None:
        record = await self.store.get(owner_id)
        if record is None:
            # An unreadable record also reads as None; drop whatever is under the key
            await self.store.delete(owner_id)
            await responder.update(NOT_FOUND)
            return

        if record.message_id:
            await self._remove_published(record, actor)

        await self.store.delete(owner_id)
        logger.info(f"✅ Intro deletion completed for {actor.tag}")
        await self._report_success(responder, DELETED, update=True)

    async def cancel_delete(self, actor: Member, owner_id: str, responder: Responder) -> None:
        if owner_id != actor.id:
            await self._fail(responder, NotProfileOwnerError.user_message, update=True)
            return
        try:
            await responder.update(CANCELLED)
        except Exception as e:
            logger.error(f"Error cancelling delete for {actor.tag}: {e}")

    async def _report_success(
        self, responder: Responder, content: str, controls: list[Control] | None = None, update: bool = False
    ) -> bool:
        """Tell the member the work is done. The work stands even if this message can't be delivered."""
        try:
            if update:
                await responder.update(content, controls)
            else:
                await responder.reply(content, controls)
        except Exception as e:
            logger.error(f"Could not report success to user: {e}")
            return False
        return True

    async def _fail(self, responder: Responder, message: str, update: bool = False) -> None:
        """Resolve the interaction with an error; a failure here is only logged."""
        try:
            if update:
                await responder.update(message)
            else:
                await responder.reply(message)
        except Exception as e:
            logger.error(f"Could not report failure to user: {e}")
