from collections.abc import Mapping
from datetime import datetime, timezone

from pydantic import BaseModel, Field

from introbot.core.constants import (
    DEFAULT_EXPERIENCE_LEVEL,
    INTERESTS_MIN_LENGTH,
    NAME_MIN_LENGTH,
    NOT_PROVIDED,
    NOT_SPECIFIED,
)
from introbot.core.exceptions import IntroValidationError

INTRO_FIELDS: tuple[str, ...] = ("name", "role", "institution", "interests", "details")


def _clean(value: str | None) -> str:
    return (value or "").strip()


class IntroData(BaseModel):
    """What the member typed into the intro form, trimmed and defaulted."""

    name: str
    role: str = NOT_PROVIDED
    institution: str = NOT_SPECIFIED
    interests: str
    details: str = NOT_PROVIDED

    @classmethod
    def from_form(cls, raw: Mapping[str, str | None]) -> "IntroData":
        """
        Validate a raw form submission and build a complete IntroData.

        Every field is replaced, so an omitted field falls back to its
        sentinel even if a previous submission had set it.

        Raises:
            IntroValidationError: name or interests too short
        """
        name = _clean(raw.get("name"))
        interests = _clean(raw.get("interests"))

        if len(name) < NAME_MIN_LENGTH:
            raise IntroValidationError("❌ Please provide your name in the form.")
        if len(interests) < INTERESTS_MIN_LENGTH:
            raise IntroValidationError("❌ Please provide your interests in AI fields or tools.")

        return cls(
            name=name,
            role=_clean(raw.get("role")) or NOT_PROVIDED,
            institution=_clean(raw.get("institution")) or NOT_SPECIFIED,
            interests=interests,
            details=_clean(raw.get("details")) or NOT_PROVIDED,
        )


class IntroSummary(BaseModel):
    summary: str
    experience_level: str = DEFAULT_EXPERIENCE_LEVEL
    skills: str
    used_fallback: bool = False


class ProfileRecord(BaseModel):
    """One stored introduction per Discord user."""

    user_id: str
    message_id: str | None = None
    # Channel the message was posted in; the configured channel can change later
    channel_id: int | None = None
    intro_data: IntroData
    summary: str
    experience_level: str
    skills: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_published(self) -> bool:
        return bool(self.message_id)
