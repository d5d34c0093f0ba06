import asyncio
import re
from typing import Any

from loguru import logger
from pydantic import BaseModel, Field, ValidationError, field_validator

from introbot.core.config import settings
from introbot.core.constants import DEFAULT_EXPERIENCE_LEVEL, EXPERIENCE_LEVELS, NOT_PROVIDED, NOT_SPECIFIED
from introbot.models.profile import IntroData, IntroSummary
from introbot.services.gemini import GeminiService, gemini_service

# Checked from most to least senior; first hit wins
LEVEL_KEYWORDS: list[tuple[str, tuple[str, ...]]] = [
    ("Expert", ("professor", "principal", "director", "chief", "head of", "distinguished", "10+ years")),
    ("Advanced", ("phd", "senior", "postdoc", "researcher", "lead", "staff")),
    ("Intermediate", ("engineer", "developer", "scientist", "master", "msc", "analyst", "graduate")),
]

SKILL_SPLIT = re.compile(r"[,;/\n]|\band\b")
FENCE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


def _guess_level(intro: IntroData) -> str:
    text = f"{intro.role} {intro.details}".lower()
    for level, keywords in LEVEL_KEYWORDS:
        if any(re.search(rf"\b{re.escape(keyword)}", text) for keyword in keywords):
            return level
    return DEFAULT_EXPERIENCE_LEVEL


def _skills_from_interests(interests: str) -> str:
    seen: list[str] = []
    for part in SKILL_SPLIT.split(interests):
        skill = part.strip(" .-•")
        if skill and skill.lower() not in (s.lower() for s in seen):
            seen.append(skill)
    return ", ".join(seen[:6]) or interests


def build_fallback_summary(intro: IntroData) -> IntroSummary:
    """Deterministic summary used whenever the AI result is unavailable."""
    has_role = intro.role != NOT_PROVIDED
    has_institution = intro.institution != NOT_SPECIFIED

    if has_role and has_institution:
        summary = f"{intro.name}, {intro.role} at {intro.institution}, is interested in {intro.interests}."
    elif has_role:
        summary = f"{intro.name}, {intro.role}, is interested in {intro.interests}."
    elif has_institution:
        summary = f"{intro.name} from {intro.institution} is interested in {intro.interests}."
    else:
        summary = f"{intro.name} is interested in {intro.interests}."

    return IntroSummary(
        summary=summary,
        experience_level=_guess_level(intro),
        skills=_skills_from_interests(intro.interests),
        used_fallback=True,
    )


class SummaryReply(BaseModel):
    """The JSON object the model is asked to reply with."""

    summary: str
    experience_level: str = Field(alias="experienceLevel")
    skills: str

    @field_validator("summary")
    @classmethod
    def _require_summary(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("summary is blank")
        return value

    @field_validator("experience_level")
    @classmethod
    def _canonical_level(cls, value: str) -> str:
        for level in EXPERIENCE_LEVELS:
            if value.strip().lower() == level.lower():
                return level
        raise ValueError(f"unknown experience level {value!r}")

    @field_validator("skills", mode="before")
    @classmethod
    def _join_skills(cls, value: Any) -> Any:
        if isinstance(value, list):
            value = ", ".join(str(s).strip() for s in value if str(s).strip())
        if isinstance(value, str):
            value = value.strip()
            if not value:
                raise ValueError("skills are blank")
        return value


def parse_summary_response(text: str) -> IntroSummary | None:
    """Parse the model's JSON reply. Any missing or invalid field rejects the whole reply."""
    if not text:
        return None
    try:
        reply = SummaryReply.model_validate_json(FENCE.sub("", text.strip()))
    except ValidationError as e:
        logger.debug(f"Rejected AI summary reply: {e.error_count()} error(s)")
        return None
    return IntroSummary(summary=reply.summary, experience_level=reply.experience_level, skills=reply.skills)


def _format_prompt(intro: IntroData) -> str:
    return (
        f"Name: {intro.name}\n"
        f"Role / Study: {intro.role}\n"
        f"Institution: {intro.institution}\n"
        f"Interests: {intro.interests}\n"
        f"Details: {intro.details}"
    )


class IntroSummarizer:
    """Turns intro form data into a bio, experience level and skills.

    Never raises: timeouts, API errors and malformed replies all produce the
    local fallback, flagged with ``used_fallback``.
    """

    def __init__(self, gemini: GeminiService | None = None, timeout: float | None = None):
        self.gemini = gemini or gemini_service
        self.timeout = timeout if timeout is not None else settings.SUMMARY_TIMEOUT_SECONDS

    async def summarize(self, intro: IntroData) -> IntroSummary:
        if not self.gemini.enabled:
            return build_fallback_summary(intro)

        try:
            text = await asyncio.wait_for(self.gemini.generate_content_async(_format_prompt(intro)), self.timeout)
        except asyncio.TimeoutError:
            logger.warning(f"AI summary timed out after {self.timeout}s, using fallback")
            return build_fallback_summary(intro)
        except Exception as e:
            logger.warning(f"AI summary failed, using fallback: {e}")
            return build_fallback_summary(intro)

        result = parse_summary_response(text)
        if result is None:
            logger.warning("AI summary response was malformed, using fallback")
            return build_fallback_summary(intro)
        return result


intro_summarizer = IntroSummarizer()
