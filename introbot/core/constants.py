"""
Core constants used across the application. Keep these simple and documented.
"""

# Sentinels stored for optional intro fields left blank
NOT_PROVIDED: str = "Not provided"
NOT_SPECIFIED: str = "Not specified"

NAME_MIN_LENGTH: int = 2
INTERESTS_MIN_LENGTH: int = 3

# Ordered from least to most experienced
EXPERIENCE_LEVELS: tuple[str, ...] = ("Beginner", "Intermediate", "Advanced", "Expert")
DEFAULT_EXPERIENCE_LEVEL: str = "Beginner"

# experience label -> (embed color, icon)
EXPERIENCE_STYLES: dict[str, tuple[int, str]] = {
    "Beginner": (0x57F287, "🌱"),
    "Intermediate": (0x3498DB, "🚀"),
    "Advanced": (0x9B59B6, "⚡"),
    "Expert": (0xF1C40F, "🏆"),
}
NEUTRAL_STYLE: tuple[int, str] = (0x95A5A6, "👤")

# Discord embed limits
EMBED_FIELD_VALUE_LIMIT: int = 1024
EMBED_DESCRIPTION_LIMIT: int = 4096

FOOTER_TEXT: str = "🛡️ Verified Intro"

# custom_id of the intro modal
INTRO_FORM_ID: str = "intro_modal"
