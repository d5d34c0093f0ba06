from introbot.core.constants import NOT_PROVIDED, NOT_SPECIFIED
from introbot.models.form import FormDescriptor, FormField
from introbot.models.profile import IntroData

SENTINELS = {NOT_PROVIDED, NOT_SPECIFIED}


def _prefill(existing: IntroData | None, key: str) -> str | None:
    if existing is None:
        return None
    value = getattr(existing, key, None)
    # Don't echo placeholder defaults back into the form
    if not value or value in SENTINELS:
        return None
    return value


def build_intro_form(existing: IntroData | None = None) -> FormDescriptor:
    """Describe the intro modal, pre-filled from a previous submission when given."""
    fields = [
        FormField(
            key="name",
            label="Name",
            placeholder="What should people call you?",
            required=True,
            min_length=2,
            max_length=100,
        ),
        FormField(
            key="role",
            label="Role / Study",
            placeholder="e.g. ML Engineer, CS undergrad",
            max_length=100,
        ),
        FormField(
            key="institution",
            label="Institution / Company",
            placeholder="Optional",
            max_length=100,
        ),
        FormField(
            key="interests",
            label="Interests in AI fields or tools",
            style="paragraph",
            placeholder="e.g. NLP, reinforcement learning, LangChain",
            required=True,
            min_length=3,
            max_length=500,
        ),
        FormField(
            key="details",
            label="Anything else?",
            style="paragraph",
            placeholder="Projects, experience, what you're looking for...",
            max_length=1000,
        ),
    ]
    for field in fields:
        field.value = _prefill(existing, field.key)

    title = "Update Your Introduction" if existing else "Introduce Yourself"
    return FormDescriptor(title=title, fields=fields)
