from typing import Literal

from pydantic import BaseModel

from introbot.core.constants import INTRO_FORM_ID


class FormField(BaseModel):
    key: str  # "name", "role", ... matches IntroData attributes
    label: str
    style: Literal["short", "paragraph"] = "short"
    placeholder: str | None = None
    required: bool = False
    min_length: int | None = None
    max_length: int | None = None
    value: str | None = None

    @property
    def custom_id(self) -> str:
        return f"intro_{self.key}"


class FormDescriptor(BaseModel):
    title: str
    custom_id: str = INTRO_FORM_ID
    fields: list[FormField]
